# cklib

Support routines for a mining pool server, usable on their own:

- `cklib.sha2` – a self-contained SHA-256 (`Sha256` with `update`, `digest`,
  `hexdigest`; and `sha256`).
- `cklib.encoding` – hex and base64 helpers, base58 decoding and tolerant string
  comparison (`bin2hex`, `hex2bin`, `validhex`, `http_base64`, `b58tobin`,
  `safecmp`, `cmdmatch`). `hex2bin` raises `HexDecodeError` on bad input.
- `cklib.cashaddr` – cash address decoding (`decode_cashaddr`, returning a
  `CashAddress` with `prefix`, `script` and `hash`), the checksum helpers
  `polymod` and `verify_checksum`, and `address_to_txn`, which builds the output
  script for a cash, segwit or base58 address.
- `cklib.shares` – share submission results (`ShareError`, with `description()`).
- `cklib.difficulty` – target/difficulty conversion (`diff_from_target`,
  `diff_from_betarget`, `diff_from_nbits`, `target_from_diff`, `le256todouble`,
  `be256todouble`), block height serialisation (`ser_number`, `get_sernumber`),
  `fulltest`, double SHA-256 (`gen_hash`), `suffix_string`, `decay_time` and
  word shuffles (`swap_256`, `bswap_256`, `flip_32`, `flip_80`).
- `cklib.timeutil` – time differences on float seconds (`tvdiff`, `us_tvdiff`,
  `ms_tvdiff`, `sane_tdiff`) and drift-free monotonic sleeps (`cksleep_ms`,
  `cksleep_us`, `cksleep_prepare_r`, `cksleep_ms_r`, `cksleep_us_r`).
- `cklib.locks` – `RWLock`, the write-biased `CkLock` (with `reading()` and
  `writing()` context managers, `downgrade` and `demote`), and
  `completion_timeout` to run a call with a time limit in milliseconds. A lock
  that cannot be obtained after repeated timed attempts raises
  `LockContentionError`.
- `cklib.netutil` – TCP helpers: URL parsing (`extract_sockaddr`), resolution
  (`url_from_serverurl`, `url_from_sockaddr`, `url_from_socket`),
  `bind_socket`, `connect_socket`, `round_trip`, socket options
  (`keep_sockalive`, `nolinger_socket`), readiness waits (`wait_read_select`,
  `wait_write_select`) and exact I/O (`read_length`, `write_length`,
  `write_socket`, `empty_socket`). Failures raise `NetError`.

## Installation

```
pip install .
```

## Examples

```python
from cklib.sha2 import sha256
from cklib.difficulty import diff_from_nbits, target_from_diff
from cklib.encoding import hex2bin

sha256(b"abc").hex()
diff_from_nbits(hex2bin("1d00ffff", 4))   # 1.0
target_from_diff(1.0).hex()
```

```python
from cklib.locks import CkLock

lock = CkLock()
with lock.writing():
    ...
with lock.reading():
    ...
```

```python
from cklib.netutil import extract_sockaddr

extract_sockaddr("stratum+tcp://pool.example.com:3333")  # ("pool.example.com", "3333")
```

## What it does not do

The package has no command-line program and no unix socket messaging: it cannot
notify a running pool of a new block, exchange length-prefixed messages over a
local socket or pass file descriptors between processes. Nor does it write
rotating log files. It offers the building blocks above and leaves running a
pool to the caller.

## Tests

```
pip install .[test]
pytest
```