"""Cash address decoding and conversion of addresses to output scripts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from cklib.encoding import b58tobin

log = logging.getLogger(__name__)

_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_CHARSET_REV = {
    **{ch: i for i, ch in enumerate(_CHARSET)},
    **{ch.upper(): i for i, ch in enumerate(_CHARSET)},
}

DEFAULT_PREFIXES = ("ecash", "ectest")
CHECKSUM_LEN = 8
HASH_SIZE = 20


class CashAddressError(ValueError):
    """Raised when a cash address cannot be decoded."""


@dataclass(frozen=True)
class CashAddress:
    """A decoded cash address."""

    prefix: str
    script: bool
    hash: bytes


def _bech32_value(ch: str) -> int:
    return _CHARSET_REV.get(ch, -1)


def _convert_bits(values: Iterable[int]) -> bytes:
    """Regroup 5-bit values into bytes, dropping any incomplete trailing bits."""
    out = bytearray()
    acc = 0
    bits = 0
    for value in values:
        acc = ((acc << 5) | value) & 0xFFFFFFFF
        bits += 5
        while bits >= 8:
            bits -= 8
            out.append((acc >> bits) & 0xFF)
    return bytes(out)


def polymod(data: Iterable[int]) -> int:
    """Return the cash address BCH checksum polynomial of 5-bit values."""
    c = 1
    for d in data:
        c0 = c >> 35
        c = ((c & 0x07FFFFFFFF) << 5) ^ d
        if c0 & 0x01:
            c ^= 0x98F2BC8E61
        if c0 & 0x02:
            c ^= 0x79B76D99E2
        if c0 & 0x04:
            c ^= 0xF33E5FB3C4
        if c0 & 0x08:
            c ^= 0xAE2EABE2A8
        if c0 & 0x10:
            c ^= 0x1E4F43E470
    return c ^ 1


def verify_checksum(prefix: str, payload: Sequence[int]) -> bool:
    """Return whether payload (checksum included) is valid under prefix."""
    data = [ord(ch) & 0x1F for ch in prefix]
    data.append(0)
    data.extend(payload)
    return polymod(data) == 0


def decode_cashaddr(addr: str | None, prefix_len: int = 16) -> CashAddress:
    """Decode a cash address holding a 20-byte hash.

    Without an explicit prefix the known default prefixes are tried in turn.
    prefix_len bounds the prefix length the way a fixed buffer would.
    """
    if addr is None:
        raise CashAddressError("null address passed to decode_cashaddr")

    lower = upper = has_number = False
    prefix_count = 0
    for i, ch in enumerate(addr):
        if "a" <= ch <= "z":
            lower = True
        elif "A" <= ch <= "Z":
            upper = True
        elif "0" <= ch <= "9":
            has_number = True
        elif ch == ":":
            if has_number or i == 0 or prefix_count:
                raise CashAddressError(f"invalid prefix in cash address {addr}")
            prefix_count = i
        else:
            raise CashAddressError(
                f"unexpected character {ch!r} in cash address {addr} at pos {i}"
            )

    if upper and lower:
        raise CashAddressError(f"cannot mix lower and upper case in a cash address: {addr}")

    payload_start = 0
    has_prefix = prefix_count > 0
    prefix = ""
    if has_prefix:
        if prefix_len <= prefix_count:
            raise CashAddressError(f"cash address prefix is too long: {addr}")
        prefix = addr[:prefix_count].lower()
        payload_start = prefix_count + 1

    payload_chars = addr[payload_start:]
    if not payload_chars:
        raise CashAddressError(f"empty payload in cash address {addr}")

    payload = []
    for ch in payload_chars:
        value = _bech32_value(ch)
        if value < 0:
            raise CashAddressError(f"invalid character {ch!r} in payload for cash address {addr}")
        payload.append(value)

    if has_prefix:
        if not verify_checksum(prefix, payload):
            raise CashAddressError(f"invalid checksum for cash address {addr}")
    else:
        for candidate in DEFAULT_PREFIXES:
            if prefix_len <= len(candidate):
                log.error("cash address prefix is too long: %s:%s", candidate, addr)
                continue
            if verify_checksum(candidate, payload):
                prefix = candidate
                break
            log.warning("invalid checksum for cash address %s using prefix %s", addr, candidate)
        else:
            raise CashAddressError(f"unable to guess the prefix for cash address {addr}")

    data = _convert_bits(payload[:-CHECKSUM_LEN])
    if not data:
        raise CashAddressError(f"payload decoding failed for cash address {addr}")

    version = data[0]
    if version & 0x80:
        raise CashAddressError(f"invalid version {version} for cash address {addr}")
    hash_size = 20 + 4 * (version & 0x03)
    if version & 0x04:
        hash_size *= 2
    if len(data) != hash_size + 1:
        raise CashAddressError(
            f"wrong hash size {len(data) - 1} for cash address {addr} (expected {hash_size})"
        )
    if hash_size != HASH_SIZE:
        raise CashAddressError(
            f"wrong hash size {hash_size} for cash address {addr}: "
            "only 20 bytes hashes are supported"
        )

    return CashAddress(prefix=prefix, script=((version >> 3) & 0x1F) == 1, hash=data[1:])


def _pubkey_script(hash160: bytes) -> bytes:
    return b"\x76\xa9\x14" + hash160 + b"\x88\xac"


def _p2sh_script(hash160: bytes) -> bytes:
    return b"\xa9\x14" + hash160 + b"\x87"


def _segwit_script(addr: str) -> bytes:
    sep = addr.rfind("1")
    if sep < 0:
        raise ValueError(f"missing separator in segwit address {addr}")
    values = []
    for ch in addr[sep + 1:]:
        value = _bech32_value(ch)
        if value < 0:
            raise ValueError(f"invalid character {ch!r} in segwit address {addr}")
        values.append(value)
    data = values[:-6]
    if not data:
        raise ValueError(f"no witness data in segwit address {addr}")
    witness_version = data[0]
    first = witness_version + 0x50 if witness_version else 0
    program = _convert_bits(data[1:])
    return bytes([first & 0xFF, len(program)]) + program


def address_to_txn(addr: str, script: bool = False, segwit: bool = False,
                   cashaddr: bool = False) -> bytes:
    """Return the output script paying to addr."""
    if cashaddr:
        decoded = decode_cashaddr(addr)
        if decoded.script != script:
            log.error("cash address decoding mismatch for %s", addr)
        return _p2sh_script(decoded.hash) if script else _pubkey_script(decoded.hash)
    if segwit:
        return _segwit_script(addr)
    raw = b58tobin(addr)
    return _p2sh_script(raw[1:21]) if script else _pubkey_script(raw[1:21])