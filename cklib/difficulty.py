"""Targets, difficulties, block height serialisation and hash byte shuffles."""

from __future__ import annotations

import logging
import math
import struct

from cklib.sha2 import sha256

log = logging.getLogger(__name__)

# 0x00000000FFFF0000000000000000000000000000000000000000000000000000
TRUEDIFFONE = float(0xFFFF << 208)
BITS192 = float(1 << 192)
BITS128 = float(1 << 128)
BITS64 = float(1 << 64)

_U64_MAX = (1 << 64) - 1
_QUADS_LE = struct.Struct("<4Q")
_QUADS_BE = struct.Struct(">4Q")


def _check_len(data: bytes, length: int, what: str) -> bytes:
    data = bytes(data)
    if len(data) != length:
        raise ValueError(f"{what} must be {length} bytes, got {len(data)}")
    return data


def _combine(most: int, high: int, low: int, least: int) -> float:
    value = float(most) * BITS192
    value += float(high) * BITS128
    value += float(low) * BITS64
    value += float(least)
    return value


def le256todouble(target: bytes) -> float:
    """Convert a little endian 256-bit value to a float."""
    w0, w1, w2, w3 = _QUADS_LE.unpack(_check_len(target, 32, "target"))
    return _combine(w3, w2, w1, w0)


def be256todouble(target: bytes) -> float:
    """Convert a big endian 256-bit value to a float."""
    w0, w1, w2, w3 = _QUADS_BE.unpack(_check_len(target, 32, "target"))
    return _combine(w0, w1, w2, w3)


def diff_from_target(target: bytes) -> float:
    """Return the difficulty of a little endian binary target."""
    value = le256todouble(target)
    if value <= 0:
        value = 1.0
    return TRUEDIFFONE / value


def diff_from_betarget(target: bytes) -> float:
    """Return the difficulty of a big endian binary target."""
    value = be256todouble(target)
    if value <= 0:
        value = 1.0
    return TRUEDIFFONE / value


def diff_from_nbits(nbits: bytes) -> float:
    """Return the network difficulty from packed nbits (shift byte first)."""
    nbits = _check_len(nbits, 4, "nbits")
    log.debug("Nbits is %s", nbits.hex())
    shift = nbits[0]
    if shift < 3:
        log.warning("Corrupt shift of %d in nbits", shift)
        shift = 3
    elif shift > 32:
        log.warning("Corrupt shift of %d in nbits", shift)
        shift = 32
    target = bytearray(32)
    start = 32 - shift
    target[start:start + 3] = nbits[1:4]
    return diff_from_betarget(bytes(target))


def _to_u64(value: float) -> int:
    if math.isnan(value) or value <= 0:
        return 0
    if math.isinf(value):
        return _U64_MAX
    return min(int(value), _U64_MAX)


def target_from_diff(diff: float) -> bytes:
    """Return the 32-byte little endian target for a difficulty."""
    if diff == 0.0:
        return b"\xff" * 32
    remaining = TRUEDIFFONE / diff
    words = []
    for scale in (BITS192, BITS128, BITS64):
        word = _to_u64(remaining / scale)
        words.append(word)
        remaining -= float(word) * scale
    words.append(_to_u64(remaining))
    # words run from the most significant quad (offset 24) down to offset 0
    return b"".join(word.to_bytes(8, "little") for word in reversed(words))


def ser_number(val: int) -> bytes:
    """Serialise a block height for the coinbase: a length byte then the value."""
    if val < 0x80:
        length = 1
    elif val < 0x8000:
        length = 2
    elif val < 0x800000:
        length = 3
    else:
        length = 4
    raw = (val & 0xFFFFFFFF).to_bytes(4, "little")
    return bytes([length]) + raw[:length]


def get_sernumber(data: bytes) -> int:
    """Read back a value written by ser_number; 0 if the length byte is bad."""
    data = bytes(data)
    if not data:
        return 0
    length = data[0]
    if length < 1 or length > 4:
        return 0
    raw = data[1:1 + length].ljust(4, b"\x00")
    return int.from_bytes(raw, "little", signed=True)


def fulltest(hash: bytes, target: bytes) -> bool:
    """Return whether a little endian 256-bit hash meets the target."""
    hash_value = int.from_bytes(_check_len(hash, 32, "hash"), "little")
    target_value = int.from_bytes(_check_len(target, 32, "target"), "little")
    return hash_value <= target_value


def gen_hash(data: bytes) -> bytes:
    """Return the double SHA-256 of data."""
    return sha256(sha256(bytes(data)))


_SUFFIXES = (
    (1e18, 1e15, "E"),
    (1e15, 1e12, "P"),
    (1e12, 1e9, "T"),
    (1e9, 1e6, "G"),
    (1e6, 1e3, "M"),
)


def suffix_string(val: float, sigdigits: int = 0) -> str:
    """Format val with a K/M/G/T/P/E suffix, optionally to sigdigits digits."""
    suffix = ""
    decimal = True
    for threshold, divisor, letter in _SUFFIXES:
        if val >= threshold:
            dval = (val / divisor) / 1000
            suffix = letter
            break
    else:
        if val >= 1000:
            dval = val / 1000
            suffix = "K"
        else:
            dval = val
            decimal = False

    if not sigdigits:
        if decimal:
            return f"{dval:.3g}{suffix}"
        return f"{int(dval)}{suffix}"
    magnitude = math.floor(math.log10(dval)) if dval > 0.0 else 0
    ndigits = sigdigits - 1 - magnitude
    if ndigits < 0:
        ndigits = 6
    return "%*.*f%s" % (sigdigits + 1, ndigits, dval, suffix)


def decay_time(f: float, fadd: float, fsecs: float, interval: float) -> float:
    """Return f updated as an exponentially decaying average over interval."""
    if fsecs <= 0:
        return f
    dexp = min(fsecs / interval, 36.0)
    fprop = 1.0 - 1 / math.exp(dexp)
    ftotal = 1.0 + fprop
    f += fadd / fsecs * fprop
    f /= ftotal
    if f < 2e-16:
        f = 0.0
    return f


def _words(data: bytes, count: int) -> list[bytes]:
    data = _check_len(data, count * 4, "data")
    return [data[i:i + 4] for i in range(0, len(data), 4)]


def swap_256(data: bytes) -> bytes:
    """Reverse the order of the eight 32-bit words of a 256-bit value."""
    return b"".join(reversed(_words(data, 8)))


def bswap_256(data: bytes) -> bytes:
    """Reverse the word order and byte-swap each word of a 256-bit value."""
    return b"".join(word[::-1] for word in reversed(_words(data, 8)))


def flip_32(data: bytes) -> bytes:
    """Byte-swap each of the eight 32-bit words in place order."""
    return b"".join(word[::-1] for word in _words(data, 8))


def flip_80(data: bytes) -> bytes:
    """Byte-swap each of the twenty 32-bit words of an 80-byte header."""
    return b"".join(word[::-1] for word in _words(data, 20))