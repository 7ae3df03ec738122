"""Hex, base64 and base58 helpers plus tolerant string comparisons."""

from __future__ import annotations

import base64

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_B58_VALUES = {ch: i for i, ch in enumerate(_B58_ALPHABET)}
_B58_BIN_LEN = 25


class HexDecodeError(ValueError):
    """Raised when a hex string cannot be decoded to the requested length."""


def bin2hex(data: bytes) -> str:
    """Return the lower-case hex representation of data."""
    return bytes(data).hex()


def validhex(text: str) -> bool:
    """Return whether text is a non-empty, even-length hex string."""
    if not text or len(text) % 2:
        return False
    return all(ch in _HEX_DIGITS for ch in text)


def hex2bin(text: str, length: int) -> bytes:
    """Decode exactly length bytes from text, which must hold exactly that many."""
    if len(text) % 2 and len(text) < 2 * length + 1:
        raise HexDecodeError("early end of string in hex2bin")
    if any(ch not in _HEX_DIGITS for ch in text[:2 * length]):
        raise HexDecodeError("invalid binary encoding in hex2bin")
    if len(text) != 2 * length:
        raise HexDecodeError(
            f"hex string of {len(text)} characters does not decode to {length} bytes"
        )
    return bytes.fromhex(text)


def http_base64(src: str | bytes) -> str:
    """Return src encoded as MIME base64 with padding."""
    raw = src.encode() if isinstance(src, str) else bytes(src)
    return base64.b64encode(raw).decode("ascii")


def b58tobin(b58: str) -> bytes:
    """Decode a base58 string into its 25-byte binary form."""
    value = 0
    for ch in b58:
        try:
            digit = _B58_VALUES[ch]
        except KeyError:
            raise ValueError(f"invalid base58 character {ch!r}") from None
        value = value * 58 + digit
    value %= 1 << (_B58_BIN_LEN * 8)
    return value.to_bytes(_B58_BIN_LEN, "big")


def safecmp(a: str | None, b: str | None) -> int:
    """Compare strings tolerating None and empty values; 0 means equal."""
    if a is None or b is None:
        return 0 if a is b else -1
    if not a or not b:
        return 0 if len(a) == len(b) else -1
    return (a > b) - (a < b)


def cmdmatch(buf: str | None, cmd: str) -> bool:
    """Return whether buf starts with cmd, ignoring case."""
    if not buf or len(buf) < len(cmd):
        return False
    return buf[:len(cmd)].lower() == cmd.lower()