import hashlib

import pytest

from cklib.sha2 import Sha256, sha256


@pytest.mark.parametrize(
    "message",
    [
        b"",
        b"abc",
        b"a" * 55,
        b"a" * 56,
        b"a" * 63,
        b"a" * 64,
        b"a" * 65,
        b"a" * 119,
        b"a" * 120,
        bytes(range(256)) * 5,
    ],
)
def test_matches_reference(message):
    assert sha256(message) == hashlib.sha256(message).digest()


def test_incremental_equals_one_shot():
    data = bytes(range(256)) * 3
    hasher = Sha256()
    for start in range(0, len(data), 37):
        hasher.update(data[start:start + 37])
    assert hasher.digest() == sha256(data)


def test_digest_does_not_consume_state():
    hasher = Sha256(b"hello ")
    first = hasher.digest()
    assert hasher.digest() == first
    hasher.update(b"world")
    assert hasher.digest() == hashlib.sha256(b"hello world").digest()


def test_hexdigest_matches_digest():
    hasher = Sha256(b"stratum")
    assert hasher.hexdigest() == hasher.digest().hex()
    assert len(hasher.hexdigest()) == 64


def test_double_hash():
    once = sha256(b"block header")
    assert sha256(once) == hashlib.sha256(hashlib.sha256(b"block header").digest()).digest()


def test_accepts_bytearray():
    assert sha256(bytearray(b"xyz")) == hashlib.sha256(b"xyz").digest()