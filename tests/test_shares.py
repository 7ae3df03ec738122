import pytest

from cklib.shares import ShareError


def test_valid_description():
    assert ShareError(0).description() == "Valid"


def test_first_and_last_codes():
    assert ShareError(-9).description() == "Invalid nonce2 length"
    assert ShareError(6).description() == "Invalid version mask"


@pytest.mark.parametrize(
    "member, text",
    [
        (ShareError.STALE, "Stale"),
        (ShareError.DUPE, "Duplicate"),
        (ShareError.HIGH_DIFF, "Above target"),
        (ShareError.NOT_ARRAY, "Params not array"),
        (ShareError.NTIME_INVALID, "Ntime out of range"),
    ],
)
def test_descriptions(member, text):
    assert member.description() == text


def test_codes_are_contiguous():
    codes = [int(ShareError(code)) for code in range(-9, 7)]
    assert codes == list(range(-9, 7))
    assert len(ShareError) == 16


def test_descriptions_are_distinct():
    texts = [ShareError(code).description() for code in range(-9, 7)]
    assert len(set(texts)) == 16


def test_unknown_code_rejected():
    with pytest.raises(ValueError):
        ShareError(7)