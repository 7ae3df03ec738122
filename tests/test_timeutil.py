import time

import pytest

from cklib.timeutil import (
    cksleep_ms,
    cksleep_ms_r,
    cksleep_prepare_r,
    cksleep_us,
    cksleep_us_r,
    ms_tvdiff,
    sane_tdiff,
    tvdiff,
    us_tvdiff,
)


def test_tvdiff_and_us_agree():
    end, start = 1000.75, 1000.25
    assert us_tvdiff(end, start) == pytest.approx(tvdiff(end, start) * 1000000)
    assert ms_tvdiff(end, start) == int(tvdiff(end, start) * 1000)


def test_tvdiff_value():
    assert tvdiff(3.25, 1.0) == pytest.approx(2.25)


def test_us_tvdiff_capped():
    assert us_tvdiff(1000.0, 0.0) == 60000000.0


def test_ms_tvdiff_capped():
    assert ms_tvdiff(10000.0, 0.0) == 3600000


def test_ms_tvdiff_negative():
    assert ms_tvdiff(1.0, 2.0) < 0


def test_sane_tdiff_floor():
    assert sane_tdiff(1.0, 2.0) == 0.001
    assert sane_tdiff(5.0, 2.0) == pytest.approx(3.0)


def test_cksleep_ms_waits():
    start = cksleep_prepare_r()
    cksleep_ms(20)
    assert cksleep_prepare_r() - start >= 0.019


def test_cksleep_us_waits():
    start = cksleep_prepare_r()
    cksleep_us(20000)
    assert cksleep_prepare_r() - start >= 0.019


def test_cksleep_r_counts_from_start():
    start = cksleep_prepare_r()
    time.sleep(0.03)
    before = cksleep_prepare_r()
    cksleep_ms_r(start, 10)
    assert cksleep_prepare_r() - before < 0.01


def test_cksleep_us_r_past_start_returns_quickly():
    start = cksleep_prepare_r() - 10.0
    before = cksleep_prepare_r()
    cksleep_us_r(start, 5000)
    assert cksleep_prepare_r() - before < 0.5


def test_cksleep_ms_r_reaches_deadline():
    start = cksleep_prepare_r()
    cksleep_ms_r(start, 15)
    assert time.monotonic() >= start + 0.015