"""Tests for the astrokalman.epoch module."""

import pytest

from astrokalman.epoch import Epoch


# ──────────────────────────────────────────────
# Construction
# ──────────────────────────────────────────────


class TestEpochConstruction:
    def test_from_date(self):
        epc = Epoch(2000, 1, 1, 12, 0, 0.0)
        assert epc.caldate() == (2000, 1, 1, 12, 0, 0.0)

    def test_from_date_defaults(self):
        assert Epoch(2024, 3, 15).caldate() == (2024, 3, 15, 0, 0, 0.0)

    def test_fractional_second(self):
        *_, second = Epoch(2020, 6, 15, 10, 30, 15.125).caldate()
        assert second == pytest.approx(15.125, abs=1e-9)

    def test_from_date_string(self):
        assert Epoch("2024-03-01") == Epoch(2024, 3, 1)

    def test_from_datetime_string(self):
        assert Epoch("2024-03-01T12:00:30.5Z") == Epoch(2024, 3, 1, 12, 0, 30.5)

    def test_copy(self):
        epc = Epoch(2024, 3, 1, 6, 0, 0.0)
        assert Epoch(epc) == epc

    def test_seconds_overflow_normalized(self):
        assert Epoch(2024, 1, 1, 0, 0, 86400.0 + 5.0) == Epoch(2024, 1, 2, 0, 0, 5.0)

    def test_invalid_string_raises(self):
        with pytest.raises(ValueError, match="Invalid Epoch string"):
            Epoch("2024/03/01")

    def test_invalid_month_raises(self):
        with pytest.raises(ValueError, match="Invalid month"):
            Epoch(2024, 13, 1)

    def test_invalid_argument_count_raises(self):
        with pytest.raises(ValueError):
            Epoch(2024, 1)

    def test_invalid_type_raises(self):
        with pytest.raises(ValueError, match="Cannot construct Epoch"):
            Epoch(2.5)


# ──────────────────────────────────────────────
# Time scales
# ──────────────────────────────────────────────


class TestEpochTimeScales:
    def test_j2000_mjd(self):
        assert Epoch(2000, 1, 1, 12, 0, 0.0).mjd() == pytest.approx(51544.5)

    def test_j2000_jd(self):
        assert Epoch(2000, 1, 1, 12, 0, 0.0).jd() == pytest.approx(2451545.0)

    def test_leap_year_day(self):
        assert Epoch(2024, 3, 1).mjd() - Epoch(2024, 2, 28).mjd() == pytest.approx(2.0)

    def test_caldate_roundtrip_many_days(self):
        for year, month, day in [(1999, 12, 31), (2000, 2, 29), (2023, 7, 4), (2100, 1, 1)]:
            assert Epoch(year, month, day).caldate()[:3] == (year, month, day)


# ──────────────────────────────────────────────
# Arithmetic and ordering
# ──────────────────────────────────────────────


class TestEpochArithmetic:
    def test_add_seconds(self):
        assert Epoch(2024, 1, 1) + 86400.5 == Epoch(2024, 1, 2, 0, 0, 0.5)

    def test_subtract_epochs(self):
        assert Epoch(2024, 1, 2) - Epoch(2024, 1, 1) == pytest.approx(86400.0)

    def test_subtract_epochs_negative(self):
        assert Epoch(2024, 1, 1) - Epoch(2024, 1, 1, 0, 1, 0.0) == pytest.approx(-60.0)

    def test_subtract_seconds_crosses_day(self):
        assert Epoch(2024, 1, 2) - 1.0 == Epoch(2024, 1, 1, 23, 59, 59.0)

    def test_small_difference_precision(self):
        t0 = Epoch(2024, 1, 1, 12, 0, 0.0)
        assert (t0 + 1e-6) - t0 == pytest.approx(1e-6, abs=1e-10)

    def test_ordering(self):
        t0 = Epoch(2024, 1, 1)
        t1 = t0 + 1.0
        assert t0 < t1
        assert t1 > t0
        assert t0 <= t0
        assert t1 >= t0
        assert t0 != t1

    def test_sorted(self):
        t0 = Epoch(2024, 1, 1)
        dates = [t0 + 120.0, t0, t0 + 60.0]
        assert sorted(dates) == [t0, t0 + 60.0, t0 + 120.0]

    def test_hashable(self):
        t0 = Epoch(2024, 1, 1)
        assert len({t0, Epoch(2024, 1, 1), t0 + 1.0}) == 2

    def test_compare_with_number(self):
        assert (Epoch(2024, 1, 1) == 5) is False


class TestEpochStrings:
    def test_str(self):
        assert str(Epoch(2024, 3, 1, 12, 0, 30.5)) == "2024-03-01T12:00:30.500Z"

    def test_repr(self):
        assert repr(Epoch(2000, 1, 1)) == "Epoch(_mjd=51544, _seconds=0.0)"
