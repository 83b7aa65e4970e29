"""The epoch module provides the ``Epoch`` class for measurement and state dates.

An Epoch is stored as an integer Modified Julian Day plus the seconds
elapsed within that day, both as plain Python numbers.  Keeping the day
count exact means that differences between two epochs of the same
processing pass (typically seconds to days apart) keep full double
precision, which the filter relies on when it converts dates into the
scalar times handled by the Kalman recursion.

Epochs are immutable, hashable and totally ordered, so lists of
measurements can be sorted with the built-in (stable) ``sorted``.
"""

from __future__ import annotations

import math
import re

from .constants import JD_MJD_OFFSET, SECONDS_PER_DAY

# Valid ISO 8601 epoch string patterns
_EPOCH_PATTERNS = [
    # YYYY-MM-DD
    re.compile(r'^(\d{4})-(\d{2})-(\d{2})$'),
    # YYYY-MM-DDTHH:MM:SS[.fff]Z
    re.compile(r'^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2}(?:\.\d+)?)Z$'),
]


def _mjd_from_caldate(year: int, month: int, day: int) -> int:
    """Modified Julian Day number of a Gregorian calendar date at 00:00.

    References:
        O. Montenbruck and E. Gill, *Satellite Orbits*, 2012, Sec. A.1.
    """
    if month <= 2:
        year -= 1
        month += 12
    b = year // 400 - year // 100 + year // 4
    return 365 * year - 679004 + b + int(30.6001 * (month + 1)) + day


def _caldate_from_mjd(mjd: int) -> tuple[int, int, int]:
    """Inverse of :func:`_mjd_from_caldate` for whole days."""
    a = mjd + 2400001
    b = (4 * a - 7468865) // 146097
    c = a + 1 + b - b // 4 + 1524
    d = int((c - 122.1) / 365.25)
    e = 365 * d + d // 4
    f = int((c - e) / 30.6001)
    day = c - e - int(30.6001 * f)
    month = f - 1 - 12 * (f // 14)
    year = d - 4715 - ((7 + month) // 10)
    return year, month, day


class Epoch:
    """A single instant in time.

    Constructors:
        Epoch(2024, 3, 1)
        Epoch(2024, 3, 1, 12, 0, 30.5)
        Epoch("2024-03-01T12:00:30.5Z")
        Epoch(other_epoch)
    """

    __slots__ = ('_mjd', '_seconds')

    def __init__(self, *args: int | float | str | Epoch) -> None:
        if len(args) == 1:
            if isinstance(args[0], str):
                self._init_string(args[0])
            elif isinstance(args[0], Epoch):
                self._mjd = args[0]._mjd
                self._seconds = args[0]._seconds
            else:
                raise ValueError(f"Cannot construct Epoch from {type(args[0])}")
        elif 3 <= len(args) <= 6:
            self._init_date(*args)
        else:
            raise ValueError(
                "Epoch requires date components (3-6 args), a string, or an Epoch"
            )

    @classmethod
    def _from_parts(cls, mjd: int, seconds: float) -> Epoch:
        obj = object.__new__(cls)
        day_offset = math.floor(seconds / SECONDS_PER_DAY)
        obj._mjd = int(mjd) + day_offset
        obj._seconds = float(seconds) - day_offset * SECONDS_PER_DAY
        return obj

    def _init_date(self, year, month, day, hour=0, minute=0, second=0.0):
        if not 1 <= month <= 12:
            raise ValueError(f"Invalid month {month}")
        other = Epoch._from_parts(
            _mjd_from_caldate(int(year), int(month), int(day)),
            hour * 3600.0 + minute * 60.0 + second,
        )
        self._mjd = other._mjd
        self._seconds = other._seconds

    def _init_string(self, string):
        for pattern in _EPOCH_PATTERNS:
            m = pattern.match(string)
            if m:
                groups = m.groups()
                if len(groups) == 3:
                    self._init_date(int(groups[0]), int(groups[1]), int(groups[2]))
                else:
                    self._init_date(
                        int(groups[0]), int(groups[1]), int(groups[2]),
                        int(groups[3]), int(groups[4]), float(groups[5]),
                    )
                return

        raise ValueError(
            f'Invalid Epoch string: "{string}" is not ISO 8601 compliant'
        )

    # Arithmetic operators

    def __add__(self, delta: float) -> Epoch:
        """Return a new Epoch shifted by ``delta`` seconds."""
        return Epoch._from_parts(self._mjd, self._seconds + float(delta))

    def __sub__(self, other: Epoch | float) -> Epoch | float:
        """Time difference in seconds, or a new Epoch shifted backwards.

        Args:
            other: If Epoch, returns ``self - other`` in seconds.
                If numeric, returns a new Epoch with seconds subtracted.
        """
        if isinstance(other, Epoch):
            return ((self._mjd - other._mjd) * SECONDS_PER_DAY
                    + (self._seconds - other._seconds))
        return Epoch._from_parts(self._mjd, self._seconds - float(other))

    # Comparison operators

    def _key(self) -> tuple[int, float]:
        return (self._mjd, self._seconds)

    def __eq__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return self._key() == other._key()

    def __ne__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return self._key() != other._key()

    def __lt__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return self._key() < other._key()

    def __le__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return self._key() <= other._key()

    def __gt__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return self._key() > other._key()

    def __ge__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return self._key() >= other._key()

    def __hash__(self):
        return hash(self._key())

    # Time properties

    def mjd(self) -> float:
        """Return the Modified Julian Date as a float (lossy below ~1 us)."""
        return self._mjd + self._seconds / SECONDS_PER_DAY

    def jd(self) -> float:
        """Return the Julian Date as a float (lossy below ~10 us)."""
        return self.mjd() + JD_MJD_OFFSET

    def caldate(self) -> tuple[int, int, int, int, int, float]:
        """Return ``(year, month, day, hour, minute, second)``."""
        year, month, day = _caldate_from_mjd(self._mjd)
        hour = int(self._seconds // 3600)
        minute = int((self._seconds - hour * 3600) // 60)
        second = self._seconds - hour * 3600 - minute * 60
        return year, month, day, hour, minute, second

    # String representations

    def __str__(self):
        year, month, day, hour, minute, second = self.caldate()
        return (f'{year:04d}-{month:02d}-{day:02d}T'
                f'{hour:02d}:{minute:02d}:{second:06.3f}Z')

    def __repr__(self):
        return f'Epoch(_mjd={self._mjd}, _seconds={self._seconds})'
