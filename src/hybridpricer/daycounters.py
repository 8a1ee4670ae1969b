# daycounters.py
# Day-count conventions turning pairs of dates into year fractions.

from __future__ import annotations
import datetime as dt
from typing import Optional

from .calendars import BusinessDayConvention, Calendar
from .errors import ConfigurationError, InputError

__all__ = [
    "DayCounter",
    "Actual365Fixed",
    "Actual360",
    "ActualActualISDA",
    "Thirty360",
    "day_counter",
    "maturity_from_dates",
]


class DayCounter:
    name = "base"

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def day_count(self, d1: dt.date, d2: dt.date) -> int:
        return (d2 - d1).days

    def year_fraction(self, d1: dt.date, d2: dt.date) -> float:
        raise NotImplementedError


class Actual365Fixed(DayCounter):
    name = "act/365"

    def year_fraction(self, d1, d2):
        return self.day_count(d1, d2) / 365.0


class Actual360(DayCounter):
    name = "act/360"

    def year_fraction(self, d1, d2):
        return self.day_count(d1, d2) / 360.0


class ActualActualISDA(DayCounter):
    """Days in each calendar year divided by that year's length."""
    name = "act/act"

    def year_fraction(self, d1, d2):
        if d1 == d2:
            return 0.0
        if d1 > d2:
            return -self.year_fraction(d2, d1)
        y1, y2 = d1.year, d2.year
        if y1 == y2:
            return (d2 - d1).days / _days_in_year(y1)
        first = (dt.date(y1 + 1, 1, 1) - d1).days / _days_in_year(y1)
        last = (d2 - dt.date(y2, 1, 1)).days / _days_in_year(y2)
        return first + (y2 - y1 - 1) + last


class Thirty360(DayCounter):
    """30/360 bond basis."""
    name = "30/360"

    def day_count(self, d1, d2):
        dd1 = min(d1.day, 30)
        dd2 = d2.day
        if dd2 == 31 and dd1 == 30:
            dd2 = 30
        return 360 * (d2.year - d1.year) + 30 * (d2.month - d1.month) + (dd2 - dd1)

    def year_fraction(self, d1, d2):
        return self.day_count(d1, d2) / 360.0


def _days_in_year(y: int) -> int:
    return 366 if (y % 4 == 0 and y % 100 != 0) or y % 400 == 0 else 365


_DAY_COUNTERS = {dc.name: dc for dc in (Actual365Fixed, Actual360, ActualActualISDA, Thirty360)}


def day_counter(name: str) -> DayCounter:
    """Look a day counter up by name (``act/365``, ``act/360``, ``act/act``, ``30/360``)."""
    try:
        return _DAY_COUNTERS[name.lower()]()
    except KeyError:
        raise ConfigurationError(
            f"unknown day counter {name!r}; expected one of {sorted(_DAY_COUNTERS)}"
        ) from None


def maturity_from_dates(
    valuation: dt.date,
    expiry: dt.date,
    dc: Optional[DayCounter] = None,
    calendar: Optional[Calendar] = None,
    convention: BusinessDayConvention = BusinessDayConvention.FOLLOWING,
) -> float:
    """Year fraction from valuation to (optionally business-day adjusted) expiry."""
    if calendar is not None:
        expiry = calendar.adjust(expiry, convention)
    if expiry < valuation:
        raise InputError(f"expiry {expiry} is before valuation date {valuation}")
    return (dc or Actual365Fixed()).year_fraction(valuation, expiry)
