# calendars.py
# Business-day calendars built from ordered, immutable holiday rule tables.
# A market is one entry in a closed set; its calendar is the list of rules
# that apply to it.

from __future__ import annotations
import calendar as _cal
import datetime as dt
import enum
from dataclasses import dataclass
from typing import Optional, Union

from .errors import ConfigurationError

__all__ = [
    "Market",
    "BusinessDayConvention",
    "TimeUnit",
    "WeekendRule",
    "FixedDateHoliday",
    "ExplicitHolidays",
    "Calendar",
    "south_korea",
]


class Market(enum.Enum):
    SETTLEMENT = "settlement"   # public holidays
    KRX = "krx"                 # Korea exchange: public holidays + year-end closing


class BusinessDayConvention(enum.Enum):
    FOLLOWING = "following"
    MODIFIED_FOLLOWING = "modified_following"
    PRECEDING = "preceding"
    MODIFIED_PRECEDING = "modified_preceding"
    UNADJUSTED = "unadjusted"


class TimeUnit(enum.Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class WeekendRule:
    """Weekday-based closing (``date.weekday()`` numbering, Monday = 0)."""
    weekdays: frozenset = frozenset({5, 6})
    name: str = "Weekend"

    def applies(self, d: dt.date) -> bool:
        return d.weekday() in self.weekdays


@dataclass(frozen=True)
class FixedDateHoliday:
    """Same month/day every year, optionally only up to ``last_year``."""
    name: str
    month: int
    day: int
    last_year: Optional[int] = None

    def applies(self, d: dt.date) -> bool:
        if self.last_year is not None and d.year > self.last_year:
            return False
        return d.month == self.month and d.day == self.day


@dataclass(frozen=True)
class ExplicitHolidays:
    """One-off dates: lunar holidays, elections, exchange closings."""
    name: str
    dates: frozenset

    def applies(self, d: dt.date) -> bool:
        return d in self.dates


Rule = Union[WeekendRule, FixedDateHoliday, ExplicitHolidays]


def _dates(*entries) -> frozenset:
    """``(year, month, day, day, ...)`` tuples -> frozenset of dates."""
    out = set()
    for year, month, *days in entries:
        out.update(dt.date(year, month, day) for day in days)
    return frozenset(out)


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------
class Calendar:
    """A named, immutable list of holiday rules.

    ``is_business_day`` is a pure function of the date; the rules are
    evaluated in order and the first match names the holiday.
    """

    def __init__(self, name: str, rules: tuple):
        self._name = name
        self._rules = tuple(rules)

    def __repr__(self) -> str:
        return f"Calendar({self._name!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Calendar) and self._rules == other._rules

    def __hash__(self) -> int:
        return hash(self._rules)

    @property
    def name(self) -> str:
        return self._name

    @property
    def rules(self) -> tuple:
        return self._rules

    # --- classification -------------------------------------------------
    def holiday_name(self, d: dt.date) -> Optional[str]:
        """Name of the first rule closing ``d``, or None on business days."""
        for rule in self._rules:
            if rule.applies(d):
                return rule.name
        return None

    def is_business_day(self, d: dt.date) -> bool:
        return self.holiday_name(d) is None

    def is_holiday(self, d: dt.date) -> bool:
        return not self.is_business_day(d)

    def is_weekend(self, d: dt.date) -> bool:
        return any(isinstance(r, WeekendRule) and r.applies(d) for r in self._rules)

    def is_end_of_month(self, d: dt.date) -> bool:
        return d.month != self.adjust(d + dt.timedelta(days=1)).month

    def end_of_month(self, d: dt.date) -> dt.date:
        last = d.replace(day=_cal.monthrange(d.year, d.month)[1])
        return self.adjust(last, BusinessDayConvention.PRECEDING)

    # --- adjustment -----------------------------------------------------
    def adjust(self, d: dt.date,
               convention: BusinessDayConvention = BusinessDayConvention.FOLLOWING) -> dt.date:
        """Roll ``d`` onto a business day according to ``convention``."""
        if convention is BusinessDayConvention.UNADJUSTED:
            return d
        if convention in (BusinessDayConvention.FOLLOWING,
                          BusinessDayConvention.MODIFIED_FOLLOWING):
            out = self._roll(d, +1)
            if convention is BusinessDayConvention.MODIFIED_FOLLOWING and out.month != d.month:
                return self._roll(d, -1)
            return out
        out = self._roll(d, -1)
        if convention is BusinessDayConvention.MODIFIED_PRECEDING and out.month != d.month:
            return self._roll(d, +1)
        return out

    def _roll(self, d: dt.date, step: int) -> dt.date:
        one = dt.timedelta(days=step)
        while self.is_holiday(d):
            d += one
        return d

    def advance(
        self,
        d: dt.date,
        n: int,
        unit: TimeUnit = TimeUnit.DAYS,
        convention: BusinessDayConvention = BusinessDayConvention.FOLLOWING,
        end_of_month: bool = False,
    ) -> dt.date:
        """Move ``d`` by ``n`` units.

        Days are business days; weeks, months and years are calendar periods
        whose result is then adjusted with ``convention``.  With
        ``end_of_month`` a start date on the month's last business day stays
        on the last business day.
        """
        if unit is TimeUnit.DAYS:
            if n == 0:
                return self.adjust(d, convention)
            step = 1 if n > 0 else -1
            one = dt.timedelta(days=step)
            remaining = abs(n)
            while remaining > 0:
                d += one
                if self.is_business_day(d):
                    remaining -= 1
            return d
        if unit is TimeUnit.WEEKS:
            return self.adjust(d + dt.timedelta(weeks=n), convention)

        months = n if unit is TimeUnit.MONTHS else 12 * n
        out = _add_months(d, months)
        if end_of_month and self.is_end_of_month(d):
            return self.end_of_month(out)
        return self.adjust(out, convention)

    # --- counting -------------------------------------------------------
    def business_days_between(self, start: dt.date, end: dt.date,
                              include_first: bool = True, include_last: bool = False) -> int:
        """Number of business days between two dates (negative if end < start)."""
        if start == end:
            return int(include_first and include_last and self.is_business_day(start))
        if end < start:
            return -self.business_days_between(end, start, include_last, include_first)
        count = 0
        d = start if include_first else start + dt.timedelta(days=1)
        stop = end if include_last else end - dt.timedelta(days=1)
        while d <= stop:
            count += self.is_business_day(d)
            d += dt.timedelta(days=1)
        return count

    def holiday_list(self, start: dt.date, end: dt.date,
                     include_weekends: bool = False) -> list[dt.date]:
        """Holidays in [start, end], weekends only if requested."""
        out = []
        d = start
        while d <= end:
            if self.is_holiday(d) and (include_weekends or not self.is_weekend(d)):
                out.append(d)
            d += dt.timedelta(days=1)
        return out


def _add_months(d: dt.date, months: int) -> dt.date:
    idx = d.year * 12 + (d.month - 1) + months
    year, month = divmod(idx, 12)
    month += 1
    day = min(d.day, _cal.monthrange(year, month)[1])
    return dt.date(year, month, day)


# ---------------------------------------------------------------------------
# South Korea
# ---------------------------------------------------------------------------
_KOREA_SETTLEMENT_RULES: tuple = (
    WeekendRule(),
    FixedDateHoliday("New Year's Day", 1, 1),
    FixedDateHoliday("Independence Day", 3, 1),
    FixedDateHoliday("Arbour Day", 4, 5, last_year=2005),
    FixedDateHoliday("Labour Day", 5, 1),
    FixedDateHoliday("Children's Day", 5, 5),
    FixedDateHoliday("Memorial Day", 6, 6),
    FixedDateHoliday("Constitution Day", 7, 17, last_year=2007),
    FixedDateHoliday("Liberation Day", 8, 15),
    FixedDateHoliday("National Foundation Day", 10, 3),
    FixedDateHoliday("Christmas Day", 12, 25),
    ExplicitHolidays("Lunar New Year", _dates(
        (2004, 1, 21, 22, 23),
        (2005, 2, 8, 9, 10),
        (2006, 1, 28, 29, 30),
        (2007, 2, 19),
        (2008, 2, 6, 7, 8),
        (2009, 1, 25, 26, 27),
        (2010, 2, 13, 14, 15),
        (2011, 2, 2, 3, 4),
        (2012, 1, 23, 24),
        (2013, 2, 11),
    )),
    ExplicitHolidays("Election Day", _dates(
        (2004, 4, 15),      # National Assembly
        (2006, 5, 31),      # Regional election
        (2007, 12, 19),     # Presidency
        (2008, 4, 9),       # National Assembly
        (2010, 6, 2),       # Local election
        (2012, 4, 11),      # National Assembly
        (2012, 12, 19),     # Presidency
    )),
    ExplicitHolidays("Buddha's Birthday", _dates(
        (2004, 5, 26),
        (2005, 5, 15),
        (2006, 5, 5),
        (2007, 5, 24),
        (2008, 5, 12),
        (2009, 5, 2),
        (2010, 5, 21),
        (2011, 5, 10),
        (2012, 5, 28),
        (2013, 5, 17),
    )),
    ExplicitHolidays("Harvest Moon Day", _dates(
        (2004, 9, 27, 28, 29),
        (2005, 9, 17, 18, 19),
        (2006, 10, 5, 6, 7),
        (2007, 9, 24, 25, 26),
        (2008, 9, 13, 14, 15),
        (2009, 10, 2, 3, 4),
        (2010, 9, 21, 22, 23),
        (2011, 9, 12, 13),
        (2012, 10, 1),
        (2013, 9, 18, 19, 20),
    )),
)

_KRX_RULES: tuple = _KOREA_SETTLEMENT_RULES + (
    ExplicitHolidays("Year-end closing", _dates(
        (2004, 12, 31),
        (2005, 12, 30),
        (2006, 12, 29),
        (2007, 12, 31),
        (2008, 12, 31),
        (2009, 12, 31),
        (2010, 12, 31),
        (2011, 12, 30),
        (2012, 12, 31),
        (2013, 12, 31),
    )),
)

_SOUTH_KOREA_RULES = {
    Market.SETTLEMENT: _KOREA_SETTLEMENT_RULES,
    Market.KRX: _KRX_RULES,
}


def south_korea(market: Union[Market, str] = Market.SETTLEMENT) -> Calendar:
    """South Korean calendar for the settlement or KRX market."""
    if isinstance(market, str):
        market = market.lower()
    try:
        market = Market(market)
    except ValueError:
        raise ConfigurationError(f"unknown market: {market!r}") from None
    return Calendar(f"South Korea {market.name.lower()}", _SOUTH_KOREA_RULES[market])
