"""
Locale-aware holiday tables.

Fixed-date and rule-based (nth / last weekday of a month) holidays for a set
of regions, plus a few universal celebrations. Unknown regions fall back to
the US table.
"""

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional

DEFAULT_REGION = "US"


@dataclass(frozen=True)
class LocaleHoliday:
    name: str
    date: date
    is_national: bool
    mood_impact: float


# ============================================================================
# DATE RULES
# ============================================================================

def nth_weekday(year: int, month: int, weekday: int, n: int) -> date:
    """n-th occurrence (1-based) of an ISO weekday in a month."""
    first = date(year, month, 1)
    offset = (weekday - first.isoweekday()) % 7
    return first + timedelta(days=offset + 7 * (n - 1))


def last_weekday(year: int, month: int, weekday: int) -> date:
    last = date(year, month, calendar.monthrange(year, month)[1])
    offset = (last.isoweekday() - weekday) % 7
    return last - timedelta(days=offset)


def weekday_before(value: date, weekday: int) -> date:
    """Last occurrence of an ISO weekday strictly before value."""
    offset = (value.isoweekday() - weekday) % 7 or 7
    return value - timedelta(days=offset)


MONDAY, THURSDAY = 1, 4


# ============================================================================
# TABLES
# ============================================================================

def _universal(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("New Year's Day", date(year, 1, 1), True, 0.5),
        LocaleHoliday("Valentine's Day", date(year, 2, 14), False, 0.2),
        LocaleHoliday("New Year's Eve", date(year, 12, 31), False, 0.6),
    ]


def _us(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("Martin Luther King Jr. Day", nth_weekday(year, 1, MONDAY, 3), True, 0.2),
        LocaleHoliday("Presidents' Day", nth_weekday(year, 2, MONDAY, 3), True, 0.2),
        LocaleHoliday("Memorial Day", last_weekday(year, 5, MONDAY), True, 0.1),
        LocaleHoliday("Independence Day", date(year, 7, 4), True, 0.6),
        LocaleHoliday("Labor Day", nth_weekday(year, 9, MONDAY, 1), True, 0.3),
        LocaleHoliday("Thanksgiving", nth_weekday(year, 11, THURSDAY, 4), True, 0.5),
        LocaleHoliday("Christmas Eve", date(year, 12, 24), False, 0.5),
        LocaleHoliday("Christmas", date(year, 12, 25), True, 0.6),
    ]


def _gb(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("Early May Bank Holiday", nth_weekday(year, 5, MONDAY, 1), True, 0.3),
        LocaleHoliday("Spring Bank Holiday", last_weekday(year, 5, MONDAY), True, 0.3),
        LocaleHoliday("Summer Bank Holiday", last_weekday(year, 8, MONDAY), True, 0.3),
        LocaleHoliday("Christmas", date(year, 12, 25), True, 0.6),
        LocaleHoliday("Boxing Day", date(year, 12, 26), True, 0.4),
    ]


def _de(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("Labour Day", date(year, 5, 1), True, 0.3),
        LocaleHoliday("German Unity Day", date(year, 10, 3), True, 0.3),
        LocaleHoliday("Christmas Day", date(year, 12, 25), True, 0.6),
        LocaleHoliday("St. Stephen's Day", date(year, 12, 26), True, 0.4),
    ]


def _fr(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("Labour Day", date(year, 5, 1), True, 0.3),
        LocaleHoliday("Bastille Day", date(year, 7, 14), True, 0.6),
        LocaleHoliday("Assumption", date(year, 8, 15), True, 0.2),
        LocaleHoliday("All Saints' Day", date(year, 11, 1), True, 0.1),
        LocaleHoliday("Christmas", date(year, 12, 25), True, 0.6),
    ]


def _es(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("Labour Day", date(year, 5, 1), True, 0.3),
        LocaleHoliday("National Day of Spain", date(year, 10, 12), True, 0.4),
        LocaleHoliday("Christmas", date(year, 12, 25), True, 0.6),
    ]


def _cz(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("Labour Day", date(year, 5, 1), True, 0.3),
        LocaleHoliday("Liberation Day", date(year, 5, 8), True, 0.3),
        LocaleHoliday("St. Wenceslas Day", date(year, 9, 28), True, 0.3),
        LocaleHoliday("Independence Day", date(year, 10, 28), True, 0.4),
        LocaleHoliday("Freedom and Democracy Day", date(year, 11, 17), True, 0.3),
        LocaleHoliday("Christmas", date(year, 12, 25), True, 0.6),
    ]


def _pl(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("Labour Day", date(year, 5, 1), True, 0.3),
        LocaleHoliday("Constitution Day", date(year, 5, 3), True, 0.4),
        LocaleHoliday("Independence Day", date(year, 11, 11), True, 0.4),
        LocaleHoliday("Christmas", date(year, 12, 25), True, 0.6),
    ]


def _jp(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("Coming of Age Day", date(year, 1, 9), True, 0.3),
        LocaleHoliday("National Foundation Day", date(year, 2, 11), True, 0.2),
        LocaleHoliday("Children's Day", date(year, 5, 5), True, 0.4),
        LocaleHoliday("Culture Day", date(year, 11, 3), True, 0.3),
    ]


def _cn(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("Labour Day", date(year, 5, 1), True, 0.4),
        LocaleHoliday("National Day", date(year, 10, 1), True, 0.6),
    ]


def _in(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("Republic Day", date(year, 1, 26), True, 0.5),
        LocaleHoliday("Independence Day", date(year, 8, 15), True, 0.6),
        LocaleHoliday("Gandhi Jayanti", date(year, 10, 2), True, 0.3),
    ]


def _br(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("Tiradentes", date(year, 4, 21), True, 0.2),
        LocaleHoliday("Labour Day", date(year, 5, 1), True, 0.3),
        LocaleHoliday("Independence Day", date(year, 9, 7), True, 0.5),
        LocaleHoliday("Christmas", date(year, 12, 25), True, 0.6),
    ]


def _au(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("Australia Day", date(year, 1, 26), True, 0.5),
        LocaleHoliday("Anzac Day", date(year, 4, 25), True, 0.2),
        LocaleHoliday("Christmas Day", date(year, 12, 25), True, 0.6),
        LocaleHoliday("Boxing Day", date(year, 12, 26), True, 0.4),
    ]


def _ca(year: int) -> List[LocaleHoliday]:
    return [
        LocaleHoliday("Victoria Day", weekday_before(date(year, 5, 25), MONDAY), True, 0.3),
        LocaleHoliday("Canada Day", date(year, 7, 1), True, 0.6),
        LocaleHoliday("Labour Day", nth_weekday(year, 9, MONDAY, 1), True, 0.3),
        LocaleHoliday("Thanksgiving", nth_weekday(year, 10, MONDAY, 2), True, 0.5),
        LocaleHoliday("Christmas Day", date(year, 12, 25), True, 0.6),
    ]


REGION_TABLES: Dict[str, Callable[[int], List[LocaleHoliday]]] = {
    "US": _us,
    "GB": _gb,
    "UK": _gb,
    "DE": _de,
    "AT": _de,
    "CH": _de,
    "FR": _fr,
    "ES": _es,
    "CZ": _cz,
    "SK": _cz,
    "PL": _pl,
    "JP": _jp,
    "CN": _cn,
    "IN": _in,
    "BR": _br,
    "AU": _au,
    "CA": _ca,
}


# ============================================================================
# PUBLIC API
# ============================================================================

def holidays_for_year(year: int, region: str = DEFAULT_REGION) -> List[LocaleHoliday]:
    """All holidays for a region and year, sorted by date."""
    table = REGION_TABLES.get((region or DEFAULT_REGION).upper(), _us)
    return sorted(_universal(year) + table(year), key=lambda h: h.date)


def holiday_on(value: date, region: str = DEFAULT_REGION) -> Optional[LocaleHoliday]:
    for holiday in holidays_for_year(value.year, region):
        if holiday.date == value:
            return holiday
    return None


def next_holiday(value: date, region: str = DEFAULT_REGION) -> Optional[LocaleHoliday]:
    """First holiday on or after value (looks into the following year)."""
    for year in (value.year, value.year + 1):
        for holiday in holidays_for_year(year, region):
            if holiday.date >= value:
                return holiday
    return None


def previous_holiday(value: date, region: str = DEFAULT_REGION) -> Optional[LocaleHoliday]:
    """Most recent holiday strictly before value."""
    for year in (value.year, value.year - 1):
        for holiday in reversed(holidays_for_year(year, region)):
            if holiday.date < value:
                return holiday
    return None
