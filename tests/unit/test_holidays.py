
import pytest
from datetime import date

from moodcast.core.holidays import (
    holiday_on,
    holidays_for_year,
    last_weekday,
    next_holiday,
    nth_weekday,
    previous_holiday,
    weekday_before,
)


class TestDateRules:

    def test_nth_weekday(self):
        # Thanksgiving 2025: fourth Thursday of November
        assert nth_weekday(2025, 11, 4, 4) == date(2025, 11, 27)
        assert nth_weekday(2025, 9, 1, 1) == date(2025, 9, 1)

    def test_last_weekday(self):
        # Memorial Day 2025
        assert last_weekday(2025, 5, 1) == date(2025, 5, 26)

    def test_weekday_before_is_strict(self):
        # 2025-05-26 is a Monday
        assert weekday_before(date(2025, 5, 26), 1) == date(2025, 5, 19)
        assert weekday_before(date(2025, 5, 25), 1) == date(2025, 5, 19)


class TestHolidayTables:
    """Test suite for holiday lookups across regions."""

    def test_tables_are_sorted(self):
        holidays = holidays_for_year(2025, "US")
        assert [h.date for h in holidays] == sorted(h.date for h in holidays)

    def test_universal_holidays_everywhere(self):
        for region in ("US", "GB", "DE", "JP", "BR"):
            assert holiday_on(date(2025, 1, 1), region).name == "New Year's Day"

    def test_unknown_region_falls_back_to_us(self):
        assert holidays_for_year(2025, "ZZ") == holidays_for_year(2025, "US")
        assert holiday_on(date(2025, 7, 4), "ZZ").name == "Independence Day"

    def test_region_code_is_case_insensitive(self):
        assert holiday_on(date(2025, 10, 3), "de").name == "German Unity Day"

    def test_next_holiday_includes_today(self):
        assert next_holiday(date(2025, 7, 4)).date == date(2025, 7, 4)

    def test_next_holiday_in_sparse_region(self):
        upcoming = next_holiday(date(2025, 12, 31), "JP")
        assert upcoming.date == date(2025, 12, 31)
        assert next_holiday(date(2025, 11, 4), "JP").date == date(2025, 12, 31)

    def test_previous_holiday_is_strictly_before(self):
        assert previous_holiday(date(2025, 1, 1)).date == date(2024, 12, 31)
        assert previous_holiday(date(2025, 7, 5)).name == "Independence Day"

    @pytest.mark.parametrize("region,value,name", [
        ("GB", date(2025, 12, 26), "Boxing Day"),
        ("CA", date(2025, 5, 19), "Victoria Day"),
        ("AU", date(2025, 1, 26), "Australia Day"),
        ("CZ", date(2025, 11, 17), "Freedom and Democracy Day"),
    ])
    def test_regional_holidays(self, region, value, name):
        assert holiday_on(value, region).name == name
