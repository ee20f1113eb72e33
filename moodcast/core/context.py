"""
Contextual factor gathering.

Derives season, lunar phase, holiday proximity and time-of-year context for a
target date, and asks an optional weather fetcher for a snapshot. Results are
cached per (date, location) so repeated forecasts for the same day do not
re-fetch weather.
"""

import logging
from datetime import date
from typing import Any, Callable, Optional, Tuple

from moodcast.core.cache import TTLCache
from moodcast.core.config import ForecastConfig
from moodcast.core.holidays import DEFAULT_REGION, holiday_on, next_holiday, previous_holiday
from moodcast.core.models import (
    ContextualFactors,
    MoonPhase,
    Season,
    TimeOfYearContext,
    WeatherSnapshot,
    as_datetime,
)

logger = logging.getLogger(__name__)

Location = Tuple[float, float]
WeatherFetcher = Callable[[date, Location], Optional[WeatherSnapshot]]


def analyze_time_of_year(target: date, region: str = DEFAULT_REGION) -> TimeOfYearContext:
    month, day = target.month, target.day
    upcoming = next_holiday(target, region)
    return TimeOfYearContext(
        days_until_holiday=(upcoming.date - target).days if upcoming else None,
        holiday_name=upcoming.name if upcoming else None,
        is_back_to_school_season=month in (8, 9),
        is_tax_season=3 <= month <= 4 and day <= 15,
        is_new_year_period=(month == 12 and day >= 20) or (month == 1 and day <= 15),
    )


class ContextualFactorGatherer:
    """
    Builds ContextualFactors for target dates.

    Args:
        region: Holiday table region code (unknown codes fall back to US).
        weather_fetcher: Optional callable (date, (lat, lon)) -> WeatherSnapshot.
            Failures are treated as "no weather".
        cache: Optional cache; defaults to a weather-TTL cache.
    """

    def __init__(
        self,
        region: str = DEFAULT_REGION,
        weather_fetcher: Optional[WeatherFetcher] = None,
        cache: Optional[TTLCache] = None,
    ):
        self.region = (region or DEFAULT_REGION).upper()
        self.weather_fetcher = weather_fetcher
        if cache is None:
            cache = TTLCache(ForecastConfig.WEATHER_CACHE_TTL, name="context", max_size=ForecastConfig.CONTEXT_CACHE_SIZE)
        self.cache = cache

    def gather(self, target: Any, location: Optional[Location] = None) -> ContextualFactors:
        target_date = as_datetime(target).date()
        key = (target_date, location)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"[CONTEXT] Cache hit for {target_date}")
            return cached

        upcoming = next_holiday(target_date, self.region)
        previous = previous_holiday(target_date, self.region)
        factors = ContextualFactors(
            season=Season.from_date(target_date),
            moon_phase=MoonPhase.calculate(target_date),
            is_holiday=holiday_on(target_date, self.region) is not None,
            days_to_next_holiday=(upcoming.date - target_date).days if upcoming else None,
            time_of_year=analyze_time_of_year(target_date, self.region),
            days_since_holiday=(target_date - previous.date).days if previous else None,
            weather=self._fetch_weather(target_date, location),
        )
        self.cache.set(key, factors)
        return factors

    def _fetch_weather(self, target: date, location: Optional[Location]) -> Optional[WeatherSnapshot]:
        # Without a real location there is no weather; never synthesize one.
        if self.weather_fetcher is None or location is None:
            return None
        try:
            snapshot = self.weather_fetcher(target, location)
        except Exception as e:
            logger.warning(f"[CONTEXT] Weather unavailable for {target}: {e}")
            return None
        if snapshot is not None:
            logger.info(f"[CONTEXT] Weather for {target}: {snapshot}")
        return snapshot

    def invalidate(self, target: Any, location: Optional[Location] = None) -> None:
        self.cache.invalidate((as_datetime(target).date(), location))
