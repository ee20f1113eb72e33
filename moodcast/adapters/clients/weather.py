"""
Weather snapshot module using the OpenWeather One Call 3.0 API.

Fetches current/hourly/daily weather for a coordinate, maps OpenWeather
condition ids onto the forecaster's condition categories and picks the
snapshot closest to the target date. Anything that goes wrong yields "no
weather"; a plausible-looking substitute is never synthesized.
"""

import logging
import os
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

import requests
from geopy.geocoders import Nominatim

from moodcast.core.cache import TTLCache
from moodcast.core.config import ForecastConfig
from moodcast.core.models import WeatherCondition, WeatherSnapshot, as_datetime

# ============================================================================
# CONSTANTS & CONFIGURATION
# ============================================================================

API_URL = "https://api.openweathermap.org/data/3.0/onecall"
REQUEST_TIMEOUT = 10
GEOCODER_USER_AGENT = "moodcast_forecaster"

logger = logging.getLogger(__name__)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class WeatherServiceError(Exception):
    """Base error for the weather client."""
    pass


class WeatherAPIKeyMissing(WeatherServiceError):
    pass


class WeatherRateLimited(WeatherServiceError):
    pass


class WeatherHTTPError(WeatherServiceError):
    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        super().__init__(message or f"OpenWeather returned HTTP {status_code}")


# ============================================================================
# CONDITION MAPPING
# ============================================================================

class ConditionMapper:
    """Maps OpenWeather condition ids (and `main` text) to WeatherCondition."""

    MAIN_FALLBACKS = {
        "clear": WeatherCondition.SUNNY,
        "clouds": WeatherCondition.CLOUDY,
        "rain": WeatherCondition.RAINY,
        "drizzle": WeatherCondition.RAINY,
        "thunderstorm": WeatherCondition.STORMY,
        "snow": WeatherCondition.SNOWY,
        "mist": WeatherCondition.FOGGY,
        "fog": WeatherCondition.FOGGY,
        "haze": WeatherCondition.FOGGY,
    }

    @classmethod
    def from_id(cls, condition_id: Optional[int], main: str = "") -> WeatherCondition:
        if condition_id is not None:
            if 200 <= condition_id <= 232:
                return WeatherCondition.STORMY
            if 300 <= condition_id <= 321 or 500 <= condition_id <= 531:
                return WeatherCondition.RAINY
            if 600 <= condition_id <= 622:
                return WeatherCondition.SNOWY
            if 701 <= condition_id <= 781:
                return WeatherCondition.FOGGY
            if condition_id == 800:
                return WeatherCondition.SUNNY
            if condition_id == 801:
                return WeatherCondition.PARTLY_CLOUDY
            if 802 <= condition_id <= 804:
                return WeatherCondition.CLOUDY

        fallback = cls.MAIN_FALLBACKS.get((main or "").strip().lower())
        if fallback is None:
            logger.warning(f"[WEATHER] Unknown condition id {condition_id} ({main!r}), defaulting to cloudy")
            return WeatherCondition.CLOUDY
        return fallback


# ============================================================================
# LOCATION SERVICE
# ============================================================================

def geocode_city(city: str) -> Optional[Tuple[float, float]]:
    """
    Resolves a city name to (latitude, longitude) with Nominatim.

    Returns:
        Coordinates, or None when the city cannot be found.
    """
    try:
        geolocator = Nominatim(user_agent=GEOCODER_USER_AGENT)
        location = geolocator.geocode(city)
    except Exception as e:
        logger.error(f"[WEATHER] Geocoding failed for '{city}': {e}")
        return None

    if location is None:
        logger.warning(f"[WEATHER] Could not geocode city '{city}'")
        return None
    logger.info(f"[WEATHER] Geocoded '{city}' to {location.latitude:.4f}, {location.longitude:.4f}")
    return location.latitude, location.longitude


# ============================================================================
# API INTERACTION
# ============================================================================

class OpenWeatherClient:
    """
    Handles One Call API interactions with a per-coordinate response cache.

    Args:
        api_key: OpenWeather key; defaults to OPENWEATHER_API_KEY.
        cache_ttl: Seconds a response stays fresh.
        clock: Returns "now" for choosing between current and forecast data.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        cache_ttl: float = ForecastConfig.WEATHER_CACHE_TTL,
        clock=None,
    ) -> None:
        self.api_key = api_key or os.environ.get("OPENWEATHER_API_KEY")
        self.cache: TTLCache = TTLCache(cache_ttl, name="weather")
        self.clock = clock or datetime.now

    def fetch_raw(self, latitude: float, longitude: float) -> Dict[str, Any]:
        """
        Fetches the One Call payload.

        Raises:
            WeatherAPIKeyMissing: no API key configured.
            WeatherRateLimited: HTTP 429.
            WeatherHTTPError: any other non-200 status (401 = invalid key).
            WeatherServiceError: network or decoding failure.
        """
        cache_key = (round(latitude, 4), round(longitude, 4))
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        if not self.api_key:
            raise WeatherAPIKeyMissing("OPENWEATHER_API_KEY is not set")

        params = {
            "lat": latitude,
            "lon": longitude,
            "appid": self.api_key,
            "units": "metric",
            "exclude": "minutely",
        }
        try:
            response = requests.get(API_URL, params=params, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            raise WeatherServiceError(f"Request failed: {e}") from e

        if response.status_code == 401:
            raise WeatherHTTPError(401, "Invalid OpenWeather API key")
        if response.status_code == 429:
            raise WeatherRateLimited("OpenWeather rate limit exceeded")
        if response.status_code != 200:
            raise WeatherHTTPError(response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise WeatherServiceError(f"Invalid JSON from OpenWeather: {e}") from e

        self.cache.set(cache_key, data)
        return data

    def to_snapshot(self, data: Dict[str, Any], target: Any) -> Optional[WeatherSnapshot]:
        """
        Picks the reading for target: current conditions for today, else the
        nearest hourly reading, else the first daily one.
        """
        target_dt = as_datetime(target)
        today = as_datetime(self.clock()).date()

        try:
            current = data.get("current")
            if target_dt.date() == today and current:
                return self._snapshot(current, current.get("temp"))

            hourly = data.get("hourly") or []
            if hourly:
                target_ts = target_dt.timestamp()
                closest = min(hourly, key=lambda h: abs(h.get("dt", 0) - target_ts))
                return self._snapshot(closest, closest.get("temp"))

            daily = data.get("daily") or []
            if daily:
                first = daily[0]
                temp = first.get("temp")
                return self._snapshot(first, temp.get("day") if isinstance(temp, dict) else temp)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"[WEATHER] Failed to parse weather data: {e}")
            return None

        logger.warning("[WEATHER] No usable readings in response")
        return None

    @staticmethod
    def _snapshot(reading: Dict[str, Any], temperature: Any) -> Optional[WeatherSnapshot]:
        weather = (reading.get("weather") or [None])[0]
        if weather is None or temperature is None:
            return None
        humidity = reading.get("humidity")
        uvi = reading.get("uvi")
        return WeatherSnapshot(
            temperature=float(temperature),
            condition=ConditionMapper.from_id(weather.get("id"), weather.get("main", "")),
            humidity=float(humidity) if humidity is not None else None,
            uv_index=float(uvi) if uvi is not None else None,
        )

    def snapshot_for(self, target: Any, location: Tuple[float, float]) -> Optional[WeatherSnapshot]:
        data = self.fetch_raw(location[0], location[1])
        return self.to_snapshot(data, target)


# ============================================================================
# PUBLIC API
# ============================================================================

def fetch_weather_snapshot(
    target: date,
    location: Tuple[float, float],
    client: Optional[OpenWeatherClient] = None,
) -> Optional[WeatherSnapshot]:
    """
    Best-effort weather for a date and coordinate.

    Returns:
        WeatherSnapshot, or None if the key is missing or the call fails.
    """
    client = client or OpenWeatherClient()
    try:
        snapshot = client.snapshot_for(target, location)
    except WeatherAPIKeyMissing:
        logger.info("[WEATHER] No API key configured, weather disabled")
        return None
    except WeatherServiceError as e:
        logger.warning(f"[WEATHER] Weather unavailable: {e}")
        return None

    if snapshot is None:
        logger.warning("[WEATHER] Weather forecast unavailable")
    return snapshot
