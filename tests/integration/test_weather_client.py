
import os
import pytest
import requests
from datetime import date, datetime
from unittest.mock import MagicMock, patch

from moodcast.adapters.clients.weather import (
    ConditionMapper,
    OpenWeatherClient,
    WeatherHTTPError,
    WeatherRateLimited,
    fetch_weather_snapshot,
    geocode_city,
)
from moodcast.core.models import WeatherCondition

NOW = datetime(2025, 6, 2, 9, 0)
LONDON = (51.5074, -0.1278)

ONE_CALL_PAYLOAD = {
    "current": {"temp": 17.4, "humidity": 70, "uvi": 3.1, "weather": [{"id": 500, "main": "Rain"}]},
    "hourly": [
        {"dt": int(datetime(2025, 6, 2, 12).timestamp()), "temp": 18.0, "weather": [{"id": 801, "main": "Clouds"}]},
        {"dt": int(datetime(2025, 6, 3, 0).timestamp()), "temp": 12.5, "weather": [{"id": 800, "main": "Clear"}]},
    ],
    "daily": [{"temp": {"day": 20.0}, "weather": [{"id": 211, "main": "Thunderstorm"}]}],
}


def http_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else ONE_CALL_PAYLOAD
    return response


class TestOpenWeatherClient:
    """Test suite for OpenWeather fetching and snapshot selection."""

    def setup_method(self):
        self.client = OpenWeatherClient(api_key="test_key", clock=lambda: NOW)

    # ========================================================================
    # 1. FETCHING
    # ========================================================================

    def test_fetch_uses_metric_units_and_key(self, mock_requests):
        mock_requests.return_value = http_response()
        self.client.fetch_raw(*LONDON)

        params = mock_requests.call_args.kwargs["params"]
        assert params["appid"] == "test_key"
        assert params["units"] == "metric"
        assert mock_requests.call_args.kwargs["timeout"] == 10

    def test_responses_are_cached_per_location(self, mock_requests):
        mock_requests.return_value = http_response()
        self.client.fetch_raw(*LONDON)
        self.client.fetch_raw(51.50741, -0.12779)
        assert mock_requests.call_count == 1

    def test_invalid_key(self, mock_requests):
        mock_requests.return_value = http_response(401)
        with pytest.raises(WeatherHTTPError) as exc:
            self.client.fetch_raw(*LONDON)
        assert exc.value.status_code == 401

    def test_rate_limited(self, mock_requests):
        mock_requests.return_value = http_response(429)
        with pytest.raises(WeatherRateLimited):
            self.client.fetch_raw(*LONDON)

    # ========================================================================
    # 2. SNAPSHOT SELECTION
    # ========================================================================

    def test_today_uses_current_conditions(self):
        snapshot = self.client.to_snapshot(ONE_CALL_PAYLOAD, date(2025, 6, 2))

        assert snapshot.condition is WeatherCondition.RAINY
        assert snapshot.temperature == 17.4
        assert snapshot.humidity == 70.0

    def test_future_uses_nearest_hourly(self):
        snapshot = self.client.to_snapshot(ONE_CALL_PAYLOAD, date(2025, 6, 3))
        assert snapshot.condition is WeatherCondition.SUNNY
        assert snapshot.temperature == 12.5

    def test_falls_back_to_daily(self):
        payload = {"daily": ONE_CALL_PAYLOAD["daily"]}
        snapshot = self.client.to_snapshot(payload, date(2025, 6, 5))
        assert snapshot.condition is WeatherCondition.STORMY
        assert snapshot.temperature == 20.0

    def test_empty_payload_gives_nothing(self):
        assert self.client.to_snapshot({}, date(2025, 6, 3)) is None

    @pytest.mark.parametrize("condition_id,main,expected", [
        (202, "", WeatherCondition.STORMY),
        (310, "", WeatherCondition.RAINY),
        (601, "", WeatherCondition.SNOWY),
        (741, "", WeatherCondition.FOGGY),
        (802, "", WeatherCondition.CLOUDY),
        (None, "Haze", WeatherCondition.FOGGY),
        (999, "Volcanic ash", WeatherCondition.CLOUDY),
    ])
    def test_condition_mapping(self, condition_id, main, expected):
        assert ConditionMapper.from_id(condition_id, main) is expected


class TestWeatherPublicAPI:
    """Test suite for the best-effort module functions."""

    def test_network_error_means_no_weather(self, mock_requests):
        mock_requests.side_effect = requests.ConnectionError("offline")
        client = OpenWeatherClient(api_key="test_key", clock=lambda: NOW)
        assert fetch_weather_snapshot(date(2025, 6, 3), LONDON, client) is None

    def test_server_error_means_no_weather(self, mock_requests):
        mock_requests.return_value = http_response(503)
        client = OpenWeatherClient(api_key="test_key", clock=lambda: NOW)
        assert fetch_weather_snapshot(date(2025, 6, 3), LONDON, client) is None

    def test_missing_key_means_no_weather(self, mock_requests):
        with patch.dict(os.environ, {}, clear=True):
            assert fetch_weather_snapshot(date(2025, 6, 3), LONDON) is None
        mock_requests.assert_not_called()

    def test_successful_fetch(self, mock_requests):
        mock_requests.return_value = http_response()
        client = OpenWeatherClient(clock=lambda: NOW)  # key from environment
        snapshot = fetch_weather_snapshot(date(2025, 6, 3), LONDON, client)
        assert snapshot.condition is WeatherCondition.SUNNY

    def test_geocode_city(self):
        with patch("moodcast.adapters.clients.weather.Nominatim") as mock_nominatim:
            mock_nominatim.return_value.geocode.return_value = MagicMock(latitude=44.84, longitude=-0.58)
            assert geocode_city("Bordeaux") == (44.84, -0.58)

            mock_nominatim.return_value.geocode.return_value = None
            assert geocode_city("Atlantis") is None
