
import pytest
import os
import sys
from unittest.mock import MagicMock, patch
from datetime import datetime, timedelta

# Add project root to Python Path so modules can be imported
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from moodcast.core.models import JournalEntry

# Monday 2 June 2025, 09:00
TODAY = datetime(2025, 6, 2, 9, 0)

# ============================================================================
# 1. GLOBAL MOCKS (ENV VARS & APIS)
# ============================================================================

@pytest.fixture(autouse=True)
def mock_env_vars():
    """Sets up fake environment variables for all tests."""
    with patch.dict(os.environ, {
        "GEMINI_API_KEY": "fake_key",
        "OPENWEATHER_API_KEY": "fake_weather_key",
        "MONGODB_URI": "mongodb://localhost:27017",
        "MOODCAST_REGION": "US",
    }):
        yield

@pytest.fixture
def mock_genai():
    """Mocks Google Generative AI (Gemini)."""
    with patch("moodcast.adapters.clients.gemini.genai") as mock:
        mock.configure = MagicMock()

        model_instance = MagicMock()
        mock.GenerativeModel.return_value = model_instance

        # Default happy path response
        response = MagicMock()
        response.text = '{"schemaVersion": "1", "occupationType": "employee"}'
        model_instance.generate_content.return_value = response

        yield mock

@pytest.fixture
def mock_requests():
    """Mocks generic requests (OpenWeather)."""
    with patch("requests.get") as mock_get:
        yield mock_get

# ============================================================================
# 2. JOURNAL FIXTURES
# ============================================================================

@pytest.fixture
def fixed_clock():
    """Clock pinned to TODAY."""
    return lambda: TODAY

@pytest.fixture
def make_entry():
    """Builds an entry `days_ago` days before TODAY at 20:00."""
    def _make(days_ago, mood, content=""):
        created = (TODAY - timedelta(days=days_ago)).replace(hour=20, minute=0)
        return JournalEntry(created_at=created, mood=mood, content=content)
    return _make

@pytest.fixture
def steady_journal(make_entry):
    """Three weeks of alternating 6/7 moods ending yesterday."""
    return [make_entry(days_ago, 6 if days_ago % 2 else 7) for days_ago in range(1, 22)]
