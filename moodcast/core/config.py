"""
Centralized configuration for the mood forecaster.

Algorithm constants live on ForecastConfig (class attributes, never mutated at
runtime). Secrets and deployment knobs come from the environment through
Settings.from_env(), after dotenv has been loaded.
"""

import os
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# ============================================================================
# ALGORITHM CONSTANTS
# ============================================================================

class ForecastConfig:
    """Weights, windows and thresholds used by the forecasting core."""

    # MOOD DOMAIN
    MOOD_MIN: float = 2.0
    MOOD_MAX: float = 10.0
    ENTRY_MOOD_MIN: int = 1
    ENTRY_MOOD_MAX: int = 10
    NEUTRAL_MOOD: float = 6.0

    # BASE PREDICTOR (ensemble terms)
    SAME_WEEKDAY_WINDOW_DAYS: int = 56
    SAME_WEEKDAY_MAX_SAMPLES: int = 6
    SAME_WEEKDAY_WEIGHT: float = 0.55
    SAME_WEEKDAY_FULL_SAMPLES: float = 3.0
    RECENCY_DECAY_STEP: float = 0.15
    RECENCY_MIN_WEIGHT: float = 0.3
    RECENT_TREND_WINDOW_DAYS: int = 7
    RECENT_TREND_WEIGHT: float = 0.30
    BASELINE_WINDOW_DAYS: int = 30
    BASELINE_WEIGHT: float = 0.15

    # Population-level weekday effects (ISO weekday: 1 = Monday ... 7 = Sunday)
    DEFAULT_WEEKDAY_VARIATION: Dict[int, float] = {
        1: -0.5, 2: -0.2, 3: 0.0, 4: 0.2, 5: 0.6, 6: 0.4, 7: 0.3
    }

    # CONTEXTUAL ADJUSTER
    PERSONAL_WEIGHT_FULL_ENTRIES: float = 20.0
    GENERIC_PATTERN_MAX_ENTRIES: int = 7
    OCCUPATION_MIN_ENTRIES: int = 3
    OCCUPATION_MAX_ENTRIES: int = 10
    OCCUPATION_SCALE: float = 0.3
    OCCUPATION_MIN_IMPACT: float = 0.1
    SEASONAL_SCALE: float = 0.3
    GENERIC_MIN_IMPACT: float = 0.05
    HOLIDAY_BOOST: float = 0.3
    HOLIDAY_PROXIMITY_DAYS: int = 3
    GENERIC_WEEKDAY_IMPACT: Dict[int, float] = {
        1: -0.6, 2: -0.2, 3: 0.0, 4: 0.1, 5: 0.5, 6: 0.4, 7: 0.4
    }

    # Data-volume confidence tiers: (minimum entry count, confidence)
    DATA_VOLUME_TIERS: List[Tuple[int, float]] = [
        (20, 0.8),
        (10, 0.65),
        (5, 0.5),
        (0, 0.3),
    ]

    # CONFIDENCE MODEL
    HORIZON_TODAY_CONFIDENCE: float = 0.85
    HORIZON_FLOOR: float = 0.1
    GRAY_OUT_THRESHOLD: float = 0.40
    VOLATILITY_WINDOW_DAYS: int = 14
    VOLATILITY_MIN_SAMPLES: int = 3
    VOLATILITY_DEFAULT: float = 0.45
    VOLATILITY_NORMALIZER: float = 2.0
    BAND_MIN_SPREAD: float = 0.4
    BAND_CONFIDENCE_SCALE: float = 1.4
    BAND_VOLATILITY_SCALE: float = 1.2

    # Outlier dampening: (z-score threshold, dampening factor), strongest first
    OUTLIER_THRESHOLDS: List[Tuple[float, float]] = [
        (2.5, 0.2),
        (2.0, 0.4),
        (1.5, 0.7),
    ]

    # PERSONAL ANALYTICS
    ANALYTICS_BASELINE_WINDOW_DAYS: int = 14
    TREND_MIN_ENTRIES: int = 3
    TREND_MAX_WINDOW: int = 5
    TREND_THRESHOLD: float = 0.5
    TREND_SCAN_LIMIT: int = 7
    TREND_STREAK_MIN: int = 3
    INSIGHT_MIN_SAMPLES: int = 2
    INSIGHT_DEVIATION: float = 0.5

    # MICRO-OUTLOOK
    OUTLOOK_COMPARATIVE_THRESHOLD: float = 0.4
    OUTLOOK_VOLATILITY_THRESHOLD: float = 0.55
    OUTLOOK_STABLE_SCORE: float = 0.6

    # PATTERNS
    PATTERN_MIN_CONFIDENCE: float = 0.5
    PATTERN_IMPACT_LIMIT: float = 3.0
    OCCUPATION_PATTERN_CONFIDENCE: float = 0.7
    EXTRACTION_ENTRY_LIMIT: int = 10

    # CACHES (seconds)
    WEATHER_CACHE_TTL: float = 600.0
    ANALYTICS_CACHE_TTL: float = 3600.0
    CONTEXT_CACHE_SIZE: int = 64


# ============================================================================
# ENVIRONMENT SETTINGS
# ============================================================================

def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"[CONFIG] Invalid value for {name}: {raw!r}, using {default}")
        return default


@dataclass(frozen=True)
class Settings:
    """Deployment settings resolved from the environment."""
    gemini_api_key: Optional[str] = None
    openweather_api_key: Optional[str] = None
    mongodb_uri: Optional[str] = None
    region: str = "US"
    weather_cache_ttl: float = ForecastConfig.WEATHER_CACHE_TTL
    analytics_cache_ttl: float = ForecastConfig.ANALYTICS_CACHE_TTL

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """
        Loads .env (if present) and reads settings from os.environ.

        Missing keys leave the matching collaborator disabled.
        """
        load_dotenv(dotenv_path=dotenv_path)
        return cls(
            gemini_api_key=os.environ.get("GEMINI_API_KEY") or None,
            openweather_api_key=os.environ.get("OPENWEATHER_API_KEY") or None,
            mongodb_uri=os.environ.get("MONGODB_URI") or None,
            region=(os.environ.get("MOODCAST_REGION") or "US").upper(),
            weather_cache_ttl=_float_env("MOODCAST_WEATHER_TTL", ForecastConfig.WEATHER_CACHE_TTL),
            analytics_cache_ttl=_float_env("MOODCAST_ANALYTICS_TTL", ForecastConfig.ANALYTICS_CACHE_TTL),
        )
