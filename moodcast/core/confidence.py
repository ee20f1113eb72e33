"""
Confidence and uncertainty model.

Data-volume confidence, forecast-horizon decay, recent volatility and the
confidence band drawn around a point forecast.
"""

import statistics
from datetime import datetime
from typing import Any, Sequence

from moodcast.core.config import ForecastConfig
from moodcast.core.models import ConfidenceBand, JournalEntry, as_datetime, clamp, days_between


def data_volume_confidence(entry_count: int) -> float:
    """Step function over the number of mood-scored entries."""
    for minimum, confidence in ForecastConfig.DATA_VOLUME_TIERS:
        if entry_count >= minimum:
            return confidence
    return ForecastConfig.DATA_VOLUME_TIERS[-1][1]


def horizon_decay(days_ahead: int) -> float:
    """
    Confidence multiplier for a forecast days_ahead days out.

    0.85 for today (or the past), then 0.85/0.80/0.75 for days 1-3,
    0.60..0.45 for days 4-7, 0.35..0.23 for days 8-14 and a slow slide to a
    0.1 floor afterwards.
    """
    if days_ahead <= 0:
        return ForecastConfig.HORIZON_TODAY_CONFIDENCE
    if days_ahead <= 3:
        return 0.85 - (days_ahead - 1) * 0.05
    if days_ahead <= 7:
        return 0.60 - (days_ahead - 4) * 0.05
    if days_ahead <= 14:
        return 0.35 - (days_ahead - 8) * 0.02
    return max(ForecastConfig.HORIZON_FLOOR, 0.20 - (days_ahead - 15) * 0.01)


def days_ahead(target: Any, today: Any) -> int:
    """Calendar days from today to target (start of day on both sides)."""
    return (as_datetime(target).date() - as_datetime(today).date()).days


def should_gray_out(target: Any, today: Any) -> bool:
    return horizon_decay(days_ahead(target, today)) < ForecastConfig.GRAY_OUT_THRESHOLD


def volatility_score(entries: Sequence[JournalEntry], target: Any) -> float:
    """
    Normalized standard deviation of moods over the trailing window.

    Returns the moderate default when there are too few samples to tell.
    """
    target_dt: datetime = as_datetime(target)
    moods = [
        e.mood for e in entries
        if e.mood is not None
        and 0 <= days_between(e.created_at, target_dt) <= ForecastConfig.VOLATILITY_WINDOW_DAYS
    ]
    if len(moods) < ForecastConfig.VOLATILITY_MIN_SAMPLES:
        return ForecastConfig.VOLATILITY_DEFAULT
    return clamp(statistics.pstdev(moods) / ForecastConfig.VOLATILITY_NORMALIZER, 0.0, 1.0)


def stability_score(volatility: float) -> float:
    return clamp(1.0 - volatility, 0.0, 1.0)


def confidence_band(predicted_mood: float, confidence: float, volatility: float) -> ConfidenceBand:
    spread = max(
        ForecastConfig.BAND_MIN_SPREAD,
        (1.0 - confidence) * ForecastConfig.BAND_CONFIDENCE_SCALE + volatility * ForecastConfig.BAND_VOLATILITY_SCALE,
    )
    return ConfidenceBand(
        lower=max(ForecastConfig.MOOD_MIN, predicted_mood - spread),
        upper=min(ForecastConfig.MOOD_MAX, predicted_mood + spread),
    )
