"""
Contextual adjustment layer.

Blends general population patterns with learned personal patterns on top of
the base estimate. The balance shifts with data volume: with little history
the general patterns carry the estimate, with more history the personal ones
take over.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from moodcast.core.config import ForecastConfig
from moodcast.core.confidence import data_volume_confidence
from moodcast.core.models import (
    ContextualFactors,
    OccupationType,
    PredictionFactor,
    as_datetime,
    clamp_mood,
    weekday_name,
)
from moodcast.core.patterns import PersonalPatternStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdjustmentResult:
    mood: float
    confidence: float
    factors: Tuple[PredictionFactor, ...]


def adaptive_weights(entry_count: int) -> Tuple[float, float]:
    """Returns (personal_weight, general_weight)."""
    personal = min(1.0, entry_count / ForecastConfig.PERSONAL_WEIGHT_FULL_ENTRIES)
    return personal, 1.0 - personal


class ContextualAdjuster:
    """Applies seasonal, weekday, holiday, personal-date and occupation corrections."""

    def __init__(self, pattern_store: Optional[PersonalPatternStore] = None):
        self.pattern_store = pattern_store if pattern_store is not None else PersonalPatternStore()

    def adjust(
        self,
        base_prediction: float,
        factors: ContextualFactors,
        entry_count: int,
        target: Any,
    ) -> AdjustmentResult:
        """
        Adjusts the base estimate for target.

        Args:
            base_prediction: Output of the base predictor.
            factors: Contextual factors for target.
            entry_count: Number of mood-scored entries in the history.
            target: The forecast date.

        Returns:
            AdjustmentResult with the clamped mood, data-volume confidence
            and the contributing factors in application order.
        """
        target_dt = as_datetime(target)
        weekday = target_dt.isoweekday()
        day_name = weekday_name(weekday)
        personal_weight, general_weight = adaptive_weights(entry_count)

        mood = base_prediction
        contributions: List[PredictionFactor] = []

        # General patterns only while the weekday term has too little personal data
        if entry_count < ForecastConfig.GENERIC_PATTERN_MAX_ENTRIES:
            seasonal = factors.season.mood_impact * ForecastConfig.SEASONAL_SCALE * general_weight
            if abs(seasonal) > ForecastConfig.GENERIC_MIN_IMPACT:
                mood += seasonal
                contributions.append(PredictionFactor(
                    name="Seasonal",
                    impact=seasonal,
                    description=f"General {factors.season.value} mood pattern",
                    confidence=0.5,
                ))

            generic_impact = ForecastConfig.GENERIC_WEEKDAY_IMPACT.get(weekday, 0.0)
            weekday_adjustment = generic_impact * general_weight
            if abs(weekday_adjustment) > ForecastConfig.GENERIC_MIN_IMPACT:
                mood += weekday_adjustment
                contributions.append(PredictionFactor(
                    name="Day of Week",
                    impact=weekday_adjustment,
                    description=f"{day_name}s are typically {'better' if generic_impact > 0 else 'harder'}",
                    confidence=0.4,
                ))

            near_holiday = (
                factors.is_holiday
                or (factors.days_to_next_holiday is not None
                    and factors.days_to_next_holiday < ForecastConfig.HOLIDAY_PROXIMITY_DAYS)
            )
            if near_holiday:
                boost = ForecastConfig.HOLIDAY_BOOST * general_weight
                if boost > ForecastConfig.GENERIC_MIN_IMPACT:
                    mood += boost
                    holiday_name = factors.time_of_year.holiday_name or "a holiday"
                    contributions.append(PredictionFactor(
                        name="Holiday",
                        impact=boost,
                        description=f"Near {holiday_name}",
                        confidence=0.6,
                    ))

        # Personal significant dates apply at any data volume
        if personal_weight > 0:
            for pattern in self.pattern_store.significant_dates_on(target_dt):
                impact = pattern.mood_impact * personal_weight
                mood += impact
                contributions.append(PredictionFactor(
                    name="Personal Date",
                    impact=impact,
                    description=pattern.description,
                    confidence=pattern.confidence,
                ))

        occupation = self.pattern_store.occupation
        if (
            occupation not in (None, OccupationType.UNKNOWN)
            and ForecastConfig.OCCUPATION_MIN_ENTRIES <= entry_count < ForecastConfig.OCCUPATION_MAX_ENTRIES
        ):
            occupation_impact = occupation.mood_impact_for_weekday(weekday) * ForecastConfig.OCCUPATION_SCALE
            if abs(occupation_impact) > ForecastConfig.OCCUPATION_MIN_IMPACT:
                mood += occupation_impact
                contributions.append(PredictionFactor(
                    name="Your Pattern",
                    impact=occupation_impact,
                    description=(
                        f"{day_name}s tend to be better for you"
                        if occupation_impact > 0
                        else f"{day_name}s can be challenging for you"
                    ),
                    confidence=0.5,
                ))

        adjusted = clamp_mood(mood)
        if contributions:
            logger.debug(
                f"[ADJUSTER] {target_dt.date()}: {base_prediction:.2f} -> {adjusted:.2f} "
                f"({', '.join(f'{c.name} {c.impact:+.2f}' for c in contributions)})"
            )
        return AdjustmentResult(
            mood=adjusted,
            confidence=data_volume_confidence(entry_count),
            factors=tuple(contributions),
        )
