"""
Prediction aggregator.

Orchestrates context gathering, the base predictor, contextual adjustments,
the confidence model and personal analytics into one MoodPrediction, then
classifies the short-term outlook and pairs it with a support suggestion.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from moodcast.core.adjuster import ContextualAdjuster
from moodcast.core.analytics import PersonalMoodAnalytics
from moodcast.core.config import ForecastConfig
from moodcast.core.confidence import (
    confidence_band,
    days_ahead,
    horizon_decay,
    stability_score,
    volatility_score,
)
from moodcast.core.context import ContextualFactorGatherer, Location
from moodcast.core.models import (
    JournalEntry,
    MicroOutlook,
    MoodPrediction,
    MoodState,
    OutlookDirection,
    SupportSuggestion,
    TrendDirection,
    as_datetime,
    clamp,
    clamp_mood,
)
from moodcast.core.patterns import PersonalPatternStore
from moodcast.core.predictor import BasePredictor

logger = logging.getLogger(__name__)


SUPPORT_SUGGESTIONS: Dict[OutlookDirection, SupportSuggestion] = {
    OutlookDirection.RISING: SupportSuggestion(
        title="Double down on what works",
        detail="Protect the routines that sparked this lift, especially your first 10 minutes in the morning.",
    ),
    OutlookDirection.STEADY: SupportSuggestion(
        title="Stay consistent",
        detail="Keep the daily cadence: short check-ins and breath resets to maintain the steady state.",
    ),
    OutlookDirection.EASING: SupportSuggestion(
        title="Pre-plan support",
        detail="Schedule a gentle ritual before the time of day that usually dips to soften the landing.",
    ),
    OutlookDirection.VOLATILE: SupportSuggestion(
        title="Create buffers",
        detail="Keep recovery snacks ready: 2-min breaths, light movement, and one person to text.",
    ),
}


def determine_outlook(
    predicted_mood: float,
    trend: TrendDirection,
    trend_strength: int,
    comparative_score: float,
    volatility: float,
    stability: float,
) -> MicroOutlook:
    """
    Classifies the short-term trajectory. First matching rule wins:
    a 3+ day streak, then a clear gap to baseline, then volatility.
    """
    state = MoodState.from_mood(predicted_mood).value

    if trend_strength >= ForecastConfig.TREND_STREAK_MIN:
        if trend is TrendDirection.IMPROVING:
            return MicroOutlook(
                OutlookDirection.RISING,
                f"Lifting {state}",
                f"Momentum has been improving for {trend_strength} days.",
            )
        if trend is TrendDirection.DECLINING:
            return MicroOutlook(
                OutlookDirection.EASING,
                f"Softening {state}",
                f"Energy has dipped for {trend_strength} days. Plan lighter touchpoints.",
            )
        return MicroOutlook(
            OutlookDirection.STEADY,
            f"Even {state}",
            "Patterns are remarkably steady. Keep your anchors nearby.",
        )

    if abs(comparative_score) >= ForecastConfig.OUTLOOK_COMPARATIVE_THRESHOLD:
        if comparative_score > 0:
            return MicroOutlook(
                OutlookDirection.RISING,
                "Above your usual",
                f"Tracking {comparative_score:.1f} above baseline. Capture what feels helpful.",
            )
        return MicroOutlook(
            OutlookDirection.EASING,
            "Below your typical",
            f"Running {abs(comparative_score):.1f} below baseline. Build in softness tomorrow.",
        )

    if volatility > ForecastConfig.OUTLOOK_VOLATILITY_THRESHOLD:
        return MicroOutlook(
            OutlookDirection.VOLATILE,
            "Keep anchors nearby",
            "Mood has been oscillating this week. Ground yourself with predictable rituals.",
        )

    if stability > ForecastConfig.OUTLOOK_STABLE_SCORE:
        summary = "Recent days have hovered in a healthy range. Keep leaning on what works."
    else:
        summary = "You're holding steady, but there is some wobble. Keep routines gentle."
    return MicroOutlook(OutlookDirection.STEADY, f"Steady {state}", summary)


def support_suggestion(direction: OutlookDirection) -> SupportSuggestion:
    return SUPPORT_SUGGESTIONS[direction]


class MoodPredictionService:
    """
    Forecasts mood for target dates.

    Collaborators are injected so several independent services (or test
    doubles) can live side by side.

    Args:
        pattern_store: Learned patterns shared by the adjuster and analytics.
        context_gatherer: Season/moon/holiday/weather provider.
        analytics: Personal analytics engine.
        predictor: Base predictor.
        clock: Returns "now"; the forecast horizon is measured from it.
        max_workers: Thread pool size for predict_range.
    """

    def __init__(
        self,
        pattern_store: Optional[PersonalPatternStore] = None,
        context_gatherer: Optional[ContextualFactorGatherer] = None,
        analytics: Optional[PersonalMoodAnalytics] = None,
        predictor: Optional[BasePredictor] = None,
        clock: Optional[Callable[[], datetime]] = None,
        max_workers: int = 4,
    ):
        self.clock = clock or datetime.now
        self.pattern_store = pattern_store if pattern_store is not None else PersonalPatternStore()
        self.context_gatherer = context_gatherer if context_gatherer is not None else ContextualFactorGatherer()
        if analytics is None:
            analytics = PersonalMoodAnalytics(self.pattern_store, clock=self.clock)
        self.analytics = analytics
        self.predictor = predictor if predictor is not None else BasePredictor()
        self.adjuster = ContextualAdjuster(self.pattern_store)
        self.max_workers = max_workers

    # ========================================================================
    # HORIZON
    # ========================================================================

    def confidence_for_date(self, target: Any) -> float:
        return horizon_decay(days_ahead(target, self.clock()))

    def should_gray_out(self, target: Any) -> bool:
        return self.confidence_for_date(target) < ForecastConfig.GRAY_OUT_THRESHOLD

    # ========================================================================
    # FORECAST
    # ========================================================================

    def predict(
        self,
        target: Any,
        entries: Sequence[JournalEntry],
        location: Optional[Location] = None,
    ) -> MoodPrediction:
        """
        Forecasts mood for target.

        Args:
            target: date or datetime to forecast (dates are read as midnight).
            entries: Full journal history (read-only).
            location: Optional (latitude, longitude) for weather.

        Returns:
            A complete, immutable MoodPrediction.
        """
        target_dt = as_datetime(target)
        entry_count = sum(1 for e in entries if e.mood is not None)

        factors = self.context_gatherer.gather(target_dt, location)
        base = self.predictor.predict(target_dt, entries)
        adjustment = self.adjuster.adjust(base, factors, entry_count, target_dt)

        horizon = self.confidence_for_date(target_dt)
        predicted = clamp_mood(adjustment.mood)
        confidence = clamp(adjustment.confidence * horizon, 0.0, 1.0)

        insight = self.analytics.generate_insight(target_dt, entries, predicted_mood=predicted)
        volatility = volatility_score(entries, target_dt)
        stability = stability_score(volatility)
        outlook = determine_outlook(
            predicted,
            insight.trend,
            insight.trend_strength,
            insight.comparative_score,
            volatility,
            stability,
        )

        prediction = MoodPrediction(
            date=target_dt.date(),
            predicted_mood=predicted,
            confidence=confidence,
            contributing_factors=adjustment.factors,
            base_prediction=base,
            contextual_factors=factors,
            personal_baseline=insight.personal_baseline,
            comparative_score=insight.comparative_score,
            confidence_band=confidence_band(predicted, confidence, volatility),
            trend=insight.trend,
            trend_strength=insight.trend_strength,
            volatility_score=volatility,
            stability_score=stability,
            micro_outlook=outlook,
            support_suggestion=support_suggestion(outlook.direction),
            horizon_confidence=horizon,
            weekday_average=insight.weekday_average,
            weekday_rank=insight.weekday_rank,
            primary_insight=insight.primary_insight,
            secondary_insight=insight.secondary_insight,
        )
        logger.info(
            f"[FORECAST] {prediction.date}: {predicted:.2f} ({prediction.mood_state.value}), "
            f"confidence {confidence:.2f}, outlook {outlook.direction.value}"
        )
        return prediction

    def predict_range(
        self,
        start: Any,
        days: int,
        entries: Sequence[JournalEntry],
        location: Optional[Location] = None,
    ) -> List[MoodPrediction]:
        """
        Forecasts `days` consecutive dates starting at start, in parallel.

        Returns:
            Predictions ordered by date.
        """
        if days <= 0:
            return []
        start_date = as_datetime(start).date()
        targets = [start_date + timedelta(days=offset) for offset in range(days)]
        # Warm the summary once so workers share it
        self.analytics.analyze(entries)

        results: Dict[date, MoodPrediction] = {}
        with ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, days))) as executor:
            futures = {
                executor.submit(self.predict, target, entries, location): target
                for target in targets
            }
            for future in as_completed(futures):
                target = futures[future]
                results[target] = future.result()
        return [results[t] for t in targets]

    def notify_entries_changed(self) -> None:
        """Marks derived statistics stale after the journal changed."""
        self.analytics.invalidate()

    def summary_line(self, prediction: MoodPrediction) -> Tuple[str, str]:
        """Headline and one-line detail for display."""
        headline = f"{prediction.date:%a %d %b}: {prediction.predicted_mood:.1f}/10 {prediction.mood_state.value}"
        detail = (
            f"{prediction.comparative_description} | {prediction.confidence_description} "
            f"| {prediction.micro_outlook.headline}"
        )
        return headline, detail
