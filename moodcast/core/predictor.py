"""
Base mood predictor.

Estimates an unadjusted mood for a target date from journal history with a
three-term weighted ensemble: recency-weighted same-weekday average, the
recent 7-day trend, and a 30-day baseline.
"""

import logging
import statistics
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Sequence

from moodcast.core.config import ForecastConfig
from moodcast.core.models import JournalEntry, as_datetime, days_between

logger = logging.getLogger(__name__)


# ============================================================================
# OUTLIER DAMPENING
# ============================================================================

@dataclass(frozen=True)
class OutlierInfo:
    is_outlier: bool
    deviation_from_mean: float
    dampening_factor: float  # 1.0 = full weight

    @staticmethod
    def analyze(mood: float, mean: float, standard_deviation: float) -> "OutlierInfo":
        """Classifies a mood by its z-score against the history."""
        if standard_deviation <= 0:
            return OutlierInfo(False, 0.0, 1.0)

        deviation = abs(mood - mean) / standard_deviation
        for threshold, factor in ForecastConfig.OUTLIER_THRESHOLDS:
            if deviation >= threshold:
                return OutlierInfo(True, deviation, factor)
        return OutlierInfo(False, deviation, 1.0)


@dataclass(frozen=True)
class EnsembleTerm:
    source: str
    score: float
    weight: float
    sample_count: int


# ============================================================================
# PREDICTOR
# ============================================================================

class BasePredictor:
    """
    Computes the base estimate for a date.

    Args:
        dampen_outliers: When True, each entry's contribution is scaled by its
            OutlierInfo dampening factor before averaging.
    """

    def __init__(self, dampen_outliers: bool = False):
        self.dampen_outliers = dampen_outliers

    @staticmethod
    def default_weekday_variation(weekday: int) -> float:
        return ForecastConfig.DEFAULT_WEEKDAY_VARIATION.get(weekday, 0.0)

    def default_prediction(self, weekday: int) -> float:
        return ForecastConfig.NEUTRAL_MOOD + self.default_weekday_variation(weekday)

    def predict(self, target: Any, entries: Sequence[JournalEntry]) -> float:
        """
        Returns the base estimate for target.

        Args:
            target: date or datetime; dates are read as midnight.
            entries: Full journal history; unscored entries are ignored.
        """
        target_dt = as_datetime(target)
        weekday = target_dt.isoweekday()

        history = [e for e in entries if e.mood is not None and e.created_at < target_dt]
        if not history:
            logger.debug(f"[PREDICTOR] No history before {target_dt.date()}, using weekday default")
            return self.default_prediction(weekday)

        terms = self.ensemble_terms(target_dt, history)
        if not terms:
            return statistics.fmean(e.mood for e in history)

        total_weight = sum(t.weight for t in terms)
        estimate = sum(t.score * t.weight for t in terms) / total_weight
        logger.debug(
            f"[PREDICTOR] {target_dt.date()}: "
            + ", ".join(f"{t.source}={t.score:.2f}x{t.weight:.2f}" for t in terms)
            + f" -> {estimate:.2f}"
        )
        return estimate

    def ensemble_terms(self, target: Any, entries: Sequence[JournalEntry]) -> List[EnsembleTerm]:
        """The ensemble terms that have data for target, before weight renormalization."""
        target_dt = as_datetime(target)
        weekday = target_dt.isoweekday()
        history = [e for e in entries if e.mood is not None and e.created_at < target_dt]
        factors = self._dampening_factors(history)

        terms: List[EnsembleTerm] = []

        same_weekday = sorted(
            (
                e for e in history
                if e.weekday == weekday
                and e.created_at >= target_dt - timedelta(days=ForecastConfig.SAME_WEEKDAY_WINDOW_DAYS)
            ),
            key=lambda e: e.created_at,
            reverse=True,
        )[:ForecastConfig.SAME_WEEKDAY_MAX_SAMPLES]
        if same_weekday:
            weights = [
                max(ForecastConfig.RECENCY_MIN_WEIGHT, 1.0 - index * ForecastConfig.RECENCY_DECAY_STEP) * factors[e]
                for index, e in enumerate(same_weekday)
            ]
            score = self._weighted_mean(same_weekday, weights)
            sample_confidence = min(1.0, len(same_weekday) / ForecastConfig.SAME_WEEKDAY_FULL_SAMPLES)
            terms.append(EnsembleTerm(
                "Same weekday",
                score,
                ForecastConfig.SAME_WEEKDAY_WEIGHT * sample_confidence,
                len(same_weekday),
            ))

        recent = [
            e for e in history
            if 0 <= days_between(e.created_at, target_dt) <= ForecastConfig.RECENT_TREND_WINDOW_DAYS
            and e.weekday != weekday
        ]
        if recent:
            terms.append(EnsembleTerm(
                "Recent trend",
                self._weighted_mean(recent, [factors[e] for e in recent]),
                ForecastConfig.RECENT_TREND_WEIGHT,
                len(recent),
            ))

        baseline = [
            e for e in history
            if e.created_at >= target_dt - timedelta(days=ForecastConfig.BASELINE_WINDOW_DAYS)
        ]
        if baseline:
            terms.append(EnsembleTerm(
                "Baseline",
                self._weighted_mean(baseline, [factors[e] for e in baseline]),
                ForecastConfig.BASELINE_WEIGHT,
                len(baseline),
            ))

        return [t for t in terms if t.weight > 0]

    def _dampening_factors(self, history: Sequence[JournalEntry]) -> Dict[JournalEntry, float]:
        if not self.dampen_outliers or len(history) < 2:
            return {e: 1.0 for e in history}

        moods = [e.mood for e in history]
        mean = statistics.fmean(moods)
        std = statistics.pstdev(moods)
        factors = {}
        for e in history:
            info = OutlierInfo.analyze(e.mood, mean, std)
            if info.is_outlier:
                logger.debug(f"[PREDICTOR] Dampening outlier mood {e.mood} (z={info.deviation_from_mean:.2f}) by {info.dampening_factor}")
            factors[e] = info.dampening_factor
        return factors

    @staticmethod
    def _weighted_mean(entries: Sequence[JournalEntry], weights: Sequence[float]) -> float:
        total = sum(weights)
        if total <= 0:
            return statistics.fmean(e.mood for e in entries)
        return sum(e.mood * w for e, w in zip(entries, weights)) / total
