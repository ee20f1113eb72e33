"""
Personal mood analytics.

Learns from the user's own entries: rolling baseline, weekday statistics and
ranking, trend direction/strength, and the insight strings shown next to a
forecast. Summaries are cached per entry set for an hour.
"""

import hashlib
import logging
import statistics
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional, Sequence, Tuple

from moodcast.core.cache import TTLCache
from moodcast.core.config import ForecastConfig
from moodcast.core.models import (
    AnalyticsSummary,
    JournalEntry,
    MoodInsight,
    MoodVisualState,
    PatternType,
    TrendDirection,
    WeekdayStat,
    as_datetime,
    clamp,
    days_between,
    weekday_name,
)
from moodcast.core.patterns import PersonalPatternStore

logger = logging.getLogger(__name__)


def entry_fingerprint(entries: Sequence[JournalEntry]) -> str:
    """Stable digest of the scored entries; changes whenever an entry is added or re-scored."""
    digest = hashlib.sha1()
    for e in sorted(entries, key=lambda x: (x.created_at, x.id)):
        if e.mood is None:
            continue
        digest.update(f"{e.id}|{e.created_at.isoformat()}|{e.mood};".encode("utf-8"))
    return digest.hexdigest()


class PersonalMoodAnalytics:
    """
    Analytics engine over mood-scored journal entries.

    Args:
        pattern_store: Source of learned patterns for insight text and triggers.
        clock: Returns "now"; injectable for tests.
        cache: Summary cache; defaults to a one-hour TTL cache.
    """

    def __init__(
        self,
        pattern_store: Optional[PersonalPatternStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
        cache: Optional[TTLCache] = None,
    ):
        self.pattern_store = pattern_store if pattern_store is not None else PersonalPatternStore()
        self.clock = clock or datetime.now
        self.cache = cache if cache is not None else TTLCache(ForecastConfig.ANALYTICS_CACHE_TTL, name="analytics")
        self._cache_key: Optional[str] = None
        self.summary: Optional[AnalyticsSummary] = None

    # ========================================================================
    # SUMMARY
    # ========================================================================

    def analyze(self, entries: Sequence[JournalEntry]) -> AnalyticsSummary:
        """Returns the summary for entries, reusing the cached one while fresh."""
        key = entry_fingerprint(entries)
        if self._cache_key is not None and self._cache_key != key:
            # Only the latest entry set is worth keeping.
            self.cache.invalidate(self._cache_key)
        self._cache_key = key
        summary = self.cache.get_or_compute(key, lambda: self.compute_summary(entries))
        self.summary = summary
        return summary

    def invalidate(self) -> None:
        """Forces recomputation on the next analyze() call."""
        self.cache.mark_stale()

    def compute_summary(self, entries: Sequence[JournalEntry]) -> AnalyticsSummary:
        scored = [e for e in entries if e.mood is not None]
        today = as_datetime(self.clock())

        if not scored:
            stats = self.weekday_stats([])
            return AnalyticsSummary(
                personal_baseline=ForecastConfig.NEUTRAL_MOOD,
                volatility=0.0,
                weekday_stats=stats,
                best_day=None,
                hardest_day=None,
                trend=TrendDirection.STABLE,
                trend_strength=0,
                total_entries=0,
            )

        baseline = self.baseline(scored, today)
        moods = [e.mood for e in scored]
        volatility = statistics.pstdev(moods) if len(moods) >= 2 else 0.0
        stats = self.weekday_stats(scored)
        trend, strength = self.detect_trend(scored)

        summary = AnalyticsSummary(
            personal_baseline=baseline,
            volatility=volatility,
            weekday_stats=stats,
            best_day=min(stats, key=lambda s: s.rank),
            hardest_day=max(stats, key=lambda s: s.rank),
            trend=trend,
            trend_strength=strength,
            total_entries=len(scored),
            recent_themes=self.recent_themes(scored),
        )
        logger.info(
            f"[ANALYTICS] {summary.total_entries} entries, baseline {baseline:.2f}, "
            f"trend {trend.value} ({strength}), best {summary.best_day.weekday_name}"
        )
        return summary

    @staticmethod
    def baseline(entries: Sequence[JournalEntry], today: Any) -> float:
        """Mean over the trailing 14 days, else over everything, else neutral."""
        today_dt = as_datetime(today)
        cutoff = today_dt - timedelta(days=ForecastConfig.ANALYTICS_BASELINE_WINDOW_DAYS)
        scored = [e for e in entries if e.mood is not None]
        recent = [e for e in scored if e.created_at >= cutoff]
        pool = recent or scored
        if not pool:
            return ForecastConfig.NEUTRAL_MOOD
        return statistics.fmean(e.mood for e in pool)

    @staticmethod
    def weekday_stats(entries: Sequence[JournalEntry]) -> Tuple[WeekdayStat, ...]:
        """
        Per-weekday mean, count and deviation, ranked 1 (best) to 7.

        Weekdays without samples sit at the neutral mood; ties keep weekday order.
        """
        grouped = {weekday: [] for weekday in range(1, 8)}
        for e in entries:
            if e.mood is not None:
                grouped[e.weekday].append(e.mood)

        raw = []
        for weekday, moods in grouped.items():
            if not moods:
                raw.append((weekday, ForecastConfig.NEUTRAL_MOOD, 0, 0.0))
                continue
            std = statistics.pstdev(moods) if len(moods) >= 2 else 0.0
            raw.append((weekday, statistics.fmean(moods), len(moods), std))

        ranked = sorted(raw, key=lambda item: item[1], reverse=True)
        stats = [
            WeekdayStat(weekday=w, average_mood=avg, sample_count=count, standard_deviation=std, rank=index + 1)
            for index, (w, avg, count, std) in enumerate(ranked)
        ]
        return tuple(sorted(stats, key=lambda s: s.weekday))

    @staticmethod
    def detect_trend(entries: Sequence[JournalEntry]) -> Tuple[TrendDirection, int]:
        """
        Compares the most recent window with the one before it.

        Returns:
            (direction, strength) where strength counts consecutive recent
            entries moving consistently with the direction.
        """
        ordered = sorted(
            (e for e in entries if e.mood is not None),
            key=lambda e: e.created_at,
            reverse=True,
        )
        if len(ordered) < ForecastConfig.TREND_MIN_ENTRIES:
            return TrendDirection.STABLE, 0

        window = min(ForecastConfig.TREND_MAX_WINDOW, len(ordered) // 2)
        recent = [e.mood for e in ordered[:window]]
        earlier = [e.mood for e in ordered[window:2 * window]]
        if not recent or not earlier:
            return TrendDirection.STABLE, 0

        difference = statistics.fmean(recent) - statistics.fmean(earlier)
        if difference > ForecastConfig.TREND_THRESHOLD:
            direction = TrendDirection.IMPROVING
        elif difference < -ForecastConfig.TREND_THRESHOLD:
            direction = TrendDirection.DECLINING
        else:
            return TrendDirection.STABLE, 0

        strength = 0
        scan = [e.mood for e in ordered[:ForecastConfig.TREND_SCAN_LIMIT]]
        for newer, older in zip(scan, scan[1:]):
            consistent = newer >= older if direction is TrendDirection.IMPROVING else newer <= older
            if not consistent:
                break
            strength += 1
        return direction, strength

    def recent_themes(self, entries: Sequence[JournalEntry], limit: int = 5) -> Tuple[str, ...]:
        """Names of recurring triggers found in the three most recent entries."""
        recent = sorted(entries, key=lambda e: e.created_at, reverse=True)[:3]
        themes: List[str] = []
        for e in recent:
            for pattern in self.pattern_store.triggers_matching(e.content):
                if pattern.name not in themes:
                    themes.append(pattern.name)
        return tuple(themes[:limit])

    # ========================================================================
    # INSIGHTS
    # ========================================================================

    def generate_insight(
        self,
        target: Any,
        entries: Sequence[JournalEntry],
        predicted_mood: Optional[float] = None,
    ) -> MoodInsight:
        """
        Builds the insight for target.

        Args:
            target: Forecast date.
            entries: Journal history.
            predicted_mood: Existing forecast to compare against the baseline;
                falls back to the weekday average, then the baseline.
        """
        target_dt = as_datetime(target)
        summary = self.analyze(entries)

        if summary.total_entries == 0:
            return MoodInsight(
                date=target_dt.date(),
                predicted_mood=predicted_mood if predicted_mood is not None else ForecastConfig.NEUTRAL_MOOD,
                comparative_score=0.0,
                personal_baseline=ForecastConfig.NEUTRAL_MOOD,
                trend=TrendDirection.STABLE,
                trend_strength=0,
                primary_insight="Building your personal profile...",
                secondary_insight="Add more reflections for personalized insights",
                emotional_context=None,
                confidence=0.3,
                data_points_used=0,
            )

        stat = summary.stat_for(target_dt.isoweekday())
        if predicted_mood is None:
            if stat is not None and stat.sample_count >= ForecastConfig.INSIGHT_MIN_SAMPLES:
                predicted_mood = stat.average_mood
            else:
                predicted_mood = summary.personal_baseline

        return MoodInsight(
            date=target_dt.date(),
            predicted_mood=predicted_mood,
            comparative_score=predicted_mood - summary.personal_baseline,
            personal_baseline=summary.personal_baseline,
            trend=summary.trend,
            trend_strength=summary.trend_strength,
            primary_insight=self.primary_insight(target_dt, summary),
            secondary_insight=self.secondary_insight(summary),
            emotional_context=self.emotional_context(summary.recent_themes),
            confidence=self.insight_confidence(stat, summary.total_entries, target_dt),
            data_points_used=summary.total_entries,
            weekday_average=stat.average_mood if stat and stat.sample_count else None,
            weekday_rank=stat.rank if stat and stat.sample_count else None,
        )

    def primary_insight(self, target: Any, summary: AnalyticsSummary) -> str:
        target_dt = as_datetime(target)
        name = weekday_name(target_dt.isoweekday())

        learned = self.pattern_store.patterns_affecting(target_dt)
        for pattern_type in (PatternType.WEEKDAY_PREFERENCE, PatternType.SIGNIFICANT_DATE):
            for pattern in learned:
                if pattern.pattern_type is pattern_type and pattern.description:
                    return pattern.description

        stat = summary.stat_for(target_dt.isoweekday())
        if stat is not None and stat.sample_count >= ForecastConfig.INSIGHT_MIN_SAMPLES:
            deviation = stat.average_mood - summary.personal_baseline
            if abs(deviation) >= ForecastConfig.INSIGHT_DEVIATION:
                if stat.rank == 1:
                    return f"{name}s tend to be your best days"
                if stat.rank == 7:
                    return f"{name}s can be more challenging for you"
                if deviation > 0:
                    return f"{name}s are typically above your average"
                return f"{name}s are usually below your average"

        return {
            TrendDirection.IMPROVING: "You've been on an upward trend",
            TrendDirection.DECLINING: "Recent days have been more challenging",
            TrendDirection.STABLE: "Your mood has been steady lately",
        }[summary.trend]

    def secondary_insight(self, summary: AnalyticsSummary) -> Optional[str]:
        if summary.trend_strength >= ForecastConfig.TREND_STREAK_MIN:
            if summary.trend is TrendDirection.IMPROVING:
                return f"{summary.trend_strength}-day positive streak"
            if summary.trend is TrendDirection.DECLINING:
                return "Consider some extra self-care"

        tomorrow = (as_datetime(self.clock()) + timedelta(days=1)).isoweekday()
        best, hardest = summary.best_day, summary.hardest_day
        if best and best.sample_count >= ForecastConfig.INSIGHT_MIN_SAMPLES and best.weekday == tomorrow:
            return "Tomorrow is usually your best day"
        if hardest and hardest.sample_count >= ForecastConfig.INSIGHT_MIN_SAMPLES and hardest.weekday == tomorrow:
            return "Tomorrow is usually a tougher day, so go easy"
        return None

    @staticmethod
    def emotional_context(themes: Sequence[str]) -> Optional[str]:
        if not themes:
            return None
        if len(themes) == 1:
            return f"Recent focus: {themes[0]}"
        return f"Recent themes: {', '.join(themes[:2])}"

    def insight_confidence(self, stat: Optional[WeekdayStat], total_entries: int, target: Any) -> float:
        confidence = 0.7
        if stat is not None:
            if stat.sample_count >= 4:
                confidence += 0.15
            elif stat.sample_count >= 2:
                confidence += 0.08

        if total_entries >= 14:
            confidence += 0.1
        elif total_entries < 5:
            confidence -= 0.2

        days_ahead = days_between(as_datetime(self.clock()), as_datetime(target))
        if days_ahead > 0:
            confidence -= min(days_ahead * 0.05, 0.4)
        return clamp(confidence, 0.2, 0.95)

    # ========================================================================
    # QUICK LOOKUPS (last analyzed summary)
    # ========================================================================

    def quick_comparative(self, target: Any) -> Optional[Tuple[float, MoodVisualState]]:
        """Weekday average minus baseline for target's weekday, for calendar grids."""
        if self.summary is None:
            return None
        stat = self.summary.stat_for(as_datetime(target).isoweekday())
        if stat is None or stat.sample_count < 1:
            return 0.0, MoodVisualState.NEAR_BASELINE
        comparative = stat.average_mood - self.summary.personal_baseline
        return comparative, MoodVisualState.from_comparative_score(comparative)

    def weekday_insight(self, weekday: int) -> Optional[str]:
        if self.summary is None:
            return None
        stat = self.summary.stat_for(weekday)
        if stat is None or stat.sample_count < ForecastConfig.INSIGHT_MIN_SAMPLES:
            return None

        diff = stat.average_mood - self.summary.personal_baseline
        if diff > 0.8:
            return f"{stat.weekday_name}: +{diff:.1f} (your best)"
        if diff < -0.8:
            return f"{stat.weekday_name}: {diff:.1f} (tougher day)"
        if abs(diff) > 0.3:
            direction = "above" if diff > 0 else "below"
            return f"{stat.weekday_name}: {abs(diff):.1f} {direction} average"
        return None
