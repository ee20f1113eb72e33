
import pytest
from dataclasses import replace
from datetime import date, datetime, timedelta

from moodcast.core.analytics import PersonalMoodAnalytics, entry_fingerprint
from moodcast.core.cache import TTLCache
from moodcast.core.models import (
    JournalEntry,
    MoodVisualState,
    PatternType,
    PersonalPattern,
    TrendDirection,
)
from moodcast.core.patterns import PersonalPatternStore

TODAY = datetime(2025, 6, 2, 9, 0)


def series(moods, end=TODAY):
    """Daily entries, oldest first, the last one on the day before `end`."""
    count = len(moods)
    return [
        JournalEntry(created_at=(end - timedelta(days=count - index)).replace(hour=20), mood=mood)
        for index, mood in enumerate(moods)
    ]


def monday_heavy_journal():
    """Two great Mondays, flat otherwise (two weeks ending yesterday)."""
    entries = []
    for offset in range(1, 15):
        day = TODAY - timedelta(days=offset)
        mood = 9 if day.isoweekday() == 1 else 5
        entries.append(JournalEntry(created_at=day.replace(hour=20), mood=mood))
    return entries


class TestPersonalMoodAnalytics:
    """Test suite for baseline, weekday ranking, trend and insight text."""

    def setup_method(self):
        self.store = PersonalPatternStore()
        self.analytics = PersonalMoodAnalytics(self.store, clock=lambda: TODAY)

    # ========================================================================
    # 1. SUMMARY
    # ========================================================================

    def test_empty_journal_defaults(self):
        summary = self.analytics.analyze([])

        assert summary.personal_baseline == 6.0
        assert summary.total_entries == 0
        assert summary.trend is TrendDirection.STABLE
        assert summary.best_day is None
        assert summary.data_quality_description == "Building your profile..."

    def test_baseline_uses_last_two_weeks(self):
        old = [JournalEntry(created_at=datetime(2025, 3, 1, 20), mood=2)]
        recent = series([8, 8])
        assert PersonalMoodAnalytics.baseline(old + recent, TODAY) == pytest.approx(8.0)
        assert PersonalMoodAnalytics.baseline(old, TODAY) == pytest.approx(2.0)

    def test_weekday_ranks_are_a_permutation(self):
        stats = PersonalMoodAnalytics.weekday_stats(monday_heavy_journal())

        assert sorted(s.rank for s in stats) == list(range(1, 8))
        monday = [s for s in stats if s.weekday == 1][0]
        assert monday.rank == 1
        assert monday.sample_count == 2
        assert monday.average_mood == pytest.approx(9.0)

    def test_weekday_without_samples_is_neutral(self):
        stats = PersonalMoodAnalytics.weekday_stats(series([7]))
        empty = [s for s in stats if s.sample_count == 0]

        assert len(empty) == 6
        assert all(s.average_mood == 6.0 for s in empty)

    def test_volatility_is_population_stdev(self):
        summary = self.analytics.compute_summary(series([5, 7, 5, 7]))
        assert summary.volatility == pytest.approx(1.0)

    # ========================================================================
    # 2. TREND
    # ========================================================================

    def test_trend_needs_three_entries(self):
        assert PersonalMoodAnalytics.detect_trend(series([2, 9])) == (TrendDirection.STABLE, 0)

    def test_improving_trend_and_streak(self):
        direction, strength = PersonalMoodAnalytics.detect_trend(series([4, 4, 4, 7, 8, 9]))
        assert direction is TrendDirection.IMPROVING
        assert strength == 5

    def test_declining_trend_and_streak(self):
        direction, strength = PersonalMoodAnalytics.detect_trend(series([9, 8, 7, 4, 4, 4]))
        assert direction is TrendDirection.DECLINING
        assert strength == 5

    def test_streak_stops_at_first_reversal(self):
        direction, strength = PersonalMoodAnalytics.detect_trend(series([3, 3, 3, 8, 6, 9]))
        assert direction is TrendDirection.IMPROVING
        assert strength == 1

    def test_flat_trend_has_no_strength(self):
        assert PersonalMoodAnalytics.detect_trend(series([6] * 8)) == (TrendDirection.STABLE, 0)

    # ========================================================================
    # 3. CACHING
    # ========================================================================

    def test_analyze_is_cached_for_same_entries(self):
        entries = series([5, 6, 7])
        first = self.analytics.analyze(entries)
        assert self.analytics.analyze(list(entries)) is first

    def test_invalidate_forces_recompute(self):
        entries = series([5, 6, 7])
        first = self.analytics.analyze(entries)
        self.analytics.invalidate()
        second = self.analytics.analyze(entries)

        assert second is not first
        assert second == first

    def test_growing_journal_keeps_one_cached_summary(self):
        entries = []
        for offset in range(200, 0, -1):
            entries.append(JournalEntry(created_at=TODAY - timedelta(days=offset), mood=5 + offset % 3))
            self.analytics.analyze(entries)

        assert len(self.analytics.cache) == 1

    def test_injected_empty_store_and_cache_are_kept(self):
        cache = TTLCache(5, name="analytics")
        analytics = PersonalMoodAnalytics(self.store, clock=lambda: TODAY, cache=cache)

        assert analytics.pattern_store is self.store
        assert analytics.cache is cache

    def test_fingerprint_changes_with_new_entry(self):
        entries = series([5, 6, 7])
        extra = entries + [JournalEntry(created_at=TODAY, mood=4)]
        assert entry_fingerprint(entries) != entry_fingerprint(extra)

    # ========================================================================
    # 4. INSIGHTS
    # ========================================================================

    def test_insight_without_history(self):
        insight = self.analytics.generate_insight(date(2025, 6, 3), [])

        assert insight.primary_insight == "Building your personal profile..."
        assert insight.confidence == 0.3
        assert insight.data_points_used == 0

    def test_best_weekday_insight(self):
        insight = self.analytics.generate_insight(date(2025, 6, 9), monday_heavy_journal())

        assert insight.primary_insight == "Mondays tend to be your best days"
        assert insight.weekday_rank == 1
        assert insight.predicted_mood == pytest.approx(9.0)
        assert insight.visual_state is MoodVisualState.SIGNIFICANTLY_ABOVE

    def test_learned_weekday_pattern_takes_priority(self):
        self.store.add_pattern(PersonalPattern(
            pattern_type=PatternType.WEEKDAY_PREFERENCE,
            name="Monday Pattern",
            description="Team lunch makes Mondays easy",
            mood_impact=1.0,
            confidence=0.8,
            day_of_week=1,
        ))
        insight = self.analytics.generate_insight(date(2025, 6, 9), monday_heavy_journal())
        assert insight.primary_insight == "Team lunch makes Mondays easy"

    def test_trend_phrasing_and_streak(self):
        insight = self.analytics.generate_insight(date(2025, 6, 3), series([4, 4, 4, 7, 8, 9]))

        assert insight.primary_insight == "You've been on an upward trend"
        assert insight.secondary_insight == "5-day positive streak"

    def test_tomorrow_best_day_hint(self):
        """Test the hint about tomorrow when it is the best weekday."""
        analytics = PersonalMoodAnalytics(self.store, clock=lambda: TODAY - timedelta(days=1))
        summary = replace(analytics.analyze(monday_heavy_journal()), trend=TrendDirection.STABLE, trend_strength=0)
        assert analytics.secondary_insight(summary) == "Tomorrow is usually your best day"

    def test_declining_streak_suggests_self_care(self):
        summary = self.analytics.analyze(series([9, 8, 7, 4, 4, 4]))
        assert self.analytics.secondary_insight(summary) == "Consider some extra self-care"

    def test_recent_themes_from_triggers(self):
        self.store.add_pattern(PersonalPattern(
            pattern_type=PatternType.RECURRING_TRIGGER,
            name="deadline",
            description="Deadlines stress me",
            mood_impact=-1.0,
            confidence=0.8,
            trigger_keywords=("deadline",),
        ))
        entries = series([6, 5])
        entries.append(JournalEntry(created_at=TODAY - timedelta(hours=2), mood=4, content="Another deadline"))

        insight = self.analytics.generate_insight(date(2025, 6, 3), entries)
        assert insight.emotional_context == "Recent focus: deadline"

    def test_insight_confidence_bounds(self):
        assert self.analytics.insight_confidence(None, 1, TODAY + timedelta(days=30)) == pytest.approx(0.2)
        assert 0.2 <= self.analytics.insight_confidence(None, 20, TODAY) <= 0.95

    # ========================================================================
    # 5. QUICK LOOKUPS
    # ========================================================================

    def test_quick_lookups_need_a_summary(self):
        assert self.analytics.quick_comparative(date(2025, 6, 9)) is None
        assert self.analytics.weekday_insight(1) is None

    def test_weekday_insight_text(self):
        self.analytics.analyze(monday_heavy_journal())
        assert self.analytics.weekday_insight(1).endswith("(your best)")
        comparative, state = self.analytics.quick_comparative(date(2025, 6, 9))
        assert comparative > 0
        assert state is MoodVisualState.SIGNIFICANTLY_ABOVE
