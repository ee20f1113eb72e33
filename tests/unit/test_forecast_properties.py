
from datetime import date, datetime, timedelta

from hypothesis import given, settings, strategies as st

from moodcast.core.analytics import PersonalMoodAnalytics
from moodcast.core.confidence import confidence_band, data_volume_confidence, horizon_decay
from moodcast.core.context import ContextualFactorGatherer
from moodcast.core.models import JournalEntry
from moodcast.core.patterns import PersonalPatternStore
from moodcast.core.service import MoodPredictionService

TODAY = datetime(2025, 6, 2, 9, 0)

journals = st.lists(
    st.tuples(st.integers(min_value=0, max_value=90), st.integers(min_value=1, max_value=10)),
    max_size=40,
).map(lambda items: [
    JournalEntry(created_at=TODAY - timedelta(days=days_ago, hours=2), mood=mood)
    for days_ago, mood in items
])


class TestForecastProperties:
    """Properties that hold for any journal."""

    @given(st.integers(min_value=0, max_value=400))
    def test_horizon_decay_is_non_increasing(self, ahead):
        assert horizon_decay(ahead + 1) <= horizon_decay(ahead)
        assert 0.1 <= horizon_decay(ahead) <= 0.85

    @given(st.integers(min_value=0, max_value=100))
    def test_data_volume_confidence_is_monotonic(self, count):
        assert data_volume_confidence(count + 1) >= data_volume_confidence(count)

    @given(
        st.floats(min_value=2.0, max_value=10.0),
        st.floats(min_value=0.0, max_value=1.0),
        st.floats(min_value=0.0, max_value=1.0),
    )
    def test_band_contains_prediction(self, predicted, confidence, volatility):
        band = confidence_band(predicted, confidence, volatility)
        assert band.lower <= predicted <= band.upper
        assert band.spread >= 0.4 - 1e-9

    @given(journals)
    def test_weekday_ranks_are_a_permutation(self, entries):
        stats = PersonalMoodAnalytics.weekday_stats(entries)
        assert sorted(s.rank for s in stats) == list(range(1, 8))

    @settings(max_examples=40, deadline=None)
    @given(journals, st.integers(min_value=0, max_value=30))
    def test_prediction_stays_in_domain(self, entries, ahead):
        store = PersonalPatternStore()
        service = MoodPredictionService(
            pattern_store=store,
            context_gatherer=ContextualFactorGatherer(),
            analytics=PersonalMoodAnalytics(store, clock=lambda: TODAY),
            clock=lambda: TODAY,
        )
        prediction = service.predict(date(2025, 6, 2) + timedelta(days=ahead), entries)

        assert 2.0 <= prediction.predicted_mood <= 10.0
        assert 0.0 <= prediction.confidence <= 1.0
        assert prediction.confidence_band.lower <= prediction.predicted_mood <= prediction.confidence_band.upper
        assert 0.0 <= prediction.volatility_score <= 1.0
