
import pytest
from datetime import date, datetime

from moodcast.core.confidence import (
    confidence_band,
    data_volume_confidence,
    days_ahead,
    horizon_decay,
    should_gray_out,
    stability_score,
    volatility_score,
)
from moodcast.core.models import JournalEntry


class TestConfidenceModel:
    """Test suite for data-volume, horizon and band calculations."""

    # ========================================================================
    # 1. DATA VOLUME
    # ========================================================================

    @pytest.mark.parametrize("count,expected", [
        (0, 0.3), (4, 0.3), (5, 0.5), (9, 0.5), (10, 0.65), (19, 0.65), (20, 0.8), (200, 0.8),
    ])
    def test_data_volume_tiers(self, count, expected):
        assert data_volume_confidence(count) == expected

    # ========================================================================
    # 2. HORIZON
    # ========================================================================

    @pytest.mark.parametrize("ahead,expected", [
        (-2, 0.85), (0, 0.85), (1, 0.85), (2, 0.80), (3, 0.75),
        (4, 0.60), (7, 0.45), (8, 0.35), (14, 0.23), (15, 0.20), (90, 0.1),
    ])
    def test_horizon_decay_values(self, ahead, expected):
        assert horizon_decay(ahead) == pytest.approx(expected)

    def test_days_ahead_ignores_time_of_day(self):
        assert days_ahead(datetime(2025, 6, 3, 1, 0), datetime(2025, 6, 2, 23, 0)) == 1
        assert days_ahead(date(2025, 6, 2), datetime(2025, 6, 2, 23, 0)) == 0

    def test_gray_out_starts_after_one_week(self):
        today = datetime(2025, 6, 2, 9, 0)
        assert should_gray_out(date(2025, 6, 9), today) is False
        assert should_gray_out(date(2025, 6, 10), today) is True

    # ========================================================================
    # 3. VOLATILITY & BAND
    # ========================================================================

    def test_volatility_defaults_with_few_samples(self):
        entries = [JournalEntry(created_at=datetime(2025, 6, 1, 20), mood=5)]
        assert volatility_score(entries, date(2025, 6, 2)) == pytest.approx(0.45)

    def test_volatility_is_normalized_stdev(self):
        entries = [
            JournalEntry(created_at=datetime(2025, 5, d, 20), mood=m)
            for d, m in ((28, 5), (29, 7), (30, 5), (31, 7))
        ]
        assert volatility_score(entries, date(2025, 6, 2)) == pytest.approx(0.5)
        assert stability_score(0.5) == pytest.approx(0.5)

    def test_volatility_window_is_two_weeks(self):
        entries = [
            JournalEntry(created_at=datetime(2025, 4, d, 20), mood=m)
            for d, m in ((1, 2), (2, 10), (3, 2), (4, 10))
        ]
        assert volatility_score(entries, date(2025, 6, 2)) == pytest.approx(0.45)

    def test_band_has_minimum_spread(self):
        band = confidence_band(6.0, 0.8, 0.0)
        assert band.lower == pytest.approx(5.6)
        assert band.upper == pytest.approx(6.4)

    def test_band_is_clamped_to_mood_range(self):
        band = confidence_band(9.9, 0.2, 1.0)
        assert band.upper == 10.0
        assert band.lower == pytest.approx(9.9 - (0.8 * 1.4 + 1.2))
        assert band.lower <= 9.9 <= band.upper
