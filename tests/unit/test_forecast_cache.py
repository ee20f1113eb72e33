
import pytest
from unittest.mock import MagicMock

from moodcast.core.cache import TTLCache


class TestTTLCache:
    """Test suite for freshness, staleness and compute-on-miss."""

    def setup_method(self):
        self.now = [100.0]
        self.cache = TTLCache(60, clock=lambda: self.now[0], name="test")

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            TTLCache(0)

    def test_value_expires_after_ttl(self):
        self.cache.set("k", 1)
        self.now[0] = 159.9
        assert self.cache.get("k") == 1

        self.now[0] = 160.0
        assert self.cache.get("k") is None
        assert len(self.cache) == 0

    def test_mark_stale_single_key(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.cache.mark_stale("a")

        assert "a" not in self.cache
        assert "b" in self.cache

    def test_mark_stale_everything(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.cache.mark_stale()

        assert self.cache.get("a") is None
        assert self.cache.get("b") is None

    def test_get_or_compute(self):
        compute = MagicMock(return_value="fresh")

        assert self.cache.get_or_compute("k", compute) == "fresh"
        assert self.cache.get_or_compute("k", compute) == "fresh"
        compute.assert_called_once()

    def test_none_is_not_cached(self):
        compute = MagicMock(return_value=None)
        self.cache.get_or_compute("k", compute)
        self.cache.get_or_compute("k", compute)
        assert compute.call_count == 2

    def test_invalidate_and_clear(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.cache.invalidate("a")
        assert len(self.cache) == 1

        self.cache.clear()
        assert len(self.cache) == 0

    def test_set_sweeps_expired_items(self):
        for i in range(50):
            self.cache.set(i, i)
        self.now[0] = 200.0
        self.cache.set("new", 1)

        assert len(self.cache) == 1
        assert self.cache.get("new") == 1

    def test_max_size_evicts_oldest(self):
        cache = TTLCache(60, clock=lambda: self.now[0], max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        cache.set("c", 3)

        assert len(cache) == 2
        assert "b" not in cache
        assert cache.get("a") == 10
        assert cache.get("c") == 3

    def test_rejects_non_positive_max_size(self):
        with pytest.raises(ValueError):
            TTLCache(60, max_size=0)
