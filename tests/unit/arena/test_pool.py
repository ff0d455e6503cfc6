# tests/unit/arena/test_pool.py
"""
Tests for AllocationPool.

These tests verify:
1. Pool construction (capacity, per-label units)
2. Draw-without-replacement semantics and exhaustion
3. Reproducibility with seeds
"""

from collections import Counter

import numpy as np

from arena.pool import AllocationPool

# =============================================================================
# Test: Construction
# =============================================================================


class TestPoolConstruction:
    """Tests for a freshly built pool."""

    def test_capacity_is_slots_times_peak(self, rng):
        pool = AllocationPool(unique_time_slots=24, maximum_peak_consumption=16, rng=rng)
        assert pool.capacity == 384
        assert len(pool) == 384

    def test_each_label_has_peak_units(self, rng):
        pool = AllocationPool(unique_time_slots=3, maximum_peak_consumption=2, rng=rng)
        assert pool.counts() == {1: 2, 2: 2, 3: 2}

    def test_not_empty_at_start(self, rng):
        pool = AllocationPool(unique_time_slots=1, maximum_peak_consumption=1, rng=rng)
        assert not pool.is_empty()


# =============================================================================
# Test: Drawing
# =============================================================================


class TestPoolDraw:
    """Tests for draw() and allocate()."""

    def test_draw_returns_requested_count(self, rng):
        pool = AllocationPool(unique_time_slots=4, maximum_peak_consumption=2, rng=rng)
        drawn = pool.draw(3)
        assert len(drawn) == 3
        assert len(pool) == 5

    def test_draw_labels_in_range(self, rng):
        pool = AllocationPool(unique_time_slots=4, maximum_peak_consumption=2, rng=rng)
        for slot in pool.draw(8):
            assert 1 <= slot <= 4

    def test_draw_is_without_replacement(self, rng):
        """Drawing the whole pool returns exactly its contents."""
        pool = AllocationPool(unique_time_slots=5, maximum_peak_consumption=3, rng=rng)
        drawn = pool.draw(15)
        assert Counter(drawn) == Counter({s: 3 for s in range(1, 6)})
        assert pool.is_empty()

    def test_draw_past_exhaustion_returns_fewer(self, rng):
        """Scarcity is resolved by allocating fewer units, never by raising."""
        pool = AllocationPool(unique_time_slots=2, maximum_peak_consumption=1, rng=rng)
        assert len(pool.draw(5)) == 2
        assert pool.draw(3) == []

    def test_draw_zero(self, rng):
        pool = AllocationPool(unique_time_slots=2, maximum_peak_consumption=1, rng=rng)
        assert pool.draw(0) == []
        assert len(pool) == 2

    def test_allocate_matches_request_length(self, rng):
        pool = AllocationPool(unique_time_slots=6, maximum_peak_consumption=2, rng=rng)
        assert len(pool.allocate([1, 1, 4])) == 3

    def test_same_seed_same_draws(self):
        pool_a = AllocationPool(10, 3, np.random.default_rng(7))
        pool_b = AllocationPool(10, 3, np.random.default_rng(7))
        assert pool_a.draw(12) == pool_b.draw(12)

    def test_different_seed_different_draws(self):
        pool_a = AllocationPool(10, 3, np.random.default_rng(1))
        pool_b = AllocationPool(10, 3, np.random.default_rng(2))
        assert pool_a.draw(20) != pool_b.draw(20)
