"""Tests for budget percentile picking."""
import random

import pytest

from bundlegen.core.budget import (
    BudgetTier,
    percentile_window,
    pick_by_budget,
    pick_record_by_budget,
)


def _population(n):
    return [(f"item-{i}", (i + 1) * 100) for i in range(n)]


class TestPercentileWindow:
    """Tests for the index windows of each tier."""

    def test_windows_over_twenty(self):
        """Windows over 20 candidates."""
        assert percentile_window(BudgetTier.POOR, 20) == (0, 6)
        assert percentile_window(BudgetTier.NORMAL, 20) == (6, 14)
        assert percentile_window(BudgetTier.WELL, 20) == (12, 18)
        assert percentile_window(BudgetTier.ELITE, 20) == (16, 20)

    def test_normal_and_well_overlap(self):
        """normal and well share the 0.6-0.7 band."""
        normal = set(range(*percentile_window(BudgetTier.NORMAL, 10)))
        well = set(range(*percentile_window(BudgetTier.WELL, 10)))
        assert normal & well == {6}

    def test_boundary_indexes(self):
        """The 0.3 and 0.8 boundaries belong to the upper tier only."""
        poor = range(*percentile_window(BudgetTier.POOR, 10))
        normal = range(*percentile_window(BudgetTier.NORMAL, 10))
        well = range(*percentile_window(BudgetTier.WELL, 10))
        elite = range(*percentile_window(BudgetTier.ELITE, 10))
        assert 3 not in poor and 3 in normal
        assert 9 not in well and 9 in elite
        assert 8 in well and 8 in elite

    def test_elite_reaches_most_expensive(self):
        """Elite includes the last index."""
        start, end = percentile_window(BudgetTier.ELITE, 7)
        assert end == 7
        assert start == 5

    @pytest.mark.parametrize("size", [1, 2, 3])
    def test_small_populations_never_empty(self, size):
        """Every tier keeps at least one index, and windows stay in range."""
        for budget in BudgetTier:
            start, end = percentile_window(budget, size)
            assert 0 <= start < end <= size

    def test_two_candidate_windows(self):
        """Over two candidates poor and normal take the cheaper, well and elite the dearer."""
        assert percentile_window(BudgetTier.POOR, 2) == (0, 1)
        assert percentile_window(BudgetTier.NORMAL, 2) == (0, 1)
        assert percentile_window(BudgetTier.WELL, 2) == (1, 2)
        assert percentile_window(BudgetTier.ELITE, 2) == (1, 2)

    def test_zero_population(self):
        """No population, empty window."""
        assert percentile_window(BudgetTier.NORMAL, 0) == (0, 0)


class TestPickByBudget:
    """Tests for picking one candidate."""

    def test_empty_population(self):
        """No candidates, no pick."""
        assert pick_by_budget([], BudgetTier.NORMAL) is None

    def test_pick_stays_in_window(self, rng):
        """Every pick comes from the tier's slice of the sorted prices."""
        population = _population(20)
        random.Random(5).shuffle(population)
        for budget, (low, high) in {
            BudgetTier.POOR: (100, 600),
            BudgetTier.NORMAL: (700, 1400),
            BudgetTier.WELL: (1300, 1800),
            BudgetTier.ELITE: (1700, 2000),
        }.items():
            prices = dict(population)
            for _ in range(50):
                pick = pick_by_budget(population, budget, rng)
                assert low <= prices[pick] <= high

    def test_small_population_poor_picks_cheapest(self, rng):
        """Poor over two or three candidates always buys the cheapest."""
        for population in ([("cheap", 10), ("dear", 30)], [("cheap", 10), ("mid", 20), ("dear", 30)]):
            for _ in range(50):
                assert pick_by_budget(population, BudgetTier.POOR, rng) == "cheap"

    def test_small_population_elite_picks_dearest(self, rng):
        """Elite over two or three candidates always buys the dearest."""
        for population in ([("cheap", 10), ("dear", 30)], [("cheap", 10), ("mid", 20), ("dear", 30)]):
            for _ in range(50):
                assert pick_by_budget(population, BudgetTier.ELITE, rng) == "dear"

    def test_single_candidate(self, rng):
        """A single candidate is always returned."""
        for budget in BudgetTier:
            assert pick_by_budget([("only", 500)], budget, rng) == "only"

    def test_unpriced_only_is_uniform_pick(self, rng):
        """With no prices at all, any unpriced candidate may be returned."""
        population = [("a", None), ("b", None), ("c", None)]
        picks = {pick_by_budget(population, BudgetTier.ELITE, rng) for _ in range(100)}
        assert picks == {"a", "b", "c"}

    def test_unpriced_excluded_when_prices_exist(self, rng):
        """Unpriced candidates are not bucketed when priced ones exist."""
        population = [("a", None), ("b", 100), ("c", None)]
        for budget in BudgetTier:
            assert pick_by_budget(population, budget, rng) == "b"

    def test_budget_parse_from_string(self, rng):
        """String labels are accepted."""
        population = _population(10)
        assert pick_by_budget(population, "elite", rng) in {"item-8", "item-9"}


class TestBudgetMonotonicity:
    """Mean price rises with the budget tier."""

    @pytest.mark.parametrize("size", [1, 2, 3, 5, 12, 40])
    def test_mean_price_is_monotonic(self, size):
        """poor <= normal <= well <= elite over many draws."""
        rng = random.Random(99)
        population = _population(size)
        prices = dict(population)
        means = []
        for budget in (BudgetTier.POOR, BudgetTier.NORMAL, BudgetTier.WELL, BudgetTier.ELITE):
            draws = [prices[pick_by_budget(population, budget, rng)] for _ in range(400)]
            means.append(sum(draws) / len(draws))
        assert means == sorted(means)


class TestPickRecordByBudget:
    """Tests for the record convenience wrapper."""

    def test_poor_weapon_in_lowest_thirty_percent(self, weapon_catalog, rng):
        """Poor picks stay in the cheapest 30% of the catalog."""
        prices = sorted(r.price_cp for r in weapon_catalog)
        ceiling = prices[5]
        for _ in range(50):
            record = pick_record_by_budget(list(weapon_catalog), BudgetTier.POOR, rng)
            assert record.price_cp <= ceiling
