"""
Budget-aware candidate picking.

A budget tier maps to a percentile window over the price-sorted candidate
population. The pick is uniform inside that window, so "poor" buys from the
cheap end of whatever the catalog offers and "elite" from the expensive end,
regardless of the catalog's absolute price scale.

Magic allowance is not checked here; pools arrive already filtered.
"""
import logging
import random
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, TypeVar

from bundlegen.models.catalog import CatalogRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

_default_rng = random.Random()


class BudgetTier(str, Enum):
    """Spending power of a shop, looter or actor."""
    POOR = "poor"
    NORMAL = "normal"
    WELL = "well"
    ELITE = "elite"

    @classmethod
    def parse(cls, value, default: "BudgetTier" = None) -> "BudgetTier":
        """Parse a tier label, falling back to ``default`` (normal) for unknown input."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return default or cls.NORMAL


# [from, to) fractions of the sorted population. normal/well overlap on purpose
# so neighbouring tiers blend instead of forming a hard edge.
PERCENTILE_WINDOWS: Dict[BudgetTier, Tuple[float, float]] = {
    BudgetTier.POOR: (0.0, 0.3),
    BudgetTier.NORMAL: (0.3, 0.7),
    BudgetTier.WELL: (0.6, 0.9),
    BudgetTier.ELITE: (0.8, 1.0),
}


def percentile_window(budget: BudgetTier, population: int) -> Tuple[int, int]:
    """
    Index window [start, end) for a tier over a population of the given size.

    Elite is closed at the top so the most expensive candidate is reachable.
    Every window holds at least one index, so small populations keep the
    tier ordering (poor never lands above normal).
    """
    budget = BudgetTier.parse(budget)
    if population <= 0:
        return 0, 0
    low, high = PERCENTILE_WINDOWS[budget]
    start = min(int(population * low), population - 1)
    end = population if budget == BudgetTier.ELITE else int(population * high)
    end = max(min(end, population), start + 1)
    return start, end


def pick_by_budget(
    candidates: Sequence[Tuple[T, Optional[int]]],
    budget: BudgetTier = BudgetTier.NORMAL,
    rng: Optional[random.Random] = None,
) -> Optional[T]:
    """
    Pick one candidate whose price sits in the budget's percentile window.

    Args:
        candidates: (candidate, normalized price) pairs; None prices are unpriced
        budget: Budget tier
        rng: Random source

    Returns:
        A candidate, or None only when ``candidates`` is empty.
        - No priced candidates at all: a uniform pick among the unpriced ones
    """
    rng = rng or _default_rng
    if not candidates:
        return None

    priced = [(item, price) for item, price in candidates if price is not None]
    if not priced:
        logger.debug(f"[Budget] No priced candidates among {len(candidates)}, picking uniformly")
        return rng.choice(candidates)[0]

    priced.sort(key=lambda pair: pair[1])
    start, end = percentile_window(budget, len(priced))
    return priced[rng.randrange(start, end)][0]


def price_pairs(records: Sequence[CatalogRecord]) -> List[Tuple[CatalogRecord, Optional[int]]]:
    return [(record, record.price_cp) for record in records]


def pick_record_by_budget(
    records: Sequence[CatalogRecord],
    budget: BudgetTier = BudgetTier.NORMAL,
    rng: Optional[random.Random] = None,
) -> Optional[CatalogRecord]:
    """Convenience wrapper over ``pick_by_budget`` for catalog records."""
    return pick_by_budget(price_pairs(records), budget, rng)
