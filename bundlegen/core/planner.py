"""
Category planning for multi-item runs.

A plan is one category per slot. A single requested category fills every slot;
the mixed sentinel draws each slot independently from a weight table.
"""
import random
from typing import List, Optional, Sequence, Tuple

from bundlegen.core.classifier import (
    LOOT_COINS,
    LOOT_MIXED,
    SHOP_MIXED,
    normalize_loot_type,
    normalize_shop_type,
)

_default_rng = random.Random()

SHOP_CATEGORY_WEIGHTS: Tuple[Tuple[str, int], ...] = (
    ("general", 4),
    ("food", 3),
    ("alchemy", 2),
    ("weapons", 2),
    ("armor", 2),
    ("scrolls", 1),
)

LOOT_CATEGORY_WEIGHTS: Tuple[Tuple[str, int], ...] = (
    ("gear", 4),
    ("consumables", 3),
    ("weapons", 2),
    ("armor", 2),
    ("scrolls", 1),
)


def pick_weighted_category(
    weights: Sequence[Tuple[str, int]],
    rng: Optional[random.Random] = None,
) -> str:
    """Cumulative-weight roulette over (category, weight) pairs."""
    rng = rng or _default_rng
    entries = [(category, weight) for category, weight in weights if weight > 0]
    if not entries:
        raise ValueError("weight table has no positive weights")
    total = sum(weight for _, weight in entries)
    roll = rng.random() * total
    for category, weight in entries:
        roll -= weight
        if roll < 0:
            return category
    return entries[-1][0]


def build_category_plan(
    count: int,
    category: Optional[str],
    mixed_sentinel: str,
    weights: Sequence[Tuple[str, int]],
    rng: Optional[random.Random] = None,
) -> List[str]:
    """
    Build an ordered category plan of length ``count``.

    Args:
        count: Number of slots (negative counts as zero)
        category: Requested category, or the mixed sentinel
        mixed_sentinel: Value that selects weighted mode
        weights: Weight table for mixed mode
        rng: Random source

    Returns:
        List of categories, one per slot
    """
    count = max(0, int(count or 0))
    if category != mixed_sentinel:
        return [category] * count
    return [pick_weighted_category(weights, rng) for _ in range(count)]


def build_shop_plan(shop_type: Optional[str], count: int, rng: Optional[random.Random] = None) -> List[str]:
    return build_category_plan(count, normalize_shop_type(shop_type), SHOP_MIXED, SHOP_CATEGORY_WEIGHTS, rng)


def build_loot_plan(loot_type: Optional[str], count: int, rng: Optional[random.Random] = None) -> List[str]:
    """Loot plan. The coins type has no item slots."""
    loot_type = normalize_loot_type(loot_type)
    if loot_type == LOOT_COINS:
        return []
    return build_category_plan(count, loot_type, LOOT_MIXED, LOOT_CATEGORY_WEIGHTS, rng)
