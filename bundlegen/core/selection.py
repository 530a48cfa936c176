"""
Selection engine for shop stock and loot caches.

Fills a category plan from classified pools:
- each slot tries its category pool, then the preset's general pool, then everything
- candidates already used in the run are excluded when uniqueness is on
- the budget picks a candidate from the pool's price percentile window
- the attempt budget covers the whole run; slots still empty when it runs out
  are omitted rather than failing the run

Imported requests skip planning and resolve each supplied name through the
name matcher instead. The interface language only breaks ties between exact
name matches there; it never narrows the free-pick population.
"""
import logging
import random
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from bundlegen.core.abilities import clamp_tier
from bundlegen.core.budget import BudgetTier, pick_record_by_budget
from bundlegen.core.classifier import (
    LOOT_MIXED,
    SHOP_MIXED,
    infer_loot_category,
    infer_shop_category,
    is_alchemy,
    is_ammo,
    is_armor,
    is_allowed,
    is_food,
    is_scroll,
)
from bundlegen.core.errors import EmptyCatalogError
from bundlegen.core.imports import ItemReference
from bundlegen.core.matching import lookup_keywords, match_reference
from bundlegen.core.pricing import cp_to_display_gp, is_within_budget, roll_shop_price
from bundlegen.core.resolver import PoolStrategy, RankedResolver
from bundlegen.models.bundle import (
    CoinPurse,
    GeneratedItem,
    ImportOutcome,
    ImportStatus,
    SelectionResult,
    SelectionSlot,
)
from bundlegen.models.catalog import CatalogRecord, RecordKind

logger = logging.getLogger(__name__)

_default_rng = random.Random()


@dataclass(frozen=True)
class SelectionPreset:
    """Per-context knobs for a selection run."""
    name: str
    attempts_per_item: int
    min_attempts: int
    general_category: str
    mixed_category: str
    infer_category: Callable[[CatalogRecord, str], str]
    shop_pricing: bool = False

    def max_attempts(self, count: int) -> int:
        return max(count * self.attempts_per_item, self.min_attempts)


SHOP_PRESET = SelectionPreset(
    name="shop",
    attempts_per_item=10,
    min_attempts=24,
    general_category="general",
    mixed_category=SHOP_MIXED,
    infer_category=infer_shop_category,
    shop_pricing=True,
)

LOOT_PRESET = SelectionPreset(
    name="loot",
    attempts_per_item=12,
    min_attempts=30,
    general_category="gear",
    mixed_category=LOOT_MIXED,
    infer_category=infer_loot_category,
)


# =============================================================================
# Quantities and Coins
# =============================================================================

def roll_quantity(record: CatalogRecord, category: str, rng: Optional[random.Random] = None) -> int:
    """Display quantity for a stocked item, by what the item is."""
    rng = rng or _default_rng
    if category == "gear":
        category = "general"
    if record.kind == RecordKind.WEAPON or category == "armor" or is_armor(record):
        return 1
    if is_scroll(record):
        return rng.randint(1, 3)
    if is_food(record):
        return rng.randint(3, 10)
    if is_alchemy(record):
        return rng.randint(1, 4)
    if is_ammo(record):
        return rng.randint(5, 20)
    if record.kind == RecordKind.CONSUMABLE:
        return rng.randint(1, 6)
    return rng.randint(1, 5)


COIN_BUDGET_SCALE = {
    BudgetTier.POOR: 0.7,
    BudgetTier.NORMAL: 1.0,
    BudgetTier.WELL: 1.55,
    BudgetTier.ELITE: 2.35,
}

# (gp range, sp range) per tier
COIN_RANGES = {
    1: ((0, 10), (0, 25)),
    2: ((5, 30), (10, 60)),
    3: ((20, 120), (20, 120)),
    4: ((80, 400), (40, 200)),
}


def roll_loot_coins(tier: int, budget: BudgetTier = BudgetTier.NORMAL, rng: Optional[random.Random] = None) -> CoinPurse:
    """
    Roll loose coins for a loot cache.

    Electrum appears from tier 2, platinum from tier 3.
    """
    rng = rng or _default_rng
    tier = clamp_tier(tier)
    scale = COIN_BUDGET_SCALE[BudgetTier.parse(budget)]
    (gp_min, gp_max), (sp_min, sp_max) = COIN_RANGES.get(tier, ((0, 10), (0, 25)))

    purse = CoinPurse()
    purse.gp = max(0, round(rng.randint(gp_min, gp_max) * scale))
    purse.sp = max(0, round(rng.randint(sp_min, sp_max) * scale))
    purse.cp = max(0, round(rng.randint(0, 10 + tier * 5) * scale))
    if tier >= 2:
        purse.ep = max(0, round(rng.randint(0, tier * 4) * scale))
    if tier >= 3:
        purse.pp = max(0, round(rng.randint(0, tier * 2) * max(1.0, scale - 0.2)))
    return purse


# =============================================================================
# Selection Engine
# =============================================================================

class SelectionEngine:
    """
    Fills selection runs from classified pools.

    Usage:
        engine = SelectionEngine(rng=random.Random(7))
        pools = build_shop_pools(catalog, allow_magic=False)
        result = engine.select(build_shop_plan("market", 12), pools, SHOP_PRESET)
    """

    def __init__(self, rng: Optional[random.Random] = None, language: Optional[str] = "en"):
        self.rng = rng or _default_rng
        self.language = language

    def _available(
        self,
        pool: Iterable[CatalogRecord],
        seen: Set[str],
        unique: bool,
        allow_magic: bool,
    ) -> List[CatalogRecord]:
        return [
            record for record in pool or ()
            if is_allowed(record, allow_magic) and not (unique and record.name_key in seen)
        ]

    def _resolver(
        self,
        pools: Dict[str, List[CatalogRecord]],
        preset: SelectionPreset,
        seen: Set[str],
        unique: bool,
        allow_magic: bool,
    ) -> RankedResolver:
        def pool(name_of: Callable[[str], str]):
            return lambda category: self._available(pools.get(name_of(category), ()), seen, unique, allow_magic)

        return RankedResolver(
            [
                PoolStrategy("category", pool(lambda category: category)),
                PoolStrategy("general", pool(lambda _category: preset.general_category)),
                PoolStrategy("any", pool(lambda _category: preset.mixed_category)),
            ],
            label="Selection",
        )

    def make_item(
        self,
        record: CatalogRecord,
        category: str,
        preset: SelectionPreset,
        budget: BudgetTier = BudgetTier.NORMAL,
        allow_magic: bool = False,
    ) -> GeneratedItem:
        """Clone a record into an output item with a rolled quantity (and shop price)."""
        budget = BudgetTier.parse(budget)
        item = GeneratedItem.from_record(record, category, roll_quantity(record, category, self.rng))
        if not is_within_budget(record.price_cp, budget, allow_magic):
            logger.debug(f"[Selection] {record.name} at {record.price_cp} cp is outside the {budget.value} price range")
        if preset.shop_pricing:
            base_cp, rolled_cp = roll_shop_price(record.price_cp, budget, allow_magic, self.rng)
            item.base_price_cp = base_cp
            item.rolled_price_cp = rolled_cp
            item.price_gp = cp_to_display_gp(rolled_cp)
        return item

    def select(
        self,
        plan: Sequence[str],
        pools: Dict[str, List[CatalogRecord]],
        preset: SelectionPreset,
        budget: BudgetTier = BudgetTier.NORMAL,
        allow_magic: bool = False,
        unique: bool = True,
    ) -> SelectionResult:
        """
        Fill one slot per planned category.

        Raises:
            EmptyCatalogError: if the preset's "any" pool has nothing to offer
        """
        budget = BudgetTier.parse(budget)
        count = len(plan)
        result = SelectionResult(requested=count)
        if count == 0:
            return result
        if not pools.get(preset.mixed_category):
            raise EmptyCatalogError(context=f"{preset.name} selection")

        seen: Set[str] = set()
        resolver = self._resolver(pools, preset, seen, unique, allow_magic)
        max_attempts = preset.max_attempts(count)

        while len(result.slots) < count and result.attempts < max_attempts:
            index = len(result.slots)
            category = plan[index]
            result.attempts += 1
            resolution = resolver.resolve(category)
            if resolution is None:
                continue
            record = pick_record_by_budget(resolution.candidates, budget, self.rng)
            if record is None or (unique and record.name_key in seen):
                continue
            if unique:
                seen.add(record.name_key)
            item = self.make_item(record, category, preset, budget, allow_magic)
            result.slots.append(SelectionSlot(index=index, category=category, item=item, pool=resolution.strategy))

        for index in range(len(result.slots), count):
            logger.debug(f"[Selection] Slot {index} ({plan[index]}) left empty after {result.attempts} attempts")
            result.slots.append(SelectionSlot(index=index, category=plan[index]))

        logger.info(
            f"[Selection] {preset.name}: requested {count}, filled {len(result.items)}, "
            f"omitted {result.omitted} ({result.attempts} attempts)"
        )
        return result

    def resolve_imports(
        self,
        refs: Sequence[ItemReference],
        pools: Dict[str, List[CatalogRecord]],
        preset: SelectionPreset,
        fallback_category: Optional[str] = None,
        budget: BudgetTier = BudgetTier.NORMAL,
        allow_magic: bool = False,
        unique: bool = True,
    ) -> List[ImportOutcome]:
        """
        Resolve explicitly requested names against the whole allowed pool.

        Imported quantities and price overrides replace the rolled values.

        Raises:
            EmptyCatalogError: if there are references but nothing to match against
        """
        budget = BudgetTier.parse(budget)
        outcomes: List[ImportOutcome] = []
        if not refs:
            return outcomes
        candidates = [r for r in pools.get(preset.mixed_category, ()) if is_allowed(r, allow_magic)]
        if not candidates:
            raise EmptyCatalogError(context=f"{preset.name} import")

        fallback_category = fallback_category or preset.mixed_category
        seen: Set[str] = set()
        for ref in refs:
            match = match_reference(candidates, ref.name, ref.lookup or None, language=self.language)
            if not match.matched:
                outcomes.append(ImportOutcome(
                    name=ref.name,
                    status=ImportStatus.MISSING,
                    match=match,
                    keywords=lookup_keywords(ref.lookup or ref.name),
                ))
                continue
            record = match.record
            if unique and record.name_key in seen:
                outcomes.append(ImportOutcome(name=ref.name, status=ImportStatus.DUPLICATE, match=match))
                continue
            seen.add(record.name_key)

            item = self.make_item(record, preset.infer_category(record, fallback_category), preset, budget, allow_magic)
            item.imported = True
            item.quantity = ref.quantity
            if ref.price_gp:
                item.price_gp = max(1, round(ref.price_gp))
                item.rolled_price_cp = int(round(ref.price_gp * 100))
            outcomes.append(ImportOutcome(name=ref.name, status=ImportStatus.RESOLVED, match=match, item=item))

        missing = sum(1 for outcome in outcomes if outcome.status == ImportStatus.MISSING)
        if missing:
            logger.warning(f"[Selection] {missing} of {len(refs)} imported item(s) could not be matched")
        return outcomes
