"""
Bundle Service.

Entry points used by the document-building side:
- shop stock (generated or imported from a name list)
- loot caches with coins (generated or imported)
- single actors: ability profile, stat block and equipment
- encounter rosters: tier plan plus one actor per slot

Every call returns a result object with ``to_dict()``. Degraded outcomes
(empty catalog, unmatched names, malformed input) are reported as warnings on
the result instead of raised.
"""
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from bundlegen.config import Settings, get_settings
from bundlegen.core.abilities import (
    ARCHETYPE_BASELINES,
    build_stat_block,
    clamp_tier,
    normalize_ability_hints,
    roll_ability_profile,
)
from bundlegen.core.budget import BudgetTier
from bundlegen.core.classifier import (
    LOOT_COINS,
    build_loot_pools,
    build_shop_pools,
    normalize_loot_type,
    normalize_shop_type,
    split_item_names,
)
from bundlegen.core.encounter import build_encounter_plan
from bundlegen.core.errors import EmptyCatalogError, InvalidRequestError, ValidationIssue
from bundlegen.core.imports import ItemReference, normalize_item_refs
from bundlegen.core.matching import lookup_keywords
from bundlegen.core.planner import build_loot_plan, build_shop_plan
from bundlegen.core.selection import LOOT_PRESET, SHOP_PRESET, SelectionEngine, roll_loot_coins
from bundlegen.models.bundle import (
    CoinPurse,
    EncounterPlan,
    GeneratedItem,
    ImportOutcome,
    ImportStatus,
    StatBlock,
)
from bundlegen.models.catalog import CatalogSnapshot

logger = logging.getLogger(__name__)

# Default equipment budget for an actor of each tier
TIER_BUDGETS = {
    1: BudgetTier.POOR,
    2: BudgetTier.NORMAL,
    3: BudgetTier.WELL,
    4: BudgetTier.ELITE,
}


# =============================================================================
# Results
# =============================================================================

@dataclass
class StockResult:
    """Shop stock or loot cache contents."""
    context: str
    category: str
    budget: str
    requested: int = 0
    items: List[GeneratedItem] = field(default_factory=list)
    coins: Optional[CoinPurse] = None
    imports: List[ImportOutcome] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def resolved(self) -> int:
        return sum(1 for outcome in self.imports if outcome.status == ImportStatus.RESOLVED)

    @property
    def missing(self) -> int:
        return sum(1 for outcome in self.imports if outcome.status == ImportStatus.MISSING)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "context": self.context,
            "category": self.category,
            "budget": self.budget,
            "requested": self.requested,
            "items": [item.to_dict() for item in self.items],
            "coins": self.coins.to_dict() if self.coins else None,
            "imports": [outcome.to_dict() for outcome in self.imports],
            "resolved": self.resolved,
            "missing": self.missing,
            "issues": [issue.to_dict() for issue in self.issues],
            "warnings": list(self.warnings),
        }


@dataclass
class ActorResult:
    """A generated actor: stat block plus equipment."""
    archetype: str
    stat_block: StatBlock
    equipment: List[GeneratedItem] = field(default_factory=list)
    imports: List[ImportOutcome] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "archetype": self.archetype,
            "stat_block": self.stat_block.to_dict(),
            "equipment": [item.to_dict() for item in self.equipment],
            "imports": [outcome.to_dict() for outcome in self.imports],
            "issues": [issue.to_dict() for issue in self.issues],
            "warnings": list(self.warnings),
        }


@dataclass
class EncounterResult:
    """An encounter plan and, optionally, one actor per slot."""
    plan: EncounterPlan
    actors: List[ActorResult] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan.to_dict(),
            "actors": [actor.to_dict() for actor in self.actors],
            "warnings": list(self.warnings),
        }


# =============================================================================
# Service
# =============================================================================

class BundleService:
    """
    Generates bundles from one catalog snapshot.

    The snapshot is passed in explicitly and never modified. With
    BUNDLEGEN_SEED set (and no rng given) runs are reproducible.
    """

    def __init__(
        self,
        catalog: CatalogSnapshot,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        if not isinstance(catalog, CatalogSnapshot):
            raise InvalidRequestError("catalog must be a CatalogSnapshot", field="catalog")
        self.catalog = catalog
        self.settings = settings or get_settings()
        self.rng = rng or random.Random(self.settings.SEED)
        self.engine = SelectionEngine(rng=self.rng, language=self.settings.LANGUAGE)

    def _count(self, count: Optional[int]) -> int:
        if count is None:
            count = self.settings.DEFAULT_ITEM_COUNT
        try:
            count = int(count)
        except (TypeError, ValueError):
            count = self.settings.DEFAULT_ITEM_COUNT
        return max(1, min(self.settings.MAX_ITEM_COUNT, count))

    def _budget(self, budget: Any) -> BudgetTier:
        return BudgetTier.parse(budget, BudgetTier.parse(self.settings.DEFAULT_BUDGET))

    @staticmethod
    def _empty_catalog(result, exc: EmptyCatalogError) -> None:
        logger.warning(f"[BundleService] {exc.message} ({exc.details.get('context', 'unknown')})")
        result.warnings.append(exc.message)

    @staticmethod
    def _unmatched(refs: List[ItemReference]) -> List[ImportOutcome]:
        return [
            ImportOutcome(name=ref.name, status=ImportStatus.MISSING, keywords=lookup_keywords(ref.lookup or ref.name))
            for ref in refs
        ]

    @staticmethod
    def _report_missing(result, outcomes: List[ImportOutcome]) -> None:
        missing = sum(1 for outcome in outcomes if outcome.status == ImportStatus.MISSING)
        if missing:
            result.warnings.append(f"{missing} items could not be matched")

    # -------------------------------------------------------------------------
    # Shops
    # -------------------------------------------------------------------------

    def generate_shop_stock(
        self,
        shop_type: Optional[str] = None,
        count: Optional[int] = None,
        budget: Any = None,
        allow_magic: bool = False,
    ) -> StockResult:
        """Generate shop stock for a shop type ("market" for a mixed shop)."""
        shop_type = normalize_shop_type(shop_type)
        budget = self._budget(budget)
        count = self._count(count)
        result = StockResult(context="shop", category=shop_type, budget=budget.value, requested=count)

        pools = build_shop_pools(self.catalog, allow_magic)
        try:
            selection = self.engine.select(
                build_shop_plan(shop_type, count, self.rng), pools, SHOP_PRESET, budget, allow_magic, unique=True
            )
        except EmptyCatalogError as exc:
            self._empty_catalog(result, exc)
            return result

        result.items = selection.items
        if selection.omitted:
            result.warnings.append(f"{selection.omitted} of {count} items could not be stocked")
        return result

    def import_shop_stock(
        self,
        payload: Any,
        shop_type: Optional[str] = None,
        budget: Any = None,
        allow_magic: bool = False,
    ) -> StockResult:
        """Stock a shop from an externally supplied item list."""
        items_value = payload.get("items") if isinstance(payload, Mapping) else payload
        if isinstance(payload, Mapping) and payload.get("shopType"):
            shop_type = payload.get("shopType")
        shop_type = normalize_shop_type(shop_type)
        budget = self._budget(budget)

        validation = normalize_item_refs(items_value, max_items=self.settings.MAX_ITEM_COUNT)
        refs: List[ItemReference] = validation.value
        result = StockResult(
            context="shop", category=shop_type, budget=budget.value, requested=len(refs), issues=validation.issues
        )
        result.warnings.extend(validation.warnings)
        if not refs:
            result.warnings.append("No usable item references in the import payload")
            return result

        pools = build_shop_pools(self.catalog, allow_magic)
        try:
            outcomes = self.engine.resolve_imports(refs, pools, SHOP_PRESET, shop_type, budget, allow_magic)
        except EmptyCatalogError as exc:
            result.imports = self._unmatched(refs)
            self._empty_catalog(result, exc)
            return result

        result.imports = outcomes
        result.items = [outcome.item for outcome in outcomes if outcome.item is not None]
        self._report_missing(result, outcomes)
        return result

    # -------------------------------------------------------------------------
    # Loot
    # -------------------------------------------------------------------------

    def generate_loot_cache(
        self,
        loot_type: Optional[str] = None,
        count: Optional[int] = None,
        budget: Any = None,
        tier: int = 1,
        allow_magic: bool = False,
        unique: bool = True,
        include_coins: bool = True,
    ) -> StockResult:
        """Generate a loot cache. The "coins" type holds coins only."""
        loot_type = normalize_loot_type(loot_type)
        budget = self._budget(budget)
        count = self._count(count)
        result = StockResult(context="loot", category=loot_type, budget=budget.value)
        if include_coins:
            result.coins = roll_loot_coins(tier, budget, self.rng)
        if loot_type == LOOT_COINS:
            return result

        result.requested = count
        pools = build_loot_pools(self.catalog, allow_magic)
        try:
            selection = self.engine.select(
                build_loot_plan(loot_type, count, self.rng), pools, LOOT_PRESET, budget, allow_magic, unique
            )
        except EmptyCatalogError as exc:
            self._empty_catalog(result, exc)
            return result

        result.items = selection.items
        if selection.omitted:
            result.warnings.append(f"{selection.omitted} of {count} items could not be found")
        return result

    def import_loot_cache(
        self,
        payload: Any,
        loot_type: Optional[str] = None,
        count: Optional[int] = None,
        budget: Any = None,
        tier: int = 1,
        allow_magic: bool = False,
        unique: bool = True,
        include_coins: bool = True,
    ) -> StockResult:
        """
        Fill a loot cache from an externally supplied item list.

        Falls back to a generated cache when the payload holds no usable names.
        """
        items_value = payload.get("items") if isinstance(payload, Mapping) else payload
        if isinstance(payload, Mapping):
            loot_type = payload.get("lootType") or loot_type
            count = payload.get("itemCount") or count
        loot_type = normalize_loot_type(loot_type)

        validation = normalize_item_refs(items_value, max_items=self.settings.MAX_ITEM_COUNT)
        refs: List[ItemReference] = validation.value
        if not refs:
            result = self.generate_loot_cache(loot_type, count, budget, tier, allow_magic, unique, include_coins)
            result.issues = validation.issues
            return result

        budget = self._budget(budget)
        result = StockResult(
            context="loot", category=loot_type, budget=budget.value, requested=len(refs), issues=validation.issues
        )
        result.warnings.extend(validation.warnings)
        if include_coins:
            result.coins = roll_loot_coins(tier, budget, self.rng)

        pools = build_loot_pools(self.catalog, allow_magic)
        try:
            outcomes = self.engine.resolve_imports(refs, pools, LOOT_PRESET, loot_type, budget, allow_magic, unique)
        except EmptyCatalogError as exc:
            result.imports = self._unmatched(refs)
            self._empty_catalog(result, exc)
            return result

        result.imports = outcomes
        result.items = [outcome.item for outcome in outcomes if outcome.item is not None]
        self._report_missing(result, outcomes)
        return result

    # -------------------------------------------------------------------------
    # Actors
    # -------------------------------------------------------------------------

    def generate_actor(
        self,
        archetype: str = "commoner",
        tier: int = 1,
        important: bool = False,
        budget: Any = None,
        ability_hints: Any = None,
        item_names: Optional[List[str]] = None,
    ) -> ActorResult:
        """
        Generate one actor.

        Args:
            archetype: Key into ARCHETYPE_BASELINES (unknown -> commoner)
            tier: Difficulty tier 1-4
            important: Boss/leader flag (bigger bonus, more items)
            budget: Equipment budget; defaults by tier
            ability_hints: Generator-supplied scores used instead of rolling
            item_names: Generator-supplied equipment names used instead of picking
        """
        tier = clamp_tier(tier)
        issues: List[ValidationIssue] = []
        if ability_hints is not None:
            validation = normalize_ability_hints(ability_hints, tier)
            issues.extend(validation.issues)
            abilities = validation.value
        else:
            baseline = ARCHETYPE_BASELINES.get(str(archetype or "").lower(), ARCHETYPE_BASELINES["commoner"])
            abilities = roll_ability_profile(baseline, tier, important, self.rng)

        stat_block = build_stat_block(tier, important, abilities, self.rng)
        result = ActorResult(archetype=archetype, stat_block=stat_block, issues=issues)
        budget = BudgetTier.parse(budget, TIER_BUDGETS[tier])
        pools = build_loot_pools(self.catalog, stat_block.allow_magic_items)

        try:
            if item_names:
                groups = split_item_names(item_names)
                refs = [ItemReference(name=name) for names in groups.values() for name in names]
                result.imports = self.engine.resolve_imports(
                    refs, pools, LOOT_PRESET, None, budget, stat_block.allow_magic_items
                )
                result.equipment = [o.item for o in result.imports if o.item is not None]
                self._report_missing(result, result.imports)
            else:
                plan = build_loot_plan(None, stat_block.role_item_count, self.rng)
                selection = self.engine.select(plan, pools, LOOT_PRESET, budget, stat_block.allow_magic_items)
                result.equipment = selection.items
        except EmptyCatalogError as exc:
            self._empty_catalog(result, exc)
        return result

    # -------------------------------------------------------------------------
    # Encounters
    # -------------------------------------------------------------------------

    def plan_encounter(
        self,
        party_level: int,
        party_size: int,
        difficulty: str = "medium",
        roster_size: Optional[int] = None,
        archetypes: Optional[List[str]] = None,
        generate_actors: bool = True,
    ) -> EncounterResult:
        """
        Plan an encounter and optionally generate its actors.

        Archetypes are assigned to slots round-robin; the boss slot gets the
        importance bonus.
        """
        plan = build_encounter_plan(party_level, party_size, difficulty, roster_size, self.rng)
        result = EncounterResult(plan=plan)
        if not generate_actors:
            return result

        archetypes = list(archetypes or ["commoner"])
        for index, slot in enumerate(plan.slots):
            actor = self.generate_actor(
                archetype=archetypes[index % len(archetypes)],
                tier=slot.tier,
                important=slot.is_boss,
            )
            result.actors.append(actor)
            for warning in actor.warnings:
                if warning not in result.warnings:
                    result.warnings.append(warning)
        return result
