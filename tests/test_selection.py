"""Tests for the selection engine."""
import random

import pytest

from bundlegen.core.budget import BudgetTier
from bundlegen.core.classifier import build_loot_pools, build_shop_pools
from bundlegen.core.errors import EmptyCatalogError
from bundlegen.core.imports import ItemReference
from bundlegen.core.planner import build_loot_plan, build_shop_plan
from bundlegen.core.selection import (
    LOOT_PRESET,
    SHOP_PRESET,
    SelectionEngine,
    roll_loot_coins,
    roll_quantity,
)
from bundlegen.models.bundle import ImportStatus
from bundlegen.models.catalog import CatalogSnapshot, GearRecord, WeaponRecord


class TestRollQuantity:
    """Tests for display quantities."""

    def test_ranges(self, market_catalog, rng):
        """Quantities follow what the item is."""
        by_name = {r.name: r for r in market_catalog}
        expected = {
            "Longsword": (1, 1),
            "Chain Mail": (1, 1),
            "Spell Scroll": (1, 3),
            "Rations": (3, 10),
            "Potion of Healing": (1, 4),
            "Arrows": (5, 20),
            "Rope": (1, 5),
        }
        for name, (low, high) in expected.items():
            for _ in range(30):
                assert low <= roll_quantity(by_name[name], "general", rng) <= high

    def test_armor_category_forces_one(self, rng):
        """Anything stocked as armor is a single piece."""
        assert roll_quantity(GearRecord(id="x", name="Odd Hat"), "armor", rng) == 1


class TestSelect:
    """Tests for filling a plan."""

    def setup_method(self):
        self.engine = SelectionEngine(rng=random.Random(8))

    def test_shop_fill_unique(self, market_catalog):
        """Shop stock fills the plan without repeating names."""
        pools = build_shop_pools(market_catalog)
        result = self.engine.select(build_shop_plan("market", 10, self.engine.rng), pools, SHOP_PRESET)
        names = [item.name.lower() for item in result.items]
        assert len(result.items) == 10
        assert len(names) == len(set(names))

    def test_shop_items_are_priced(self, market_catalog):
        """Shop items carry base, rolled and display prices."""
        pools = build_shop_pools(market_catalog)
        result = self.engine.select(["weapons"] * 2, pools, SHOP_PRESET)
        for item in result.items:
            assert item.base_price_cp and item.rolled_price_cp and item.price_gp >= 1
            assert item.category == "weapons"

    def test_loot_items_have_no_shop_price(self, market_catalog):
        """Loot items keep only the normalized source price."""
        pools = build_loot_pools(market_catalog)
        result = self.engine.select(build_loot_plan("mixed", 4, self.engine.rng), pools, LOOT_PRESET)
        assert all(item.rolled_price_cp is None for item in result.items)

    def test_no_artifacts_or_magic(self, market_catalog):
        """Generated sets never include artifacts, or magic when it is not allowed."""
        for seed in range(10):
            engine = SelectionEngine(rng=random.Random(seed))
            pools = build_shop_pools(market_catalog)
            result = engine.select(build_shop_plan("weapons", 3, engine.rng), pools, SHOP_PRESET)
            assert all(item.rarity != "artifact" and not item.is_magical for item in result.items)

    def test_artifact_never_selected_with_magic(self, market_catalog):
        """Artifacts stay out even with magic allowed."""
        pools = build_shop_pools(market_catalog, allow_magic=True)
        result = self.engine.select(["weapons"] * 4, pools, SHOP_PRESET, BudgetTier.ELITE, allow_magic=True)
        assert "Sword of Kas" not in {item.name for item in result.items}
        assert "Flame Tongue" in {item.name for item in result.items}

    def test_exhausted_pool_omits_slots(self):
        """More slots than unique records: extras are omitted, not failed."""
        catalog = CatalogSnapshot.of([WeaponRecord(id="d", name="Dagger", price_cp=200)])
        pools = build_shop_pools(catalog)
        result = self.engine.select(["weapons"] * 3, pools, SHOP_PRESET)
        assert len(result.items) == 1
        assert result.omitted == 2
        assert result.attempts == SHOP_PRESET.max_attempts(3)
        assert [slot.filled for slot in result.slots] == [True, False, False]

    def test_uniqueness_can_be_disabled(self):
        """Loot without uniqueness may repeat a record."""
        catalog = CatalogSnapshot.of([WeaponRecord(id="d", name="Dagger", price_cp=200)])
        pools = build_loot_pools(catalog)
        result = self.engine.select(["weapons"] * 3, pools, LOOT_PRESET, unique=False)
        assert [item.name for item in result.items] == ["Dagger"] * 3

    def test_case_insensitive_uniqueness(self):
        """Names differing only in case count as the same item."""
        catalog = CatalogSnapshot.of([
            GearRecord(id="a", name="Rope", price_cp=100),
            GearRecord(id="b", name="rope ", price_cp=100),
        ])
        result = self.engine.select(["general"] * 2, build_shop_pools(catalog), SHOP_PRESET)
        assert len(result.items) == 1

    def test_category_falls_back_to_general_then_any(self):
        """Empty category pools fall back in order."""
        catalog = CatalogSnapshot.of([GearRecord(id="r", name="Rope", price_cp=100)])
        result = self.engine.select(["weapons"], build_shop_pools(catalog), SHOP_PRESET)
        assert result.slots[0].pool == "general"
        assert result.items[0].category == "weapons"

    def test_empty_catalog_raises(self):
        """Nothing to select from is the one hard failure."""
        pools = build_shop_pools(CatalogSnapshot())
        with pytest.raises(EmptyCatalogError):
            self.engine.select(["general"], pools, SHOP_PRESET)

    def test_zero_slots(self, market_catalog):
        """An empty plan is an empty result."""
        result = self.engine.select([], build_shop_pools(market_catalog), SHOP_PRESET)
        assert result.items == [] and result.omitted == 0

    def test_poor_weapon_scenario(self, weapon_catalog):
        """20 weapons, poor budget: the pick is cheap, mundane and not an artifact."""
        ceiling = sorted(r.price_cp for r in weapon_catalog)[5]
        for seed in range(25):
            engine = SelectionEngine(rng=random.Random(seed))
            result = engine.select(["weapons"], build_shop_pools(weapon_catalog), SHOP_PRESET, BudgetTier.POOR)
            item = result.items[0]
            assert item.price_cp <= ceiling
            assert not item.is_magical
            assert item.rarity != "artifact"

    def test_interface_language_does_not_narrow_pool(self):
        """A Cyrillic interface still buckets over every name: elite never buys the cheap Cyrillic knife."""
        records = [WeaponRecord(id=f"w{i}", name=f"Blade {i}", price_cp=i * 1000) for i in range(1, 10)]
        records.append(WeaponRecord(id="knife", name="Нож", price_cp=10))
        pools = build_shop_pools(CatalogSnapshot.of(records))
        engine = SelectionEngine(rng=random.Random(3), language="ru")
        result = engine.select(["weapons"] * 5, pools, SHOP_PRESET, BudgetTier.ELITE, unique=False)
        assert len(result.items) == 5
        assert all(item.price_cp >= 8000 for item in result.items)

    def test_latin_interface_still_stocks_cyrillic_names(self):
        """Cyrillic-named records stay in the pool for a Latin interface."""
        records = [WeaponRecord(id=f"w{i}", name=f"Blade {i}", price_cp=i * 1000) for i in range(1, 10)]
        records.append(WeaponRecord(id="knife", name="Нож", price_cp=10))
        pools = build_shop_pools(CatalogSnapshot.of(records))
        engine = SelectionEngine(rng=random.Random(3), language="en")
        names = set()
        for _ in range(30):
            names.update(item.name for item in engine.select(["weapons"], pools, SHOP_PRESET, BudgetTier.POOR).items)
        assert "Нож" in names

    def test_source_record_untouched(self, market_catalog):
        """Output items are copies; the snapshot is unchanged."""
        before = [r.to_dict() for r in market_catalog]
        result = self.engine.select(["general"] * 3, build_shop_pools(market_catalog), SHOP_PRESET)
        result.items[0].record["name"] = "changed"
        assert [r.to_dict() for r in market_catalog] == before


class TestResolveImports:
    """Tests for imported name resolution."""

    def setup_method(self):
        self.engine = SelectionEngine(rng=random.Random(2), language="en")

    def test_resolved_missing_duplicate(self, market_catalog):
        """Each reference reports its own outcome."""
        refs = [
            ItemReference(name="Longsword", quantity=2, price_gp=20),
            ItemReference(name="Vorpal Spoon"),
            ItemReference(name="longsword"),
            ItemReference(name="Зелье лечения", lookup="Potion of Healing"),
        ]
        outcomes = self.engine.resolve_imports(refs, build_shop_pools(market_catalog), SHOP_PRESET)
        assert [o.status for o in outcomes] == [
            ImportStatus.RESOLVED,
            ImportStatus.MISSING,
            ImportStatus.DUPLICATE,
            ImportStatus.RESOLVED,
        ]
        sword = outcomes[0].item
        assert sword.imported and sword.quantity == 2
        assert sword.price_gp == 20 and sword.rolled_price_cp == 2000
        assert sword.category == "weapons"
        assert outcomes[3].item.category == "alchemy"
        assert outcomes[1].keywords == ["vorpal", "spoon"]
        assert outcomes[0].keywords == []

    def test_magic_not_matched_without_allowance(self, market_catalog):
        """Disallowed records are not match candidates."""
        outcomes = self.engine.resolve_imports(
            [ItemReference(name="Flame Tongue")], build_loot_pools(market_catalog), LOOT_PRESET
        )
        assert outcomes[0].status == ImportStatus.MISSING
        assert outcomes[0].item is None

    def test_empty_refs(self, market_catalog):
        """No references, no outcomes."""
        assert self.engine.resolve_imports([], build_shop_pools(market_catalog), SHOP_PRESET) == []

    def test_empty_catalog_raises(self):
        """References against an empty catalog are a hard failure."""
        with pytest.raises(EmptyCatalogError):
            self.engine.resolve_imports([ItemReference(name="Rope")], build_shop_pools(CatalogSnapshot()), SHOP_PRESET)


class TestLootCoins:
    """Tests for loot coin rolls."""

    def test_tier_one_has_no_electrum_or_platinum(self, rng):
        """Electrum from tier 2, platinum from tier 3."""
        for _ in range(50):
            purse = roll_loot_coins(1, BudgetTier.ELITE, rng)
            assert purse.ep == 0 and purse.pp == 0

    def test_tier_one_ranges(self, rng):
        """Tier 1 normal coins stay inside the default ranges."""
        for _ in range(50):
            purse = roll_loot_coins(1, BudgetTier.NORMAL, rng)
            assert 0 <= purse.gp <= 10
            assert 0 <= purse.sp <= 25
            assert 0 <= purse.cp <= 15

    def test_high_tier_can_have_platinum(self):
        """Tier 4 eventually rolls platinum."""
        rng = random.Random(4)
        assert any(roll_loot_coins(4, BudgetTier.WELL, rng).pp > 0 for _ in range(50))

    def test_budget_scales_coins(self):
        """Elite caches hold more gold on average than poor ones."""
        rng = random.Random(6)
        poor = sum(roll_loot_coins(2, BudgetTier.POOR, rng).total_gp for _ in range(300))
        elite = sum(roll_loot_coins(2, BudgetTier.ELITE, rng).total_gp for _ in range(300))
        assert elite > poor
