"""
Bundle Generator - Test Configuration and Fixtures
Shared catalogs and a seeded random source for pytest.
"""
import pytest
import random
from typing import Any, Dict, List
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bundlegen.models.catalog import CatalogSnapshot


# ==================== Random Fixtures ====================

@pytest.fixture
def rng() -> random.Random:
    """Seeded random source so assertions on rolled values are stable."""
    return random.Random(1234)


# ==================== Catalog Fixtures ====================

def make_row(name: str, type_: str, price: Any = None, **system: Any) -> Dict[str, Any]:
    """Build a Foundry-style catalog row."""
    row_system = dict(system)
    if price is not None:
        row_system["price"] = price
    return {
        "_id": name.lower().replace(" ", "-"),
        "name": name,
        "type": type_,
        "system": row_system,
    }


@pytest.fixture
def priced_weapon_rows() -> List[Dict[str, Any]]:
    """20 mundane weapons priced 50 cp to 5000 cp."""
    prices = [50 + i * 260 for i in range(19)] + [5000]
    return [
        make_row(f"Weapon {i:02d}", "weapon", {"value": cp, "denomination": "cp"})
        for i, cp in enumerate(prices)
    ]


@pytest.fixture
def weapon_catalog(priced_weapon_rows) -> CatalogSnapshot:
    return CatalogSnapshot.from_raw(priced_weapon_rows)


@pytest.fixture
def market_rows() -> List[Dict[str, Any]]:
    """A small mixed catalog covering every shop and loot category."""
    return [
        make_row("Longsword", "weapon", {"value": 15, "denomination": "gp"}, identifier="longsword"),
        make_row("Dagger", "weapon", "2 gp", identifier="dagger"),
        make_row("Shortbow", "weapon", 25),
        make_row("Chain Mail", "equipment", 75, armor={"type": "heavy"}),
        make_row("Leather Armor", "equipment", 10, armor={"type": "light"}),
        make_row("Shield", "equipment", 10, armor={"type": "shield"}),
        make_row("Fine Clothes", "equipment", 15, armor={"type": "clothing"}),
        make_row("Potion of Healing", "consumable", 50, type={"value": "potion"}),
        make_row("Basic Poison", "consumable", 100, type={"value": "poison"}),
        make_row("Rations", "consumable", "5 sp", type={"value": "food"}),
        make_row("Arrows", "consumable", {"value": 1, "denomination": "gp"}, type={"value": "ammo"}),
        make_row("Spell Scroll", "consumable", 25, type={"value": "scroll"}),
        make_row("Rope", "loot", "1 gp"),
        make_row("Torch", "loot", "1 cp"),
        make_row("Thieves' Tools", "tool", 25),
        make_row("Backpack", "container", "2 gp"),
        make_row("Flame Tongue", "weapon", 5000, rarity="rare", properties=["mgc"]),
        make_row("Sword of Kas", "weapon", 100000, rarity="artifact", properties=["mgc"]),
        make_row("Fireball", "spell", None, level=3),
        make_row("Second Wind", "feat", None),
    ]


@pytest.fixture
def market_catalog(market_rows) -> CatalogSnapshot:
    return CatalogSnapshot.from_raw(market_rows)
