"""
Category classification for catalog records.

Shop stock and loot caches use two slightly different category vocabularies:
- shop: general, food, alchemy, weapons, armor, scrolls ("market" = mixed)
- loot: gear, consumables, weapons, armor, scrolls ("mixed" = mixed, "coins" = no items)

Records are classified from their kind and subtype. Free-text names coming from
an external generator have no kind, so they are classified by keyword families.
"""
import re
from typing import Dict, Iterable, List, Optional

from bundlegen.models.catalog import ArmorRecord, CatalogRecord, Rarity, RecordKind


# =============================================================================
# Category Vocabularies
# =============================================================================

SHOP_CATEGORIES = ("general", "food", "alchemy", "weapons", "armor", "scrolls")
SHOP_MIXED = "market"

LOOT_CATEGORIES = ("gear", "consumables", "weapons", "armor", "scrolls")
LOOT_MIXED = "mixed"
LOOT_COINS = "coins"

ITEM_KINDS = (
    RecordKind.WEAPON,
    RecordKind.EQUIPMENT,
    RecordKind.LOOT,
    RecordKind.CONSUMABLE,
    RecordKind.TOOL,
    RecordKind.SPELL,
)
GENERAL_KINDS = (RecordKind.EQUIPMENT, RecordKind.LOOT, RecordKind.TOOL, RecordKind.CONSUMABLE)

NON_ARMOR_TYPES = ("none", "clothing", "trinket")
ARMOR_SUBTYPES = ("light", "medium", "heavy", "shield", "natural")


def normalize_shop_type(value: Optional[str]) -> str:
    key = str(value or "").strip().lower()
    return key if key in SHOP_CATEGORIES else SHOP_MIXED


def normalize_loot_type(value: Optional[str]) -> str:
    key = str(value or "").strip().lower()
    if key in LOOT_CATEGORIES or key == LOOT_COINS:
        return key
    return LOOT_MIXED


# =============================================================================
# Record Rules
# =============================================================================

def is_allowed(record: CatalogRecord, allow_magic: bool = False) -> bool:
    """
    Allow-list check applied before any pool is built.

    Artifacts are always rejected. Without magic, anything flagged magical or
    carrying a rarity other than "none" is rejected too.
    """
    if record.rarity == Rarity.ARTIFACT:
        return False
    if not allow_magic:
        if record.is_magical:
            return False
        if record.rarity is not None and record.rarity != Rarity.NONE:
            return False
    return True


def is_armor(record: CatalogRecord) -> bool:
    if record.kind != RecordKind.EQUIPMENT:
        return False
    armor_type = record.armor_type if isinstance(record, ArmorRecord) else ""
    if armor_type and armor_type not in NON_ARMOR_TYPES:
        return True
    return record.subtype in ARMOR_SUBTYPES


def is_scroll(record: CatalogRecord) -> bool:
    if record.kind == RecordKind.SPELL:
        return True
    return record.kind == RecordKind.CONSUMABLE and record.subtype == "scroll"


def is_alchemy(record: CatalogRecord) -> bool:
    return record.kind == RecordKind.CONSUMABLE and record.subtype in ("potion", "poison")


def is_food(record: CatalogRecord) -> bool:
    return record.kind == RecordKind.CONSUMABLE and record.subtype == "food"


def is_ammo(record: CatalogRecord) -> bool:
    return record.kind == RecordKind.CONSUMABLE and record.subtype in ("ammo", "ammunition")


def is_general(record: CatalogRecord) -> bool:
    if record.kind not in GENERAL_KINDS:
        return False
    return not (is_food(record) or is_armor(record) or is_scroll(record) or is_alchemy(record))


def infer_shop_category(record: CatalogRecord, fallback: str = SHOP_MIXED) -> str:
    """Classify a record into a shop category (used for imported matches)."""
    if is_armor(record):
        return "armor"
    if is_scroll(record):
        return "scrolls"
    if record.kind == RecordKind.WEAPON:
        return "weapons"
    if is_alchemy(record):
        return "alchemy"
    if is_food(record):
        return "food"
    if is_general(record):
        return "general"
    fallback = normalize_shop_type(fallback)
    return "general" if fallback == SHOP_MIXED else fallback


def infer_loot_category(record: CatalogRecord, fallback: str = LOOT_MIXED) -> str:
    """Classify a record into a loot category (used for imported matches)."""
    if is_armor(record):
        return "armor"
    if is_scroll(record):
        return "scrolls"
    if record.kind == RecordKind.WEAPON:
        return "weapons"
    if record.kind == RecordKind.CONSUMABLE:
        return "consumables"
    fallback = normalize_loot_type(fallback)
    return "gear" if fallback in (LOOT_MIXED, LOOT_COINS) else fallback


# =============================================================================
# Pool Builders
# =============================================================================

def allowed_item_records(records: Iterable[CatalogRecord], allow_magic: bool = False) -> List[CatalogRecord]:
    """Item-like records that pass the allow-list. Spells count only when magic is allowed."""
    out = []
    for record in records:
        if record.kind not in ITEM_KINDS:
            continue
        if record.kind == RecordKind.SPELL and not allow_magic:
            continue
        if is_allowed(record, allow_magic):
            out.append(record)
    return out


def build_shop_pools(records: Iterable[CatalogRecord], allow_magic: bool = False) -> Dict[str, List[CatalogRecord]]:
    """
    Split allowed records into shop category pools.

    Empty category pools are widened to a looser rule so a specialised shop
    still gets stock from a thin catalog.
    """
    items = allowed_item_records(records, allow_magic)
    pools = {
        SHOP_MIXED: items,
        "general": [r for r in items if is_general(r)],
        "alchemy": [r for r in items if is_alchemy(r)],
        "scrolls": [r for r in items if is_scroll(r)],
        "weapons": [r for r in items if r.kind == RecordKind.WEAPON],
        "armor": [r for r in items if is_armor(r)],
        "food": [r for r in items if is_food(r)],
    }
    if not pools["general"]:
        pools["general"] = [r for r in items if r.kind in GENERAL_KINDS]
    if not pools["alchemy"]:
        pools["alchemy"] = [r for r in items if r.kind == RecordKind.CONSUMABLE]
    if not pools["scrolls"]:
        pools["scrolls"] = [r for r in items if r.kind in (RecordKind.SPELL, RecordKind.CONSUMABLE)]
    if not pools["food"]:
        pools["food"] = [r for r in items if r.kind == RecordKind.CONSUMABLE and not is_scroll(r)]
    return pools


def build_loot_pools(records: Iterable[CatalogRecord], allow_magic: bool = False) -> Dict[str, List[CatalogRecord]]:
    """Split allowed records into loot category pools, widening empty ones."""
    items = allowed_item_records(records, allow_magic)
    pools = {
        LOOT_MIXED: items,
        "gear": [
            r for r in items
            if r.kind in (RecordKind.EQUIPMENT, RecordKind.LOOT, RecordKind.TOOL) and not is_armor(r)
        ],
        "consumables": [r for r in items if r.kind == RecordKind.CONSUMABLE and not is_scroll(r)],
        "weapons": [r for r in items if r.kind == RecordKind.WEAPON],
        "armor": [r for r in items if is_armor(r)],
        "scrolls": [r for r in items if is_scroll(r)],
    }
    if not pools["gear"]:
        pools["gear"] = [r for r in items if r.kind in GENERAL_KINDS]
    if not pools["consumables"]:
        pools["consumables"] = [r for r in items if r.kind == RecordKind.CONSUMABLE]
    return pools


# =============================================================================
# Free-text Name Heuristics
# =============================================================================

_NAME_FAMILIES = (
    ("weapons", re.compile(
        r"(sword|axe|mace|hammer|bow|crossbow|dagger|spear|halberd|staff|rapier|whip|javelin|flail"
        r"|меч|топор|булав|молот|лук|арбалет|кинжал|копь|посох|рапир|кнут)",
        re.IGNORECASE,
    )),
    ("armor", re.compile(
        r"(armor|mail|plate|shield|helm|gauntlet|breastplate|leather|chain"
        r"|доспех|брон|кольчуг|латы|щит|шлем|перчат|кирас)",
        re.IGNORECASE,
    )),
    ("consumables", re.compile(
        r"(potion|elixir|scroll|ammo|arrows|bolts|kit|healer|ration"
        r"|зель|эликсир|свит|стрел|болт|набор|паек|паёк)",
        re.IGNORECASE,
    )),
    ("loot", re.compile(
        r"(gem|coin|ring|necklace|trinket|relic|idol|token"
        r"|самоцвет|монет|кольц|ожерел|безделуш|реликв|идол|жетон)",
        re.IGNORECASE,
    )),
)

NAME_GROUP_LIMITS = {
    "weapons": 6,
    "armor": 4,
    "equipment": 12,
    "consumables": 8,
    "loot": 10,
}


def classify_name(name: str) -> str:
    """Classify a free-text item name into weapons/armor/consumables/loot/equipment."""
    lower = str(name or "").lower()
    for group, pattern in _NAME_FAMILIES:
        if pattern.search(lower):
            return group
    return "equipment"


def dedupe_names(values: Iterable[str], max_items: int = 10) -> List[str]:
    """Collapse whitespace and drop case-insensitive duplicates, keeping order."""
    out: List[str] = []
    seen = set()
    for raw in values or ():
        value = " ".join(str(raw or "").split())
        if not value:
            continue
        key = value.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(value)
        if len(out) >= max_items:
            break
    return out


def split_item_names(names: Iterable[str]) -> Dict[str, List[str]]:
    """Group flat free-text names by keyword family, with per-group caps."""
    groups: Dict[str, List[str]] = {group: [] for group in NAME_GROUP_LIMITS}
    for name in names or ():
        if not str(name or "").strip():
            continue
        groups[classify_name(name)].append(name)
    return {group: dedupe_names(values, NAME_GROUP_LIMITS[group]) for group, values in groups.items()}
