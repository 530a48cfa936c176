"""
Catalog records.

Upstream catalogs arrive as loosely shaped dicts (Foundry-style documents with a
nested ``system`` block, or flat rows). ``CatalogSnapshot.from_raw`` maps every
row into one of a small set of frozen record variants once, so the rest of the
package never has to check for optional fields.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple

from bundlegen.core.errors import ErrorCode, ValidationIssue, ValidationResult
from bundlegen.core.pricing import normalize_price

logger = logging.getLogger(__name__)


class RecordKind(str, Enum):
    """Catalog record kinds."""
    WEAPON = "weapon"
    EQUIPMENT = "equipment"  # armor-like equipment, also clothing/trinkets
    CONSUMABLE = "consumable"
    LOOT = "loot"
    TOOL = "tool"
    SPELL = "spell"
    FEATURE = "feature"


class Rarity(str, Enum):
    """Item rarity levels."""
    NONE = "none"
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    VERY_RARE = "very_rare"
    LEGENDARY = "legendary"
    ARTIFACT = "artifact"


# Upstream type names that map onto a record kind
_KIND_ALIASES: Dict[str, RecordKind] = {
    "weapon": RecordKind.WEAPON,
    "equipment": RecordKind.EQUIPMENT,
    "armor": RecordKind.EQUIPMENT,
    "consumable": RecordKind.CONSUMABLE,
    "loot": RecordKind.LOOT,
    "container": RecordKind.LOOT,
    "backpack": RecordKind.LOOT,
    "tool": RecordKind.TOOL,
    "spell": RecordKind.SPELL,
    "feat": RecordKind.FEATURE,
    "feature": RecordKind.FEATURE,
}


def parse_kind(value: Any) -> Optional[RecordKind]:
    return _KIND_ALIASES.get(str(value or "").strip().lower())


def parse_rarity(value: Any) -> Optional[Rarity]:
    """Parse rarity labels such as "Very Rare", "veryRare" or "very_rare"."""
    text = str(value or "").strip()
    if not text:
        return None
    candidates = [text.lower().replace(" ", "_").replace("-", "_")]
    # camelCase -> snake_case
    candidates.append("".join("_" + ch.lower() if ch.isupper() and i else ch for i, ch in enumerate(text)))
    for key in candidates:
        try:
            return Rarity(key)
        except ValueError:
            continue
    return None


# =============================================================================
# Record Variants
# =============================================================================

@dataclass(frozen=True)
class CatalogRecord:
    """An immutable catalog entry. The core never mutates these."""
    id: str
    name: str
    kind: RecordKind
    canonical_name: Optional[str] = None
    identifier: Optional[str] = None
    rarity: Optional[Rarity] = None
    is_magical: bool = False
    price_cp: Optional[int] = None  # normalized once at the catalog boundary
    subtype: str = ""
    tags: FrozenSet[str] = frozenset()
    source_ref: Optional[str] = None

    @property
    def name_key(self) -> str:
        """Case-insensitive key used for run-wide uniqueness."""
        return " ".join(self.name.split()).lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "canonical_name": self.canonical_name,
            "identifier": self.identifier,
            "rarity": self.rarity.value if self.rarity else None,
            "is_magical": self.is_magical,
            "price_cp": self.price_cp,
            "subtype": self.subtype,
            "tags": sorted(self.tags),
            "source_ref": self.source_ref,
        }


@dataclass(frozen=True)
class WeaponRecord(CatalogRecord):
    kind: RecordKind = RecordKind.WEAPON


@dataclass(frozen=True)
class ArmorRecord(CatalogRecord):
    """Armor-like equipment. ``armor_type`` is light/medium/heavy/shield/natural/clothing/trinket."""
    kind: RecordKind = RecordKind.EQUIPMENT
    armor_type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["armor_type"] = self.armor_type
        return data


@dataclass(frozen=True)
class ConsumableRecord(CatalogRecord):
    kind: RecordKind = RecordKind.CONSUMABLE


@dataclass(frozen=True)
class GearRecord(CatalogRecord):
    """Loot, tools and plain equipment without an armor role."""
    kind: RecordKind = RecordKind.LOOT


@dataclass(frozen=True)
class SpellRecord(CatalogRecord):
    kind: RecordKind = RecordKind.SPELL
    level: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["level"] = self.level
        return data


@dataclass(frozen=True)
class FeatureRecord(CatalogRecord):
    kind: RecordKind = RecordKind.FEATURE


# =============================================================================
# Boundary Normalization
# =============================================================================

def _mapping(value: Any) -> Mapping:
    return value if isinstance(value, Mapping) else {}


def _text(*values: Any) -> Optional[str]:
    """First non-empty string among the values."""
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _record_id(*values: Any) -> Optional[str]:
    """First non-empty string or integer id among the values."""
    for value in values:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        text = _text(value)
        if text:
            return text
    return None


def _subtype(system: Mapping, row: Mapping) -> str:
    type_block = system.get("type")
    if isinstance(type_block, Mapping):
        value = _text(type_block.get("value"))
        if value:
            return value.lower()
    consumable_type = system.get("consumableType")
    if isinstance(consumable_type, Mapping):
        consumable_type = consumable_type.get("value")
    return (_text(consumable_type, row.get("subtype")) or "").lower()


def _is_magical(system: Mapping, row: Mapping) -> bool:
    properties = system.get("properties", row.get("properties"))
    if isinstance(properties, Mapping):
        # older documents store properties as {"mgc": true}
        properties = [key for key, enabled in properties.items() if enabled]
    if isinstance(properties, (list, tuple, set, frozenset)):
        if any(str(p).lower() in ("mgc", "magical") for p in properties):
            return True
    for key in ("is_magical", "isMagical", "magical"):
        if row.get(key) is True:
            return True
    return False


def record_from_raw(row: Mapping, index: int = 0) -> Tuple[Optional[CatalogRecord], List[ValidationIssue]]:
    """
    Normalize one upstream row into a record variant.

    Returns:
        (record, issues). The record is None when the row cannot be used.
    """
    prefix = f"records[{index}]"
    if not isinstance(row, Mapping):
        return None, [ValidationIssue(prefix, "record must be an object", ErrorCode.CATALOG_RECORD_INVALID)]

    name = _text(row.get("name"))
    if not name:
        return None, [ValidationIssue(f"{prefix}.name", "record has no name", ErrorCode.CATALOG_RECORD_INVALID)]

    kind = parse_kind(row.get("type") or row.get("kind"))
    if kind is None:
        return None, [ValidationIssue(
            f"{prefix}.type",
            f"unsupported record type {row.get('type') or row.get('kind')!r}",
            ErrorCode.CATALOG_RECORD_INVALID,
        )]

    system = _mapping(row.get("system"))
    flags = _mapping(row.get("flags"))
    tags = row.get("tags")

    common = dict(
        id=_record_id(row.get("_id"), row.get("id")) or f"record-{index}",
        name=name,
        canonical_name=_text(
            row.get("originalName"),
            row.get("canonicalName"),
            row.get("canonical_name"),
            _mapping(flags.get("babele")).get("originalName"),
        ),
        identifier=_text(system.get("identifier"), row.get("identifier")),
        rarity=parse_rarity(system.get("rarity", row.get("rarity"))),
        is_magical=_is_magical(system, row),
        price_cp=normalize_price(system.get("price", row.get("price"))),
        subtype=_subtype(system, row),
        tags=frozenset(str(t).lower() for t in tags) if isinstance(tags, (list, tuple, set, frozenset)) else frozenset(),
        source_ref=_text(row.get("uuid"), row.get("sourceRef"), row.get("source_ref")),
    )

    if kind == RecordKind.WEAPON:
        return WeaponRecord(**common), []
    if kind == RecordKind.EQUIPMENT:
        armor_type = _text(_mapping(system.get("armor")).get("type"), row.get("armor_type"))
        return ArmorRecord(armor_type=(armor_type or "").lower(), **common), []
    if kind == RecordKind.CONSUMABLE:
        return ConsumableRecord(**common), []
    if kind == RecordKind.SPELL:
        level = system.get("level", row.get("level", 0))
        if not isinstance(level, int) or isinstance(level, bool):
            level = 0
        return SpellRecord(level=level, **common), []
    if kind == RecordKind.FEATURE:
        return FeatureRecord(**common), []
    return GearRecord(kind=kind, **common), []


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    Read-only catalog handed to every generation call.

    Built once per session by the caller and passed explicitly; there is no
    module-level cache.
    """
    records: Tuple[CatalogRecord, ...] = ()
    issues: Tuple[ValidationIssue, ...] = field(default=(), compare=False)

    @classmethod
    def from_raw(cls, rows: Iterable[Any]) -> "CatalogSnapshot":
        """Normalize upstream rows, skipping (and recording) the unusable ones."""
        records: List[CatalogRecord] = []
        issues: List[ValidationIssue] = []
        for index, row in enumerate(rows or ()):
            record, row_issues = record_from_raw(row, index)
            issues.extend(row_issues)
            if record is not None:
                records.append(record)
        if issues:
            logger.warning(f"[Catalog] Skipped {len(issues)} malformed record(s) out of {len(records) + len(issues)}")
        return cls(records=tuple(records), issues=tuple(issues))

    @classmethod
    def of(cls, records: Iterable[CatalogRecord]) -> "CatalogSnapshot":
        return cls(records=tuple(records))

    def validation(self) -> ValidationResult:
        return ValidationResult.from_issues(self, list(self.issues))

    def by_kind(self, *kinds: RecordKind) -> List[CatalogRecord]:
        wanted = set(kinds)
        return [r for r in self.records if r.kind in wanted]

    def get(self, record_id: str) -> Optional[CatalogRecord]:
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    @property
    def is_empty(self) -> bool:
        return not self.records

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[CatalogRecord]:
        return iter(self.records)
