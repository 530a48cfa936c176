"""
Generated bundle records.

Everything the generators return is a plain dataclass with ``to_dict()`` so the
document-building side can persist it without knowing about the core.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from bundlegen.models.catalog import CatalogRecord


ABILITY_KEYS = ("str", "dex", "con", "int", "wis", "cha")


# =============================================================================
# Items
# =============================================================================

@dataclass
class GeneratedItem:
    """An output copy of a catalog record with per-run quantity and pricing."""
    record_id: str
    name: str
    kind: str
    category: str
    quantity: int = 1
    price_cp: Optional[int] = None  # normalized source price
    base_price_cp: Optional[int] = None  # shop pricing only
    rolled_price_cp: Optional[int] = None
    price_gp: Optional[float] = None
    rarity: Optional[str] = None
    is_magical: bool = False
    imported: bool = False
    source_ref: Optional[str] = None
    record: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: CatalogRecord, category: str, quantity: int = 1) -> "GeneratedItem":
        return cls(
            record_id=record.id,
            name=record.name,
            kind=record.kind.value,
            category=category,
            quantity=quantity,
            price_cp=record.price_cp,
            rarity=record.rarity.value if record.rarity else None,
            is_magical=record.is_magical,
            source_ref=record.source_ref,
            record=record.to_dict(),
        )

    @property
    def name_key(self) -> str:
        return " ".join(self.name.split()).lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "name": self.name,
            "kind": self.kind,
            "category": self.category,
            "quantity": self.quantity,
            "price_cp": self.price_cp,
            "base_price_cp": self.base_price_cp,
            "rolled_price_cp": self.rolled_price_cp,
            "price_gp": self.price_gp,
            "rarity": self.rarity,
            "is_magical": self.is_magical,
            "imported": self.imported,
            "source_ref": self.source_ref,
            "record": dict(self.record),
        }


@dataclass
class SelectionSlot:
    """One requested output position and how it was filled."""
    index: int
    category: str
    item: Optional[GeneratedItem] = None
    pool: Optional[str] = None  # name of the pool strategy that produced the item

    @property
    def filled(self) -> bool:
        return self.item is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "category": self.category,
            "item": self.item.to_dict() if self.item else None,
            "pool": self.pool,
        }


@dataclass
class SelectionResult:
    """Result of a selection run. Unfilled slots are kept for diagnostics but not in ``items``."""
    requested: int
    slots: List[SelectionSlot] = field(default_factory=list)
    attempts: int = 0

    @property
    def items(self) -> List[GeneratedItem]:
        return [slot.item for slot in self.slots if slot.item is not None]

    @property
    def omitted(self) -> int:
        return self.requested - len(self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requested": self.requested,
            "filled": len(self.items),
            "omitted": self.omitted,
            "attempts": self.attempts,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class CoinPurse:
    """Loose coins in a loot cache."""
    cp: int = 0
    sp: int = 0
    ep: int = 0
    gp: int = 0
    pp: int = 0

    @property
    def total_gp(self) -> float:
        """Total value converted to gold pieces."""
        return (self.cp / 100) + (self.sp / 10) + (self.ep / 2) + self.gp + (self.pp * 10)

    def to_dict(self) -> Dict[str, Any]:
        return {"cp": self.cp, "sp": self.sp, "ep": self.ep, "gp": self.gp, "pp": self.pp}


# =============================================================================
# Name Matching
# =============================================================================

class MatchStrategy(str, Enum):
    EXACT = "exact"
    PREFIX = "prefix"
    SUBSTRING = "substring"
    TOKEN_OVERLAP = "token-overlap"
    NONE = "none"


@dataclass
class MatchResult:
    """Outcome of matching one free-text reference against the catalog."""
    requested_name: str
    lookup_alias: Optional[str] = None
    record: Optional[CatalogRecord] = None
    score: int = 0
    strategy: MatchStrategy = MatchStrategy.NONE

    @property
    def matched(self) -> bool:
        return self.record is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requested_name": self.requested_name,
            "lookup_alias": self.lookup_alias,
            "record_id": self.record.id if self.record else None,
            "record_name": self.record.name if self.record else None,
            "score": self.score,
            "strategy": self.strategy.value,
        }


class ImportStatus(str, Enum):
    RESOLVED = "resolved"
    MISSING = "missing"
    DUPLICATE = "duplicate"


@dataclass
class ImportOutcome:
    """Per-reference resolution outcome of an imported request."""
    name: str
    status: ImportStatus
    match: Optional[MatchResult] = None
    item: Optional[GeneratedItem] = None
    keywords: List[str] = field(default_factory=list)  # search hints for unmatched names

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "match": self.match.to_dict() if self.match else None,
            "keywords": list(self.keywords),
        }


# =============================================================================
# Actors
# =============================================================================

@dataclass
class AbilityProfile:
    """Six ability scores keyed by lowercase ability abbreviation."""
    scores: Dict[str, int] = field(default_factory=lambda: {key: 10 for key in ABILITY_KEYS})

    @classmethod
    def from_values(cls, values: List[int]) -> "AbilityProfile":
        return cls(scores=dict(zip(ABILITY_KEYS, (int(v) for v in values))))

    def values(self) -> List[int]:
        return [self.scores[key] for key in ABILITY_KEYS]

    @property
    def total(self) -> int:
        return sum(self.values())

    def __getitem__(self, key: str) -> int:
        return self.scores[key]

    def to_dict(self) -> Dict[str, int]:
        return {key: self.scores[key] for key in ABILITY_KEYS}


@dataclass
class StatBlock:
    """Derived combat numbers for a generated actor."""
    tier: int
    important: bool
    abilities: AbilityProfile
    challenge_rating: str
    proficiency_bonus: int
    armor_class: int
    hit_points: int
    speed: int = 30
    prime_abilities: List[str] = field(default_factory=list)
    allow_magic_items: bool = False
    role_item_count: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier,
            "important": self.important,
            "abilities": self.abilities.to_dict(),
            "challenge_rating": self.challenge_rating,
            "proficiency_bonus": self.proficiency_bonus,
            "armor_class": self.armor_class,
            "hit_points": self.hit_points,
            "speed": self.speed,
            "prime_abilities": list(self.prime_abilities),
            "allow_magic_items": self.allow_magic_items,
            "role_item_count": self.role_item_count,
        }


# =============================================================================
# Encounters
# =============================================================================

@dataclass
class EncounterSlot:
    tier: int
    is_boss: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"tier": self.tier, "is_boss": self.is_boss}


@dataclass
class EncounterPlan:
    """Per-slot tiers for a multi-actor roster, at most one boss."""
    party_level: int
    party_size: int
    difficulty: str
    base_tier: int
    slots: List[EncounterSlot] = field(default_factory=list)

    @property
    def boss_index(self) -> Optional[int]:
        for index, slot in enumerate(self.slots):
            if slot.is_boss:
                return index
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "party_level": self.party_level,
            "party_size": self.party_size,
            "difficulty": self.difficulty,
            "base_tier": self.base_tier,
            "slots": [slot.to_dict() for slot in self.slots],
        }
