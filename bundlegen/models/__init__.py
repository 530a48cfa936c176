# Data Models

from .catalog import (
    CatalogRecord,
    WeaponRecord,
    ArmorRecord,
    ConsumableRecord,
    GearRecord,
    SpellRecord,
    FeatureRecord,
    CatalogSnapshot,
    RecordKind,
    Rarity,
)

from .bundle import (
    ABILITY_KEYS,
    GeneratedItem,
    SelectionSlot,
    SelectionResult,
    CoinPurse,
    MatchStrategy,
    MatchResult,
    ImportStatus,
    ImportOutcome,
    AbilityProfile,
    StatBlock,
    EncounterSlot,
    EncounterPlan,
)

__all__ = [
    # Catalog
    "CatalogRecord",
    "WeaponRecord",
    "ArmorRecord",
    "ConsumableRecord",
    "GearRecord",
    "SpellRecord",
    "FeatureRecord",
    "CatalogSnapshot",
    "RecordKind",
    "Rarity",
    # Bundles
    "ABILITY_KEYS",
    "GeneratedItem",
    "SelectionSlot",
    "SelectionResult",
    "CoinPurse",
    "MatchStrategy",
    "MatchResult",
    "ImportStatus",
    "ImportOutcome",
    "AbilityProfile",
    "StatBlock",
    "EncounterSlot",
    "EncounterPlan",
]
