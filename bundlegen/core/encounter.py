"""
Encounter tier planning for multi-actor rosters.

Turns party level, party size and a difficulty label into a roster size and a
per-slot tier plan. Larger rosters get weaker individuals; hard and deadly
encounters with three or more actors get exactly one boss.
"""
import logging
import random
from enum import Enum
from typing import Any, Optional

from bundlegen.models.bundle import EncounterPlan, EncounterSlot

logger = logging.getLogger(__name__)

_default_rng = random.Random()

# Party level breakpoints -> base tier
TIER_BREAKPOINTS = ((3, 1), (6, 2), (10, 3))

MAX_ROSTER = 12
BOSS_MIN_ROSTER = 3

# Per-slot down-shift chances: (minimum roster size, probability)
SLOT_DOWNSHIFTS = ((4, 0.35), (6, 0.2))


class EncounterDifficulty(str, Enum):
    """Encounter difficulty levels (per D&D 5e)."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    DEADLY = "deadly"

    @classmethod
    def parse(cls, value: Any) -> "EncounterDifficulty":
        """Unknown labels fall back to medium."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.MEDIUM

    @property
    def has_boss(self) -> bool:
        return self in (EncounterDifficulty.HARD, EncounterDifficulty.DEADLY)


def _clamp_int(value: Any, low: int, high: int, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = default
    return max(low, min(high, number))


def clamp_party(party_level: Any, party_size: Any):
    """Clamp party level to 1-20 and party size to 1-8 (defaults 1 and 4)."""
    return _clamp_int(party_level, 1, 20, 1), _clamp_int(party_size, 1, 8, 4)


def tier_for_level(party_level: int) -> int:
    level = _clamp_int(party_level, 1, 20, 1)
    for max_level, tier in TIER_BREAKPOINTS:
        if level <= max_level:
            return tier
    return 4


def build_encounter_count(party_level: int, party_size: int, difficulty: Any = "medium") -> int:
    """
    Suggested roster size for a party.

    Party size, -1 for easy (min 1), +1 hard, +2 deadly, +1 at level 11 and
    again at 17, clamped to 1..12.
    """
    level, size = clamp_party(party_level, party_size)
    difficulty = EncounterDifficulty.parse(difficulty)

    count = size
    if difficulty == EncounterDifficulty.EASY:
        count = max(1, size - 1)
    elif difficulty == EncounterDifficulty.HARD:
        count = size + 1
    elif difficulty == EncounterDifficulty.DEADLY:
        count = size + 2

    if level >= 11:
        count += 1
    if level >= 17:
        count += 1
    return max(1, min(MAX_ROSTER, count))


def base_tier(party_level: int, difficulty: Any, roster_size: int) -> int:
    """Tier before per-slot variance: level tier, difficulty shift, roster-size penalty."""
    difficulty = EncounterDifficulty.parse(difficulty)
    tier = tier_for_level(party_level)
    if difficulty == EncounterDifficulty.EASY:
        tier -= 1
    elif difficulty == EncounterDifficulty.DEADLY:
        tier += 1
    if roster_size >= 6:
        tier -= 1
    if roster_size >= 10:
        tier -= 1
    return max(1, min(4, tier))


def build_encounter_plan(
    party_level: int,
    party_size: int,
    difficulty: Any = "medium",
    roster_size: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> EncounterPlan:
    """
    Plan per-slot tiers and the boss slot for an encounter.

    Args:
        party_level: Party level (clamped to 1-20)
        party_size: Party size (clamped to 1-8)
        difficulty: easy/medium/hard/deadly (unknown -> medium)
        roster_size: Number of actors; defaults to build_encounter_count()
        rng: Random source

    Returns:
        EncounterPlan with one slot per actor
    """
    rng = rng or _default_rng
    level, size = clamp_party(party_level, party_size)
    difficulty = EncounterDifficulty.parse(difficulty)
    if roster_size is None:
        roster = build_encounter_count(level, size, difficulty)
    else:
        roster = _clamp_int(roster_size, 1, MAX_ROSTER, 1)

    tier = base_tier(level, difficulty, roster)
    boss_index = None
    if difficulty.has_boss and roster >= BOSS_MIN_ROSTER:
        boss_index = rng.randrange(roster)

    slots = []
    for index in range(roster):
        slot_tier = tier
        for min_roster, chance in SLOT_DOWNSHIFTS:
            if roster >= min_roster and rng.random() < chance:
                slot_tier -= 1
        slots.append(EncounterSlot(tier=max(1, min(4, slot_tier)), is_boss=index == boss_index))

    logger.info(
        f"[Encounter] Level {level} party of {size}, {difficulty.value}: "
        f"{roster} actors at base tier {tier}, boss slot {boss_index}"
    )
    return EncounterPlan(
        party_level=level,
        party_size=size,
        difficulty=difficulty.value,
        base_tier=tier,
        slots=slots,
    )
