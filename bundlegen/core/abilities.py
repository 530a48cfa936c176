"""
Ability score budgeting and stat block derivation for generated actors.

Pipeline for a fresh actor:
1. Start from an archetype baseline
2. Jitter every score by -1..+1
3. Move 2-4 single points between random pairs of scores
4. Clamp to 6..18
5. Add the tier/importance bonus, 2 points at a time, highest scores first

Step 5 runs after the clamp, so important high-tier actors can exceed 18.
"""
import logging
import random
from typing import Any, Dict, List, Mapping, Optional

from bundlegen.core.errors import ErrorCode, ValidationIssue, ValidationResult
from bundlegen.models.bundle import ABILITY_KEYS, AbilityProfile, StatBlock

logger = logging.getLogger(__name__)

_default_rng = random.Random()

ABILITY_FLOOR = 6
ABILITY_CEILING = 18
HINT_CEILING = 22

# Baseline arrays in STR, DEX, CON, INT, WIS, CHA order
ARCHETYPE_BASELINES: Dict[str, List[int]] = {
    "commoner": [10, 10, 10, 10, 10, 10],
    "warrior": [15, 12, 14, 9, 10, 10],
    "skirmisher": [10, 15, 12, 10, 13, 10],
    "caster": [8, 12, 12, 15, 13, 10],
    "priest": [10, 10, 12, 10, 15, 13],
    "face": [9, 13, 10, 12, 10, 15],
}

# Challenge rating tables per tier
CR_BY_TIER: Dict[int, List[str]] = {
    1: ["1/8", "1/4", "1/2"],
    2: ["1", "2", "3"],
    3: ["4", "5", "6"],
    4: ["7", "8", "9", "10"],
}

PROFICIENCY_BY_TIER = {1: 2, 2: 2, 3: 3, 4: 4}

BASE_AC = 11
MAX_AC = 20
HP_BASE = 8
HP_PER_TIER = 8
HP_VARIANCE_PER_TIER = 6
HP_IMPORTANT_BONUS = 6
HP_MINIMUM = 6

# Chance that an actor may carry magic items
MAGIC_ITEM_CHANCE = {1: 0.02, 2: 0.05, 3: 0.1, 4: 0.2}
MAGIC_ITEM_CHANCE_IMPORTANT = 0.5


def clamp_tier(tier: Any) -> int:
    try:
        value = int(tier)
    except (TypeError, ValueError):
        return 1
    return max(1, min(4, value))


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


# =============================================================================
# Score Budgeting
# =============================================================================

def vary_base_abilities(baseline: List[int], rng: Optional[random.Random] = None) -> AbilityProfile:
    """
    Jitter, redistribute and clamp a baseline array.

    Transfers whose source is already at the floor are skipped, not retried.
    """
    rng = rng or _default_rng
    values = [int(v) for v in list(baseline)[:len(ABILITY_KEYS)]]
    values += [10] * (len(ABILITY_KEYS) - len(values))

    for i in range(len(values)):
        values[i] += rng.randint(-1, 1)

    shifts = 2 + rng.randint(0, 2)
    for _ in range(shifts):
        source = rng.randrange(len(values))
        target = rng.randrange(len(values))
        if source == target:
            continue
        if values[source] > ABILITY_FLOOR:
            values[source] -= 1
            values[target] += 1

    return AbilityProfile.from_values([_clamp(v, ABILITY_FLOOR, ABILITY_CEILING) for v in values])


def tier_bonus_pool(tier: int, important: bool = False) -> int:
    return (clamp_tier(tier) - 1) * 2 + (2 if important else 0)


def apply_tier_bonus(profile: AbilityProfile, tier: int, important: bool = False) -> AbilityProfile:
    """Distribute the bonus pool, up to 2 points per score, highest scores first. Not re-clamped."""
    scores = dict(profile.scores)
    ordered = sorted(ABILITY_KEYS, key=lambda key: scores[key], reverse=True)
    remaining = tier_bonus_pool(tier, important)
    for key in ordered:
        if remaining <= 0:
            break
        add = min(2, remaining)
        scores[key] += add
        remaining -= add
    return AbilityProfile(scores=scores)


def roll_ability_profile(
    baseline: List[int],
    tier: int,
    important: bool = False,
    rng: Optional[random.Random] = None,
) -> AbilityProfile:
    """Full pipeline: vary the baseline, then apply the tier bonus."""
    return apply_tier_bonus(vary_base_abilities(baseline, rng), tier, important)


def prime_abilities(profile: AbilityProfile) -> List[str]:
    """The two highest ability keys."""
    return sorted(ABILITY_KEYS, key=lambda key: profile[key], reverse=True)[:2]


def normalize_ability_hints(raw: Any, tier: int) -> ValidationResult:
    """
    Turn generator-supplied ability hints into a profile.

    Accepts "str" or "STR" keys. Missing or non-numeric values fall back to a
    tier baseline (9 + tier, STR and CON one higher); numbers are clamped to
    6..22. Every malformed field is reported as an issue.
    """
    tier = clamp_tier(tier)
    base = 9 + tier
    issues: List[ValidationIssue] = []
    source: Mapping = raw if isinstance(raw, Mapping) else {}
    if raw is not None and not isinstance(raw, Mapping):
        issues.append(ValidationIssue("abilities", "ability hints must be an object", ErrorCode.FIELD_MUST_BE_OBJECT))

    scores = {}
    for key in ABILITY_KEYS:
        default = base + 1 if key in ("str", "con") else base
        value = source.get(key, source.get(key.upper()))
        if value is None:
            scores[key] = default
            continue
        number = None
        if not isinstance(value, bool):
            try:
                number = float(value)
            except (TypeError, ValueError):
                number = None
        if number is None or number != number:
            issues.append(ValidationIssue(f"abilities.{key}", f"expected a number, got {value!r}", ErrorCode.FIELD_MUST_BE_NUMBER))
            scores[key] = default
            continue
        scores[key] = _clamp(int(round(number)), ABILITY_FLOOR, HINT_CEILING)

    return ValidationResult.from_issues(AbilityProfile(scores=scores), issues)


# =============================================================================
# Stat Block
# =============================================================================

def roll_challenge_rating(tier: int, rng: Optional[random.Random] = None) -> str:
    rng = rng or _default_rng
    return rng.choice(CR_BY_TIER[clamp_tier(tier)])


def roll_magic_allowance(tier: int, important: bool = False, rng: Optional[random.Random] = None) -> bool:
    rng = rng or _default_rng
    chance = MAGIC_ITEM_CHANCE_IMPORTANT if important else MAGIC_ITEM_CHANCE[clamp_tier(tier)]
    return rng.random() < chance


def role_item_count(tier: int, important: bool = False) -> int:
    tier = clamp_tier(tier)
    count = 1
    if tier >= 2:
        count += 1
    if tier >= 3:
        count += 1
    if important:
        count += 1
    return min(4, count)


def build_stat_block(
    tier: int,
    important: bool,
    abilities: AbilityProfile,
    rng: Optional[random.Random] = None,
) -> StatBlock:
    """Derive AC, HP, CR and item allowances for an actor."""
    rng = rng or _default_rng
    tier = clamp_tier(tier)
    armor_class = min(MAX_AC, BASE_AC + tier + (1 if important else 0))
    hit_points = max(
        HP_MINIMUM,
        HP_BASE + tier * HP_PER_TIER + rng.randint(0, tier * HP_VARIANCE_PER_TIER) + (HP_IMPORTANT_BONUS if important else 0),
    )
    block = StatBlock(
        tier=tier,
        important=important,
        abilities=abilities,
        challenge_rating=roll_challenge_rating(tier, rng),
        proficiency_bonus=PROFICIENCY_BY_TIER[tier],
        armor_class=armor_class,
        hit_points=hit_points,
        prime_abilities=prime_abilities(abilities),
        allow_magic_items=roll_magic_allowance(tier, important, rng),
        role_item_count=role_item_count(tier, important),
    )
    logger.debug(f"[Abilities] Tier {tier} stat block: AC {armor_class}, HP {hit_points}, CR {block.challenge_rating}")
    return block
