"""
Price normalization and budget price ranges.

Catalog records describe prices in several shapes:
- a plain number, assumed to be gold pieces
- a string such as "3 gp" or "50cp"
- an object {"value": ..., "denomination": ...} (or "unit")

Everything is converted to integer copper pieces. Unparseable input becomes
None, which downstream code treats as "unknown price".
"""
import random
import re
from typing import Any, Dict, Mapping, Optional, Tuple

# Multipliers to copper pieces
DENOMINATION_CP: Dict[str, int] = {
    "cp": 1,
    "sp": 10,
    "ep": 50,
    "gp": 100,
    "pp": 1000,
}

# Multipliers to gold pieces (used by imported price overrides)
DENOMINATION_GP: Dict[str, float] = {
    "pp": 10,
    "gp": 1,
    "ep": 0.5,
    "sp": 0.1,
    "cp": 0.01,
}

DEFAULT_DENOMINATION = "gp"

# Budget thresholds in copper pieces
BUDGET_RANGES: Dict[str, Tuple[int, int]] = {
    "poor": (0, 100),            # up to 1 gp
    "normal": (10, 2000),        # 0.1 gp to 20 gp
    "well": (50, 5000),          # 0.5 gp to 50 gp
    "elite": (200, 20000),       # 2 gp to 200 gp (non-magic)
    "elite_magic": (200, 200000),  # 2 gp to 2000 gp (magic allowed)
}

# Shop price variance multiplier bounds
SHOP_PRICE_VARIANCE = (0.7, 1.3)

_PRICE_PATTERN = re.compile(r"([0-9]+(?:\.[0-9]+)?)\s*(pp|gp|ep|sp|cp)?")

_default_rng = random.Random()


def parse_price_string(text: Any) -> Optional[Tuple[float, str]]:
    """
    Parse a price string like "5 gp" into value and denomination.

    The first number in the string wins; a missing denomination defaults to gp.

    Returns:
        (value, denomination) or None if the string holds no number.
    """
    match = _PRICE_PATTERN.search(str(text).strip().lower())
    if not match:
        return None
    return float(match.group(1)), match.group(2) or DEFAULT_DENOMINATION


def convert_to_cp(value: float, denomination: Optional[str]) -> int:
    """Convert a value in the given denomination to copper pieces."""
    multiplier = DENOMINATION_CP.get(str(denomination or "").lower(), DENOMINATION_CP[DEFAULT_DENOMINATION])
    return int(round((value or 0) * multiplier))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_price(raw: Any) -> Optional[int]:
    """
    Normalize a heterogeneous price field to integer copper pieces.

    Never raises. Returns None for missing or unparseable prices.

    Examples:
        normalize_price(3) -> 300
        normalize_price("50cp") -> 50
        normalize_price({"value": 2, "denomination": "sp"}) -> 20
    """
    if raw is None or isinstance(raw, bool):
        return None
    if _is_number(raw):
        if raw != raw or raw in (float("inf"), float("-inf")):
            return None
        return convert_to_cp(raw, DEFAULT_DENOMINATION)
    if isinstance(raw, str):
        parsed = parse_price_string(raw)
        if parsed is None:
            return None
        return convert_to_cp(*parsed)
    if isinstance(raw, Mapping):
        value = raw.get("value")
        denomination = str(raw.get("denomination") or raw.get("unit") or "").strip().lower()
        if _is_number(value):
            if value != value:
                return None
            return convert_to_cp(value, denomination or DEFAULT_DENOMINATION)
        if isinstance(value, str):
            parsed = parse_price_string(value)
            if parsed is None:
                return None
            amount, parsed_denomination = parsed
            # An explicit denomination on the object beats one implied by the string
            return convert_to_cp(amount, denomination or parsed_denomination)
    return None


# =============================================================================
# Budget Ranges
# =============================================================================

def budget_range(budget: str, allow_magic: bool = False) -> Tuple[int, int]:
    """
    Get the (min, max) copper range for a budget tier.

    Elite widens its ceiling when magic items are allowed. Unknown tiers fall
    back to normal.
    """
    key = str(getattr(budget, "value", budget) or "").strip().lower()
    if key == "elite" and allow_magic:
        return BUDGET_RANGES["elite_magic"]
    return BUDGET_RANGES.get(key, BUDGET_RANGES["normal"])


def is_within_budget(price_cp: Optional[int], budget: str, allow_magic: bool = False) -> bool:
    """Check a normalized price against a budget range. Unknown prices always pass."""
    if price_cp is None:
        return True
    low, high = budget_range(budget, allow_magic)
    return low <= price_cp <= high


# =============================================================================
# Shop Pricing
# =============================================================================

def fallback_base_price_cp(budget: str, allow_magic: bool = False, rng: Optional[random.Random] = None) -> int:
    """Invent a base price for an unpriced record from the budget range."""
    rng = rng or _default_rng
    low, high = budget_range(budget, allow_magic)
    low = max(1, low)
    high = max(low, high)
    spread = max(1, high - low)
    start = low + int(spread * 0.15)
    end = low + int(spread * 0.55)
    return rng.randint(max(1, start), max(start, end))


def roll_shop_price(
    base_cp: Optional[int],
    budget: str,
    allow_magic: bool = False,
    rng: Optional[random.Random] = None,
) -> Tuple[int, int]:
    """
    Apply shop price variance to a base price.

    Args:
        base_cp: Normalized source price (None or non-positive means unknown)
        budget: Budget tier used to invent a base when the price is unknown
        allow_magic: Whether the elite range is widened
        rng: Random source

    Returns:
        (base_cp, rolled_cp), both at least 1.
    """
    rng = rng or _default_rng
    if base_cp is None or base_cp <= 0:
        base_cp = fallback_base_price_cp(budget, allow_magic, rng)
    low, high = SHOP_PRICE_VARIANCE
    multiplier = low + rng.random() * (high - low)
    rolled = max(1, int(round(base_cp * multiplier)))
    return int(base_cp), rolled


def cp_to_display_gp(price_cp: int) -> int:
    """Shop prices are shown in whole gold pieces, never below 1."""
    return max(1, int(round(max(0, price_cp) / 100)))


def normalize_imported_price_gp(price_gp: Any = None, price: Any = None) -> Optional[float]:
    """
    Resolve an externally supplied price override to gold pieces.

    Accepts a direct gp number, a bare number, or {"value", "denomination"|"unit"}.
    Non-positive or unparseable values yield None.
    """
    direct = _coerce_float(price_gp)
    if direct is not None and direct > 0:
        return direct

    bare = _coerce_float(price)
    if bare is not None and bare > 0:
        return bare
    if not isinstance(price, Mapping):
        return None

    value = _coerce_float(price.get("value"))
    if value is None or value <= 0:
        return None
    denomination = str(price.get("denomination") or price.get("unit") or "gp").strip().lower()
    return value * DENOMINATION_GP.get(denomination, 1)


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number
