"""
Validation of externally supplied item references.

An external generator hands back item lists in several shapes: a plain list,
an object of grouped lists, or one newline/comma/semicolon separated string.
Entries are strings or objects with loosely named fields. Everything is
checked against ``ItemReference``; bad entries are reported, good ones kept.
"""
import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from bundlegen.core.errors import ErrorCode, ValidationIssue, ValidationResult
from bundlegen.core.pricing import normalize_imported_price_gp

logger = logging.getLogger(__name__)

MAX_QUANTITY = 9999

_ENTRY_SEPARATORS = re.compile(r"[\r\n,;]+")

NAME_KEYS = ("name", "label", "item", "value")
LOOKUP_KEYS = ("lookup", "canonical", "canonicalName", "english", "en")
QUANTITY_KEYS = ("quantity", "qty", "count")


class ItemReference(BaseModel):
    """One requested item as supplied by the generator."""
    name: str = Field(min_length=1)
    lookup: str = ""
    quantity: int = 1
    price_gp: Optional[float] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def clamp_quantity(cls, value: Any) -> Any:
        if value is None or value == "":
            return 1
        if isinstance(value, bool):
            raise ValueError("quantity must be a number")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValueError("quantity must be a number")
        if number != number:
            raise ValueError("quantity must be a number")
        return max(1, min(MAX_QUANTITY, int(round(number))))


def _first(entry: Mapping, keys) -> Any:
    for key in keys:
        value = entry.get(key)
        if value is not None and value != "":
            return value
    return None


def _clean_text(value: Any, max_length: int) -> Any:
    if not isinstance(value, str):
        return value
    return " ".join(value.split())[:max_length]


def _flatten(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, Mapping):
        entries: List[Any] = []
        for group in value.values():
            if isinstance(group, (list, tuple)):
                entries.extend(group)
        return entries
    if isinstance(value, str):
        return [part.strip() for part in _ENTRY_SEPARATORS.split(value) if part.strip()]
    return []


def _issue_code(error_type: str) -> ErrorCode:
    if error_type.startswith("string"):
        return ErrorCode.FIELD_MUST_BE_STRING
    if error_type.startswith(("int", "float")) or error_type == "value_error":
        return ErrorCode.FIELD_MUST_BE_NUMBER
    return ErrorCode.ITEM_REFERENCE_INVALID


def _entry_payload(entry: Mapping, max_length: int) -> Dict[str, Any]:
    name = _clean_text(_first(entry, NAME_KEYS), max_length)
    lookup = _clean_text(_first(entry, LOOKUP_KEYS), max_length)
    price_gp = normalize_imported_price_gp(
        entry.get("priceGp", entry.get("price_gp", entry.get("gp"))),
        entry.get("price"),
    )
    return {
        # a lookup alias alone is enough to name the reference
        "name": name if name else (lookup if isinstance(lookup, str) else ""),
        "lookup": lookup if lookup is not None else "",
        "quantity": _first(entry, QUANTITY_KEYS),
        "price_gp": price_gp,
    }


def normalize_item_refs(value: Any, max_items: int = 60, max_length: int = 140) -> ValidationResult:
    """
    Normalize a generator item list into ItemReference objects.

    Args:
        value: List, grouped object or separated string
        max_items: Maximum number of references kept
        max_length: Maximum length of names and lookup aliases

    Returns:
        ValidationResult whose value is the list of valid references; every
        rejected entry has one or more issues tagged with its index
    """
    issues: List[ValidationIssue] = []
    refs: List[ItemReference] = []

    if value is not None and not isinstance(value, (list, tuple, Mapping, str)):
        issues.append(ValidationIssue("items", "expected a list, object or string", ErrorCode.FIELD_MUST_BE_LIST))

    warnings: List[str] = []
    entries = _flatten(value)
    for index, entry in enumerate(entries):
        if len(refs) >= max_items:
            dropped = sum(1 for rest in entries[index:] if rest is not None and rest != "")
            if dropped:
                warnings.append(f"Only the first {max_items} item references were kept, {dropped} dropped")
            break
        field_prefix = f"items[{index}]"
        if entry is None:
            continue
        if isinstance(entry, str):
            clean = _clean_text(entry, max_length)
            if clean:
                refs.append(ItemReference(name=clean))
            continue
        if not isinstance(entry, Mapping):
            issues.append(ValidationIssue(field_prefix, "entry must be a string or object", ErrorCode.FIELD_MUST_BE_OBJECT))
            continue

        try:
            refs.append(ItemReference.model_validate(_entry_payload(entry, max_length)))
        except ValidationError as exc:
            for error in exc.errors():
                location = ".".join(str(part) for part in error.get("loc", ()))
                issues.append(ValidationIssue(
                    f"{field_prefix}.{location}" if location else field_prefix,
                    error.get("msg", "invalid entry"),
                    _issue_code(error.get("type", "")),
                ))

    if issues:
        logger.warning(f"[Imports] {len(issues)} problem(s) in item references, kept {len(refs)}")
    return ValidationResult.from_issues(refs, issues, warnings)
