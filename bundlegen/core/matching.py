"""
Free-text name matching against catalog records.

References come from an external generator and may be partly localized while
the catalog is not (or the other way round), so matching runs on normalized
dash-joined keys and scores each candidate on a fixed scale:

    exact          120
    prefix          95
    substring       80
    token overlap   72 / 60 / 42  (ratio >= 0.8 / 0.6 / 0.4)
    nothing          0

Every candidate at 100 or above is an exact-tier match; among those, names in
the interface language's script win. Otherwise the single best score wins if
it is above zero.
"""
import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from bundlegen.core.resolver import PoolStrategy, RankedResolver
from bundlegen.models.bundle import MatchResult, MatchStrategy
from bundlegen.models.catalog import CatalogRecord

logger = logging.getLogger(__name__)

EXACT_TIER_THRESHOLD = 100

SCORE_EXACT = 120
SCORE_PREFIX = 95
SCORE_SUBSTRING = 80
TOKEN_OVERLAP_BANDS = ((0.8, 72), (0.6, 60), (0.4, 42))

SCRIPT_CYRILLIC = "cyrillic"
SCRIPT_LATIN = "latin"

_QUOTES = re.compile(r"['`\"]")
_WHITESPACE = re.compile(r"\s+")
_NON_KEY_CHARS = re.compile(r"[^a-z0-9_\-а-яё]+")
_DASHES = re.compile(r"-+")
_SEED_SEPARATORS = re.compile(r"[|/;,]+")
_PARENTHETICAL = re.compile(r"\([^)]*\)")
_CYRILLIC = re.compile(r"[а-яё]", re.IGNORECASE)
_LATIN = re.compile(r"[a-z]", re.IGNORECASE)

LOOKUP_STOP_WORDS = frozenset({
    "of", "the", "and", "a", "an", "with", "for", "to", "in",
    "на", "и", "с", "для",
})
_LOOKUP_STRIP = re.compile(r"[^a-zа-яё0-9\s'\-]", re.IGNORECASE)


# =============================================================================
# Keys and Seeds
# =============================================================================

def normalize_search_key(value) -> str:
    """
    Normalize a name to a dash-joined search key.

    "Potion of Healing (Greater)" -> "potion-of-healing-greater"
    """
    text = str(value or "").lower()
    text = _QUOTES.sub("", text)
    text = _WHITESPACE.sub("-", text)
    text = _NON_KEY_CHARS.sub("-", text)
    text = _DASHES.sub("-", text)
    return text.strip("-")


def build_seeds(name: Optional[str], lookup: Optional[str] = None, canonical: Optional[str] = None) -> List[str]:
    """Derive the normalized seed keys for a reference, in order, without duplicates."""
    seeds: List[str] = []
    for value in (name, lookup, canonical):
        for part in _SEED_SEPARATORS.split(str(value or "")):
            part = _WHITESPACE.sub(" ", _PARENTHETICAL.sub(" ", part)).strip()
            key = normalize_search_key(part)
            if key and key not in seeds:
                seeds.append(key)
    return seeds


def candidate_aliases(record: CatalogRecord) -> List[str]:
    aliases: List[str] = []
    for value in (record.name, record.identifier, record.canonical_name):
        key = normalize_search_key(value)
        if key and key not in aliases:
            aliases.append(key)
    return aliases


def token_overlap_ratio(a: str, b: str) -> float:
    """Shared dash-separated tokens over the size of the larger token set."""
    a_tokens = {token for token in str(a or "").split("-") if token}
    b_tokens = {token for token in str(b or "").split("-") if token}
    if not a_tokens or not b_tokens:
        return 0.0
    return len(a_tokens & b_tokens) / max(len(a_tokens), len(b_tokens))


def score_key(candidate: str, seed: str) -> Tuple[int, MatchStrategy]:
    if not candidate or not seed:
        return 0, MatchStrategy.NONE
    if candidate == seed:
        return SCORE_EXACT, MatchStrategy.EXACT
    if candidate.startswith(seed) or seed.startswith(candidate):
        return SCORE_PREFIX, MatchStrategy.PREFIX
    if seed in candidate or candidate in seed:
        return SCORE_SUBSTRING, MatchStrategy.SUBSTRING
    overlap = token_overlap_ratio(candidate, seed)
    for threshold, score in TOKEN_OVERLAP_BANDS:
        if overlap >= threshold:
            return score, MatchStrategy.TOKEN_OVERLAP
    return 0, MatchStrategy.NONE


def score_record(record: CatalogRecord, seeds: Sequence[str]) -> Tuple[int, MatchStrategy]:
    """Best score of any candidate alias against any seed."""
    best = (0, MatchStrategy.NONE)
    for seed in seeds:
        for alias in candidate_aliases(record):
            scored = score_key(alias, seed)
            if scored[0] > best[0]:
                best = scored
    return best


# =============================================================================
# Script Preference
# =============================================================================

def detect_script(text: Optional[str]) -> Optional[str]:
    """Cyrillic wins over Latin when a string mixes both."""
    text = str(text or "")
    if _CYRILLIC.search(text):
        return SCRIPT_CYRILLIC
    if _LATIN.search(text):
        return SCRIPT_LATIN
    return None


def preferred_script(language: Optional[str]) -> Optional[str]:
    lang = str(language or "").strip().lower()
    if lang.startswith(("ru", "uk", "be")):
        return SCRIPT_CYRILLIC
    if lang.startswith("en"):
        return SCRIPT_LATIN
    return None


def prefer_by_script(records: Sequence[CatalogRecord], language: Optional[str]) -> List[CatalogRecord]:
    """
    Narrow records to names written in the interface language's script.

    A non-Latin preference with no matching names falls back to Latin names.
    If nothing narrows, the input order is returned unchanged.
    """
    records = list(records)
    script = preferred_script(language)
    if not script:
        return records
    preferred = [r for r in records if detect_script(r.name) == script]
    if preferred:
        return preferred
    if script != SCRIPT_LATIN:
        latin = [r for r in records if detect_script(r.name) == SCRIPT_LATIN]
        if latin:
            return latin
    return records


# =============================================================================
# Matching
# =============================================================================

def match_reference(
    records: Iterable[CatalogRecord],
    name: Optional[str],
    lookup: Optional[str] = None,
    canonical: Optional[str] = None,
    language: Optional[str] = "en",
) -> MatchResult:
    """
    Match one free-text reference against already-allowed records.

    Args:
        records: Candidate pool (allow-list applied by the caller)
        name: Requested display name
        lookup: Optional locale-neutral alias supplied with the name
        canonical: Optional extra alias
        language: Interface language code for the script tie-break

    Returns:
        MatchResult with record None when nothing scored above zero
    """
    result = MatchResult(requested_name=str(name or ""), lookup_alias=lookup)
    seeds = build_seeds(name, lookup, canonical)
    if not seeds:
        return result

    scored = []
    for record in records:
        score, strategy = score_record(record, seeds)
        scored.append((record, score, strategy))
    if not scored:
        return result

    def exact_tier(_request):
        exact = [record for record, score, _ in scored if score >= EXACT_TIER_THRESHOLD]
        return prefer_by_script(exact, language)[:1]

    def best_score(_request):
        best = None
        for entry in scored:
            if best is None or entry[1] > best[1]:
                best = entry
        return [best[0]] if best and best[1] > 0 else []

    resolution = RankedResolver(
        [PoolStrategy("exact-tier", exact_tier), PoolStrategy("best-score", best_score)],
        label="Matcher",
    ).resolve(result.requested_name)
    if resolution is None:
        logger.debug(f"[Matcher] No match for '{result.requested_name}'")
        return result

    record = resolution.candidates[0]
    for candidate, score, strategy in scored:
        if candidate is record:
            result.record, result.score, result.strategy = candidate, score, strategy
            break
    return result


def lookup_keywords(name: Optional[str], limit: int = 5) -> List[str]:
    """Search keywords for a free-text name: no punctuation, no stop-words, 3+ chars."""
    text = _LOOKUP_STRIP.sub(" ", str(name or "").lower())
    keywords = []
    for part in text.split():
        part = part.strip()
        if len(part) < 3 or part in LOOKUP_STOP_WORDS:
            continue
        keywords.append(part)
    return keywords[:limit]
