"""Helpers for normalising participant names and scoring folder-name similarity."""
from __future__ import annotations

import re
import unicodedata
from typing import Tuple

__all__ = [
    "HONORIFIC_PREFIXES",
    "EXACT_MATCH_SCORE",
    "CONTAINS_MATCH_SCORE",
    "normalize_name",
    "calculate_similarity",
]

EXACT_MATCH_SCORE = 1.0
CONTAINS_MATCH_SCORE = 0.8

HONORIFIC_PREFIXES: Tuple[str, ...] = (
    "dr.",
    "drs.",
    "prof.",
    "ir.",
    "mr.",
    "mrs.",
    "ms.",
    "hj.",
    "h.",
)

# Every prefix ends with a dot, which the character filter removes, so a
# second pass can never strip another word.
_PREFIX_PATTERN = re.compile(
    r"^(?:(?:" + "|".join(re.escape(prefix) for prefix in HONORIFIC_PREFIXES) + r")\s+)+"
)
_DISALLOWED_PATTERN = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_name(value: str) -> str:
    normalized = unicodedata.normalize("NFKC", value or "")
    normalized = normalized.replace("\xa0", " ").lower().strip()
    normalized = _PREFIX_PATTERN.sub("", normalized)
    normalized = _DISALLOWED_PATTERN.sub("", normalized)
    return _WHITESPACE_PATTERN.sub(" ", normalized).strip()


def calculate_similarity(first: str, second: str) -> float:
    """Score two names in ``[0, 1]``.

    Identical normalised forms score 1.0 and containment in either direction
    scores 0.8. Anything else is the share of words the two names have in
    common, relative to the larger word set.
    """

    left = normalize_name(first)
    right = normalize_name(second)

    if left == right:
        return EXACT_MATCH_SCORE

    if left in right or right in left:
        return CONTAINS_MATCH_SCORE

    left_tokens = frozenset(left.split(" "))
    right_tokens = frozenset(right.split(" "))
    total = max(len(left_tokens), len(right_tokens))
    if not total:
        return 0.0
    return len(left_tokens & right_tokens) / total
