"""Skill label normalisation shared by matching and scoring."""

import re
import unicodedata
from collections.abc import Iterable

_VERSION_TOKEN = re.compile(r"\b(?:v(?:ersion)?\s*)?\d+(?:\.\d+)*\b")
_NON_SKILL_CHARS = re.compile(r"[^a-z0-9+#]+")
_WHITESPACE = re.compile(r"\s+")

NOT_SPECIFIED = "not specified"


def canonicalize_skill(value: str | None) -> str:
    """Reduce a skill label to a token that survives spelling noise.

    Keeps ``+`` and ``#`` (C++, C#) and drops bare version tokens ("v13", "13.1").
    """
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()
    without_versions = _VERSION_TOKEN.sub(" ", base)
    collapsed = _NON_SKILL_CHARS.sub(" ", without_versions)
    return _WHITESPACE.sub(" ", collapsed).strip()


def normalize_value(value: str) -> str:
    return value.strip().lower()


def strip_not_specified(items: Iterable[str] | None) -> list[str]:
    return [item for item in (items or []) if item and normalize_value(item) != NOT_SPECIFIED]


def dedupe_preserve_order(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        key = normalize_value(value)
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(value)
    return result
