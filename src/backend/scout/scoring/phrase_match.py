"""Deterministic phrase matching of job-profile items against raw resume text.

A phrase such as "distributed systems design" matches when its tokens show up
in order, each within a short window of the previous one, allowing for light
stemming and prefix overlap ("designing" ~ "design", "k8s" stays exact).
"""

import re
from dataclasses import dataclass

from scout.scoring.skills import NOT_SPECIFIED, normalize_value

TOKEN_PATTERN = re.compile(r"[A-Za-z0-9+#]+")
_PHRASE_SPLIT = re.compile(r"[^A-Za-z0-9+#]+")
MIN_PREFIX_MATCH = 4
PHRASE_WINDOW = 5

_SUFFIXES = (
    "ization", "isation", "ational", "fulness", "ousness", "iveness",
    "ability", "ment", "ments", "ities", "ally", "lessly", "less",
    "ness", "ingly", "edly", "ing", "ers", "ies", "ed", "er", "ly", "es", "s",
)


@dataclass(frozen=True)
class ResumeToken:
    value: str
    normalized: str
    stem: str


def stem_token(token: str) -> str:
    if token.endswith("ies") and len(token) > 4:
        return token[:-3] + "y"

    stem = token
    for suffix in _SUFFIXES:
        if stem.endswith(suffix) and len(stem) > len(suffix) + 2:
            stem = stem[: -len(suffix)]
            break

    if stem.endswith("tion") and len(stem) > 4:
        stem = stem[:-3]
    return stem


def build_resume_tokens(text: str | None) -> list[ResumeToken]:
    if not text:
        return []
    tokens = []
    for match in TOKEN_PATTERN.finditer(text):
        raw = match.group(0)
        normalized = raw.lower()
        tokens.append(ResumeToken(value=raw, normalized=normalized, stem=stem_token(normalized)))
    return tokens


def split_phrase_tokens(phrase: str | None) -> list[str]:
    return [part.lower() for part in _PHRASE_SPLIT.split(phrase or "") if part]


def tokens_are_similar(token: ResumeToken, target: str) -> bool:
    if not target:
        return False
    if token.normalized == target:
        return True
    if token.stem and token.stem == stem_token(target):
        return True

    candidate = token.normalized
    if len(target) >= MIN_PREFIX_MATCH and (candidate.startswith(target) or target in candidate):
        return True
    if len(candidate) >= MIN_PREFIX_MATCH and (target.startswith(candidate) or candidate in target):
        return True
    return False


def phrase_matches(
    tokens: list[ResumeToken],
    phrase_tokens: list[str],
    window: int = PHRASE_WINDOW,
) -> bool:
    if not phrase_tokens:
        return False

    first, rest = phrase_tokens[0], phrase_tokens[1:]
    for start, token in enumerate(tokens):
        if not tokens_are_similar(token, first):
            continue
        current = start
        for target in rest:
            upper = min(len(tokens), current + window + 1)
            found = next(
                (k for k in range(current + 1, upper) if tokens_are_similar(tokens[k], target)),
                None,
            )
            if found is None:
                break
            current = found
        else:
            return True
    return False


def match_phrases_in_resume(phrases: list[str] | None, tokens: list[ResumeToken]) -> list[str]:
    """Return the phrases found in the resume, in input order, without repeats."""
    matches: list[str] = []
    seen: set[str] = set()
    for phrase in phrases or []:
        trimmed = (phrase or "").strip()
        if not trimmed or normalize_value(trimmed) == NOT_SPECIFIED:
            continue
        phrase_tokens = split_phrase_tokens(trimmed)
        if not phrase_tokens or not phrase_matches(tokens, phrase_tokens):
            continue
        key = normalize_value(trimmed)
        if key not in seen:
            seen.add(key)
            matches.append(trimmed)
    return matches
