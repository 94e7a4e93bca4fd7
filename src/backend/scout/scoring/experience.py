"""Required / preferred years of experience for a job and how a candidate fits them."""

import re
from dataclasses import dataclass
from typing import Any

from scout.scoring.numeric import round_half_up, to_number

MIN_EXPERIENCE_YEARS = 0
MAX_EXPERIENCE_YEARS = 80

REQUIRED_EXPERIENCE_MESSAGE = "Required experience (years) is mandatory and must be between 0 and 80."
EXPERIENCE_RANGE_MESSAGE = (
    f"Experience must be between {MIN_EXPERIENCE_YEARS} and {MAX_EXPERIENCE_YEARS} years."
)
PREFERRED_FORMAT_MESSAGE = 'Preferred experience must be a single number or a range like "10-12".'
PREFERRED_MIN_MESSAGE = "Preferred experience must be greater than or equal to the required experience."
PREFERRED_MAX_MESSAGE = "Preferred experience max cannot be less than the preferred minimum."

_RANGE_SPLIT = re.compile(r"\s*(?:-|–|—|to)\s*", re.IGNORECASE)


@dataclass
class ExperienceRequirements:
    required_years: int | None = None
    preferred_min_years: int | None = None
    preferred_max_years: int | None = None


def clamp_experience_years(value: Any) -> int | None:
    if value is None or value == "":
        return None
    number = to_number(value)
    if number is None:
        return None
    return max(MIN_EXPERIENCE_YEARS, min(MAX_EXPERIENCE_YEARS, round_half_up(number)))


def _check_preferred(minimum: int | None, maximum: int | None, required: int) -> None:
    if minimum is not None and minimum < required:
        raise ValueError(PREFERRED_MIN_MESSAGE)
    if minimum is not None and maximum is not None and maximum < minimum:
        raise ValueError(PREFERRED_MAX_MESSAGE)


def _parse_years(raw: str) -> int:
    number = to_number(raw)
    if number is None:
        raise ValueError(EXPERIENCE_RANGE_MESSAGE)
    years = round_half_up(number)
    if years < MIN_EXPERIENCE_YEARS or years > MAX_EXPERIENCE_YEARS:
        raise ValueError(EXPERIENCE_RANGE_MESSAGE)
    return years


def parse_required_experience_input(value: Any) -> int:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValueError(REQUIRED_EXPERIENCE_MESSAGE)
    return _parse_years(text)


def parse_preferred_experience_input(value: Any, required_years: int) -> tuple[int | None, int | None]:
    """Parse "5", "5-8", "5 to 8" or "5–8" into (min, max)."""
    text = "" if value is None else str(value).strip()
    if not text:
        return None, None

    parts = [part.strip() for part in _RANGE_SPLIT.split(text)]
    if len(parts) > 2 or not parts[0]:
        raise ValueError(PREFERRED_FORMAT_MESSAGE)

    minimum = _parse_years(parts[0])
    maximum = _parse_years(parts[1]) if len(parts) == 2 and parts[1] else minimum
    _check_preferred(minimum, maximum, required_years)
    return minimum, maximum


def format_preferred_experience_range(minimum: int | None, maximum: int | None) -> str:
    if minimum is None and maximum is None:
        return ""
    if minimum is not None and maximum is not None:
        return str(minimum) if minimum == maximum else f"{minimum}-{maximum}"
    return str(minimum if minimum is not None else maximum)


def _first_present(*values: Any) -> Any:
    return next((value for value in values if value is not None), None)


def resolve_experience_payload(body: dict) -> dict[str, int | None]:
    """Pull the experience columns for a job out of a create/update body.

    Missing values fall back to the AI job profile in ``ai_job_profile``.
    Raises ValueError when the result breaks the required/preferred rules.
    """
    profile = body.get("ai_job_profile") or {}
    required = clamp_experience_years(
        _first_present(body.get("required_experience_years"), profile.get("required_experience_years"))
    )
    if required is None:
        raise ValueError(REQUIRED_EXPERIENCE_MESSAGE)

    preferred_fallback = _first_present(
        body.get("preferred_experience_years"), profile.get("preferred_experience_years")
    )
    minimum = clamp_experience_years(
        _first_present(body.get("preferred_experience_min_years"), preferred_fallback)
    )
    maximum = clamp_experience_years(
        _first_present(body.get("preferred_experience_max_years"), preferred_fallback)
    )
    if minimum is None and maximum is not None:
        minimum = maximum
    elif minimum is not None and maximum is None:
        maximum = minimum

    if minimum is not None:
        _check_preferred(minimum, maximum, required)

    return {
        "required_experience_years": required,
        "preferred_experience_min_years": minimum,
        "preferred_experience_max_years": maximum,
    }


def normalize_experience_requirements(
    requirements: ExperienceRequirements | None,
) -> ExperienceRequirements:
    """Clamp and repair requirements instead of rejecting them."""
    if requirements is None:
        return ExperienceRequirements()

    required = clamp_experience_years(requirements.required_years)
    minimum = clamp_experience_years(requirements.preferred_min_years)
    maximum = clamp_experience_years(requirements.preferred_max_years)

    if minimum is None and maximum is not None:
        minimum = maximum
    elif minimum is not None and maximum is None:
        maximum = minimum

    if required is not None and minimum is not None and minimum < required:
        minimum = required
    if minimum is not None and maximum is not None and maximum < minimum:
        maximum = minimum

    return ExperienceRequirements(required, minimum, maximum)


def merge_experience_requirements(
    primary: ExperienceRequirements | None,
    fallback: ExperienceRequirements | None,
) -> ExperienceRequirements:
    first = normalize_experience_requirements(primary)
    second = normalize_experience_requirements(fallback)
    return normalize_experience_requirements(
        ExperienceRequirements(
            required_years=_first_present(first.required_years, second.required_years),
            preferred_min_years=_first_present(first.preferred_min_years, second.preferred_min_years),
            preferred_max_years=_first_present(first.preferred_max_years, second.preferred_max_years),
        )
    )


def has_preferred_range(requirements: ExperienceRequirements) -> bool:
    return requirements.preferred_min_years is not None and requirements.preferred_max_years is not None


def has_experience_requirements(requirements: ExperienceRequirements | None) -> bool:
    if requirements is None:
        return False
    return any(
        value is not None
        for value in (
            requirements.required_years,
            requirements.preferred_min_years,
            requirements.preferred_max_years,
        )
    )


def score_experience_fit(
    candidate_years: float | None,
    requirements: ExperienceRequirements | None,
) -> float | None:
    """Banded fit ratio in [0, 1]; None when either side is unknown.

    Inside the preferred range (or at/above required when there is no range)
    scores 1.0, short of the preferred minimum 0.75, over the maximum decays
    by 0.05 per year down to 0.6, and under the requirement drops to 0.5,
    0.25, then 0 for each year short.
    """
    years = to_number(candidate_years)
    if years is None or years < 0 or not has_experience_requirements(requirements):
        return None

    normalized = normalize_experience_requirements(requirements)
    required = normalized.required_years
    if required is None:
        required = normalized.preferred_min_years or 0

    if years < required:
        shortfall = required - years
        if shortfall <= 1:
            return 0.5
        if shortfall <= 2:
            return 0.25
        return 0.0

    if not has_preferred_range(normalized):
        return 1.0

    if years < normalized.preferred_min_years:
        return 0.75
    if years > normalized.preferred_max_years:
        over = years - normalized.preferred_max_years
        return max(0.6, 1 - 0.05 * over)
    return 1.0
