"""Mandatory skill requirements and the evidence used to check them.

Three inputs feed an evaluation:

- the job's requirement config (recruiter-entered skill names),
- manual assessments (recruiter-entered or deterministic phrase matches),
- AI-extracted skill experience from the resume parse.

Stored values come back from JSONB columns in all sorts of shapes, so every
parser here accepts a list, a JSON string of a list, or None, and returns an
empty list rather than raising on junk.
"""

import json
import logging
import re
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel

from scout.scoring.numeric import clamp, round_half_up, to_number
from scout.scoring.skills import canonicalize_skill

if TYPE_CHECKING:
    from scout.models.parsing import ProfileAnalysis

logger = logging.getLogger(__name__)

MAX_SKILL_NAME = 120
MAX_MONTHS = 1200
MAX_REQUIREMENTS = 100
_WHITESPACE = re.compile(r"\s+")


def _skill_name(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("skill name must be a string")
    trimmed = _WHITESPACE.sub(" ", value.strip())
    if not trimmed:
        raise ValueError("skill name required")
    return trimmed[:MAX_SKILL_NAME]


def _manual_months(value: Any) -> int | None:
    if value is None or value == "":
        return None
    number = to_number(value)
    if number is None or number < 0:
        return None
    return min(MAX_MONTHS, round_half_up(number))


def _ai_months(value: Any) -> int:
    number = to_number(value) or 0
    return int(clamp(round_half_up(number), 0, MAX_MONTHS))


def _confidence(value: Any) -> float | None:
    number = to_number(value)
    if number is None:
        return None
    return clamp(number, 0.0, 1.0)


def _ai_confidence(value: Any) -> float:
    confidence = _confidence(value)
    return 0.5 if confidence is None else confidence


def _manual_source(value: Any) -> str:
    return value if value and isinstance(value, str) else "manual"


def _ai_source(value: Any) -> str:
    return "ai" if value is None else str(value)


def _cut(limit: int):
    def _apply(value: Any) -> str | None:
        if not value or not isinstance(value, str):
            return None
        return value[:limit]

    return _apply


SkillName = Annotated[str, BeforeValidator(_skill_name)]
Confidence = Annotated[float | None, BeforeValidator(_confidence)]


class SkillRequirement(BaseModel):
    skill: SkillName


class ManualSkillAssessment(BaseModel):
    skill: SkillName
    months: Annotated[int | None, BeforeValidator(_manual_months)] = None
    source: Annotated[str, BeforeValidator(_manual_source)] = "manual"
    confidence: Confidence = None
    notes: Annotated[str | None, BeforeValidator(_cut(200))] = None

    @model_validator(mode="after")
    def _default_manual_confidence(self) -> "ManualSkillAssessment":
        if self.confidence is None and self.source == "manual":
            self.confidence = 1.0
        return self


class SkillExperienceEntry(BaseModel):
    """One skill with the months of experience the model inferred for it."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    skill: SkillName
    months: Annotated[int, BeforeValidator(_ai_months)]
    confidence: Annotated[float, BeforeValidator(_ai_confidence)] = 0.5
    evidence: Annotated[str | None, BeforeValidator(_cut(240))] = None
    last_used: Annotated[str | None, BeforeValidator(_cut(40))] = None
    source: Annotated[str, BeforeValidator(_ai_source)] = "ai"


class SkillRequirementEvaluation(BaseModel):
    skill: str
    matched: bool
    manual_found: bool
    ai_found: bool


class SkillRequirementEvaluationSummary(BaseModel):
    evaluations: list[SkillRequirementEvaluation] = Field(default_factory=list)
    all_met: bool = True
    manual_coverage_missing: list[str] = Field(default_factory=list)
    unmet_requirements: list[str] = Field(default_factory=list)
    met_requirements: list[str] = Field(default_factory=list)
    ai_detected_without_manual: list[str] = Field(default_factory=list)


_requirement_list = TypeAdapter(list[SkillRequirement | SkillName])
_manual_list = TypeAdapter(list[ManualSkillAssessment])
_ai_list = TypeAdapter(list[SkillExperienceEntry])


def _skill_key(value: str) -> str:
    return value.strip().lower()


def _coerce_to_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def dedupe_by_skill(entries: list) -> list:
    """Keep one entry per skill; a later entry wins only with more months."""
    seen: dict[str, Any] = {}
    for entry in entries:
        key = _skill_key(entry.skill)
        existing = seen.get(key)
        if existing is None:
            seen[key] = entry
            continue
        if (getattr(entry, "months", None) or 0) > (getattr(existing, "months", None) or 0):
            seen[key] = entry
    return list(seen.values())


def _dedupe_names(names: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        key = _skill_key(name)
        if key in seen:
            continue
        seen.add(key)
        result.append(name)
    return result


def parse_skill_requirement_config(value: Any) -> list[SkillRequirement]:
    """Read a job's mandatory skills config.

    Accepts ``["SQL", {"skill": "Python"}]`` and the mapping shape
    ``{"SQL": 18}`` (keys are the skills).
    """
    if isinstance(value, dict):
        items: list = list(value.keys())
    else:
        items = _coerce_to_list(value)
    if len(items) > MAX_REQUIREMENTS:
        return []
    try:
        parsed = _requirement_list.validate_python(items)
    except ValidationError:
        logger.warning("Ignoring invalid mandatory skill config")
        return []
    requirements = [
        SkillRequirement(skill=item) if isinstance(item, str) else item for item in parsed
    ]
    return dedupe_by_skill(requirements)


def parse_manual_skill_assessments(value: Any) -> list[ManualSkillAssessment]:
    if isinstance(value, list) and value and all(isinstance(item, str) for item in value):
        try:
            legacy = [
                ManualSkillAssessment(skill=skill, months=None, source="legacy_list")
                for skill in value
                if skill.strip()
            ]
        except ValidationError:
            return []
        return dedupe_by_skill(legacy)

    try:
        parsed = _manual_list.validate_python(_coerce_to_list(value))
    except ValidationError:
        return []
    return dedupe_by_skill(parsed)


def parse_ai_skill_experience(value: Any) -> list[SkillExperienceEntry]:
    try:
        parsed = _ai_list.validate_python(_coerce_to_list(value))
    except ValidationError:
        return []
    return dedupe_by_skill(parsed)


def evaluate_skill_requirements(
    requirements: list[SkillRequirement],
    manual_assessments: list[ManualSkillAssessment],
    ai_experience: list[SkillExperienceEntry],
) -> SkillRequirementEvaluationSummary:
    if not requirements:
        return SkillRequirementEvaluationSummary()

    manual_keys: set[str] = set()
    for assessment in manual_assessments:
        manual_keys.add(canonicalize_skill(assessment.skill))

    ai_keys: dict[str, SkillExperienceEntry] = {}
    for entry in ai_experience:
        key = canonicalize_skill(entry.skill)
        existing = ai_keys.get(key)
        if existing is None or entry.months > existing.months:
            ai_keys[key] = entry

    evaluations: list[SkillRequirementEvaluation] = []
    manual_missing: list[str] = []
    unmet: list[str] = []
    met: list[str] = []
    ai_only: list[str] = []

    for requirement in requirements:
        key = canonicalize_skill(requirement.skill)
        manual_found = bool(key) and key in manual_keys
        ai_found = bool(key) and key in ai_keys
        matched = manual_found or ai_found

        if not manual_found:
            manual_missing.append(requirement.skill)
            if ai_found:
                ai_only.append(requirement.skill)
        (met if matched else unmet).append(requirement.skill)

        evaluations.append(
            SkillRequirementEvaluation(
                skill=requirement.skill,
                matched=matched,
                manual_found=manual_found,
                ai_found=ai_found,
            )
        )

    return SkillRequirementEvaluationSummary(
        evaluations=evaluations,
        all_met=all(item.matched for item in evaluations),
        manual_coverage_missing=_dedupe_names(manual_missing),
        unmet_requirements=_dedupe_names(unmet),
        met_requirements=_dedupe_names(met),
        ai_detected_without_manual=_dedupe_names(ai_only),
    )


def summary_from_analysis(
    requirements: list[SkillRequirement],
    analysis: "ProfileAnalysis | None",
) -> SkillRequirementEvaluationSummary | None:
    """Rebuild an evaluation from a stored analysis snapshot.

    Used for applications scored before evaluations were persisted: a
    requirement counts as met when the parse listed it as a matched must-have.
    """
    if not requirements or analysis is None:
        return None

    matched_keys = {canonicalize_skill(str(skill)) for skill in analysis.must_have_skills_matched}
    evaluations = []
    for requirement in requirements:
        matched = canonicalize_skill(requirement.skill) in matched_keys
        evaluations.append(
            SkillRequirementEvaluation(
                skill=requirement.skill,
                matched=matched,
                manual_found=matched,
                ai_found=matched,
            )
        )

    return SkillRequirementEvaluationSummary(
        evaluations=evaluations,
        all_met=all(item.matched for item in evaluations),
        manual_coverage_missing=[str(skill) for skill in analysis.must_have_skills_missing],
        unmet_requirements=[item.skill for item in evaluations if not item.matched],
        met_requirements=[item.skill for item in evaluations if item.matched],
        ai_detected_without_manual=[],
    )


def _string_items(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


def _pick(record: dict, snake: str) -> Any:
    return record.get(snake, record.get(to_camel(snake)))


def parse_skill_evaluation_record(value: Any) -> SkillRequirementEvaluationSummary | None:
    """Read a stored evaluation summary back, field by field.

    Accepts snake_case and camelCase keys; entries without a skill name are
    dropped and anything else unreadable turns into an empty value.
    """
    if not value:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return None
    if not isinstance(value, dict):
        return None

    evaluations = []
    raw_evaluations = value.get("evaluations")
    for entry in raw_evaluations if isinstance(raw_evaluations, list) else []:
        if not isinstance(entry, dict) or not isinstance(entry.get("skill"), str) or not entry["skill"]:
            continue
        evaluations.append(
            SkillRequirementEvaluation(
                skill=entry["skill"],
                matched=bool(entry.get("matched")),
                manual_found=bool(_pick(entry, "manual_found")),
                ai_found=bool(_pick(entry, "ai_found")),
            )
        )

    return SkillRequirementEvaluationSummary(
        evaluations=evaluations,
        all_met=bool(_pick(value, "all_met")),
        manual_coverage_missing=_string_items(_pick(value, "manual_coverage_missing")),
        unmet_requirements=_string_items(_pick(value, "unmet_requirements")),
        met_requirements=_string_items(_pick(value, "met_requirements")),
        ai_detected_without_manual=_string_items(_pick(value, "ai_detected_without_manual")),
    )
