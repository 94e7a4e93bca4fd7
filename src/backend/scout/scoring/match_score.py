"""Deterministic 0-100 match score of a parsed resume against a job profile.

Mandatory skills are worth 70 points split evenly across requirements. The
profile dimensions share the remaining 30 points (or all 100 when the job has
no mandatory requirements), rescaled over whichever dimensions the profile
actually fills in. A detected disqualifier costs a flat 25 points.
"""

from typing import NamedTuple

from pydantic import BaseModel, Field

from scout.models.parsing import JobProfile, ProfileAnalysis
from scout.scoring.experience import ExperienceRequirements, score_experience_fit
from scout.scoring.numeric import clamp, round_half_up
from scout.scoring.skill_requirements import SkillRequirementEvaluationSummary
from scout.scoring.skills import normalize_value, strip_not_specified

MANDATORY_TOTAL_POINTS = 70
PROFILE_TOTAL_POINTS = 30
PROFILE_ONLY_POINTS = 100
DISQUALIFIER_PENALTY = 25
EXPERIENCE_WEIGHT = 10
EXPERIENCE_LABEL = "Experience"
MANDATORY_LABEL = "Mandatory Skills"


class Dimension(NamedTuple):
    profile_field: str
    analysis_field: str
    label: str
    weight: int


DIMENSIONS = (
    Dimension("nice_to_have_skills", "nice_to_have_skills_matched", "Nice-to-have Skills", 30),
    Dimension("target_titles", "target_titles_matched", "Target Titles", 20),
    Dimension("responsibilities", "responsibilities_matched", "Responsibilities", 10),
    Dimension("tools_and_tech", "tools_and_tech_matched", "Tools & Technologies", 20),
    Dimension("domain_keywords", "domain_keywords_matched", "Domain Keywords", 10),
)


class DimensionBreakdown(BaseModel):
    label: str
    available: int
    matched: int
    weight: float
    scaled_weight: float
    ratio: float
    score: float


class MandatoryContribution(BaseModel):
    skill: str
    matched: bool
    manual_found: bool
    ai_found: bool
    max_contribution: float
    contribution: float
    ratio: float


class MatchScoreDetails(BaseModel):
    base_score: int
    final_score: int
    mandatory_score: int
    mandatory_max_points: int
    profile_score: int
    profile_max_points: int
    penalties: dict[str, int] = Field(default_factory=lambda: {"disqualifier_penalty": 0})
    breakdown: dict[str, DimensionBreakdown] = Field(default_factory=dict)
    mandatory_breakdown: list[MandatoryContribution] = Field(default_factory=list)
    disqualifiers_detected: list[str] = Field(default_factory=list)
    experience_ratio: float | None = None
    notes: str | None = None
    mandatory_skills: SkillRequirementEvaluationSummary | None = None


class _MandatoryResult(NamedTuple):
    score: float
    max_points: int
    breakdown: list[MandatoryContribution]
    completed: int
    total: int


def _mandatory_contribution(summary: SkillRequirementEvaluationSummary | None) -> _MandatoryResult:
    evaluations = summary.evaluations if summary else []
    if not evaluations:
        return _MandatoryResult(0.0, 0, [], 0, 0)

    per_requirement = MANDATORY_TOTAL_POINTS / len(evaluations)
    score = 0.0
    completed = 0
    breakdown = []
    for evaluation in evaluations:
        contribution = per_requirement if evaluation.matched else 0.0
        if evaluation.matched:
            completed += 1
            score += contribution
        breakdown.append(
            MandatoryContribution(
                skill=evaluation.skill,
                matched=evaluation.matched,
                manual_found=evaluation.manual_found,
                ai_found=evaluation.ai_found,
                max_contribution=per_requirement,
                contribution=contribution,
                ratio=1.0 if evaluation.matched else 0.0,
            )
        )
    return _MandatoryResult(score, MANDATORY_TOTAL_POINTS, breakdown, completed, len(evaluations))


def _list_ratio(profile_items: list[str], matched_items: list[str]) -> tuple[int, float]:
    profile_keys = {normalize_value(item) for item in profile_items}
    matched_keys = {normalize_value(item) for item in matched_items if isinstance(item, str)}
    hits = len(profile_keys & matched_keys)
    return hits, min(hits / len(profile_items), 1.0)


def compute_profile_match_score(
    profile: JobProfile,
    analysis: ProfileAnalysis,
    mandatory_summary: SkillRequirementEvaluationSummary | None = None,
    candidate_experience_years: float | None = None,
    experience_requirements: ExperienceRequirements | None = None,
) -> MatchScoreDetails:
    mandatory = _mandatory_contribution(mandatory_summary)
    profile_budget = PROFILE_TOTAL_POINTS if mandatory.total > 0 else PROFILE_ONLY_POINTS

    active = []
    for dimension in DIMENSIONS:
        items = strip_not_specified(getattr(profile, dimension.profile_field))
        if items:
            active.append((dimension, items))

    experience_ratio = score_experience_fit(candidate_experience_years, experience_requirements)

    total_weight = sum(dimension.weight for dimension, _ in active)
    if experience_ratio is not None:
        total_weight += EXPERIENCE_WEIGHT
    scale = profile_budget / total_weight if total_weight else 0.0

    breakdown: dict[str, DimensionBreakdown] = {}
    profile_score = 0.0

    for dimension, items in active:
        hits, ratio = _list_ratio(items, getattr(analysis, dimension.analysis_field))
        scaled_weight = dimension.weight * scale
        dimension_score = scaled_weight * ratio
        profile_score += dimension_score
        breakdown[dimension.label] = DimensionBreakdown(
            label=dimension.label,
            available=len(items),
            matched=hits,
            weight=dimension.weight,
            scaled_weight=scaled_weight,
            ratio=ratio,
            score=dimension_score,
        )

    if experience_ratio is not None:
        scaled_weight = EXPERIENCE_WEIGHT * scale
        dimension_score = scaled_weight * experience_ratio
        profile_score += dimension_score
        breakdown[EXPERIENCE_LABEL] = DimensionBreakdown(
            label=EXPERIENCE_LABEL,
            available=1,
            matched=1 if experience_ratio >= 1 else 0,
            weight=EXPERIENCE_WEIGHT,
            scaled_weight=scaled_weight,
            ratio=experience_ratio,
            score=dimension_score,
        )

    if mandatory.total > 0:
        breakdown[MANDATORY_LABEL] = DimensionBreakdown(
            label=MANDATORY_LABEL,
            available=mandatory.total,
            matched=mandatory.completed,
            weight=MANDATORY_TOTAL_POINTS,
            scaled_weight=mandatory.max_points,
            ratio=clamp(mandatory.score / mandatory.max_points, 0.0, 1.0),
            score=mandatory.score,
        )

    base_score = mandatory.score + profile_score
    disqualifiers = list(analysis.disqualifiers_detected)
    penalty = 0
    if strip_not_specified(profile.disqualifiers) and disqualifiers:
        penalty = DISQUALIFIER_PENALTY

    return MatchScoreDetails(
        base_score=int(clamp(round_half_up(base_score), 0, 100)),
        final_score=int(clamp(round_half_up(base_score - penalty), 0, 100)),
        mandatory_score=int(clamp(round_half_up(mandatory.score), 0, MANDATORY_TOTAL_POINTS)),
        mandatory_max_points=mandatory.max_points,
        profile_score=int(clamp(round_half_up(profile_score), 0, profile_budget)),
        profile_max_points=profile_budget,
        penalties={"disqualifier_penalty": penalty},
        breakdown=breakdown,
        mandatory_breakdown=mandatory.breakdown,
        disqualifiers_detected=disqualifiers,
        experience_ratio=experience_ratio,
        notes=analysis.notes,
        mandatory_skills=mandatory_summary,
    )
