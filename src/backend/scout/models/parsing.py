"""Structured payloads exchanged with the LLM.

The model speaks camelCase JSON; Python code and stored snapshots use the
snake_case field names. Validators are lenient where models are known to
drift (a single string instead of a list, numbers as strings) and strict
where a wrong shape means the answer is unusable.
"""

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from scout.scoring.numeric import round_half_up, to_number
from scout.scoring.skill_requirements import SkillExperienceEntry, parse_ai_skill_experience

JOB_PROFILE_VERSION = "v1"
PROFILE_LIST_LIMIT = 20
PROFILE_SUMMARY_LIMIT = 600


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list):
        return value
    return []


def _profile_list(value: Any) -> list[str]:
    items = [item.strip() for item in _as_list(value) if isinstance(item, str)]
    return [item for item in items if item][:PROFILE_LIST_LIMIT]


def _string_list(value: Any) -> list[str]:
    return [item for item in _as_list(value) if isinstance(item, str)]


def _trimmed_or_none(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def _years_or_none(value: Any) -> int | None:
    number = to_number(value)
    if number is None:
        return None
    return max(0, round_half_up(number))


def _summary_text(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()[:PROFILE_SUMMARY_LIMIT]


ProfileList = Annotated[list[str], BeforeValidator(_profile_list)]
StringList = Annotated[list[str], BeforeValidator(_string_list)]
OptionalText = Annotated[str | None, BeforeValidator(_trimmed_or_none)]
OptionalYears = Annotated[int | None, BeforeValidator(_years_or_none)]


class JobProfile(CamelModel):
    """Hiring criteria the LLM extracts from a job posting."""

    version: str = JOB_PROFILE_VERSION
    summary: Annotated[str, BeforeValidator(_summary_text)] = ""
    must_have_skills: ProfileList = Field(default_factory=list)
    nice_to_have_skills: ProfileList = Field(default_factory=list)
    soft_skills: ProfileList = Field(default_factory=list)
    target_titles: ProfileList = Field(default_factory=list)
    responsibilities: ProfileList = Field(default_factory=list)
    required_experience_years: OptionalYears = None
    preferred_experience_years: OptionalYears = None
    domain_keywords: ProfileList = Field(default_factory=list)
    certifications: ProfileList = Field(default_factory=list)
    location_constraints: OptionalText = None
    disqualifiers: ProfileList = Field(default_factory=list)
    tools_and_tech: ProfileList = Field(default_factory=list)


class ProfileAnalysis(CamelModel):
    """How a resume lines up with each job-profile list."""

    must_have_skills_matched: StringList = Field(default_factory=list)
    must_have_skills_missing: StringList = Field(default_factory=list)
    nice_to_have_skills_matched: StringList = Field(default_factory=list)
    target_titles_matched: StringList = Field(default_factory=list)
    responsibilities_matched: StringList = Field(default_factory=list)
    tools_and_tech_matched: StringList = Field(default_factory=list)
    domain_keywords_matched: StringList = Field(default_factory=list)
    certifications_matched: StringList = Field(default_factory=list)
    disqualifiers_detected: StringList = Field(default_factory=list)
    notes: str | None = None


class Candidate(CamelModel):
    name: str | None = None
    emails: StringList = Field(default_factory=list)
    phones: StringList = Field(default_factory=list)
    linkedin_url: str | None = None
    current_location: str | None = None
    total_experience_years: float = Field(ge=0, le=80)


class Education(CamelModel):
    degree: str
    institution: str | None = None
    year: str | None = None


class Employment(CamelModel):
    company: str
    title: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    employment_type: str | None = None


class ParsedResume(CamelModel):
    candidate: Candidate
    skills: StringList = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    employment: list[Employment] = Field(default_factory=list)
    skill_experience: Annotated[
        list[SkillExperienceEntry], BeforeValidator(parse_ai_skill_experience)
    ] = Field(default_factory=list)
    notes: str | None = None


class ResumeScores(CamelModel):
    match_score: float = Field(ge=0, le=100)
    company_score: float = Field(ge=0, le=100)
    fake_score: float = Field(ge=0, le=100)


class ResumeParseResult(CamelModel):
    """Full structured output of a resume parse call."""

    resume: ParsedResume
    scores: ResumeScores
    analysis: ProfileAnalysis = Field(default_factory=ProfileAnalysis)
    summary: str


class SkillVerification(CamelModel):
    """Extra profile matches the verifier found in the resume text."""

    extra_must_have: StringList = Field(default_factory=list)
    extra_nice_to_have: StringList = Field(default_factory=list)
    extra_tools: StringList = Field(default_factory=list)
