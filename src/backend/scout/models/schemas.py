"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# --- Enums ---

class JobStatus(str, Enum):
    active = "active"
    closed = "closed"
    draft = "draft"


class ApplicationStatus(str, Enum):
    new = "new"
    submitted = "submitted"
    screening = "screening"
    interview = "interview"
    offer = "offer"
    hired = "hired"
    rejected = "rejected"


class RunStatus(str, Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


class ApplicationSortField(str, Enum):
    applied_date = "applied_date"
    match_score = "match_score"
    fake_score = "fake_score"
    company_score = "company_score"
    candidate_name = "candidate_name"
    experience = "experience"


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- Job schemas ---

class JobPostingInput(BaseModel):
    title: str = Field(min_length=1, max_length=500, examples=["Senior Backend Engineer"])
    description: str | None = Field(default=None, examples=["We are hiring a backend engineer to own our Python services."])
    requirements: str | None = Field(default=None, examples=["5+ years Python, PostgreSQL, Docker"])
    company_name: str | None = None
    employment_type: str | None = Field(default=None, examples=["full_time"])
    location: str | None = None


class JobCreate(JobPostingInput):
    description: str = Field(min_length=1)
    is_remote: bool = False
    status: JobStatus = JobStatus.active
    required_experience_years: int | float | str | None = Field(default=None, examples=[5])
    preferred_experience: str | None = Field(
        default=None, description='Single number or range, e.g. "6" or "6-8"', examples=["6-8"]
    )
    preferred_experience_min_years: int | None = None
    preferred_experience_max_years: int | None = None
    mandatory_skill_requirements: list[Any] | dict[str, Any] | None = Field(
        default=None, examples=[["Python", {"skill": "PostgreSQL"}]]
    )
    ai_job_profile: dict[str, Any] | None = Field(
        default=None, description="A previewed profile to store instead of generating one"
    )
    generate_profile: bool = True


class JobUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    requirements: str | None = None
    company_name: str | None = None
    employment_type: str | None = None
    location: str | None = None
    is_remote: bool | None = None
    status: JobStatus | None = None
    required_experience_years: int | float | str | None = None
    preferred_experience: str | None = None
    preferred_experience_min_years: int | None = None
    preferred_experience_max_years: int | None = None
    mandatory_skill_requirements: list[Any] | dict[str, Any] | None = None
    ai_job_profile: dict[str, Any] | None = None
    regenerate_profile: bool = False


class JobResponse(ORMModel):
    id: UUID
    title: str
    description: str
    requirements: str | None
    company_name: str | None
    location: str | None
    employment_type: str | None
    is_remote: bool
    status: JobStatus
    required_experience_years: int
    preferred_experience_min_years: int | None
    preferred_experience_max_years: int | None
    mandatory_skill_requirements: list[Any] | None
    ai_job_profile: dict[str, Any] | None
    ai_job_profile_version: str | None
    ai_job_profile_updated_at: datetime | None
    ai_summary: str | None
    created_at: datetime
    updated_at: datetime


class JobListResponse(BaseModel):
    items: list[JobResponse]
    total: int
    page: int
    limit: int


# --- Resume schemas ---

class ResumeCreate(BaseModel):
    raw_text: str = Field(min_length=10, examples=["Jane Smith\nBackend Engineer, 6 years Python and PostgreSQL"])
    original_name: str = Field(default="pasted-resume.txt", max_length=500)
    candidate_name: str | None = Field(default=None, max_length=300)
    email: str | None = None
    job_id: UUID | None = Field(default=None, description="Link the resume to this job")
    parse: bool = False


class ResumeUpdate(BaseModel):
    candidate_name: str | None = Field(default=None, max_length=300)
    email: str | None = None
    phone: str | None = None
    raw_text: str | None = Field(default=None, min_length=10)
    manual_skill_assessments: list[Any] | None = Field(
        default=None, examples=[[{"skill": "Python", "months": 48}]]
    )


class ResumeResponse(ORMModel):
    id: UUID
    original_name: str
    file_name: str
    mime_type: str | None
    file_size: int | None
    source_type: str
    candidate_name: str | None
    email: str | None
    phone: str | None
    skills: str | None
    companies: str | None
    total_experience_years: Decimal | None
    company_score: int | None
    fake_score: int | None
    ai_summary: str | None
    parsed_at: datetime | None
    parse_error: str | None
    created_at: datetime


class ResumeDetail(ResumeResponse):
    raw_text: str | None
    employment_history: list[Any] | None
    ai_extract: dict[str, Any] | None
    manual_skill_assessments: list[Any] | None
    ai_skill_experience: list[Any] | None
    manual_skills_matched: list[Any] | None
    ai_extra_skills: list[Any] | None
    manual_tools_matched: list[Any] | None
    ai_extra_tools: list[Any] | None
    prompt_version: str | None
    parse_model: str | None


class ResumeListResponse(BaseModel):
    items: list[ResumeResponse]
    total: int
    page: int
    limit: int


# --- Parsing schemas ---

class ParseSummary(BaseModel):
    resume_id: UUID
    candidate_name: str | None
    emails_count: int
    skills_count: int
    companies_count: int
    match_score: int
    company_score: int
    fake_score: int
    tokens_used: int | None = None
    cached: bool = False
    match_score_details: dict[str, Any] | None = None


class ParseMissingResponse(BaseModel):
    attempted: int
    parsed: int
    failed: int
    stopped_on_budget: bool
    errors: dict[str, str] = Field(default_factory=dict)


class ParsingStats(BaseModel):
    total: int
    parsed: int
    unparsed: int
    with_scores: int
    failed: int


class ResumeUploadResponse(BaseModel):
    resume: ResumeResponse
    application_id: UUID | None = None
    parse: ParseSummary | None = None
    parse_error: str | None = None


# --- Application schemas ---

class ApplicationCreate(BaseModel):
    resume_id: UUID
    status: ApplicationStatus = ApplicationStatus.new
    notes: str | None = None


class ApplicationUpdate(BaseModel):
    status: ApplicationStatus | None = None
    notes: str | None = None


class ApplicationResponse(ORMModel):
    id: UUID
    job_id: UUID
    resume_id: UUID
    status: ApplicationStatus
    notes: str | None
    applied_date: datetime
    match_score: int | None
    ai_company_score: int | None
    match_score_details: dict[str, Any] | None = None
    skill_requirement_evaluation: dict[str, Any] | None = None
    updated_at: datetime


class ApplicationListItem(ApplicationResponse):
    candidate_name: str | None = None
    email: str | None = None
    phone: str | None = None
    skills: str | None = None
    original_name: str | None = None
    fake_score: int | None = None
    total_experience_years: Decimal | None = None


class ApplicationListResponse(BaseModel):
    items: list[ApplicationListItem]
    total: int
    page: int
    page_size: int


class DeletedCount(BaseModel):
    deleted: int


# --- Score refresh schemas ---

class ScoreRefreshRunResponse(ORMModel):
    id: UUID
    job_id: UUID
    status: RunStatus
    total_candidates: int
    processed_candidates: int
    success_count: int
    failure_count: int
    message: str | None
    error: str | None
    created_at: datetime
    started_at: datetime | None
    finished_at: datetime | None


# --- Similarity schemas ---

class SimilarResume(BaseModel):
    resume_id: UUID
    score: float
    candidate_name: str | None = None
    original_name: str | None = None

