"""SQLAlchemy ORM models for jobs, resumes, applications and score refresh runs."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Job(Base):
    __tablename__ = "jobs"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[str | None] = mapped_column(Text, nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(300), nullable=True)
    location: Mapped[str | None] = mapped_column(String(300), nullable=True)
    employment_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_remote: Mapped[bool] = mapped_column(default=False)
    status: Mapped[str] = mapped_column(String(20), default="active")

    required_experience_years: Mapped[int] = mapped_column(nullable=False, default=0)
    preferred_experience_min_years: Mapped[int | None] = mapped_column(nullable=True)
    preferred_experience_max_years: Mapped[int | None] = mapped_column(nullable=True)
    mandatory_skill_requirements: Mapped[list | None] = mapped_column(JSONB, nullable=True)

    ai_job_profile: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    ai_job_profile_version: Mapped[str | None] = mapped_column(String(20), nullable=True)
    ai_job_profile_updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    ai_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    embedding_id: Mapped[str | None] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    applications: Mapped[list["JobApplication"]] = relationship(
        back_populates="job", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint(
            "required_experience_years >= 0 AND required_experience_years <= 80",
            name="ck_jobs_required_experience",
        ),
        Index("idx_jobs_status", "status"),
        Index("idx_jobs_created", "created_at"),
    )


class Resume(Base):
    __tablename__ = "resumes"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    original_name: Mapped[str] = mapped_column(String(500), nullable=False)
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(200), nullable=True)
    file_size: Mapped[int | None] = mapped_column(nullable=True)
    file_hash: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    source_type: Mapped[str] = mapped_column(String(20), default="upload")
    uploaded_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    raw_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Parsed candidate fields
    candidate_name: Mapped[str | None] = mapped_column(String(300), nullable=True)
    email: Mapped[str | None] = mapped_column(String(300), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(100), nullable=True)
    skills: Mapped[str | None] = mapped_column(Text, nullable=True)
    companies: Mapped[str | None] = mapped_column(Text, nullable=True)
    employment_history: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    total_experience_years: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    company_score: Mapped[int | None] = mapped_column(nullable=True)
    fake_score: Mapped[int | None] = mapped_column(nullable=True)
    ai_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_extract: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    # Skill evidence
    manual_skill_assessments: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    ai_skill_experience: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    manual_skills_matched: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    ai_extra_skills: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    manual_tools_matched: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    ai_extra_tools: Mapped[list | None] = mapped_column(JSONB, nullable=True)

    # Parse bookkeeping
    text_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    prompt_version: Mapped[str | None] = mapped_column(String(20), nullable=True)
    parse_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    parsed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    parse_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    embedding_id: Mapped[str | None] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    applications: Mapped[list["JobApplication"]] = relationship(
        back_populates="resume", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("fake_score IS NULL OR (fake_score >= 0 AND fake_score <= 100)", name="ck_resume_fake"),
        CheckConstraint(
            "company_score IS NULL OR (company_score >= 0 AND company_score <= 100)",
            name="ck_resume_company",
        ),
        Index("idx_resumes_created", "created_at"),
        Index("idx_resumes_parsed", "parsed_at"),
    )


class JobApplication(Base):
    __tablename__ = "job_applications"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    resume_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("resumes.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), default="new")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    applied_date: Mapped[datetime] = mapped_column(default=datetime.utcnow)

    match_score: Mapped[int | None] = mapped_column(nullable=True)
    ai_company_score: Mapped[int | None] = mapped_column(nullable=True)
    ai_extract: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    match_score_details: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    skill_requirement_evaluation: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    job: Mapped[Job] = relationship(back_populates="applications")
    resume: Mapped[Resume] = relationship(back_populates="applications")

    __table_args__ = (
        UniqueConstraint("job_id", "resume_id", name="uq_application_job_resume"),
        CheckConstraint(
            "match_score IS NULL OR (match_score >= 0 AND match_score <= 100)",
            name="ck_application_match",
        ),
        Index("idx_applications_job", "job_id"),
        Index("idx_applications_resume", "resume_id"),
    )


class JobScoreRecalcRun(Base):
    __tablename__ = "job_score_recalc_runs"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), default="pending")
    total_candidates: Mapped[int] = mapped_column(default=0)
    processed_candidates: Mapped[int] = mapped_column(default=0)
    success_count: Mapped[int] = mapped_column(default=0)
    failure_count: Mapped[int] = mapped_column(default=0)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (Index("idx_recalc_runs_job", "job_id"),)
