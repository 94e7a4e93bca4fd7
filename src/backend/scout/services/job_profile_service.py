"""Job profiles: structured hiring criteria extracted from a posting by the LLM."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from scout.core.config import settings
from scout.core.exceptions import SchemaError
from scout.models.orm import Job
from scout.models.parsing import JOB_PROFILE_VERSION, PROFILE_SUMMARY_LIMIT, JobProfile
from scout.models.schemas import JobPostingInput
from scout.prompts.job_profile import build_job_profile_prompt, build_posting_text
from scout.services import llm_service

logger = logging.getLogger(__name__)

PROFILE_LIST_KEEP = 12
SHORT_SUMMARY_LIMIT = 500
EXCERPT_LIMIT = 800
_LIST_FIELDS = (
    "must_have_skills",
    "nice_to_have_skills",
    "soft_skills",
    "target_titles",
    "responsibilities",
    "domain_keywords",
    "certifications",
    "disqualifiers",
    "tools_and_tech",
)


@dataclass
class JobContext:
    """What the resume parser needs to know about a job."""

    job_title: str
    job_description_short: str
    job_description_excerpt: str
    job_profile: JobProfile | None


def _dedupe_list(items: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        key = item.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
        if len(result) >= PROFILE_LIST_KEEP:
            break
    return result


def sanitize_profile(profile: JobProfile) -> JobProfile:
    updates: dict[str, Any] = {
        "version": JOB_PROFILE_VERSION,
        "summary": profile.summary[:PROFILE_SUMMARY_LIMIT],
    }
    for field in _LIST_FIELDS:
        updates[field] = _dedupe_list(getattr(profile, field))
    return profile.model_copy(update=updates)


def parse_job_profile(value: Any) -> JobProfile | None:
    """Read a stored profile (dict or JSON text); bad input gives None."""
    if not value:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Stored job profile is not valid JSON")
            return None
    if not isinstance(value, dict):
        logger.warning("Stored job profile has unexpected type %s", type(value).__name__)
        return None
    try:
        return sanitize_profile(JobProfile.model_validate(value))
    except ValidationError as exc:
        logger.warning("Stored job profile failed validation: %s", exc.errors()[:3])
        return None


def posting_from_job(job: Job) -> JobPostingInput:
    return JobPostingInput(
        title=job.title,
        description=job.description,
        requirements=job.requirements,
        company_name=job.company_name,
        employment_type=job.employment_type,
        location=job.location,
    )


def _has_posting_text(posting: JobPostingInput) -> bool:
    return bool((posting.description or "").strip() or (posting.requirements or "").strip())


async def extract_job_profile(posting: JobPostingInput) -> JobProfile:
    """Call the LLM and return a validated, sanitised profile.

    Raises AIDisabledError, OutOfBudgetError, LLMResponseError or SchemaError.
    """
    posting_text = build_posting_text(
        title=posting.title,
        description=(posting.description or "").strip(),
        requirements=(posting.requirements or "").strip(),
        company_name=posting.company_name,
        employment_type=posting.employment_type,
        location=posting.location,
    )
    system_prompt, user_prompt = build_job_profile_prompt(posting_text)
    result = await llm_service.invoke_json(
        system_prompt,
        user_prompt,
        model=settings.openai_job_profile_model,
        temperature=settings.openai_job_profile_temperature,
        max_tokens=1500,
        purpose="job_profile",
    )
    try:
        profile = JobProfile.model_validate(result.data)
    except ValidationError as exc:
        raise SchemaError(f"Job profile schema validation failed: {exc}") from exc
    return sanitize_profile(profile)


async def generate_job_profile_preview(posting: JobPostingInput) -> JobProfile | None:
    """Profile for unsaved posting text. None when AI is off or there is nothing to read."""
    if not settings.ai_configured:
        logger.info("AI not configured, skipping job profile preview")
        return None
    if not _has_posting_text(posting):
        return None
    return await extract_job_profile(posting)


async def generate_and_store_job_profile(db: AsyncSession, job: Job) -> JobProfile | None:
    if not settings.ai_configured:
        logger.info("AI not configured, skipping profile generation for job %s", job.id)
        return None

    posting = posting_from_job(job)
    if not _has_posting_text(posting):
        logger.warning("Job %s has no description or requirements, skipping profile", job.id)
        return None

    try:
        profile = await extract_job_profile(posting)
    except Exception:
        logger.error("Job profile generation failed for job %s", job.id, exc_info=True)
        return None

    job.ai_job_profile = profile.model_dump()
    job.ai_job_profile_version = profile.version
    job.ai_job_profile_updated_at = datetime.utcnow()
    job.ai_summary = profile.summary or None
    await db.commit()
    logger.info("Job profile updated for job %s", job.id)
    return profile


async def refresh_job_profile(db: AsyncSession, job_id: UUID) -> JobProfile | None:
    job = await db.get(Job, job_id)
    if job is None:
        logger.warning("Job %s not found for profile refresh", job_id)
        return None
    return await generate_and_store_job_profile(db, job)


def _cut(text: str, limit: int) -> str:
    return f"{text[:limit]}..." if len(text) > limit else text


def build_job_context(job: Job) -> JobContext:
    description = (job.description or "").strip()
    profile = parse_job_profile(job.ai_job_profile)
    summary = (profile.summary.strip() if profile and profile.summary else "") or (
        (job.ai_summary or "").strip() or description
    )
    return JobContext(
        job_title=job.title,
        job_description_short=_cut(summary, SHORT_SUMMARY_LIMIT) or job.title,
        job_description_excerpt=_cut(description, EXCERPT_LIMIT),
        job_profile=profile,
    )
