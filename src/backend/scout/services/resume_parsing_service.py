"""Resume parsing orchestrator: LLM extraction, deterministic matching, scoring, persistence.

Main flow of ``parse_and_score_resume``:

1. Skip when nothing changed since the last parse (text hash, prompt, model)
2. Call the LLM in JSON mode and validate the answer
3. Phrase-match the job profile against the raw text and let a second LLM
   call confirm any extra matches
4. Evaluate mandatory skills and compute the weighted match score
5. Write resume fields and refresh every application of the resume
"""

import copy
import hashlib
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from scout.core.config import settings
from scout.core.exceptions import (
    AIDisabledError,
    LLMResponseError,
    NotFoundError,
    OutOfBudgetError,
    SchemaError,
)
from scout.models.orm import Job, JobApplication, Resume
from scout.models.parsing import JobProfile, ProfileAnalysis, ResumeParseResult, SkillVerification
from scout.models.schemas import ParseMissingResponse, ParseSummary, ParsingStats
from scout.prompts.resume_parsing import build_resume_parse_prompt
from scout.prompts.skill_verification import build_skill_verification_prompt
from scout.scoring.experience import ExperienceRequirements, merge_experience_requirements
from scout.scoring.match_score import MatchScoreDetails, compute_profile_match_score
from scout.scoring.numeric import clamp, round_half_up, to_number
from scout.scoring.phrase_match import ResumeToken, build_resume_tokens, match_phrases_in_resume
from scout.scoring.skill_requirements import (
    ManualSkillAssessment,
    SkillExperienceEntry,
    SkillRequirement,
    SkillRequirementEvaluationSummary,
    evaluate_skill_requirements,
    parse_manual_skill_assessments,
    parse_skill_requirement_config,
)
from scout.scoring.skills import dedupe_preserve_order, normalize_value
from scout.services import llm_service
from scout.services.job_profile_service import JobContext, build_job_context, parse_job_profile
from scout.services.text_extraction_service import UNSUPPORTED_DOC_LEGACY

logger = logging.getLogger(__name__)

SUMMARY_LIMIT = 140
PARSE_MAX_TOKENS = 8192
VERIFY_MAX_TOKENS = 500
EMPTY_PARSE_RESULT = "EMPTY_PARSE_RESULT"
MAX_BATCH = 50
_SCALAR_CANDIDATE_KEYS = ("name", "linkedinUrl", "currentLocation")
_SCALAR_EMPLOYMENT_KEYS = ("title", "startDate", "endDate", "employmentType")
_SCALAR_EDUCATION_KEYS = ("institution", "year")


# --- Model output repair -------------------------------------------------


def generate_text_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _fix_scalar(obj: dict, key: str) -> None:
    """Empty strings and non-string values become None; missing keys stay missing."""
    if key not in obj or obj[key] is None:
        return
    value = obj[key]
    if isinstance(value, str):
        obj[key] = value if value.strip() else None
    else:
        obj[key] = None


def _fallback_summary(raw: dict) -> str:
    resume = raw.get("resume") if isinstance(raw.get("resume"), dict) else {}
    candidate = resume.get("candidate") if isinstance(resume.get("candidate"), dict) else {}
    employment = resume.get("employment") if isinstance(resume.get("employment"), list) else []
    first_job = employment[0] if employment and isinstance(employment[0], dict) else {}

    name = candidate.get("name") or "Candidate"
    title = first_job.get("title") or "Professional"
    years = candidate.get("totalExperienceYears")
    skills = resume.get("skills") if isinstance(resume.get("skills"), list) else []
    top_skills = "/".join(str(skill) for skill in skills[:3])

    parts = [str(name), "-", str(title)]
    if isinstance(years, (int, float)) and not isinstance(years, bool):
        parts.append(f"({years:g}y)")
    text = " ".join(parts)
    if top_skills:
        text = f"{text}, {top_skills}"
    return re.sub(r"\s+", " ", text).strip()


def coerce_summary(raw: dict) -> None:
    resume = raw.get("resume")
    if "summary" not in raw and isinstance(resume, dict) and "summary" in resume:
        raw["summary"] = resume.pop("summary")

    summary = raw.get("summary")
    if isinstance(summary, list):
        summary = " ".join(str(item) for item in summary if item).strip()
    elif summary is None:
        summary = ""
    elif isinstance(summary, dict):
        summary = summary.get("text") or summary.get("description") or summary.get("summary") or str(summary)
    elif not isinstance(summary, str):
        summary = str(summary)

    if not str(summary).strip():
        summary = _fallback_summary(raw)
    raw["summary"] = str(summary)[:SUMMARY_LIMIT]


def sanitize_model_output(raw: Any) -> Any:
    """Repair the shapes models commonly get wrong before validation. Never raises."""
    if not isinstance(raw, dict):
        return raw
    raw = copy.deepcopy(raw)

    resume = raw.get("resume")
    if isinstance(resume, dict):
        candidate = resume.get("candidate")
        if isinstance(candidate, dict):
            for key in _SCALAR_CANDIDATE_KEYS:
                _fix_scalar(candidate, key)
        for entry in resume.get("employment") or []:
            if isinstance(entry, dict):
                for key in _SCALAR_EMPLOYMENT_KEYS:
                    _fix_scalar(entry, key)
                if entry.get("endDate") == "Present":
                    entry["endDate"] = None
        for entry in resume.get("education") or []:
            if isinstance(entry, dict):
                for key in _SCALAR_EDUCATION_KEYS:
                    _fix_scalar(entry, key)
        _fix_scalar(resume, "notes")

    coerce_summary(raw)

    scores = raw.get("scores")
    if isinstance(scores, dict):
        for key in ("matchScore", "companyScore", "fakeScore"):
            value = scores.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                scores[key] = clamp(value, 0, 100)
    return raw


def validate_and_process(raw: Any) -> ResumeParseResult:
    """Sanitise + validate model output; raises SchemaError."""
    try:
        result = ResumeParseResult.model_validate(sanitize_model_output(raw))
    except ValidationError as exc:
        raise SchemaError(str(exc)) from exc

    scores = result.scores
    scores.match_score = int(clamp(round_half_up(scores.match_score), 0, 100))
    scores.company_score = int(clamp(round_half_up(scores.company_score), 0, 100))
    scores.fake_score = int(clamp(round_half_up(scores.fake_score), 0, 100))
    if scores.match_score == 0 and scores.company_score == 0 and scores.fake_score == 0:
        logger.warning("openai scores all zero")
    return result


def has_meaningful_data(result: ResumeParseResult) -> bool:
    candidate = result.resume.candidate
    return bool(candidate.name or candidate.emails or result.resume.skills or result.resume.employment)


def needs_parsing(resume: Resume, text_hash: str) -> bool:
    return (
        resume.parsed_at is None
        or resume.text_hash != text_hash
        or resume.prompt_version != settings.prompt_version
        or resume.parse_model != settings.openai_resume_model
    )


# --- Job-specific scoring ------------------------------------------------


@dataclass
class JobScore:
    """Everything one application stores about how the resume fits its job."""

    match_score: int
    analysis: ProfileAnalysis
    details: MatchScoreDetails | None = None
    evaluation: SkillRequirementEvaluationSummary | None = None
    manual_skills: list[str] = field(default_factory=list)
    manual_tools: list[str] = field(default_factory=list)
    ai_extra_skills: list[str] = field(default_factory=list)
    ai_extra_tools: list[str] = field(default_factory=list)


def mandatory_requirements_for(job: Job | None, profile: JobProfile | None) -> list[SkillRequirement]:
    """Job-configured mandatory skills, else the profile's must-haves."""
    requirements = parse_skill_requirement_config(job.mandatory_skill_requirements) if job else []
    if not requirements and profile is not None:
        requirements = parse_skill_requirement_config(profile.must_have_skills)
    return requirements


def experience_requirements_for(job: Job | None, profile: JobProfile | None) -> ExperienceRequirements:
    primary = None
    if job is not None:
        primary = ExperienceRequirements(
            required_years=job.required_experience_years,
            preferred_min_years=job.preferred_experience_min_years,
            preferred_max_years=job.preferred_experience_max_years,
        )
    fallback = None
    if profile is not None:
        fallback = ExperienceRequirements(
            required_years=profile.required_experience_years,
            preferred_min_years=profile.preferred_experience_years,
            preferred_max_years=profile.preferred_experience_years,
        )
    return merge_experience_requirements(primary, fallback)


def _without(values: list[str], excluded: set[str]) -> list[str]:
    return [value for value in dedupe_preserve_order(values) if normalize_value(value) not in excluded]


def score_resume_for_job(
    job: Job | None,
    profile: JobProfile | None,
    result: ResumeParseResult,
    tokens: list[ResumeToken],
    manual_assessments: list[ManualSkillAssessment],
    verification: SkillVerification | None = None,
    use_model_extras: bool = False,
) -> JobScore:
    """Score one parse against one job without calling the LLM.

    With a profile, deterministic phrase matches replace the model's
    must-have / nice-to-have / tools matches. AI extras come from
    ``verification`` or, when ``use_model_extras`` is set, from the model's
    own lists.
    """
    analysis = result.analysis.model_copy(deep=True)
    if profile is None:
        return JobScore(match_score=int(result.scores.match_score), analysis=analysis)

    manual_must = match_phrases_in_resume(profile.must_have_skills, tokens)
    manual_nice = match_phrases_in_resume(profile.nice_to_have_skills, tokens)
    manual_tools = match_phrases_in_resume(profile.tools_and_tech, tokens)
    manual_skills = dedupe_preserve_order(manual_must + manual_nice)
    manual_skill_keys = {normalize_value(skill) for skill in manual_skills}
    manual_tool_keys = {normalize_value(tool) for tool in manual_tools}

    model_must = list(analysis.must_have_skills_matched)
    model_nice = list(analysis.nice_to_have_skills_matched)
    model_tools = list(analysis.tools_and_tech_matched)

    analysis.must_have_skills_matched = manual_must
    analysis.must_have_skills_missing = [
        skill for skill in profile.must_have_skills if normalize_value(skill) not in manual_skill_keys
    ]
    analysis.nice_to_have_skills_matched = manual_nice
    analysis.tools_and_tech_matched = manual_tools

    if verification is not None:
        extra_skills = _without(verification.extra_must_have + verification.extra_nice_to_have, manual_skill_keys)
        extra_tools = _without(verification.extra_tools, manual_tool_keys)
    elif use_model_extras:
        extra_skills = _without(model_must + model_nice, manual_skill_keys)
        extra_tools = _without(model_tools, manual_tool_keys)
    else:
        extra_skills, extra_tools = [], []

    requirements = mandatory_requirements_for(job, profile)
    evaluation = None
    if requirements:
        phrase_hits = match_phrases_in_resume([req.skill for req in requirements], tokens)
        manual_evidence = list(manual_assessments) + [
            ManualSkillAssessment(skill=skill, source="phrase_match")
            for skill in dedupe_preserve_order(phrase_hits + manual_skills + manual_tools)
        ]
        ai_evidence = list(result.resume.skill_experience) + [
            SkillExperienceEntry(skill=skill, months=0, source="ai_verification")
            for skill in extra_skills + extra_tools
        ]
        evaluation = evaluate_skill_requirements(requirements, manual_evidence, ai_evidence)

    details = compute_profile_match_score(
        profile,
        analysis,
        evaluation,
        candidate_experience_years=result.resume.candidate.total_experience_years,
        experience_requirements=experience_requirements_for(job, profile),
    )
    return JobScore(
        match_score=details.final_score,
        analysis=analysis,
        details=details,
        evaluation=evaluation,
        manual_skills=manual_skills,
        manual_tools=manual_tools,
        ai_extra_skills=extra_skills,
        ai_extra_tools=extra_tools,
    )


async def verify_skill_matches(
    resume_text: str,
    profile: JobProfile,
    manual_must: list[str],
    manual_nice: list[str],
    manual_tools: list[str],
) -> SkillVerification | None:
    """Ask the LLM for profile items the phrase matcher missed.

    Only items from the matching profile list that were not already matched
    survive. Best effort: any failure is logged and gives None.
    """
    system_prompt, user_prompt = build_skill_verification_prompt(
        resume_text,
        profile.must_have_skills,
        profile.nice_to_have_skills,
        profile.tools_and_tech,
        manual_must,
        manual_nice,
        manual_tools,
    )
    try:
        result = await llm_service.invoke_json(
            system_prompt,
            user_prompt,
            model=settings.openai_job_profile_model,
            temperature=settings.openai_job_profile_temperature,
            max_tokens=VERIFY_MAX_TOKENS,
            purpose="skill_verification",
        )
        verification = SkillVerification.model_validate(result.data)
    except (AIDisabledError, OutOfBudgetError, LLMResponseError, ValidationError) as exc:
        logger.warning("skill verification failed: %s", exc)
        return None

    def allowed(values: list[str], profile_items: list[str], manual: list[str]) -> list[str]:
        allowed_keys = {normalize_value(item) for item in profile_items}
        manual_keys = {normalize_value(item) for item in manual}
        cleaned = [value.strip() for value in values if value.strip()]
        return [
            value
            for value in dedupe_preserve_order(cleaned)
            if normalize_value(value) in allowed_keys and normalize_value(value) not in manual_keys
        ]

    return SkillVerification(
        extra_must_have=allowed(verification.extra_must_have, profile.must_have_skills, manual_must),
        extra_nice_to_have=allowed(verification.extra_nice_to_have, profile.nice_to_have_skills, manual_nice),
        extra_tools=allowed(verification.extra_tools, profile.tools_and_tech, manual_tools),
    )


# --- Persistence helpers -------------------------------------------------


def to_resume_fields(result: ResumeParseResult, primary: JobScore | None) -> dict[str, Any]:
    candidate = result.resume.candidate
    skills = sorted({skill.strip().lower() for skill in result.resume.skills if skill.strip()})
    companies = dedupe_preserve_order(
        [entry.company.strip() for entry in result.resume.employment if entry.company.strip()]
    )
    return {
        "ai_extract": result.model_dump(mode="json"),
        "ai_summary": result.summary,
        "candidate_name": candidate.name,
        "email": candidate.emails[0].lower() if candidate.emails else None,
        "phone": candidate.phones[0] if candidate.phones else None,
        "skills": ", ".join(skills) or None,
        "companies": ", ".join(companies) or None,
        "employment_history": [entry.model_dump(mode="json") for entry in result.resume.employment],
        "total_experience_years": Decimal(str(round(candidate.total_experience_years, 2))),
        "company_score": int(result.scores.company_score),
        "fake_score": int(result.scores.fake_score),
        "ai_skill_experience": [entry.model_dump(mode="json") for entry in result.resume.skill_experience] or None,
        "manual_skills_matched": (primary.manual_skills or None) if primary else None,
        "ai_extra_skills": (primary.ai_extra_skills or None) if primary else None,
        "manual_tools_matched": (primary.manual_tools or None) if primary else None,
        "ai_extra_tools": (primary.ai_extra_tools or None) if primary else None,
        "parsed_at": datetime.utcnow(),
        "prompt_version": settings.prompt_version,
        "parse_model": settings.openai_resume_model,
        "parse_error": None,
    }


def application_snapshot(result: ResumeParseResult, score: JobScore) -> dict[str, Any]:
    """The parse as seen from one job: its own analysis and match score."""
    snapshot = result.model_copy(deep=True)
    snapshot.analysis = score.analysis
    snapshot.scores.match_score = score.match_score
    data = snapshot.model_dump(mode="json")
    data["candidate_experience_years"] = result.resume.candidate.total_experience_years
    return data


def apply_job_score(application: JobApplication, result: ResumeParseResult, score: JobScore) -> None:
    application.match_score = score.match_score
    application.ai_company_score = int(result.scores.company_score)
    application.ai_extract = application_snapshot(result, score)
    application.match_score_details = score.details.model_dump(mode="json") if score.details else None
    application.skill_requirement_evaluation = (
        score.evaluation.model_dump(mode="json") if score.evaluation else None
    )


def stored_parse(resume: Resume | None) -> ResumeParseResult | None:
    """The resume's last validated parse, or None when it was never parsed."""
    if resume is None or not isinstance(resume.ai_extract, dict):
        return None
    try:
        return ResumeParseResult.model_validate(resume.ai_extract)
    except ValidationError:
        logger.warning("Stored parse of resume %s no longer validates", resume.id)
        return None


def score_application_from_resume(
    application: JobApplication,
    resume: Resume | None,
    job: Job | None,
    profile: JobProfile | None,
) -> bool:
    """Score an application from its resume's stored parse, without the LLM.

    Used for applications linked after the resume was parsed. False when the
    resume has no usable parse.
    """
    result = stored_parse(resume)
    if result is None:
        return False
    tokens = build_resume_tokens(resume.raw_text)
    manual_assessments = parse_manual_skill_assessments(resume.manual_skill_assessments)
    score = score_resume_for_job(job, profile, result, tokens, manual_assessments)
    apply_job_score(application, result, score)
    return True


def score_unscored_applications(resume: Resume) -> int:
    """Give every application without a snapshot its own score. Returns how many were scored."""
    scored = 0
    for application in resume.applications:
        if isinstance(application.ai_extract, dict):
            continue
        job = application.job
        profile = parse_job_profile(job.ai_job_profile) if job else None
        if score_application_from_resume(application, resume, job, profile):
            scored += 1
    return scored


async def _record_failure(db: AsyncSession, resume: Resume, error: str, text_hash: str) -> None:
    resume.parse_error = error
    resume.text_hash = text_hash
    resume.prompt_version = settings.prompt_version
    resume.parse_model = settings.openai_resume_model
    await db.commit()


def _cached_summary(resume: Resume, applications: list[JobApplication], job_id: UUID | None) -> ParseSummary:
    application = next((app for app in applications if app.job_id == job_id), None)
    if application is None and applications:
        application = applications[0]
    return ParseSummary(
        resume_id=resume.id,
        candidate_name=resume.candidate_name,
        emails_count=1 if resume.email else 0,
        skills_count=len(resume.skills.split(",")) if resume.skills else 0,
        companies_count=len(resume.companies.split(",")) if resume.companies else 0,
        match_score=(application.match_score if application and application.match_score is not None else 0),
        company_score=resume.company_score or 0,
        fake_score=resume.fake_score or 0,
        cached=True,
    )


async def _load_resume(db: AsyncSession, resume_id: UUID) -> Resume:
    result = await db.execute(
        select(Resume)
        .where(Resume.id == resume_id)
        .options(selectinload(Resume.applications).selectinload(JobApplication.job))
        .execution_options(populate_existing=True)
    )
    resume = result.scalar_one_or_none()
    if resume is None:
        raise NotFoundError(f"Resume {resume_id} not found")
    return resume


async def _resolve_primary_job(
    db: AsyncSession, resume: Resume, job_id: UUID | None
) -> Job | None:
    if job_id is not None:
        job = await db.get(Job, job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found")
        return job
    if resume.applications:
        latest = max(resume.applications, key=lambda app: app.applied_date or datetime.min)
        return latest.job
    return None


# --- Public operations ---------------------------------------------------


async def parse_and_score_resume(
    db: AsyncSession,
    resume_id: UUID,
    job_id: UUID | None = None,
    force: bool = False,
) -> ParseSummary:
    """Parse a resume with the LLM and score it against its jobs.

    ``job_id`` selects the job whose context goes into the prompt; without it
    the most recent application's job is used. Raises AIDisabledError,
    NotFoundError, ValueError, OutOfBudgetError, LLMResponseError or SchemaError.
    """
    started = time.monotonic()
    if not force and not settings.parse_on_import:
        raise AIDisabledError("Resume parsing is disabled (parse_on_import is off)")
    if not settings.ai_configured:
        raise AIDisabledError()

    resume = await _load_resume(db, resume_id)
    raw_text = resume.raw_text or ""
    if not raw_text.strip():
        raise ValueError("Resume has no text to parse")
    if raw_text == UNSUPPORTED_DOC_LEGACY:
        raise ValueError("Legacy .doc files cannot be parsed; upload a PDF or DOCX instead")

    text_hash = generate_text_hash(raw_text)
    if not force and not needs_parsing(resume, text_hash):
        logger.info("parse resume skipped resume_id=%s reason=unchanged", resume_id)
        scored = score_unscored_applications(resume)
        if scored:
            await db.commit()
            logger.info("scored linked applications from stored parse resume_id=%s count=%d", resume_id, scored)
        return _cached_summary(resume, resume.applications, job_id)

    primary_job = await _resolve_primary_job(db, resume, job_id)
    context: JobContext | None = build_job_context(primary_job) if primary_job else None
    profile = context.job_profile if context else None
    logger.info(
        "parse resume start resume_id=%s file=%s job_id=%s profile=%s",
        resume_id, resume.original_name, primary_job.id if primary_job else None, bool(profile),
    )

    # 1. LLM extraction
    system_prompt, user_prompt = build_resume_parse_prompt(raw_text, context)
    try:
        llm_result = await llm_service.invoke_json(
            system_prompt,
            user_prompt,
            model=settings.openai_resume_model,
            temperature=settings.openai_temperature,
            max_tokens=PARSE_MAX_TOKENS,
            timeout=settings.openai_timeout_seconds,
            purpose="resume_parse",
        )
    except LLMResponseError as exc:
        await _record_failure(db, resume, str(exc), text_hash)
        logger.error("parse_fail resume_id=%s kind=%s reason=%s", resume_id, exc.kind, exc)
        raise

    # 2. Validation
    try:
        result = validate_and_process(llm_result.data)
    except SchemaError as exc:
        await _record_failure(db, resume, f"schema: {exc}", text_hash)
        logger.error("parse_fail_schema resume_id=%s error=%s", resume_id, exc)
        raise

    # 3. Deterministic matching + AI verification for the primary job
    tokens = build_resume_tokens(raw_text)
    manual_assessments = parse_manual_skill_assessments(resume.manual_skill_assessments)
    verification = None
    if profile is not None:
        verification = await verify_skill_matches(
            raw_text,
            profile,
            match_phrases_in_resume(profile.must_have_skills, tokens),
            match_phrases_in_resume(profile.nice_to_have_skills, tokens),
            match_phrases_in_resume(profile.tools_and_tech, tokens),
        )
    else:
        logger.warning("job_profile_missing_for_scoring resume_id=%s", resume_id)

    # 4. Mandatory skills + weighted score
    primary_score = score_resume_for_job(
        primary_job, profile, result, tokens, manual_assessments,
        verification=verification, use_model_extras=verification is None,
    )
    result.scores.match_score = primary_score.match_score
    logger.info(
        "skill_match_summary resume_id=%s manual_skills=%d manual_tools=%d ai_extra_skills=%d ai_extra_tools=%d",
        resume_id, len(primary_score.manual_skills), len(primary_score.manual_tools),
        len(primary_score.ai_extra_skills), len(primary_score.ai_extra_tools),
    )

    if not has_meaningful_data(result):
        await _record_failure(db, resume, EMPTY_PARSE_RESULT, text_hash)
        logger.warning("parse result empty resume_id=%s", resume_id)
        raise SchemaError("Parsed resume contains no meaningful data")

    # 5. Persist resume + applications
    for key, value in to_resume_fields(result, primary_score).items():
        setattr(resume, key, value)
    resume.text_hash = text_hash

    profiles: dict[UUID, JobProfile | None] = {}
    for application in resume.applications:
        if primary_job is not None and application.job_id == primary_job.id:
            score = primary_score
        else:
            if application.job_id not in profiles:
                profiles[application.job_id] = parse_job_profile(application.job.ai_job_profile)
            score = score_resume_for_job(
                application.job, profiles[application.job_id], result, tokens, manual_assessments
            )
        apply_job_score(application, result, score)

    await db.commit()

    duration = time.monotonic() - started
    logger.info(
        "parse resume success resume_id=%s model=%s duration=%.2fs match=%d company=%d fake=%d tokens=%d strategy=%s",
        resume_id, llm_result.model, duration, primary_score.match_score,
        int(result.scores.company_score), int(result.scores.fake_score), llm_result.tokens_used,
        "profile_weighted" if primary_score.details else "model_score",
    )
    return ParseSummary(
        resume_id=resume.id,
        candidate_name=result.resume.candidate.name,
        emails_count=len(result.resume.candidate.emails),
        skills_count=len(result.resume.skills),
        companies_count=len(result.resume.employment),
        match_score=primary_score.match_score,
        company_score=int(result.scores.company_score),
        fake_score=int(result.scores.fake_score),
        tokens_used=llm_result.tokens_used,
        match_score_details=primary_score.details.model_dump(mode="json") if primary_score.details else None,
    )


async def parse_missing_resumes(db: AsyncSession, limit: int = 10) -> ParseMissingResponse:
    """Parse never-parsed resumes, oldest first, stopping when the budget runs out."""
    limit = max(1, min(MAX_BATCH, limit))
    rows = await db.execute(
        select(Resume.id)
        .where(Resume.parsed_at.is_(None), Resume.parse_error.is_(None), Resume.raw_text.is_not(None))
        .order_by(Resume.created_at.asc())
        .limit(limit)
    )
    resume_ids = list(rows.scalars().all())

    parsed = failed = 0
    stopped = False
    errors: dict[str, str] = {}
    for resume_id in resume_ids:
        try:
            await parse_and_score_resume(db, resume_id, force=True)
            parsed += 1
        except (OutOfBudgetError, AIDisabledError) as exc:
            logger.warning("batch parse stopped at resume %s: %s", resume_id, exc)
            errors[str(resume_id)] = str(exc)
            stopped = True
            break
        except (LLMResponseError, SchemaError, ValueError, NotFoundError) as exc:
            failed += 1
            errors[str(resume_id)] = str(exc)

    return ParseMissingResponse(
        attempted=parsed + failed,
        parsed=parsed,
        failed=failed,
        stopped_on_budget=stopped,
        errors=errors,
    )


async def get_parsing_stats(db: AsyncSession) -> ParsingStats:
    async def count(*conditions) -> int:
        result = await db.execute(select(func.count(Resume.id)).where(*conditions))
        return int(result.scalar_one())

    total = await count()
    parsed = await count(Resume.parsed_at.is_not(None), Resume.parse_error.is_(None))
    with_scores = await count(Resume.company_score.is_not(None), Resume.fake_score.is_not(None))
    failed = await count(Resume.parse_error.is_not(None))
    return ParsingStats(
        total=total,
        parsed=parsed,
        unparsed=max(0, total - parsed - failed),
        with_scores=with_scores,
        failed=failed,
    )


def candidate_years_from_snapshot(snapshot: Any, fallback: Any = None) -> float | None:
    """Candidate years stored alongside an analysis snapshot, else ``fallback``."""
    if isinstance(snapshot, dict):
        years = snapshot.get("candidate_experience_years")
        if years is None:
            resume = snapshot.get("resume") if isinstance(snapshot.get("resume"), dict) else {}
            candidate = resume.get("candidate") if isinstance(resume.get("candidate"), dict) else {}
            years = candidate.get("total_experience_years", candidate.get("totalExperienceYears"))
        number = to_number(years)
        if number is not None:
            return number
    return to_number(fallback)
