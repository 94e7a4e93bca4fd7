"""Job endpoints: CRUD, AI profiles, score refresh runs, candidates and applications."""

import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from scout.api.errors import SERVICE_ERRORS, conflict, not_found, to_http_error
from scout.core.auth import APPLICATIONS_TABLE, JOBS_TABLE, UserContext, require_table
from scout.core.database import get_db
from scout.models.orm import Job, JobApplication, Resume
from scout.models.parsing import JobProfile
from scout.models.schemas import (
    ApplicationCreate,
    ApplicationListItem,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationSortField,
    ApplicationStatus,
    DeletedCount,
    JobCreate,
    JobListResponse,
    JobPostingInput,
    JobResponse,
    JobStatus,
    JobUpdate,
    ScoreRefreshRunResponse,
    SimilarResume,
    SortDirection,
)
from scout.scoring.experience import (
    parse_preferred_experience_input,
    parse_required_experience_input,
    resolve_experience_payload,
)
from scout.scoring.skill_requirements import parse_skill_requirement_config
from scout.services import embedding_service, vector_service
from scout.services.job_profile_service import (
    generate_and_store_job_profile,
    generate_job_profile_preview,
    parse_job_profile,
)
from scout.services.resume_parsing_service import score_application_from_resume
from scout.services.score_refresh_service import (
    get_score_refresh_run,
    process_score_recalc_run,
    start_score_refresh_run,
)

logger = logging.getLogger(__name__)

router = APIRouter()

require_jobs = require_table(JOBS_TABLE)
require_applications = require_table(APPLICATIONS_TABLE)

_SORT_COLUMNS = {
    ApplicationSortField.applied_date: JobApplication.applied_date,
    ApplicationSortField.match_score: JobApplication.match_score,
    ApplicationSortField.fake_score: Resume.fake_score,
    ApplicationSortField.company_score: JobApplication.ai_company_score,
    ApplicationSortField.candidate_name: Resume.candidate_name,
    ApplicationSortField.experience: Resume.total_experience_years,
}


async def _get_job_or_404(db: AsyncSession, job_id: uuid.UUID) -> Job:
    job = await db.get(Job, job_id)
    if job is None:
        raise not_found("Job")
    return job


def _requirements_payload(value) -> list[dict]:
    return [requirement.model_dump() for requirement in parse_skill_requirement_config(value)]


def _experience_columns(
    required_input,
    preferred_input: str | None,
    preferred_min,
    preferred_max,
    profile: JobProfile | None,
) -> dict[str, int | None]:
    """Validate the experience inputs of a create/update body into column values."""
    required = parse_required_experience_input(required_input) if required_input is not None else None
    if preferred_input is not None:
        baseline = required
        if baseline is None:
            baseline = (profile.required_experience_years if profile else None) or 0
        preferred_min, preferred_max = parse_preferred_experience_input(preferred_input, baseline)
    return resolve_experience_payload(
        {
            "required_experience_years": required,
            "preferred_experience_min_years": preferred_min,
            "preferred_experience_max_years": preferred_max,
            "ai_job_profile": profile.model_dump() if profile else None,
        }
    )


def preferred_update_inputs(job: Job, fields: dict) -> tuple:
    """Stored preferred bounds overlaid with the ones an update body sends."""
    return (
        fields.get("preferred_experience_min_years", job.preferred_experience_min_years),
        fields.get("preferred_experience_max_years", job.preferred_experience_max_years),
    )


async def _store_embedding(db: AsyncSession, job: Job) -> None:
    embedding_id = await embedding_service.try_embed_job(job)
    if embedding_id and embedding_id != job.embedding_id:
        job.embedding_id = embedding_id
        await db.commit()


# --- Job CRUD ---


@router.post("/jobs", response_model=JobResponse, status_code=status.HTTP_201_CREATED, tags=["Jobs"])
async def create_job(
    body: JobCreate,
    user: UserContext = Depends(require_jobs),
    db: AsyncSession = Depends(get_db),
):
    """Create a job. Without a previewed profile, one is generated when AI is available."""
    profile = parse_job_profile(body.ai_job_profile)
    if profile is None and body.generate_profile:
        try:
            profile = await generate_job_profile_preview(body)
        except SERVICE_ERRORS:
            logger.warning("Job profile generation failed during create", exc_info=True)

    try:
        experience = _experience_columns(
            body.required_experience_years,
            body.preferred_experience,
            body.preferred_experience_min_years,
            body.preferred_experience_max_years,
            profile,
        )
    except ValueError as exc:
        raise to_http_error(exc) from exc

    job = Job(
        title=body.title.strip(),
        description=body.description,
        requirements=body.requirements,
        company_name=body.company_name,
        location=body.location,
        employment_type=body.employment_type,
        is_remote=body.is_remote,
        status=body.status.value,
        mandatory_skill_requirements=_requirements_payload(body.mandatory_skill_requirements) or None,
        **experience,
    )
    if profile is not None:
        job.ai_job_profile = profile.model_dump()
        job.ai_job_profile_version = profile.version
        job.ai_job_profile_updated_at = datetime.utcnow()
        job.ai_summary = profile.summary or None
    db.add(job)
    await db.commit()
    await db.refresh(job)
    logger.info("Job created job_id=%s by=%s profile=%s", job.id, user.user_id, profile is not None)

    await _store_embedding(db, job)
    return job


@router.get("/jobs", response_model=JobListResponse, tags=["Jobs"])
async def list_jobs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    search: str | None = Query(default=None, description="Matches title, company or location"),
    status_filter: JobStatus | None = Query(default=None, alias="status"),
    user: UserContext = Depends(require_jobs),
    db: AsyncSession = Depends(get_db),
):
    conditions = []
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            or_(Job.title.ilike(pattern), Job.company_name.ilike(pattern), Job.location.ilike(pattern))
        )
    if status_filter is not None:
        conditions.append(Job.status == status_filter.value)

    total = (await db.execute(select(func.count(Job.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        select(Job)
        .where(*conditions)
        .order_by(Job.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return JobListResponse(items=list(result.scalars().all()), total=total, page=page, limit=limit)


@router.post("/jobs/generate-profile", response_model=JobProfile, tags=["Jobs"])
async def preview_job_profile(
    body: JobPostingInput,
    user: UserContext = Depends(require_jobs),
):
    """Preview the AI job profile for posting text that has not been saved yet."""
    try:
        profile = await generate_job_profile_preview(body)
    except SERVICE_ERRORS as exc:
        raise to_http_error(exc) from exc
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="AI is unavailable or the posting has no description or requirements",
        )
    return profile


@router.get("/jobs/{job_id}", response_model=JobResponse, tags=["Jobs"])
async def get_job(
    job_id: uuid.UUID,
    user: UserContext = Depends(require_jobs),
    db: AsyncSession = Depends(get_db),
):
    return await _get_job_or_404(db, job_id)


@router.patch("/jobs/{job_id}", response_model=JobResponse, tags=["Jobs"])
async def update_job(
    job_id: uuid.UUID,
    body: JobUpdate,
    user: UserContext = Depends(require_jobs),
    db: AsyncSession = Depends(get_db),
):
    job = await _get_job_or_404(db, job_id)
    fields = body.model_dump(exclude_unset=True)

    for name in ("title", "description", "requirements", "company_name", "location", "employment_type", "is_remote"):
        if name in fields and fields[name] is not None:
            setattr(job, name, fields[name])
    if body.status is not None:
        job.status = body.status.value
    if "mandatory_skill_requirements" in fields:
        job.mandatory_skill_requirements = _requirements_payload(body.mandatory_skill_requirements) or None

    if body.ai_job_profile is not None:
        profile = parse_job_profile(body.ai_job_profile)
        if profile is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid AI job profile")
        job.ai_job_profile = profile.model_dump()
        job.ai_job_profile_version = profile.version
        job.ai_job_profile_updated_at = datetime.utcnow()
        job.ai_summary = profile.summary or None

    experience_keys = {
        "required_experience_years",
        "preferred_experience",
        "preferred_experience_min_years",
        "preferred_experience_max_years",
    }
    if experience_keys & fields.keys():
        preferred_min, preferred_max = preferred_update_inputs(job, fields)
        try:
            experience = _experience_columns(
                fields.get("required_experience_years", job.required_experience_years),
                fields.get("preferred_experience"),
                preferred_min,
                preferred_max,
                parse_job_profile(job.ai_job_profile),
            )
        except ValueError as exc:
            raise to_http_error(exc) from exc
        for name, value in experience.items():
            setattr(job, name, value)

    await db.commit()
    await db.refresh(job)

    if body.regenerate_profile:
        await generate_and_store_job_profile(db, job)
        await db.refresh(job)

    await _store_embedding(db, job)
    return job


@router.delete("/jobs/{job_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Jobs"])
async def delete_job(
    job_id: uuid.UUID,
    user: UserContext = Depends(require_jobs),
    db: AsyncSession = Depends(get_db),
):
    """Delete a job with its applications and refresh runs."""
    job = await _get_job_or_404(db, job_id)
    await db.delete(job)
    await db.commit()
    logger.info("Job deleted job_id=%s by=%s", job_id, user.user_id)
    try:
        await vector_service.delete_document(job_id)
    except Exception:
        logger.warning("Could not delete embedding for job %s", job_id, exc_info=True)


# --- AI profile & scores ---


@router.post("/jobs/{job_id}/refresh-profile", response_model=JobResponse, tags=["Jobs"])
async def refresh_profile(
    job_id: uuid.UUID,
    user: UserContext = Depends(require_jobs),
    db: AsyncSession = Depends(get_db),
):
    """Regenerate and store the AI job profile from the current posting text."""
    job = await _get_job_or_404(db, job_id)
    profile = await generate_and_store_job_profile(db, job)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Job profile could not be generated",
        )
    await db.refresh(job)
    await _store_embedding(db, job)
    return job


@router.post(
    "/jobs/{job_id}/recalculate-scores",
    response_model=ScoreRefreshRunResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["Scores"],
)
async def recalculate_scores(
    job_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    user: UserContext = Depends(require_applications),
    db: AsyncSession = Depends(get_db),
):
    """Start recomputing every application's match score for this job. Poll with GET."""
    try:
        run = await start_score_refresh_run(db, job_id)
    except SERVICE_ERRORS as exc:
        raise to_http_error(exc) from exc
    background_tasks.add_task(process_score_recalc_run, run.id)
    return run


@router.get("/jobs/{job_id}/recalculate-scores", response_model=ScoreRefreshRunResponse, tags=["Scores"])
async def get_recalculation_status(
    job_id: uuid.UUID,
    run_id: uuid.UUID | None = Query(default=None),
    user: UserContext = Depends(require_applications),
    db: AsyncSession = Depends(get_db),
):
    run = await get_score_refresh_run(db, job_id, run_id)
    if run is None:
        raise not_found("Score refresh run")
    return run


@router.get("/jobs/{job_id}/candidates", response_model=list[SimilarResume], tags=["Jobs"])
async def semantic_candidates(
    job_id: uuid.UUID,
    k: int | None = Query(default=None, ge=1, le=100),
    min_score: float | None = Query(default=None, ge=0, le=1),
    user: UserContext = Depends(require_jobs),
    db: AsyncSession = Depends(get_db),
):
    """Resumes closest to the job description by embedding similarity."""
    await _get_job_or_404(db, job_id)
    try:
        matches = await vector_service.find_candidates_for_job(job_id, k=k, min_score=min_score)
    except SERVICE_ERRORS as exc:
        raise to_http_error(exc) from exc

    ids = [uuid.UUID(match.id) for match in matches]
    resumes: dict[uuid.UUID, Resume] = {}
    if ids:
        rows = await db.execute(select(Resume).where(Resume.id.in_(ids)))
        resumes = {resume.id: resume for resume in rows.scalars().all()}
    return [
        SimilarResume(
            resume_id=match_id,
            score=match.score,
            candidate_name=resumes[match_id].candidate_name,
            original_name=resumes[match_id].original_name,
        )
        for match_id, match in zip(ids, matches)
        if match_id in resumes
    ]


# --- Applications ---


@router.post(
    "/jobs/{job_id}/applications",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Applications"],
)
async def create_application(
    job_id: uuid.UUID,
    body: ApplicationCreate,
    user: UserContext = Depends(require_applications),
    db: AsyncSession = Depends(get_db),
):
    """Link a resume to a job. An already parsed resume is scored against the job right away."""
    job = await _get_job_or_404(db, job_id)
    resume = await db.get(Resume, body.resume_id)
    if resume is None:
        raise not_found("Resume")

    existing = await db.execute(
        select(JobApplication.id).where(
            JobApplication.job_id == job_id, JobApplication.resume_id == body.resume_id
        )
    )
    if existing.first() is not None:
        raise conflict("Resume is already linked to this job")

    application = JobApplication(
        job_id=job_id,
        resume_id=body.resume_id,
        status=body.status.value,
        notes=body.notes,
    )
    db.add(application)
    if score_application_from_resume(application, resume, job, parse_job_profile(job.ai_job_profile)):
        logger.info("Scored new application from stored parse job_id=%s resume_id=%s", job_id, resume.id)
    await db.commit()
    await db.refresh(application)
    return application


@router.get("/jobs/{job_id}/applications", response_model=ApplicationListResponse, tags=["Applications"])
async def list_applications(
    job_id: uuid.UUID,
    search: str | None = Query(default=None, description="Matches name, email or file name"),
    status_filter: ApplicationStatus | None = Query(default=None, alias="status"),
    min_match: int | None = Query(default=None, ge=0, le=100),
    max_fake: int | None = Query(default=None, ge=0, le=100),
    sort_field: ApplicationSortField = Query(default=ApplicationSortField.applied_date),
    sort_direction: SortDirection = Query(default=SortDirection.desc),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    user: UserContext = Depends(require_applications),
    db: AsyncSession = Depends(get_db),
):
    await _get_job_or_404(db, job_id)

    conditions = [JobApplication.job_id == job_id]
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            or_(
                Resume.candidate_name.ilike(pattern),
                Resume.email.ilike(pattern),
                Resume.original_name.ilike(pattern),
            )
        )
    if status_filter is not None:
        conditions.append(JobApplication.status == status_filter.value)
    if min_match is not None:
        conditions.append(JobApplication.match_score >= min_match)
    if max_fake is not None:
        conditions.append(Resume.fake_score <= max_fake)

    total = (
        await db.execute(
            select(func.count(JobApplication.id))
            .join(Resume, JobApplication.resume_id == Resume.id)
            .where(*conditions)
        )
    ).scalar_one()

    column = _SORT_COLUMNS[sort_field]
    order = column.asc() if sort_direction == SortDirection.asc else column.desc()
    result = await db.execute(
        select(JobApplication, Resume)
        .join(Resume, JobApplication.resume_id == Resume.id)
        .where(*conditions)
        .order_by(order.nulls_last(), JobApplication.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    items = [
        ApplicationListItem(
            **ApplicationResponse.model_validate(application).model_dump(),
            candidate_name=resume.candidate_name,
            email=resume.email,
            phone=resume.phone,
            skills=resume.skills,
            original_name=resume.original_name,
            fake_score=resume.fake_score,
            total_experience_years=resume.total_experience_years,
        )
        for application, resume in result.all()
    ]
    return ApplicationListResponse(items=items, total=total, page=page, page_size=page_size)


@router.delete("/jobs/{job_id}/applications", response_model=DeletedCount, tags=["Applications"])
async def delete_job_applications(
    job_id: uuid.UUID,
    user: UserContext = Depends(require_applications),
    db: AsyncSession = Depends(get_db),
):
    """Unlink every resume from this job. Resumes themselves are kept."""
    await _get_job_or_404(db, job_id)
    result = await db.execute(delete(JobApplication).where(JobApplication.job_id == job_id))
    await db.commit()
    logger.info("Applications deleted job_id=%s count=%d by=%s", job_id, result.rowcount, user.user_id)
    return DeletedCount(deleted=result.rowcount)
