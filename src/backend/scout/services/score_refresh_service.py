"""Background recalculation of every match score for one job.

Flow:
  1. ``start_score_refresh_run`` validates the job and records a pending run
  2. The API schedules ``process_score_recalc_run`` as a background task
  3. Each application is rescored from its stored analysis snapshot against
     the job's current profile, mandatory skills and experience range; one
     without a snapshot is scored from its resume's stored parse
  4. Progress counters are committed every few candidates so clients can poll
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from scout.core.database import open_session
from scout.core.exceptions import NotFoundError
from scout.models.orm import Job, JobApplication, JobScoreRecalcRun
from scout.models.parsing import JobProfile, ProfileAnalysis
from scout.models.schemas import RunStatus
from scout.scoring.match_score import compute_profile_match_score
from scout.scoring.skill_requirements import (
    SkillRequirement,
    SkillRequirementEvaluationSummary,
    parse_skill_evaluation_record,
    summary_from_analysis,
)
from scout.scoring.skills import canonicalize_skill
from scout.services.job_profile_service import parse_job_profile
from scout.services.resume_parsing_service import (
    candidate_years_from_snapshot,
    experience_requirements_for,
    mandatory_requirements_for,
    score_application_from_resume,
)

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (RunStatus.pending.value, RunStatus.running.value)
PROGRESS_EVERY = 3
ALREADY_RUNNING_MESSAGE = "A score refresh is already running for this job."
NO_APPLICATIONS_MESSAGE = "No applications found for this job."
MISSING_PROFILE_MESSAGE = "AI job profile is missing. Generate one before recalculating scores."


async def start_score_refresh_run(db: AsyncSession, job_id: UUID) -> JobScoreRecalcRun:
    """Create a pending run. Raises NotFoundError or ValueError."""
    job = await db.get(Job, job_id)
    if job is None:
        raise NotFoundError(f"Job {job_id} not found")

    active = await db.execute(
        select(JobScoreRecalcRun.id).where(
            JobScoreRecalcRun.job_id == job_id,
            JobScoreRecalcRun.status.in_(ACTIVE_STATUSES),
        )
    )
    if active.first() is not None:
        raise ValueError(ALREADY_RUNNING_MESSAGE)

    count = await db.execute(select(func.count(JobApplication.id)).where(JobApplication.job_id == job_id))
    total = int(count.scalar_one())
    if total == 0:
        raise ValueError(NO_APPLICATIONS_MESSAGE)

    run = JobScoreRecalcRun(
        job_id=job_id,
        status=RunStatus.pending.value,
        total_candidates=total,
        message="Preparing to recalculate scores...",
    )
    db.add(run)
    await db.commit()
    await db.refresh(run)
    logger.info("Score refresh queued run_id=%s job_id=%s candidates=%d", run.id, job_id, total)
    return run


async def get_score_refresh_run(
    db: AsyncSession, job_id: UUID, run_id: UUID | None = None
) -> JobScoreRecalcRun | None:
    """A specific run, or the job's most recent one."""
    query = select(JobScoreRecalcRun).where(JobScoreRecalcRun.job_id == job_id)
    if run_id is not None:
        query = query.where(JobScoreRecalcRun.id == run_id)
    else:
        query = query.order_by(JobScoreRecalcRun.created_at.desc()).limit(1)
    result = await db.execute(query)
    return result.scalar_one_or_none()


def _requirement_keys(requirements: list[SkillRequirement]) -> set[str]:
    return {canonicalize_skill(req.skill) for req in requirements}


def evaluation_for_refresh(
    stored: object,
    requirements: list[SkillRequirement],
    analysis: ProfileAnalysis | None,
) -> SkillRequirementEvaluationSummary | None:
    """Reuse the stored evaluation while it covers exactly the current requirements."""
    if not requirements:
        return None
    record = parse_skill_evaluation_record(stored)
    if record is not None and record.evaluations:
        stored_keys = {canonicalize_skill(item.skill) for item in record.evaluations}
        if stored_keys == _requirement_keys(requirements):
            return record
    return summary_from_analysis(requirements, analysis)


def rescore_application(job: Job, profile: JobProfile, application: JobApplication) -> bool:
    """Recompute one application's score in place.

    Applications without a snapshot of their own are scored from the
    resume's stored parse. False when neither exists.
    """
    snapshot = application.ai_extract
    raw_analysis = snapshot.get("analysis") if isinstance(snapshot, dict) else None
    if not isinstance(raw_analysis, dict):
        return score_application_from_resume(application, application.resume, job, profile)

    analysis = ProfileAnalysis.model_validate(raw_analysis)
    requirements = mandatory_requirements_for(job, profile)
    evaluation = evaluation_for_refresh(application.skill_requirement_evaluation, requirements, analysis)
    resume_years = application.resume.total_experience_years if application.resume else None
    details = compute_profile_match_score(
        profile,
        analysis,
        evaluation,
        candidate_experience_years=candidate_years_from_snapshot(snapshot, resume_years),
        experience_requirements=experience_requirements_for(job, profile),
    )
    application.match_score = details.final_score
    application.match_score_details = details.model_dump(mode="json")
    application.skill_requirement_evaluation = evaluation.model_dump(mode="json") if evaluation else None
    return True


async def _finish(db: AsyncSession, run: JobScoreRecalcRun, status: RunStatus, message: str, error: str | None = None):
    run.status = status.value
    run.message = message
    run.error = error
    run.finished_at = datetime.utcnow()
    await db.commit()


async def process_score_recalc_run(run_id: UUID) -> None:
    """Background task body. Opens its own session; never raises."""
    async with open_session() as db:
        run = await db.get(JobScoreRecalcRun, run_id)
        if run is None:
            logger.warning("Score refresh run %s not found", run_id)
            return
        if run.status not in ACTIVE_STATUSES:
            logger.info("Score refresh run %s already %s, skipping", run_id, run.status)
            return

        run.status = RunStatus.running.value
        run.started_at = datetime.utcnow()
        await db.commit()

        try:
            job = await db.get(Job, run.job_id)
            if job is None:
                await _finish(db, run, RunStatus.failed, "Job not found.", "job_missing")
                return

            profile = parse_job_profile(job.ai_job_profile)
            if profile is None:
                await _finish(db, run, RunStatus.failed, MISSING_PROFILE_MESSAGE, "profile_missing")
                return

            result = await db.execute(
                select(JobApplication)
                .where(JobApplication.job_id == job.id)
                .options(selectinload(JobApplication.resume))
                .order_by(JobApplication.applied_date.asc())
            )
            applications = list(result.scalars().all())
            run.total_candidates = len(applications)
            run.processed_candidates = 0
            run.success_count = 0
            run.failure_count = 0

            for index, application in enumerate(applications, start=1):
                try:
                    if rescore_application(job, profile, application):
                        run.success_count += 1
                    else:
                        run.failure_count += 1
                except Exception:
                    logger.exception("Rescoring application %s failed", application.id)
                    run.failure_count += 1
                run.processed_candidates = index
                if index % PROGRESS_EVERY == 0 or index == len(applications):
                    run.message = f"Processing candidates ({index}/{len(applications)})"
                    await db.commit()

            await _finish(db, run, RunStatus.completed, f"Recalculated {run.success_count} candidate(s).")
            logger.info(
                "Score refresh completed run_id=%s job_id=%s success=%d failed=%d",
                run.id, job.id, run.success_count, run.failure_count,
            )
        except Exception as exc:
            logger.error("Score refresh run %s failed", run_id, exc_info=True)
            await db.rollback()
            run = await db.get(JobScoreRecalcRun, run_id)
            if run is not None:
                await _finish(db, run, RunStatus.failed, "Score recalculation failed.", str(exc))
