"""Resume endpoints: text and file intake, CRUD, parsing and near-duplicate lookup."""

import logging
import uuid

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from scout.api.errors import SERVICE_ERRORS, conflict, not_found, to_http_error
from scout.core.auth import RESUMES_TABLE, UserContext, require_table
from scout.core.config import settings
from scout.core.database import get_db
from scout.models.orm import Job, JobApplication, Resume
from scout.models.schemas import (
    ParseMissingResponse,
    ParseSummary,
    ParsingStats,
    ResumeCreate,
    ResumeDetail,
    ResumeListResponse,
    ResumeResponse,
    ResumeUpdate,
    ResumeUploadResponse,
    SimilarResume,
)
from scout.scoring.skill_requirements import parse_manual_skill_assessments
from scout.services import embedding_service, vector_service
from scout.services.resume_parsing_service import (
    get_parsing_stats,
    parse_and_score_resume,
    parse_missing_resumes,
)
from scout.services.text_extraction_service import (
    ALLOWED_MIME_TYPES,
    TextExtractionError,
    extract_text,
    file_extension,
    infer_content_type,
    is_supported,
    safe_filename,
    sha256_hex,
)

logger = logging.getLogger(__name__)

router = APIRouter()

require_resumes = require_table(RESUMES_TABLE)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


async def _get_resume_or_404(db: AsyncSession, resume_id: uuid.UUID) -> Resume:
    resume = await db.get(Resume, resume_id)
    if resume is None:
        raise not_found("Resume")
    return resume


async def _ensure_unique_hash(db: AsyncSession, file_hash: str) -> None:
    existing = await db.execute(select(Resume.id).where(Resume.file_hash == file_hash))
    duplicate_id = existing.scalar_one_or_none()
    if duplicate_id is not None:
        raise conflict(f"Duplicate file: already stored as resume {duplicate_id}")


async def _link_and_parse(
    db: AsyncSession,
    resume: Resume,
    job_id: uuid.UUID | None,
    parse: bool,
) -> ResumeUploadResponse:
    """Optionally link the new resume to a job, then optionally parse it.

    Parse failures do not undo the upload; they come back in ``parse_error``.
    """
    application_id = None
    if job_id is not None:
        application = JobApplication(job_id=job_id, resume_id=resume.id)
        db.add(application)
        await db.commit()
        application_id = application.id

    summary = None
    parse_error = None
    if parse:
        try:
            summary = await parse_and_score_resume(db, resume.id, job_id=job_id, force=True)
        except SERVICE_ERRORS as exc:
            logger.warning("Parse after upload failed for resume %s: %s", resume.id, exc)
            parse_error = str(exc)
        await db.refresh(resume)

    return ResumeUploadResponse(
        resume=ResumeResponse.model_validate(resume),
        application_id=application_id,
        parse=summary,
        parse_error=parse_error,
    )


async def _store_embedding(db: AsyncSession, resume: Resume) -> None:
    embedding_id = await embedding_service.try_embed_resume(resume)
    if embedding_id and embedding_id != resume.embedding_id:
        resume.embedding_id = embedding_id
        await db.commit()


# --- Intake ---


@router.post("/resumes", response_model=ResumeUploadResponse, status_code=status.HTTP_201_CREATED, tags=["Resumes"])
async def create_resume(
    body: ResumeCreate,
    user: UserContext = Depends(require_resumes),
    db: AsyncSession = Depends(get_db),
):
    """Create a resume from pasted text, optionally linked to a job and parsed."""
    if body.job_id is not None and await db.get(Job, body.job_id) is None:
        raise not_found("Job")

    data = body.raw_text.encode("utf-8")
    file_hash = sha256_hex(data)
    await _ensure_unique_hash(db, file_hash)

    resume = Resume(
        original_name=body.original_name,
        file_name=safe_filename(body.original_name) or "pasted-resume.txt",
        mime_type="text/plain",
        file_size=len(data),
        file_hash=file_hash,
        source_type="text",
        uploaded_by=user.user_id,
        raw_text=body.raw_text,
        candidate_name=body.candidate_name,
        email=body.email,
    )
    db.add(resume)
    await db.commit()
    await db.refresh(resume)
    logger.info("Resume created resume_id=%s source=text chars=%d", resume.id, len(body.raw_text))

    await _store_embedding(db, resume)
    return await _link_and_parse(db, resume, body.job_id, body.parse)


@router.post(
    "/resumes/upload",
    response_model=ResumeUploadResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Resumes"],
)
async def upload_resume(
    file: UploadFile = File(..., description="PDF, DOCX or DOC resume file"),
    job_id: uuid.UUID | None = Form(default=None, description="Job to link the resume to"),
    candidate_name: str | None = Form(default=None, examples=["Jane Smith"]),
    email: str | None = Form(default=None, examples=["jane@example.com"]),
    parse: bool | None = Form(default=None, description="Parse right away (defaults to the parse-on-import setting)"),
    user: UserContext = Depends(require_resumes),
    db: AsyncSession = Depends(get_db),
):
    """Upload a resume file. Text is extracted, the file hash must be new."""
    filename = file.filename or ""
    mime = file.content_type if file.content_type in ALLOWED_MIME_TYPES else None
    if not is_supported(filename, mime):
        raise HTTPException(status_code=400, detail="Only PDF, DOC and DOCX files are accepted")
    if job_id is not None and await db.get(Job, job_id) is None:
        raise not_found("Job")

    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File is larger than 10 MB")

    file_hash = sha256_hex(data)
    await _ensure_unique_hash(db, file_hash)

    try:
        raw_text = extract_text(data, filename)
    except TextExtractionError as exc:
        logger.warning("Text extraction failed for %s: %s", filename, exc.code)
        raise HTTPException(status_code=400, detail=f"Could not extract text: {exc.code}") from exc

    resume = Resume(
        original_name=filename,
        file_name=f"{uuid.uuid4().hex}.{file_extension(filename)}",
        mime_type=mime or infer_content_type(filename),
        file_size=len(data),
        file_hash=file_hash,
        source_type="upload",
        uploaded_by=user.user_id,
        raw_text=raw_text,
        candidate_name=candidate_name,
        email=email,
    )
    db.add(resume)
    await db.commit()
    await db.refresh(resume)
    logger.info("Resume uploaded resume_id=%s file=%s bytes=%d", resume.id, filename, len(data))

    await _store_embedding(db, resume)
    should_parse = settings.parse_on_import if parse is None else parse
    return await _link_and_parse(db, resume, job_id, should_parse)


# --- Listing & batch ---


@router.get("/resumes", response_model=ResumeListResponse, tags=["Resumes"])
async def list_resumes(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    search: str | None = Query(default=None, description="Matches name, email, skills or file name"),
    parsed: bool | None = Query(default=None),
    user: UserContext = Depends(require_resumes),
    db: AsyncSession = Depends(get_db),
):
    conditions = []
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            or_(
                Resume.candidate_name.ilike(pattern),
                Resume.email.ilike(pattern),
                Resume.skills.ilike(pattern),
                Resume.original_name.ilike(pattern),
            )
        )
    if parsed is not None:
        conditions.append(Resume.parsed_at.is_not(None) if parsed else Resume.parsed_at.is_(None))

    total = (await db.execute(select(func.count(Resume.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        select(Resume)
        .where(*conditions)
        .order_by(Resume.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return ResumeListResponse(items=list(result.scalars().all()), total=total, page=page, limit=limit)


@router.get("/resumes/stats", response_model=ParsingStats, tags=["Parsing"])
async def parsing_stats(
    user: UserContext = Depends(require_resumes),
    db: AsyncSession = Depends(get_db),
):
    return await get_parsing_stats(db)


@router.post("/resumes/parse-missing", response_model=ParseMissingResponse, tags=["Parsing"])
async def parse_missing(
    limit: int = Query(default=10, ge=1, le=50),
    user: UserContext = Depends(require_resumes),
    db: AsyncSession = Depends(get_db),
):
    """Parse never-parsed resumes, oldest first. Stops early when the daily budget runs out."""
    return await parse_missing_resumes(db, limit)


# --- Single resume ---


@router.get("/resumes/{resume_id}", response_model=ResumeDetail, tags=["Resumes"])
async def get_resume(
    resume_id: uuid.UUID,
    user: UserContext = Depends(require_resumes),
    db: AsyncSession = Depends(get_db),
):
    return await _get_resume_or_404(db, resume_id)


@router.patch("/resumes/{resume_id}", response_model=ResumeDetail, tags=["Resumes"])
async def update_resume(
    resume_id: uuid.UUID,
    body: ResumeUpdate,
    user: UserContext = Depends(require_resumes),
    db: AsyncSession = Depends(get_db),
):
    """Edit contact fields, the text, or the recruiter's manual skill assessments."""
    resume = await _get_resume_or_404(db, resume_id)
    fields = body.model_dump(exclude_unset=True)

    for name in ("candidate_name", "email", "phone"):
        if name in fields:
            setattr(resume, name, fields[name])
    if "manual_skill_assessments" in fields:
        assessments = parse_manual_skill_assessments(body.manual_skill_assessments)
        resume.manual_skill_assessments = [item.model_dump() for item in assessments] or None

    text_changed = body.raw_text is not None and body.raw_text != resume.raw_text
    if text_changed:
        resume.raw_text = body.raw_text

    await db.commit()
    await db.refresh(resume)
    if text_changed:
        await _store_embedding(db, resume)
    return resume


@router.delete("/resumes/{resume_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Resumes"])
async def delete_resume(
    resume_id: uuid.UUID,
    user: UserContext = Depends(require_resumes),
    db: AsyncSession = Depends(get_db),
):
    resume = await _get_resume_or_404(db, resume_id)
    await db.delete(resume)
    await db.commit()
    logger.info("Resume deleted resume_id=%s by=%s", resume_id, user.user_id)
    try:
        await vector_service.delete_document(resume_id)
    except Exception:
        logger.warning("Could not delete embedding for resume %s", resume_id, exc_info=True)


@router.post("/resumes/{resume_id}/parse", response_model=ParseSummary, tags=["Parsing"])
async def parse_resume(
    resume_id: uuid.UUID,
    job_id: uuid.UUID | None = Query(default=None, description="Job whose profile guides the parse"),
    force: bool = Query(default=False, description="Parse even if nothing changed"),
    user: UserContext = Depends(require_resumes),
    db: AsyncSession = Depends(get_db),
):
    """Parse the resume with the LLM and score it against its jobs."""
    try:
        return await parse_and_score_resume(db, resume_id, job_id=job_id, force=force)
    except SERVICE_ERRORS as exc:
        raise to_http_error(exc) from exc


@router.get("/resumes/{resume_id}/duplicates", response_model=list[SimilarResume], tags=["Resumes"])
async def resume_duplicates(
    resume_id: uuid.UUID,
    threshold: float | None = Query(default=None, ge=0, le=1),
    limit: int = Query(default=10, ge=1, le=50),
    user: UserContext = Depends(require_resumes),
    db: AsyncSession = Depends(get_db),
):
    """Other resumes whose embeddings are near-identical to this one."""
    await _get_resume_or_404(db, resume_id)
    try:
        matches = await vector_service.find_near_duplicate_resumes(resume_id, threshold=threshold, limit=limit)
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
