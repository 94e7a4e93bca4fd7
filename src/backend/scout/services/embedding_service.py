"""Whole-document embeddings for jobs and resumes.

Flow:
  1. Normalise the text (strip control characters, collapse whitespace, cap length)
  2. Skip the call when the stored point already has the same content hash
  3. Embed with OpenAI and upsert into Qdrant
"""

import hashlib
import logging
import re

from langchain_openai import OpenAIEmbeddings

from scout.core.config import settings
from scout.models.orm import Job, Resume
from scout.services import vector_service

logger = logging.getLogger(__name__)

MAX_EMBED_CHARS = 8_000
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_WHITESPACE = re.compile(r"\s+")

_embeddings_model: OpenAIEmbeddings | None = None


def get_embeddings_model() -> OpenAIEmbeddings:
    """Get or create the OpenAI embeddings model."""
    global _embeddings_model
    if _embeddings_model is None:
        _embeddings_model = OpenAIEmbeddings(
            model=settings.embedding_model,
            api_key=settings.openai_api_key,
        )
    return _embeddings_model


def normalize_for_embedding(text: str | None, limit: int = MAX_EMBED_CHARS) -> str:
    if not text:
        return ""
    normalized = _WHITESPACE.sub(" ", _CONTROL_CHARS.sub("", text)).strip()
    if len(normalized) > limit:
        normalized = normalized[:limit]
        # cut at a word boundary when one is close to the end
        last_space = normalized.rfind(" ")
        if last_space > limit * 0.8:
            normalized = normalized[:last_space]
    return normalized


def content_hash(normalized_text: str) -> str:
    return hashlib.sha256(normalized_text.encode("utf-8")).hexdigest()


def job_embedding_text(job: Job) -> str:
    profile_summary = (job.ai_job_profile or {}).get("summary") or ""
    parts = [job.title, job.company_name, job.description, job.requirements, profile_summary]
    return "\n".join(part for part in parts if part)


async def embed_query(text: str) -> list[float]:
    model = get_embeddings_model()
    return await model.aembed_query(text)


async def _embed_document(doc_id, doc_type: str, text: str) -> str | None:
    normalized = normalize_for_embedding(text)
    if not normalized:
        logger.info("Nothing to embed for %s %s", doc_type, doc_id)
        return None

    digest = content_hash(normalized)
    await vector_service.ensure_collection()
    existing = await vector_service.get_point(doc_id)
    if existing is not None and existing.payload.get("content_hash") == digest:
        logger.info("Embedding unchanged for %s %s", doc_type, doc_id)
        return str(doc_id)

    vector = await embed_query(normalized)
    point_id = await vector_service.upsert_document(doc_id, doc_type, vector, digest)
    logger.info("Stored embedding for %s %s (%d chars)", doc_type, doc_id, len(normalized))
    return point_id


async def embed_and_store_resume(resume: Resume) -> str | None:
    return await _embed_document(resume.id, vector_service.RESUME_TYPE, resume.raw_text or "")


async def embed_and_store_job(job: Job) -> str | None:
    return await _embed_document(job.id, vector_service.JOB_TYPE, job_embedding_text(job))


async def try_embed_resume(resume: Resume) -> str | None:
    """Best-effort variant used on create/update: failures are logged, not raised."""
    if not settings.ai_configured:
        return None
    try:
        return await embed_and_store_resume(resume)
    except Exception:
        logger.warning("Embedding failed for resume %s", resume.id, exc_info=True)
        return None


async def try_embed_job(job: Job) -> str | None:
    if not settings.ai_configured:
        return None
    try:
        return await embed_and_store_job(job)
    except Exception:
        logger.warning("Embedding failed for job %s", job.id, exc_info=True)
        return None
