"""Vector DB (Qdrant) integration for semantic resume and job similarity.

One collection holds whole-document vectors for both jobs and resumes. Each
point uses the row's UUID as its id and carries a ``type`` payload
("job" or "resume") plus the hash of the text it was built from.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    HasIdCondition,
    MatchValue,
    PointStruct,
    VectorParams,
)

from scout.core.config import settings
from scout.core.exceptions import NotFoundError

logger = logging.getLogger(__name__)

COLLECTION_NAME = "scout_documents"
VECTOR_DIM = 1536  # text-embedding-3-small dimension
JOB_TYPE = "job"
RESUME_TYPE = "resume"

_qdrant_client: AsyncQdrantClient | None = None


@dataclass
class StoredPoint:
    vector: list[float]
    payload: dict


@dataclass
class SimilarDocument:
    id: str
    score: float


def get_qdrant_client() -> AsyncQdrantClient:
    global _qdrant_client
    if _qdrant_client is None:
        _qdrant_client = AsyncQdrantClient(url=settings.qdrant_url)
    return _qdrant_client


async def ensure_collection() -> None:
    """Create the documents collection if it doesn't exist."""
    client = get_qdrant_client()
    collections = await client.get_collections()
    names = [c.name for c in collections.collections]
    if COLLECTION_NAME not in names:
        await client.create_collection(
            collection_name=COLLECTION_NAME,
            vectors_config=VectorParams(size=VECTOR_DIM, distance=Distance.COSINE),
        )
        logger.info("Created Qdrant collection: %s", COLLECTION_NAME)


async def upsert_document(
    doc_id: UUID,
    doc_type: str,
    embedding: list[float],
    content_hash: str,
) -> str:
    client = get_qdrant_client()
    await client.upsert(
        collection_name=COLLECTION_NAME,
        points=[
            PointStruct(
                id=str(doc_id),
                vector=embedding,
                payload={"type": doc_type, "doc_id": str(doc_id), "content_hash": content_hash},
            )
        ],
    )
    return str(doc_id)


async def get_point(doc_id: UUID | str) -> StoredPoint | None:
    client = get_qdrant_client()
    points = await client.retrieve(
        collection_name=COLLECTION_NAME,
        ids=[str(doc_id)],
        with_vectors=True,
        with_payload=True,
    )
    if not points:
        return None
    return StoredPoint(vector=points[0].vector, payload=points[0].payload or {})


async def delete_document(doc_id: UUID | str) -> None:
    client = get_qdrant_client()
    await client.delete(collection_name=COLLECTION_NAME, points_selector=[str(doc_id)])


async def search_similar(
    embedding: list[float],
    doc_type: str,
    limit: int,
    score_threshold: float | None = None,
    exclude_id: UUID | str | None = None,
) -> list[SimilarDocument]:
    """Nearest documents of one type by cosine similarity, best first."""
    client = get_qdrant_client()
    must_not = [HasIdCondition(has_id=[str(exclude_id)])] if exclude_id else None
    results = await client.query_points(
        collection_name=COLLECTION_NAME,
        query=embedding,
        query_filter=Filter(
            must=[FieldCondition(key="type", match=MatchValue(value=doc_type))],
            must_not=must_not,
        ),
        limit=limit,
        score_threshold=score_threshold,
    )
    return [SimilarDocument(id=str(point.id), score=float(point.score)) for point in results.points]


async def find_near_duplicate_resumes(
    resume_id: UUID,
    threshold: float | None = None,
    limit: int = 10,
) -> list[SimilarDocument]:
    """Other resumes whose vectors score at or above ``threshold`` against this one."""
    threshold = settings.semantic_dup_threshold if threshold is None else threshold
    await ensure_collection()
    stored = await get_point(resume_id)
    if stored is None:
        raise NotFoundError(f"No embedding stored for resume {resume_id}")
    matches = await search_similar(
        stored.vector, RESUME_TYPE, limit=limit, score_threshold=threshold, exclude_id=resume_id
    )
    return [match for match in matches if match.score >= threshold]


async def find_candidates_for_job(
    job_id: UUID,
    k: int | None = None,
    min_score: float | None = None,
) -> list[SimilarDocument]:
    """Top-k resumes by similarity to the job's vector."""
    await ensure_collection()
    stored = await get_point(job_id)
    if stored is None:
        raise NotFoundError(f"No embedding stored for job {job_id}")
    return await search_similar(
        stored.vector, RESUME_TYPE, limit=k or settings.semantic_top_k, score_threshold=min_score
    )
