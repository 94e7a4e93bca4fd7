"""FastAPI application entry point."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scout.api.routes import router
from scout.core.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Scout - AI-assisted Applicant Tracking",
    description="""
Applicant tracking for recruiting teams. Post jobs, upload resumes, and let the
LLM parse candidates while a deterministic formula scores them against each job.

## How It Works
1. **Create a job** -- the posting is turned into an AI job profile (skills, titles, experience)
2. **Upload a resume** (PDF/DOCX) or paste its text, optionally linked to a job
3. **Parse** -- the LLM extracts candidate data; phrase matching and mandatory skills drive the match score
4. **Review applications** -- filter and sort by match, fake and company scores

## Features
- **Job Profiles**: Structured hiring criteria extracted from posting text
- **Resume Parsing**: Strict JSON output validated before anything is stored
- **Match Scoring**: Weighted profile dimensions, mandatory skills, experience fit, disqualifier penalty
- **Score Refresh**: Recalculate every candidate of a job in the background after the job changes
- **Semantic Search**: Qdrant embeddings for near-duplicate resumes and candidate discovery
- **Budget Guard**: Daily LLM token budget shared through Redis

## Authentication
Bearer JWT with table permissions. Without a token the demo admin is used.
""",
    version="1.0.0",
    openapi_tags=[
        {"name": "Jobs", "description": "Create and manage job postings and their AI profiles"},
        {"name": "Resumes", "description": "Upload, list and edit candidate resumes"},
        {"name": "Parsing", "description": "LLM resume parsing and batch status"},
        {"name": "Applications", "description": "Resumes linked to jobs, with their match scores"},
        {"name": "Scores", "description": "Background match score recalculation"},
        {"name": "AI", "description": "LLM budget status"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1")


@app.get("/health", tags=["System"])
async def health():
    """Health check endpoint used by Docker."""
    return {"status": "ok"}
