"""Application endpoints that address one application directly."""

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from scout.api.errors import not_found
from scout.core.auth import APPLICATIONS_TABLE, UserContext, require_table
from scout.core.database import get_db
from scout.models.orm import JobApplication
from scout.models.schemas import ApplicationResponse, ApplicationUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

require_applications = require_table(APPLICATIONS_TABLE)


async def _get_application_or_404(db: AsyncSession, application_id: uuid.UUID) -> JobApplication:
    application = await db.get(JobApplication, application_id)
    if application is None:
        raise not_found("Application")
    return application


@router.patch("/applications/{application_id}", response_model=ApplicationResponse, tags=["Applications"])
async def update_application(
    application_id: uuid.UUID,
    body: ApplicationUpdate,
    user: UserContext = Depends(require_applications),
    db: AsyncSession = Depends(get_db),
):
    """Move an application through the pipeline or edit its notes."""
    application = await _get_application_or_404(db, application_id)
    if body.status is not None:
        application.status = body.status.value
    if "notes" in body.model_fields_set:
        application.notes = body.notes
    await db.commit()
    await db.refresh(application)
    logger.info("Application updated id=%s status=%s by=%s", application.id, application.status, user.user_id)
    return application


@router.delete("/applications/{application_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Applications"])
async def delete_application(
    application_id: uuid.UUID,
    user: UserContext = Depends(require_applications),
    db: AsyncSession = Depends(get_db),
):
    application = await _get_application_or_404(db, application_id)
    await db.delete(application)
    await db.commit()
