"""Top-level API router. Every endpoint checks table permissions."""

from fastapi import APIRouter, Depends

from scout.api import applications, jobs, resumes
from scout.core.auth import UserContext, get_current_user
from scout.services.budget_service import BudgetStatus, get_budget_status

router = APIRouter()
router.include_router(jobs.router)
router.include_router(resumes.router)
router.include_router(applications.router)


@router.get("/ai/budget", response_model=BudgetStatus, tags=["AI"])
async def ai_budget(user: UserContext = Depends(get_current_user)):
    """Tokens spent on LLM calls today (UTC) against the daily budget."""
    return await get_budget_status()
