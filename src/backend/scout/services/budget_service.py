"""Daily LLM token budget shared by all workers.

Usage lives in one Redis counter per UTC day, bumped with INCRBY so
concurrent requests never lose an update. Keys expire after two days.
"""

import logging
from datetime import datetime, timezone

import redis.asyncio as redis
from pydantic import BaseModel

from scout.core.config import settings
from scout.core.exceptions import OutOfBudgetError

logger = logging.getLogger(__name__)

KEY_TTL_SECONDS = 60 * 60 * 48

_redis_client: redis.Redis | None = None


class BudgetStatus(BaseModel):
    date: str
    tokens_used: int
    limit: int
    remaining: int


def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


def today_utc(now: datetime | None = None) -> str:
    return (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d")


def budget_key(day: str) -> str:
    return f"llm:tokens:{day}"


async def get_budget_status() -> BudgetStatus:
    day = today_utc()
    raw = await get_redis().get(budget_key(day))
    used = int(raw) if raw else 0
    limit = settings.daily_token_budget
    return BudgetStatus(date=day, tokens_used=used, limit=limit, remaining=max(0, limit - used))


async def ensure_budget(estimated_tokens: int = 0) -> None:
    """Raise OutOfBudgetError when today's usage plus the estimate exceeds the limit."""
    status = await get_budget_status()
    if status.tokens_used + estimated_tokens > status.limit:
        raise OutOfBudgetError(status.tokens_used, status.limit)


async def record_usage(tokens: int) -> int:
    if tokens <= 0:
        return 0
    key = budget_key(today_utc())
    pipe = get_redis().pipeline()
    pipe.incrby(key, tokens)
    pipe.expire(key, KEY_TTL_SECONDS)
    total, _ = await pipe.execute()
    logger.info("llm budget usage tokens=%d total_today=%s limit=%d", tokens, total, settings.daily_token_budget)
    return int(total)
