"""LLM integration via LangChain + OpenAI with a shared daily token budget."""

import asyncio
import json
import logging
import math
import time
from dataclasses import dataclass

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from scout.core.config import settings
from scout.core.exceptions import AIDisabledError, LLMResponseError
from scout.services import budget_service

logger = logging.getLogger(__name__)

SLOW_CALL_SECONDS = 12.0
CHARS_PER_TOKEN = 4
RESPONSE_TOKEN_RESERVE = 500


@dataclass
class LLMResult:
    data: dict
    model: str
    tokens_used: int
    finish_reason: str | None
    duration_seconds: float


def get_llm(model: str, temperature: float, max_tokens: int) -> ChatOpenAI:
    """ChatOpenAI in JSON mode (stateless, no need to cache)."""
    llm = ChatOpenAI(
        model=model,
        api_key=settings.openai_api_key,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    return llm.bind(response_format={"type": "json_object"})


def strip_code_fences(raw_text: str) -> str:
    """Drop a ```json ... ``` wrapper if the model added one."""
    text = raw_text.strip()
    if text.startswith("```"):
        lines = text.split("\n")[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    return text.strip()


def estimate_tokens(*prompts: str) -> int:
    """Rough pre-call cost: about four characters per token plus room for the answer."""
    return math.ceil(sum(len(prompt) for prompt in prompts) / CHARS_PER_TOKEN) + RESPONSE_TOKEN_RESERVE


def parse_json_content(raw_text: str) -> dict:
    text = strip_code_fences(raw_text or "")
    if not text:
        raise LLMResponseError("empty", "No response from the language model")
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.error("LLM returned invalid JSON: %s", text[:500])
        raise LLMResponseError("invalid_json", "Invalid JSON response from the language model") from exc
    if not isinstance(parsed, dict):
        raise LLMResponseError("invalid_json", "Language model response is not a JSON object")
    return parsed


async def invoke_json(
    system_prompt: str,
    user_prompt: str,
    *,
    model: str,
    temperature: float,
    max_tokens: int = 1500,
    timeout: float | None = None,
    purpose: str = "completion",
) -> LLMResult:
    """Run one JSON-mode completion.

    Checks the daily budget first and records the tokens spent afterwards,
    including on truncated answers. Raises AIDisabledError, OutOfBudgetError
    or LLMResponseError.
    """
    if not settings.ai_configured:
        raise AIDisabledError()

    await budget_service.ensure_budget(estimate_tokens(system_prompt, user_prompt))

    timeout = timeout or settings.openai_timeout_seconds
    messages = [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]
    logger.info(
        "openai request start purpose=%s model=%s temperature=%s timeout=%ss prompt_chars=%d",
        purpose, model, temperature, timeout, len(user_prompt),
    )

    started = time.monotonic()
    try:
        response = await asyncio.wait_for(
            get_llm(model, temperature, max_tokens).ainvoke(messages), timeout=timeout
        )
    except asyncio.TimeoutError as exc:
        logger.error("openai api error purpose=%s error=timeout timeout=%ss", purpose, timeout)
        raise LLMResponseError("timeout", f"OpenAI timeout after {timeout:g}s") from exc
    except Exception as exc:
        logger.error("openai api error purpose=%s error=%s", purpose, exc)
        raise LLMResponseError("api", str(exc) or "Unknown OpenAI API error") from exc
    duration = time.monotonic() - started

    metadata = response.response_metadata or {}
    usage = metadata.get("token_usage") or {}
    tokens_used = int(usage.get("total_tokens") or 0)
    finish_reason = metadata.get("finish_reason")
    await budget_service.record_usage(tokens_used)

    logger.info(
        "openai call complete purpose=%s model=%s duration=%.2fs tokens=%d finish_reason=%s",
        purpose, model, duration, tokens_used, finish_reason,
    )
    if duration > SLOW_CALL_SECONDS:
        logger.warning("openai call slow purpose=%s model=%s duration=%.2fs", purpose, model, duration)

    if finish_reason == "length":
        logger.warning("openai response truncated purpose=%s model=%s tokens=%d", purpose, model, tokens_used)
        raise LLMResponseError(
            "truncated", "OpenAI response was truncated due to length limit"
        )

    content = response.content if isinstance(response.content, str) else ""
    data = parse_json_content(content)
    return LLMResult(
        data=data,
        model=model,
        tokens_used=tokens_used,
        finish_reason=finish_reason,
        duration_seconds=duration,
    )
