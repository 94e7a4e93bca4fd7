"""Tests for JSON-mode LLM calls with the model client and budget stubbed out."""

import asyncio
import json
from types import SimpleNamespace

import pytest

from scout.core.config import settings
from scout.core.exceptions import AIDisabledError, LLMResponseError, OutOfBudgetError
from scout.services import llm_service

ORIGINAL_ENSURE_BUDGET = llm_service.budget_service.ensure_budget


class FakeLLM:
    def __init__(self, content="", metadata=None, error: Exception | None = None):
        self.content = content
        self.metadata = metadata or {}
        self.error = error
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return SimpleNamespace(content=self.content, response_metadata=self.metadata)


@pytest.fixture
def recorded(monkeypatch):
    usage: list[int] = []

    async def ensure_budget(estimated_tokens=0):
        return None

    async def record_usage(tokens):
        usage.append(tokens)
        return tokens

    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    monkeypatch.setattr(settings, "ai_features_enabled", True)
    monkeypatch.setattr(llm_service.budget_service, "ensure_budget", ensure_budget)
    monkeypatch.setattr(llm_service.budget_service, "record_usage", record_usage)
    return usage


def _use_llm(monkeypatch, fake: FakeLLM):
    monkeypatch.setattr(llm_service, "get_llm", lambda model, temperature, max_tokens: fake)


def _invoke():
    return asyncio.run(
        llm_service.invoke_json("system", "user", model="gpt-4o-mini", temperature=0.1, purpose="test")
    )


class TestParseJsonContent:
    def test_code_fences_stripped(self):
        assert llm_service.parse_json_content('```json\n{"a": 1}\n```') == {"a": 1}

    def test_empty_response(self):
        with pytest.raises(LLMResponseError) as exc_info:
            llm_service.parse_json_content("   ")
        assert exc_info.value.kind == "empty"

    def test_invalid_json(self):
        with pytest.raises(LLMResponseError) as exc_info:
            llm_service.parse_json_content("{not json")
        assert exc_info.value.kind == "invalid_json"

    def test_array_is_not_an_object(self):
        with pytest.raises(LLMResponseError):
            llm_service.parse_json_content("[1, 2]")


def test_strip_code_fences_leaves_plain_text():
    assert llm_service.strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


class TestInvokeJson:
    def test_success_records_tokens(self, monkeypatch, recorded):
        fake = FakeLLM(
            json.dumps({"ok": True}),
            {"token_usage": {"total_tokens": 321}, "finish_reason": "stop"},
        )
        _use_llm(monkeypatch, fake)
        result = _invoke()
        assert result.data == {"ok": True}
        assert result.tokens_used == 321
        assert result.model == "gpt-4o-mini"
        assert recorded == [321]
        assert len(fake.calls) == 1

    def test_truncated_answer_still_counts_tokens(self, monkeypatch, recorded):
        _use_llm(monkeypatch, FakeLLM('{"partial": ', {"token_usage": {"total_tokens": 50}, "finish_reason": "length"}))
        with pytest.raises(LLMResponseError) as exc_info:
            _invoke()
        assert exc_info.value.kind == "truncated"
        assert recorded == [50]

    def test_client_error_becomes_api_error(self, monkeypatch, recorded):
        _use_llm(monkeypatch, FakeLLM(error=RuntimeError("rate limited")))
        with pytest.raises(LLMResponseError) as exc_info:
            _invoke()
        assert exc_info.value.kind == "api"
        assert "rate limited" in str(exc_info.value)
        assert recorded == []

    def test_disabled_without_key(self, monkeypatch, recorded):
        monkeypatch.setattr(settings, "openai_api_key", "")
        with pytest.raises(AIDisabledError):
            _invoke()

    def test_budget_checked_before_call(self, monkeypatch, recorded):
        fake = FakeLLM("{}")

        async def exhausted(estimated_tokens=0):
            raise OutOfBudgetError(1000, 1000)

        monkeypatch.setattr(llm_service.budget_service, "ensure_budget", exhausted)
        _use_llm(monkeypatch, fake)
        with pytest.raises(OutOfBudgetError):
            _invoke()
        assert fake.calls == []

    def test_estimate_counts_against_remaining_budget(self, monkeypatch, recorded):
        fake = FakeLLM("{}")

        async def status():
            return llm_service.budget_service.BudgetStatus(
                date="2024-01-01", tokens_used=700, limit=1000, remaining=300
            )

        monkeypatch.setattr(llm_service.budget_service, "get_budget_status", status)
        monkeypatch.setattr(llm_service.budget_service, "ensure_budget", ORIGINAL_ENSURE_BUDGET)
        _use_llm(monkeypatch, fake)
        with pytest.raises(OutOfBudgetError):
            _invoke()
        assert fake.calls == []


def test_estimate_tokens():
    assert llm_service.estimate_tokens("a" * 8, "b" * 5) == 504
    assert llm_service.estimate_tokens("") == 500
