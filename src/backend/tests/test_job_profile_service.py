"""Tests for stored job profile handling and the job context given to the parser."""

import asyncio
import json
from types import SimpleNamespace

import pytest

from scout.core.config import settings
from scout.core.exceptions import SchemaError
from scout.models.parsing import JobProfile
from scout.models.schemas import JobPostingInput
from scout.services import job_profile_service
from scout.services.job_profile_service import (
    EXCERPT_LIMIT,
    SHORT_SUMMARY_LIMIT,
    build_job_context,
    parse_job_profile,
    sanitize_profile,
)
from scout.services.llm_service import LLMResult


def _job(**overrides):
    fields = {
        "id": "job-1",
        "title": "Backend Engineer",
        "description": "Build Python services.",
        "requirements": None,
        "company_name": None,
        "employment_type": None,
        "location": None,
        "ai_job_profile": None,
        "ai_summary": None,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestSanitizeProfile:
    def test_lists_deduped_and_capped(self):
        profile = JobProfile(
            version="v0",
            must_have_skills=["Python", "python", "SQL"],
            tools_and_tech=[f"tool-{i}" for i in range(15)],
        )
        cleaned = sanitize_profile(profile)
        assert cleaned.version == "v1"
        assert cleaned.must_have_skills == ["Python", "SQL"]
        assert len(cleaned.tools_and_tech) == 12

    def test_original_untouched(self):
        profile = JobProfile(must_have_skills=["Go", "go"])
        sanitize_profile(profile)
        assert profile.must_have_skills == ["Go", "go"]


class TestParseJobProfile:
    def test_from_json_text(self):
        profile = parse_job_profile(json.dumps({"mustHaveSkills": ["Python"], "summary": "Backend"}))
        assert profile.must_have_skills == ["Python"]
        assert profile.summary == "Backend"

    def test_from_snake_case_dict(self):
        profile = parse_job_profile({"nice_to_have_skills": ["Kafka"]})
        assert profile.nice_to_have_skills == ["Kafka"]

    @pytest.mark.parametrize("value", [None, "", "{broken", "[1, 2]", 42])
    def test_unreadable_values(self, value):
        assert parse_job_profile(value) is None


class TestJobContext:
    def test_profile_summary_preferred(self):
        job = _job(ai_job_profile={"summary": "Profile summary"}, ai_summary="Stored summary")
        context = build_job_context(job)
        assert context.job_description_short == "Profile summary"
        assert context.job_profile is not None

    def test_falls_back_to_stored_summary_then_description(self):
        assert build_job_context(_job(ai_summary="Stored summary")).job_description_short == "Stored summary"
        assert build_job_context(_job()).job_description_short == "Build Python services."
        assert build_job_context(_job(description="")).job_description_short == "Backend Engineer"

    def test_long_text_cut_with_ellipsis(self):
        context = build_job_context(_job(description="d" * 2000))
        assert context.job_description_excerpt == "d" * EXCERPT_LIMIT + "..."
        assert context.job_description_short == "d" * SHORT_SUMMARY_LIMIT + "..."
        assert context.job_profile is None


class TestExtractJobProfile:
    def test_model_output_validated(self, monkeypatch):
        async def fake_invoke(system_prompt, user_prompt, **kwargs):
            assert "ROLE TITLE: Data Engineer" in user_prompt
            assert kwargs["purpose"] == "job_profile"
            return LLMResult(
                data={"mustHaveSkills": ["Spark", "spark"], "requiredExperienceYears": 4},
                model="gpt-4o-mini",
                tokens_used=10,
                finish_reason="stop",
                duration_seconds=0.1,
            )

        monkeypatch.setattr(job_profile_service.llm_service, "invoke_json", fake_invoke)
        profile = asyncio.run(
            job_profile_service.extract_job_profile(
                JobPostingInput(title="Data Engineer", description="Pipelines in Spark")
            )
        )
        assert profile.must_have_skills == ["Spark"]
        assert profile.required_experience_years == 4

    def test_bad_structure_is_schema_error(self, monkeypatch):
        async def fake_invoke(system_prompt, user_prompt, **kwargs):
            return LLMResult(
                data={"version": 5, "summary": "Backend"},
                model="gpt-4o-mini",
                tokens_used=10,
                finish_reason="stop",
                duration_seconds=0.1,
            )

        monkeypatch.setattr(job_profile_service.llm_service, "invoke_json", fake_invoke)
        with pytest.raises(SchemaError):
            asyncio.run(job_profile_service.extract_job_profile(JobPostingInput(title="X", description="Y")))


def test_preview_skipped_without_ai(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "")
    posting = JobPostingInput(title="Engineer", description="Python")
    assert asyncio.run(job_profile_service.generate_job_profile_preview(posting)) is None
