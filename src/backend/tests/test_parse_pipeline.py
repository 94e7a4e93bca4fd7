"""Tests for the resume parse pipeline with the database and LLM stubbed out."""

import asyncio
from datetime import datetime
from types import SimpleNamespace
from uuid import uuid4

import pytest

from scout.core.config import settings
from scout.core.exceptions import AIDisabledError, LLMResponseError, OutOfBudgetError, SchemaError
from scout.models.parsing import JobProfile
from scout.services import llm_service, resume_parsing_service
from scout.services.resume_parsing_service import (
    EMPTY_PARSE_RESULT,
    generate_text_hash,
    parse_and_score_resume,
    parse_missing_resumes,
    verify_skill_matches,
)

RESUME_TEXT = "Senior Python developer shipping services with Docker and Kafka"


def _raw_parse(**candidate) -> dict:
    return {
        "resume": {
            "candidate": {
                "name": "Jane Smith",
                "emails": ["Jane@Example.com"],
                "phones": [],
                "totalExperienceYears": 6,
                **candidate,
            },
            "skills": ["Python", "Docker"],
            "education": [],
            "employment": [{"company": "Acme", "title": "Backend Engineer"}],
            "skillExperience": [],
        },
        "scores": {"matchScore": 40, "companyScore": 50, "fakeScore": 5},
        "analysis": {},
        "summary": "Python developer",
    }


class FakeResult:
    def __init__(self, rows):
        self.rows = list(rows)

    def scalars(self):
        return self

    def all(self):
        return self.rows


class FakeSession:
    def __init__(self, *results):
        self.results = list(results)
        self.statements = []
        self.commits = 0

    async def execute(self, statement):
        self.statements.append(statement)
        return FakeResult(self.results.pop(0))

    async def commit(self):
        self.commits += 1


def _resume(**overrides):
    fields = {
        "id": uuid4(),
        "raw_text": RESUME_TEXT,
        "original_name": "jane.pdf",
        "parsed_at": None,
        "text_hash": None,
        "prompt_version": None,
        "parse_model": None,
        "parse_error": None,
        "ai_extract": None,
        "manual_skill_assessments": None,
        "applications": [],
        "candidate_name": None,
        "email": None,
        "skills": None,
        "companies": None,
        "company_score": None,
        "fake_score": None,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


@pytest.fixture
def pipeline(monkeypatch):
    """Serve one resume, no primary job, and a scripted LLM answer."""
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    monkeypatch.setattr(settings, "ai_features_enabled", True)
    monkeypatch.setattr(settings, "parse_on_import", True)
    calls = []

    def install(resume, answer=None, error: Exception | None = None):
        async def load(db, resume_id):
            return resume

        async def no_job(db, resume, job_id):
            return None

        async def invoke_json(system_prompt, user_prompt, **kwargs):
            calls.append(kwargs["purpose"])
            if error:
                raise error
            return llm_service.LLMResult(
                data=answer, model=settings.openai_resume_model, tokens_used=120,
                finish_reason="stop", duration_seconds=0.1,
            )

        monkeypatch.setattr(resume_parsing_service, "_load_resume", load)
        monkeypatch.setattr(resume_parsing_service, "_resolve_primary_job", no_job)
        monkeypatch.setattr(llm_service, "invoke_json", invoke_json)
        return calls

    return install


def _parse(db, resume, force=False):
    return asyncio.run(parse_and_score_resume(db, resume.id, force=force))


class TestParseAndScoreResume:
    def test_successful_parse_persisted(self, pipeline):
        resume = _resume(parse_error="old failure")
        pipeline(resume, _raw_parse())
        db = FakeSession()
        summary = _parse(db, resume)

        assert summary.candidate_name == "Jane Smith"
        assert summary.tokens_used == 120
        assert not summary.cached
        assert resume.email == "jane@example.com"
        assert resume.skills == "docker, python"
        assert resume.parse_error is None
        assert resume.text_hash == generate_text_hash(RESUME_TEXT)
        assert db.commits == 1

    def test_unchanged_resume_skips_the_model(self, pipeline):
        resume = _resume(
            parsed_at=datetime(2024, 1, 1),
            text_hash=generate_text_hash(RESUME_TEXT),
            prompt_version=settings.prompt_version,
            parse_model=settings.openai_resume_model,
            candidate_name="Jane Smith",
            skills="docker, python",
        )
        calls = pipeline(resume, error=AssertionError("model must not be called"))
        db = FakeSession()
        summary = _parse(db, resume)

        assert summary.cached
        assert summary.skills_count == 2
        assert calls == []
        assert db.commits == 0

    def test_unchanged_resume_scores_new_applications(self, pipeline):
        profile = JobProfile(
            must_have_skills=["Python", "Kubernetes"], nice_to_have_skills=["Kafka"], tools_and_tech=["Docker"]
        )
        job = SimpleNamespace(
            ai_job_profile=profile.model_dump(mode="json"),
            mandatory_skill_requirements=None,
            required_experience_years=None,
            preferred_experience_min_years=None,
            preferred_experience_max_years=None,
        )
        application = SimpleNamespace(
            job_id=uuid4(), job=job, ai_extract=None, match_score=None, ai_company_score=None,
            match_score_details=None, skill_requirement_evaluation=None,
        )
        resume = _resume(
            parsed_at=datetime(2024, 1, 1),
            text_hash=generate_text_hash(RESUME_TEXT),
            prompt_version=settings.prompt_version,
            parse_model=settings.openai_resume_model,
            ai_extract=resume_parsing_service.validate_and_process(_raw_parse()).model_dump(mode="json"),
            applications=[application],
        )
        calls = pipeline(resume, error=AssertionError("model must not be called"))
        db = FakeSession()
        summary = _parse(db, resume)

        assert calls == []
        # 35 mandatory + 30 profile
        assert application.match_score == 65
        assert summary.match_score == 65
        assert db.commits == 1

    def test_disabled_without_force(self, pipeline, monkeypatch):
        resume = _resume()
        pipeline(resume, _raw_parse())
        monkeypatch.setattr(settings, "parse_on_import", False)
        with pytest.raises(AIDisabledError):
            _parse(FakeSession(), resume)

    def test_legacy_doc_rejected(self, pipeline):
        resume = _resume(raw_text="UNSUPPORTED_DOC_LEGACY")
        calls = pipeline(resume, _raw_parse())
        with pytest.raises(ValueError):
            _parse(FakeSession(), resume)
        assert calls == []

    def test_model_failure_recorded(self, pipeline):
        resume = _resume()
        pipeline(resume, error=LLMResponseError("invalid_json", "Model returned invalid JSON"))
        db = FakeSession()
        with pytest.raises(LLMResponseError):
            _parse(db, resume)
        assert resume.parse_error == "Model returned invalid JSON"
        assert resume.text_hash == generate_text_hash(RESUME_TEXT)
        assert resume.parsed_at is None
        assert db.commits == 1

    def test_schema_failure_recorded(self, pipeline):
        resume = _resume()
        answer = _raw_parse()
        del answer["scores"]
        pipeline(resume, answer)
        db = FakeSession()
        with pytest.raises(SchemaError):
            _parse(db, resume)
        assert resume.parse_error.startswith("schema: ")
        assert db.commits == 1

    def test_empty_parse_recorded(self, pipeline):
        resume = _resume()
        answer = _raw_parse(name=None, emails=[])
        answer["resume"]["skills"] = []
        answer["resume"]["employment"] = []
        pipeline(resume, answer)
        db = FakeSession()
        with pytest.raises(SchemaError):
            _parse(db, resume)
        assert resume.parse_error == EMPTY_PARSE_RESULT
        assert resume.parsed_at is None


class TestParseMissingResumes:
    @pytest.fixture
    def attempts(self, monkeypatch):
        attempts = []
        outcomes = {}

        async def parse(db, resume_id, force=False):
            attempts.append(resume_id)
            if resume_id in outcomes:
                raise outcomes[resume_id]

        monkeypatch.setattr(resume_parsing_service, "parse_and_score_resume", parse)
        return attempts, outcomes

    @staticmethod
    def _limit_sql(db) -> str:
        return str(db.statements[0].compile(compile_kwargs={"literal_binds": True}))

    def test_counts_failures_and_continues(self, attempts):
        seen, outcomes = attempts
        ids = [uuid4(), uuid4(), uuid4()]
        outcomes[ids[1]] = ValueError("Resume has no text to parse")
        result = asyncio.run(parse_missing_resumes(FakeSession(ids)))

        assert seen == ids
        assert (result.attempted, result.parsed, result.failed) == (3, 2, 1)
        assert not result.stopped_on_budget
        assert result.errors == {str(ids[1]): "Resume has no text to parse"}

    @pytest.mark.parametrize("error", [OutOfBudgetError(1000, 1000), AIDisabledError()])
    def test_stops_when_ai_unavailable(self, attempts, error):
        seen, outcomes = attempts
        ids = [uuid4(), uuid4(), uuid4()]
        outcomes[ids[1]] = error
        result = asyncio.run(parse_missing_resumes(FakeSession(ids)))

        assert seen == ids[:2]
        assert result.parsed == 1
        assert result.stopped_on_budget
        assert str(ids[1]) in result.errors

    @pytest.mark.parametrize("limit, expected", [(500, "LIMIT 50"), (0, "LIMIT 1"), (7, "LIMIT 7")])
    def test_limit_clamped(self, attempts, limit, expected):
        db = FakeSession([])
        result = asyncio.run(parse_missing_resumes(db, limit))
        assert expected in self._limit_sql(db)
        assert result.attempted == 0


class TestVerifySkillMatches:
    profile = JobProfile(
        must_have_skills=["Python", "Kubernetes"], nice_to_have_skills=["Kafka"], tools_and_tech=["Docker"]
    )

    def _verify(self, monkeypatch, answer=None, error: Exception | None = None):
        async def invoke_json(system_prompt, user_prompt, **kwargs):
            if error:
                raise error
            return llm_service.LLMResult(
                data=answer, model="gpt-4o-mini", tokens_used=10, finish_reason="stop", duration_seconds=0.1
            )

        monkeypatch.setattr(llm_service, "invoke_json", invoke_json)
        return asyncio.run(verify_skill_matches(RESUME_TEXT, self.profile, ["Python"], [], []))

    def test_only_unmatched_profile_items_kept(self, monkeypatch):
        verification = self._verify(
            monkeypatch,
            {"extraMustHave": ["kubernetes", "Python", "Rust"], "extraNiceToHave": [" "], "extraTools": ["Docker"]},
        )
        assert verification.extra_must_have == ["kubernetes"]
        assert verification.extra_nice_to_have == []
        assert verification.extra_tools == ["Docker"]

    @pytest.mark.parametrize(
        "error", [LLMResponseError("timeout", "timed out"), OutOfBudgetError(10, 10), AIDisabledError()]
    )
    def test_failures_give_none(self, monkeypatch, error):
        assert self._verify(monkeypatch, error=error) is None

    def test_malformed_lists_ignored(self, monkeypatch):
        verification = self._verify(monkeypatch, {"extraMustHave": {"not": "a list"}, "extraTools": 3})
        assert verification.extra_must_have == []
        assert verification.extra_tools == []
