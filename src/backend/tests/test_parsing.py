"""Tests for LLM output repair and validation of resume parses and job profiles."""

import json

import pytest

from scout.core.exceptions import SchemaError
from scout.models.parsing import JobProfile, ResumeParseResult
from scout.services.resume_parsing_service import (
    coerce_summary,
    generate_text_hash,
    has_meaningful_data,
    sanitize_model_output,
    validate_and_process,
)


def _raw_parse(**overrides) -> dict:
    raw = {
        "resume": {
            "candidate": {
                "name": "Jane Smith",
                "emails": ["jane@example.com"],
                "phones": [],
                "linkedinUrl": "",
                "currentLocation": ["Berlin"],
                "totalExperienceYears": 6.5,
            },
            "skills": ["Python", "PostgreSQL", "Docker", "Redis"],
            "education": [{"degree": "BSc Computer Science", "institution": "TU Berlin", "year": 2016}],
            "employment": [
                {"company": "Acme", "title": "Backend Engineer", "startDate": "2019-03", "endDate": "Present"}
            ],
            "skillExperience": [{"skill": "Python", "months": 60, "lastUsed": "2024"}],
        },
        "scores": {"matchScore": 0, "companyScore": 72.5, "fakeScore": 10},
        "analysis": {"mustHaveSkillsMatched": ["Python"]},
        "summary": "Backend engineer with six years of Python.",
    }
    raw.update(overrides)
    return raw


class TestSanitizeModelOutput:
    def test_scalar_fields_repaired(self):
        cleaned = sanitize_model_output(_raw_parse())
        candidate = cleaned["resume"]["candidate"]
        assert candidate["linkedinUrl"] is None
        assert candidate["currentLocation"] is None
        assert cleaned["resume"]["employment"][0]["endDate"] is None
        assert cleaned["resume"]["education"][0]["year"] is None

    def test_input_not_mutated(self):
        raw = _raw_parse()
        sanitize_model_output(raw)
        assert raw["resume"]["employment"][0]["endDate"] == "Present"

    def test_scores_clamped(self):
        cleaned = sanitize_model_output(_raw_parse(scores={"matchScore": 140, "companyScore": -5, "fakeScore": 50}))
        assert cleaned["scores"] == {"matchScore": 100, "companyScore": 0, "fakeScore": 50}

    def test_non_dict_passthrough(self):
        assert sanitize_model_output(["not", "a", "dict"]) == ["not", "a", "dict"]


class TestCoerceSummary:
    def test_nested_summary_lifted(self):
        raw = _raw_parse()
        del raw["summary"]
        raw["resume"]["summary"] = "Lifted from resume"
        coerce_summary(raw)
        assert raw["summary"] == "Lifted from resume"
        assert "summary" not in raw["resume"]

    def test_list_summary_joined(self):
        raw = _raw_parse(summary=["Python engineer", "", "mentor"])
        coerce_summary(raw)
        assert raw["summary"] == "Python engineer mentor"

    def test_fallback_summary(self):
        raw = _raw_parse(summary="  ")
        coerce_summary(raw)
        assert raw["summary"] == "Jane Smith - Backend Engineer (6.5y), Python/PostgreSQL/Docker"

    def test_summary_cut_to_140(self):
        raw = _raw_parse(summary="x" * 300)
        coerce_summary(raw)
        assert len(raw["summary"]) == 140


class TestValidateAndProcess:
    def test_valid_parse(self):
        result = validate_and_process(_raw_parse())
        assert result.resume.candidate.name == "Jane Smith"
        assert result.scores.company_score == 73
        assert result.resume.skill_experience[0].last_used == "2024"
        assert result.analysis.must_have_skills_matched == ["Python"]
        assert has_meaningful_data(result)

    def test_parses_from_json_string(self):
        """Simulates raw LLM text output."""
        result = ResumeParseResult.model_validate_json(json.dumps(sanitize_model_output(_raw_parse())))
        assert result.resume.employment[0].company == "Acme"

    def test_missing_experience_years_is_schema_error(self):
        raw = _raw_parse()
        del raw["resume"]["candidate"]["totalExperienceYears"]
        with pytest.raises(SchemaError):
            validate_and_process(raw)

    def test_missing_scores_is_schema_error(self):
        raw = _raw_parse()
        del raw["scores"]
        with pytest.raises(SchemaError):
            validate_and_process(raw)

    def test_empty_candidate_has_no_meaningful_data(self):
        raw = _raw_parse()
        raw["resume"]["candidate"] = {"totalExperienceYears": 0}
        raw["resume"]["skills"] = []
        raw["resume"]["employment"] = []
        assert not has_meaningful_data(validate_and_process(raw))


def test_text_hash_is_stable():
    assert generate_text_hash("abc") == generate_text_hash("abc")
    assert len(generate_text_hash("abc")) == 64


class TestJobProfileModel:
    def test_camel_case_and_lenient_lists(self):
        profile = JobProfile.model_validate(
            {
                "summary": "  Backend role  ",
                "mustHaveSkills": "Python",
                "toolsAndTech": ["Docker", " ", 3, "Kubernetes"],
                "requiredExperienceYears": "4.5",
                "preferredExperienceYears": "senior",
            }
        )
        assert profile.summary == "Backend role"
        assert profile.must_have_skills == ["Python"]
        assert profile.tools_and_tech == ["Docker", "Kubernetes"]
        assert profile.required_experience_years == 5
        assert profile.preferred_experience_years is None

    def test_lists_capped_at_twenty(self):
        profile = JobProfile.model_validate({"domainKeywords": [f"k{i}" for i in range(30)]})
        assert len(profile.domain_keywords) == 20

    def test_summary_truncated(self):
        assert len(JobProfile(summary="y" * 900).summary) == 600
