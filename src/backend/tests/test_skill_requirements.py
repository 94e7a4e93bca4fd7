"""Tests for mandatory skill configs, evidence parsing and evaluation."""

from scout.models.parsing import ProfileAnalysis
from scout.scoring.skill_requirements import (
    ManualSkillAssessment,
    SkillExperienceEntry,
    SkillRequirement,
    evaluate_skill_requirements,
    parse_ai_skill_experience,
    parse_manual_skill_assessments,
    parse_skill_evaluation_record,
    parse_skill_requirement_config,
    summary_from_analysis,
)


def _skills(items) -> list[str]:
    return [item.skill for item in items]


class TestRequirementConfig:
    def test_strings_and_objects_mixed(self):
        parsed = parse_skill_requirement_config(["SQL", {"skill": "Python"}, "sql"])
        assert _skills(parsed) == ["SQL", "Python"]

    def test_mapping_uses_keys(self):
        assert _skills(parse_skill_requirement_config({"SQL": 18, "Go": 6})) == ["SQL", "Go"]

    def test_json_string(self):
        assert _skills(parse_skill_requirement_config('["Docker"]')) == ["Docker"]

    def test_whitespace_collapsed(self):
        assert _skills(parse_skill_requirement_config(["  Machine   Learning "])) == ["Machine Learning"]

    def test_too_many_entries_rejected(self):
        assert parse_skill_requirement_config([f"skill-{i}" for i in range(101)]) == []

    def test_invalid_entries_reject_whole_list(self):
        assert parse_skill_requirement_config(["Python", ""]) == []

    def test_junk_inputs(self):
        assert parse_skill_requirement_config(None) == []
        assert parse_skill_requirement_config("not json") == []
        assert parse_skill_requirement_config(42) == []


class TestManualAssessments:
    def test_legacy_string_list(self):
        parsed = parse_manual_skill_assessments(["Python", "SQL"])
        assert _skills(parsed) == ["Python", "SQL"]
        assert all(item.source == "legacy_list" and item.months is None for item in parsed)

    def test_blank_legacy_entries_dropped(self):
        parsed = parse_manual_skill_assessments(["Python", " ", "", "SQL"])
        assert _skills(parsed) == ["Python", "SQL"]

    def test_manual_defaults(self):
        [item] = parse_manual_skill_assessments([{"skill": "Python", "months": "18.6"}])
        assert item.months == 19
        assert item.source == "manual"
        assert item.confidence == 1.0

    def test_months_bounds(self):
        parsed = parse_manual_skill_assessments(
            [{"skill": "Go", "months": -3}, {"skill": "Java", "months": 5000}]
        )
        assert [item.months for item in parsed] == [None, 1200]

    def test_duplicates_keep_more_months(self):
        parsed = parse_manual_skill_assessments(
            [{"skill": "Python", "months": 6}, {"skill": "python", "months": 24}]
        )
        assert len(parsed) == 1
        assert parsed[0].months == 24


def test_ai_experience_defaults():
    [entry] = parse_ai_skill_experience([{"skill": "Go", "months": "abc", "lastUsed": "2023"}])
    assert entry.months == 0
    assert entry.confidence == 0.5
    assert entry.last_used == "2023"
    assert entry.source == "ai"


def test_ai_experience_clamps_confidence_and_months():
    [entry] = parse_ai_skill_experience([{"skill": "Rust", "months": 2000, "confidence": 3}])
    assert entry.months == 1200
    assert entry.confidence == 1.0


class TestEvaluate:
    def test_manual_ai_and_missing(self):
        requirements = [SkillRequirement(skill=s) for s in ("Python", "PostgreSQL", "Kubernetes")]
        summary = evaluate_skill_requirements(
            requirements,
            [ManualSkillAssessment(skill="python 3")],
            [SkillExperienceEntry(skill="PostgreSQL 14", months=12)],
        )
        assert not summary.all_met
        assert summary.met_requirements == ["Python", "PostgreSQL"]
        assert summary.unmet_requirements == ["Kubernetes"]
        assert summary.manual_coverage_missing == ["PostgreSQL", "Kubernetes"]
        assert summary.ai_detected_without_manual == ["PostgreSQL"]
        by_skill = {item.skill: item for item in summary.evaluations}
        assert by_skill["Python"].manual_found and not by_skill["Python"].ai_found
        assert by_skill["PostgreSQL"].ai_found and not by_skill["PostgreSQL"].manual_found

    def test_no_requirements_is_all_met(self):
        summary = evaluate_skill_requirements([], [], [])
        assert summary.all_met
        assert summary.evaluations == []


class TestSummaryFromAnalysis:
    def test_matched_from_must_haves(self):
        analysis = ProfileAnalysis(must_have_skills_matched=["python"], must_have_skills_missing=["Go"])
        summary = summary_from_analysis([SkillRequirement(skill="Python"), SkillRequirement(skill="Go")], analysis)
        assert summary.met_requirements == ["Python"]
        assert summary.unmet_requirements == ["Go"]
        assert summary.manual_coverage_missing == ["Go"]
        assert not summary.all_met

    def test_nothing_to_rebuild(self):
        assert summary_from_analysis([], ProfileAnalysis()) is None
        assert summary_from_analysis([SkillRequirement(skill="Go")], None) is None


class TestEvaluationRecord:
    def test_camel_case_record_with_junk(self):
        record = parse_skill_evaluation_record(
            {
                "evaluations": [{"skill": "Go", "matched": True, "manualFound": True}, {"matched": True}],
                "allMet": False,
                "unmetRequirements": ["Rust"],
            }
        )
        assert [item.skill for item in record.evaluations] == ["Go"]
        assert record.evaluations[0].manual_found
        assert not record.evaluations[0].ai_found
        assert not record.all_met
        assert record.unmet_requirements == ["Rust"]

    def test_unreadable_values(self):
        assert parse_skill_evaluation_record("not json") is None
        assert parse_skill_evaluation_record(None) is None
        assert parse_skill_evaluation_record([1, 2]) is None
