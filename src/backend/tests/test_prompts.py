"""Tests for prompt construction -- ensures prompts are well-formed and carry the JSON contract."""

from scout.models.parsing import JOB_PROFILE_VERSION, JobProfile
from scout.prompts.job_profile import (
    POSTING_TEXT_LIMIT,
    SYSTEM_PROMPT as PROFILE_SYSTEM_PROMPT,
    build_job_profile_prompt,
    build_posting_text,
)
from scout.prompts.resume_parsing import (
    GENERIC_CONTEXT,
    SYSTEM_PROMPT as PARSE_SYSTEM_PROMPT,
    build_resume_parse_prompt,
    format_list,
)
from scout.prompts.skill_verification import (
    RESUME_TEXT_LIMIT,
    build_skill_verification_prompt,
    truncate_resume,
)
from scout.services.job_profile_service import JobContext


def test_system_prompts_require_json_only():
    for prompt in (PROFILE_SYSTEM_PROMPT, PARSE_SYSTEM_PROMPT):
        assert "ONLY" in prompt
        assert "No markdown" in prompt


def test_profile_prompt_carries_version_and_keys():
    assert JOB_PROFILE_VERSION in PROFILE_SYSTEM_PROMPT
    assert '"mustHaveSkills"' in PROFILE_SYSTEM_PROMPT
    assert '"toolsAndTech"' in PROFILE_SYSTEM_PROMPT


def test_posting_text_labels_and_skips_blanks():
    text = build_posting_text(
        title="Senior Engineer",
        description="Own the Python services",
        company_name="Acme",
    )
    assert text.startswith("ROLE TITLE: Senior Engineer")
    assert "COMPANY: Acme" in text
    assert "JOB DESCRIPTION:\nOwn the Python services" in text
    assert "LOCATION" not in text
    assert "REQUIREMENTS" not in text


def test_posting_text_is_capped():
    text = build_posting_text(title="Engineer", description="x" * 20_000)
    assert len(text) == POSTING_TEXT_LIMIT


def test_build_job_profile_prompt_substitutes_posting():
    system, user = build_job_profile_prompt("ROLE TITLE: Data Engineer")
    assert system == PROFILE_SYSTEM_PROMPT
    assert "ROLE TITLE: Data Engineer" in user


class TestResumeParsePrompt:
    def test_generic_context_without_job(self):
        system, user = build_resume_parse_prompt("Jane Doe, 7 years Python")
        assert system == PARSE_SYSTEM_PROMPT
        assert GENERIC_CONTEXT in user
        assert "Jane Doe, 7 years Python" in user
        assert "none available" in user

    def test_profile_snapshot_included(self):
        context = JobContext(
            job_title="Backend Engineer",
            job_description_short="Python services team",
            job_description_excerpt="We build APIs",
            job_profile=JobProfile(must_have_skills=["Python", "SQL"], required_experience_years=5),
        )
        _, user = build_resume_parse_prompt("resume body", context)
        assert "Title: Backend Engineer" in user
        assert "- Must-have skills: Python, SQL" in user
        assert "- Required experience: 5 years" in user
        assert "- Preferred experience: unspecified" in user
        assert "We build APIs" in user

    def test_schema_block_survives_format(self):
        """The schema braces must survive .format() without breaking."""
        _, user = build_resume_parse_prompt("resume body")
        assert '"skillExperience"' in user
        assert '"mustHaveSkillsMatched"' in user
        assert '"companyScore"' in user


def test_format_list_preview():
    assert format_list(None) == "none"
    assert format_list(["a", "b", "c"], limit=2) == "a, b, ..."


class TestSkillVerificationPrompt:
    def test_lists_rendered(self):
        _, user = build_skill_verification_prompt(
            "resume", ["Python"], [], ["Docker"], ["Python"], [], []
        )
        assert "Job profile must-have skills:\n- Python" in user
        assert "Job profile nice-to-have skills:\n- (none)" in user
        assert "Manual tools matches:\n- (none)" in user

    def test_long_resume_truncated(self):
        text = truncate_resume("y" * (RESUME_TEXT_LIMIT + 5))
        assert text.endswith("...[truncated]")
        assert truncate_resume("short") == "short"
