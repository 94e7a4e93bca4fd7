"""Tests for request schema validation."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from scout.models.schemas import (
    ApplicationCreate,
    ApplicationStatus,
    JobCreate,
    JobStatus,
    ResumeCreate,
    ResumeUpdate,
)


class TestJobCreate:
    def test_valid_job(self):
        job = JobCreate(
            title="Senior Backend Engineer",
            description="We are looking for a senior backend engineer with Python experience.",
            requirements="Python, PostgreSQL, 5+ years",
            required_experience_years=5,
            preferred_experience="6-8",
        )
        assert job.title == "Senior Backend Engineer"
        assert job.status == JobStatus.active
        assert job.generate_profile

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            JobCreate(title="", description="Valid description here")

    def test_description_required(self):
        with pytest.raises(ValidationError):
            JobCreate(title="Engineer")
        with pytest.raises(ValidationError):
            JobCreate(title="Engineer", description="")

    def test_mandatory_skills_accept_mixed_entries(self):
        job = JobCreate(
            title="Engineer",
            description="Backend work",
            mandatory_skill_requirements=["Python", {"skill": "SQL"}],
        )
        assert job.mandatory_skill_requirements == ["Python", {"skill": "SQL"}]


class TestResumeCreate:
    def test_valid_resume(self):
        resume = ResumeCreate(
            candidate_name="Jane Doe",
            email="jane@example.com",
            raw_text="Experienced software engineer with 10 years in backend development.",
        )
        assert resume.candidate_name == "Jane Doe"
        assert resume.original_name == "pasted-resume.txt"
        assert not resume.parse

    def test_email_optional(self):
        resume = ResumeCreate(raw_text="Experienced software engineer with 10 years.")
        assert resume.email is None
        assert resume.job_id is None

    def test_short_text_rejected(self):
        with pytest.raises(ValidationError):
            ResumeCreate(raw_text="too short")


def test_application_defaults():
    application = ApplicationCreate(resume_id=uuid4())
    assert application.status == ApplicationStatus.new
    assert application.notes is None


def test_application_rejects_unknown_status():
    with pytest.raises(ValidationError):
        ApplicationCreate(resume_id=uuid4(), status="maybe")


def test_resume_update_only_sets_given_fields():
    update = ResumeUpdate(manual_skill_assessments=[{"skill": "Python", "months": 48}])
    assert update.model_dump(exclude_unset=True) == {
        "manual_skill_assessments": [{"skill": "Python", "months": 48}]
    }
