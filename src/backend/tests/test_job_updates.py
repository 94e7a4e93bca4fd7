"""Tests for how a job update body is merged with the stored experience columns."""

from types import SimpleNamespace

from scout.api.jobs import _experience_columns, preferred_update_inputs


def _stored_job():
    return SimpleNamespace(
        required_experience_years=5,
        preferred_experience_min_years=6,
        preferred_experience_max_years=8,
    )


class TestPreferredUpdateInputs:
    def test_max_only_keeps_stored_min(self):
        assert preferred_update_inputs(_stored_job(), {"preferred_experience_max_years": 10}) == (6, 10)

    def test_min_only_keeps_stored_max(self):
        assert preferred_update_inputs(_stored_job(), {"preferred_experience_min_years": 5}) == (5, 8)

    def test_explicit_null_clears_bound(self):
        assert preferred_update_inputs(_stored_job(), {"preferred_experience_min_years": None}) == (None, 8)


def test_max_only_update_resolves_to_full_range():
    job = _stored_job()
    preferred_min, preferred_max = preferred_update_inputs(job, {"preferred_experience_max_years": 10})
    columns = _experience_columns(job.required_experience_years, None, preferred_min, preferred_max, None)
    assert columns["preferred_experience_min_years"] == 6
    assert columns["preferred_experience_max_years"] == 10
