"""Tests for resume planning."""

import pytest

from relsync.platform.sync.resume import config_fingerprint, plan_resume


def test_no_progress_starts_at_zero():
    plan = plan_resume(0, 100, 10)

    assert plan.should_resume is False
    assert plan.offset == 0


def test_batch_boundary_resumes():
    plan = plan_resume(40, 100, 10)

    assert plan.should_resume is True
    assert plan.offset == 40
    assert plan.start_batch_index == 4
    assert plan.progress_percent == 40.0


def test_unknown_total_still_resumes():
    plan = plan_resume(20, None, 10)

    assert plan.should_resume is True
    assert plan.offset == 20
    assert plan.progress_percent == 0.0


def test_partial_batch_restarts():
    plan = plan_resume(45, 100, 10)

    assert plan.should_resume is False
    assert plan.offset == 0


def test_changed_batch_size_restarts():
    assert plan_resume(40, 100, 30).should_resume is False


def test_finished_job_restarts():
    assert plan_resume(100, 100, 10).should_resume is False


def test_non_positive_batch_size_rejected():
    with pytest.raises(ValueError):
        plan_resume(10, 100, 0)


def test_fingerprint_changes_with_query_or_mapping():
    base = config_fingerprint("SELECT 1", {"a": "b"})

    assert base == config_fingerprint("SELECT 1", {"a": "b"})
    assert base != config_fingerprint("SELECT 2", {"a": "b"})
    assert base != config_fingerprint("SELECT 1", {"a": "c"})
