"""
Unit tests for status reconciliation.
"""

import pytest

from maya_storage.orchestrators.base import Evaluation, JobRecord
from maya_storage.provisioner.status import StatusReconciler


@pytest.fixture
def reconciler():
    return StatusReconciler()


@pytest.fixture
def evaluation():
    return Evaluation(
        id="eval-1",
        priority=50,
        type="service",
        triggered_by="job-register",
        job_id="vol1",
        status="complete",
        status_description="ok",
    )


@pytest.mark.unit
def test_from_evaluation(reconciler, evaluation):
    status = reconciler.from_evaluation("vol1", evaluation)

    assert status.name == "vol1"
    assert status.message == "ok"
    assert status.reason == "complete"
    assert status.annotations == {
        "evalpriority": "50",
        "evaltype": "service",
        "evaltrigger": "job-register",
        "evaljob": "vol1",
        "evalstatus": "complete",
        "evalstatusdesc": "ok",
        "evalblockedeval": "",
    }


@pytest.mark.unit
def test_from_evaluation_missing_priority(reconciler):
    status = reconciler.from_evaluation("vol1", Evaluation(id="eval-2", status="blocked"))
    assert status.annotations["evalpriority"] == ""
    assert status.reason == "blocked"


@pytest.mark.unit
def test_from_job_running_exposes_meta(reconciler):
    job = JobRecord(name="vol1", status="running", meta={"JIVA_TARGET_PORTAL": "10.0.0.4:3260"})
    status = reconciler.from_job(job)

    assert status.reason == "running"
    assert status.annotations == {"JIVA_TARGET_PORTAL": "10.0.0.4:3260"}


@pytest.mark.unit
def test_from_job_not_running_hides_meta(reconciler):
    job = JobRecord(name="vol1", status="pending", status_description="waiting", meta={"JIVA_CTL_IP": "10.0.0.4"})
    status = reconciler.from_job(job)

    assert status.reason == "pending"
    assert status.message == "waiting"
    assert status.annotations == {}


@pytest.mark.unit
def test_reconcile_running_uses_job(reconciler, evaluation):
    job = JobRecord(name="vol1", status="running", meta={"JIVA_CTL_IP": "10.0.0.4"})
    status = reconciler.reconcile(job, evaluation)
    assert status.annotations == {"JIVA_CTL_IP": "10.0.0.4"}


@pytest.mark.unit
def test_reconcile_pending_uses_evaluation(reconciler, evaluation):
    job = JobRecord(name="vol1", status="pending")
    status = reconciler.reconcile(job, evaluation)
    assert status.reason == "complete"
    assert status.annotations["evalstatus"] == "complete"


@pytest.mark.unit
def test_reconcile_without_evaluation(reconciler):
    job = JobRecord(name="vol1", status="dead", status_description="stopped", meta={"JIVA_CTL_IP": "10.0.0.4"})
    status = reconciler.reconcile(job, None)
    assert status.reason == "dead"
    assert status.message == "stopped"
    assert status.annotations == {}
