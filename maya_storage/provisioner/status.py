"""Volume status derived from orchestrator records.

Nothing here is persisted; a status is computed on every query from the
orchestrator's job and evaluation records.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from maya_storage.orchestrators.base import Evaluation, JobRecord

# Annotation keys of the evaluation form
ANNOTATION_EVAL_PRIORITY = "evalpriority"
ANNOTATION_EVAL_TYPE = "evaltype"
ANNOTATION_EVAL_TRIGGER = "evaltrigger"
ANNOTATION_EVAL_JOB = "evaljob"
ANNOTATION_EVAL_STATUS = "evalstatus"
ANNOTATION_EVAL_STATUS_DESC = "evalstatusdesc"
ANNOTATION_EVAL_BLOCKED_EVAL = "evalblockedeval"


class VolumeStatus(BaseModel):
    name: str
    message: str = ""
    reason: str = ""
    annotations: Dict[str, str] = Field(default_factory=dict)


def _str(value: Any) -> str:
    return "" if value is None else str(value)


class StatusReconciler:
    """Maps job and evaluation records onto VolumeStatus."""

    def from_evaluation(self, name: str, evaluation: Evaluation) -> VolumeStatus:
        return VolumeStatus(
            name=name,
            message=_str(evaluation.status_description),
            reason=_str(evaluation.status),
            annotations={
                ANNOTATION_EVAL_PRIORITY: _str(evaluation.priority),
                ANNOTATION_EVAL_TYPE: _str(evaluation.type),
                ANNOTATION_EVAL_TRIGGER: _str(evaluation.triggered_by),
                ANNOTATION_EVAL_JOB: _str(evaluation.job_id),
                ANNOTATION_EVAL_STATUS: _str(evaluation.status),
                ANNOTATION_EVAL_STATUS_DESC: _str(evaluation.status_description),
                ANNOTATION_EVAL_BLOCKED_EVAL: _str(evaluation.blocked_eval),
            },
        )

    def from_job(self, job: JobRecord, include_meta: bool = True) -> VolumeStatus:
        # Metadata is only meaningful once the job is running
        annotations = {}
        if include_meta and job.is_running:
            annotations = {str(k): _str(v) for k, v in (job.meta or {}).items()}
        return VolumeStatus(
            name=job.name,
            message=_str(job.status_description),
            reason=_str(job.status),
            annotations=annotations,
        )

    def reconcile(self, job: JobRecord, evaluation: Optional[Evaluation]) -> VolumeStatus:
        """Pick the status form for the job's current state.

        Running jobs report their metadata. Otherwise the latest evaluation
        explains the state; without one, the bare job status is reported.
        """
        if job.is_running:
            return self.from_job(job)
        if evaluation is not None:
            return self.from_evaluation(job.name, evaluation)
        return self.from_job(job, include_meta=False)
