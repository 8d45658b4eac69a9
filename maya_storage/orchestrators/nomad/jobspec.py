"""Conversion between topologies and Nomad's JSON job model."""

from datetime import timedelta
from typing import Any, Dict, List

from maya_storage.orchestrators.base import Evaluation, JobRecord
from maya_storage.provisioner.topology import (
    Constraint,
    RestartPolicy,
    Task,
    TaskGroup,
    Topology,
)


def duration_ns(value: timedelta) -> int:
    """Nomad expresses durations in nanoseconds."""
    return (value // timedelta(microseconds=1)) * 1000


def _constraints(constraints: List[Constraint]) -> List[Dict[str, str]]:
    return [{"LTarget": c.l_target, "RTarget": c.r_target, "Operand": c.operand} for c in constraints]


def _restart_policy(policy: RestartPolicy) -> Dict[str, Any]:
    return {
        "Attempts": policy.attempts,
        "Interval": duration_ns(policy.interval),
        "Delay": duration_ns(policy.delay),
        "Mode": policy.mode,
    }


def _task(task: Task) -> Dict[str, Any]:
    return {
        "Name": task.name,
        "Driver": task.driver,
        "Config": dict(task.config),
        "Env": dict(task.env),
        "Resources": {
            "CPU": task.resources.cpu,
            "MemoryMB": task.resources.memory_mb,
            "Networks": [{"MBits": task.resources.network_mbits}],
        },
        "Artifacts": [
            {"GetterSource": a.source, "RelativeDest": a.relative_dest} for a in task.artifacts
        ],
        "LogConfig": {
            "MaxFiles": task.log_config.max_files,
            "MaxFileSizeMB": task.log_config.max_file_size_mb,
        },
    }


def _task_group(group: TaskGroup) -> Dict[str, Any]:
    return {
        "Name": group.name,
        "Count": group.count,
        "Constraints": _constraints(group.constraints),
        "RestartPolicy": _restart_policy(group.restart_policy),
        "Tasks": [_task(t) for t in group.tasks],
    }


def to_nomad_job(topology: Topology) -> Dict[str, Any]:
    """Render a topology as a Nomad job (the value of the "Job" request key)."""
    return {
        "ID": topology.id,
        "Name": topology.name,
        "Region": topology.region,
        "Datacenters": list(topology.datacenters),
        "Type": topology.job_type,
        "Priority": topology.priority,
        "Constraints": _constraints(topology.constraints),
        "Meta": dict(topology.meta),
        "TaskGroups": [_task_group(g) for g in topology.task_groups],
    }


def from_nomad_job(data: Dict[str, Any]) -> JobRecord:
    return JobRecord(
        name=data.get("ID") or data.get("Name") or "",
        status=data.get("Status") or "",
        status_description=data.get("StatusDescription") or "",
        meta={str(k): str(v) for k, v in (data.get("Meta") or {}).items()},
    )


def evaluation_from_nomad(data: Dict[str, Any]) -> Evaluation:
    return Evaluation(
        id=data.get("ID") or "",
        priority=data.get("Priority"),
        type=data.get("Type") or "",
        triggered_by=data.get("TriggeredBy") or "",
        job_id=data.get("JobID") or "",
        status=data.get("Status") or "",
        status_description=data.get("StatusDescription") or "",
        blocked_eval=data.get("BlockedEval") or "",
    )
