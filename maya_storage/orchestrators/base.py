"""Backend adapter capability interfaces.

An orchestrator backend implements some or all of these capabilities. The
provisioner asks the registry for a capability by type rather than assuming
every backend implements everything.

Guarantees expected from implementations:

- submit is at-least-once; a topology's identity is its volume name, so
  resubmitting the same topology updates the existing job
- read, delete and latest_evaluation raise VolumeNotFound for unknown names
- transport failures raise BackendError (or a subclass)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from maya_storage.provisioner.topology import DEFAULT_INDEX_PLACEHOLDER, Topology

JOB_STATUS_RUNNING = "running"


@dataclass(frozen=True)
class JobHandle:
    """Reference to a submitted topology."""

    name: str
    eval_id: str = ""


@dataclass
class JobRecord:
    """Orchestrator view of a topology."""

    name: str
    status: str = ""
    status_description: str = ""
    meta: Dict[str, str] = field(default_factory=dict)

    @property
    def is_running(self) -> bool:
        return self.status == JOB_STATUS_RUNNING


@dataclass
class Evaluation:
    """Scheduling evaluation of a topology."""

    id: str
    priority: Optional[int] = None
    type: str = ""
    triggered_by: str = ""
    job_id: str = ""
    status: str = ""
    status_description: str = ""
    blocked_eval: str = ""


class TopologySubmitter(ABC):
    @abstractmethod
    def submit(self, topology: Topology) -> JobHandle:
        """Register (or update) the topology with the orchestrator."""


class TopologyReader(ABC):
    @abstractmethod
    def read(self, name: str) -> JobRecord:
        """Return the orchestrator's record of the named topology."""


class TopologyRemover(ABC):
    @abstractmethod
    def delete(self, name: str) -> None:
        """Remove the named topology."""


class EvaluationReader(ABC):
    @abstractmethod
    def latest_evaluation(self, name: str) -> Optional[Evaluation]:
        """Return the most recent evaluation of the topology, if any."""


class AddressInventory(ABC):
    """Optional capability: addresses already held by live topologies."""

    @abstractmethod
    def used_addresses(self, subnet: str, exclude: Optional[str] = None) -> Set[str]:
        """Return addresses within `subnet` used by topologies other than `exclude`."""


class BackendAdapter(TopologySubmitter, TopologyReader, TopologyRemover, EvaluationReader):
    """An orchestrator backend implementing the core capabilities."""

    #: Registry name of the orchestrator
    name = "unknown"

    #: Token the orchestrator substitutes with an instance's ordinal
    index_placeholder = DEFAULT_INDEX_PLACEHOLDER
