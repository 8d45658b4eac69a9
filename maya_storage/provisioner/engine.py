"""Provisioning pipeline.

claim -> PropertyResolver -> NetworkAllocator -> TopologyBuilder -> submit

Status is derived independently from the orchestrator's job and evaluation
records through the StatusReconciler.
"""

from typing import Optional

from oslo_log import log as logging

from maya_storage.lib.config import MayaConfig
from maya_storage.lib.defaults import ConfigDefaultPropertySource, DefaultPropertySource
from maya_storage.orchestrators.base import (
    AddressInventory,
    EvaluationReader,
    JobHandle,
    JobRecord,
    TopologyReader,
    TopologyRemover,
    TopologySubmitter,
)
from maya_storage.orchestrators.registry import OrchestratorRegistry
from maya_storage.provisioner.network.allocator import NetworkAllocator
from maya_storage.provisioner.network.base import NetworkAllocation
from maya_storage.provisioner.properties import VolumeClaim
from maya_storage.provisioner.resolver import PropertyResolver
from maya_storage.provisioner.status import StatusReconciler, VolumeStatus
from maya_storage.provisioner.topology import DEFAULT_INDEX_PLACEHOLDER, Topology, TopologyBuilder

LOG = logging.getLogger(__name__)


class Provisioner:
    """Turns volume claims into submitted topologies and reports their status."""

    def __init__(
        self,
        registry: OrchestratorRegistry,
        orchestrator: str,
        defaults: DefaultPropertySource,
        allocator: Optional[NetworkAllocator] = None,
        builder: Optional[TopologyBuilder] = None,
        reconciler: Optional[StatusReconciler] = None,
    ):
        """Initialize the provisioner.

        Args:
            registry: Registry holding the orchestrator backend
            orchestrator: Registry name of the backend to use
            defaults: Source of region, datacenter and per-datacenter defaults
            allocator: Network allocator; one is created (using the backend's
                AddressInventory capability, if any) when omitted
            builder: Topology builder; one is created with the backend's
                index placeholder when omitted
            reconciler: Status reconciler

        Raises:
            OrchestratorNotFound: `orchestrator` is not registered
        """
        self.registry = registry
        self.orchestrator = orchestrator
        backend = registry.get(orchestrator)

        self.resolver = PropertyResolver(defaults)
        self.allocator = allocator or NetworkAllocator(
            inventory=registry.capability(orchestrator, AddressInventory)
        )
        self.builder = builder or TopologyBuilder(
            index_placeholder=getattr(backend, "index_placeholder", DEFAULT_INDEX_PLACEHOLDER)
        )
        self.reconciler = reconciler or StatusReconciler()

    def resolve_and_allocate(self, claim: VolumeClaim) -> NetworkAllocation:
        """Resolve the claim's properties, then allocate its missing addresses."""
        self.resolver.resolve(claim)
        return self.allocator.allocate(claim)

    def build_topology(self, claim: VolumeClaim) -> Topology:
        return self.builder.build(claim.name, claim.properties)

    def submit(self, topology: Topology) -> JobHandle:
        submitter = self.registry.require(self.orchestrator, TopologySubmitter)
        return submitter.submit(topology)

    def provision(self, claim: VolumeClaim) -> JobHandle:
        """Run the whole pipeline for a claim.

        The claim is updated in place with its resolved properties and
        addresses. If building or submitting the topology fails, the
        addresses reserved for the claim are released before the error
        propagates.
        """
        allocation = self.resolve_and_allocate(claim)
        LOG.debug("Volume %s allocated %s", claim.name, list(allocation.addresses))

        try:
            topology = self.build_topology(claim)
            handle = self.submit(topology)
        except Exception:
            LOG.warning("Provisioning of volume %s failed, releasing its addresses", claim.name)
            self.allocator.release(claim.name)
            raise

        LOG.info("Provisioned volume %s (evaluation %s)", claim.name, handle.eval_id or "none")
        return handle

    def read(self, name: str) -> JobRecord:
        reader = self.registry.require(self.orchestrator, TopologyReader)
        return reader.read(name)

    def remove(self, name: str) -> None:
        remover = self.registry.require(self.orchestrator, TopologyRemover)
        remover.delete(name)
        self.allocator.release(name)
        LOG.info("Removed volume %s", name)

    def status(self, name: str) -> VolumeStatus:
        job = self.read(name)
        evaluation = None
        if not job.is_running:
            evaluations = self.registry.capability(self.orchestrator, EvaluationReader)
            if evaluations is not None:
                evaluation = evaluations.latest_evaluation(name)
        return self.reconciler.reconcile(job, evaluation)


def build_registry(config: MayaConfig) -> OrchestratorRegistry:
    # Imported here so the engine does not depend on a concrete backend
    from maya_storage.orchestrators.nomad.backend import NomadBackend

    registry = OrchestratorRegistry()
    registry.register(NomadBackend.name, NomadBackend.from_config(config.nomad))
    return registry


def build_provisioner(config: MayaConfig) -> Provisioner:
    """Create the provisioner described by the configuration."""
    return Provisioner(
        registry=build_registry(config),
        orchestrator=config.orchestrator,
        defaults=ConfigDefaultPropertySource(config),
    )
