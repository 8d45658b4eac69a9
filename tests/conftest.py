"""
Pytest configuration and fixtures.
"""

import ipaddress
import shutil
import tempfile
from pathlib import Path

import pytest

from maya_storage.exceptions import BackendError, VolumeNotFound
from maya_storage.lib.config import DatacenterConfig, MayaConfig, NomadConfig
from maya_storage.lib.defaults import ConfigDefaultPropertySource
from maya_storage.orchestrators.base import (
    AddressInventory,
    BackendAdapter,
    Evaluation,
    JobHandle,
    JobRecord,
)
from maya_storage.orchestrators.registry import OrchestratorRegistry
from maya_storage.provisioner.engine import Provisioner
from maya_storage.provisioner.topology import BACKEND_IP_PREFIX, META_FRONTEND_IP


class FakeBackend(BackendAdapter, AddressInventory):
    """In-memory orchestrator."""

    name = "fake"

    def __init__(self):
        self.topologies = {}
        self.records = {}
        self.evaluations = {}
        self.submit_error = None
        self.deleted = []

    def submit(self, topology):
        if self.submit_error is not None:
            raise self.submit_error
        self.topologies[topology.name] = topology
        self.records[topology.name] = JobRecord(
            name=topology.name, status="pending", meta=dict(topology.meta)
        )
        evaluation = Evaluation(
            id=f"eval-{len(self.topologies)}-{topology.name}",
            priority=topology.priority,
            type=topology.job_type,
            triggered_by="job-register",
            job_id=topology.name,
            status="pending",
        )
        self.evaluations.setdefault(topology.name, []).append(evaluation)
        return JobHandle(name=topology.name, eval_id=evaluation.id)

    def read(self, name):
        try:
            return self.records[name]
        except KeyError:
            raise VolumeNotFound(name=name)

    def delete(self, name):
        if name not in self.records:
            raise VolumeNotFound(name=name)
        del self.records[name]
        self.topologies.pop(name, None)
        self.evaluations.pop(name, None)
        self.deleted.append(name)

    def latest_evaluation(self, name):
        if name not in self.records:
            raise VolumeNotFound(name=name)
        evaluations = self.evaluations.get(name) or []
        return evaluations[-1] if evaluations else None

    def used_addresses(self, subnet, exclude=None):
        network = ipaddress.ip_network(subnet, strict=False)
        used = set()
        for name, record in self.records.items():
            if name == exclude:
                continue
            for key, value in record.meta.items():
                if key == META_FRONTEND_IP or key.startswith(BACKEND_IP_PREFIX):
                    if ipaddress.ip_address(value) in network:
                        used.add(value)
        return used


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def datacenter():
    return DatacenterConfig(
        name="dc1",
        cn_type="host",
        cn_network_cidr="10.0.0.0/24",
        cn_interface="eth1",
        cs_persistence_location="/var/lib/maya/",
        cs_replica_count="2",
    )


@pytest.fixture
def maya_config(datacenter):
    return MayaConfig(
        orchestrator="fake",
        default_datacenter="dc1",
        controller_image="openebs/jiva:0.1.0",
        nomad=NomadConfig(region="global"),
        datacenters={"dc1": datacenter},
    )


@pytest.fixture
def defaults(maya_config):
    return ConfigDefaultPropertySource(maya_config)


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def registry(fake_backend):
    registry = OrchestratorRegistry()
    registry.register(fake_backend.name, fake_backend)
    return registry


@pytest.fixture
def provisioner(registry, defaults):
    return Provisioner(registry=registry, orchestrator="fake", defaults=defaults)


@pytest.fixture
def failing_backend(fake_backend):
    fake_backend.submit_error = BackendError(details="HTTP 500: boom")
    return fake_backend
