"""Unit tests for the Nomad backend adapter."""

from unittest.mock import Mock

import pytest

from maya_storage.exceptions import VolumeNotFound
from maya_storage.lib.config import NomadConfig
from maya_storage.orchestrators.base import AddressInventory, BackendAdapter
from maya_storage.orchestrators.nomad.backend import NomadBackend
from maya_storage.provisioner.properties import VolumeProperties
from maya_storage.provisioner.topology import TopologyBuilder


@pytest.fixture
def client():
    return Mock()


@pytest.fixture
def backend(client):
    return NomadBackend(client)


@pytest.fixture
def topology():
    properties = VolumeProperties(
        region="global",
        datacenter="dc1",
        controllerImage="openebs/jiva:0.1.0",
        controllerIPs="10.0.0.1",
        replicaIPs="10.0.0.2",
        replicaCount="1",
        networkType="host",
        subnetCIDR="10.0.0.0/24",
        interface="eth1",
        persistenceLocation="/tmp/",
        storageSize="1Gi",
    )
    return TopologyBuilder().build("vol1", properties)


def test_implements_capabilities(backend):
    assert isinstance(backend, BackendAdapter)
    assert isinstance(backend, AddressInventory)
    assert backend.name == "nomad"
    assert backend.index_placeholder == "${NOMAD_ALLOC_INDEX}"


def test_from_config():
    backend = NomadBackend.from_config(NomadConfig(address="http://nomad:4646", region="eu", token="t"))
    assert backend.client.base_url == "http://nomad:4646"
    assert backend.client.region == "eu"
    assert backend.client.session.headers["X-Nomad-Token"] == "t"


def test_from_config_tls():
    backend = NomadBackend.from_config(
        NomadConfig(
            address="https://nomad:4646",
            ca_bundle="/etc/nomad/ca.pem",
            client_cert="/etc/nomad/cli.pem",
            client_key="/etc/nomad/cli-key.pem",
        )
    )
    assert backend.client.verify_ssl == "/etc/nomad/ca.pem"
    assert backend.client.session.cert == ("/etc/nomad/cli.pem", "/etc/nomad/cli-key.pem")


def test_submit(backend, client, topology):
    client.register_job.return_value = {"EvalID": "e1", "JobModifyIndex": 7}

    handle = backend.submit(topology)

    assert handle.name == "vol1"
    assert handle.eval_id == "e1"
    job = client.register_job.call_args.args[0]
    assert job["ID"] == "vol1"
    assert job["TaskGroups"][1]["Count"] == 1


def test_read(backend, client):
    client.get_job.return_value = {"ID": "vol1", "Status": "running", "Meta": {"JIVA_CTL_IP": "10.0.0.1"}}

    record = backend.read("vol1")
    assert record.status == "running"
    assert record.meta == {"JIVA_CTL_IP": "10.0.0.1"}


def test_delete_reads_first(backend, client):
    backend.delete("vol1")
    client.get_job.assert_called_once_with("vol1")
    client.deregister_job.assert_called_once_with("vol1", purge=False)


def test_delete_unknown(backend, client):
    client.get_job.side_effect = VolumeNotFound(name="vol1")
    with pytest.raises(VolumeNotFound):
        backend.delete("vol1")
    client.deregister_job.assert_not_called()


def test_latest_evaluation_highest_create_index(backend, client):
    client.job_evaluations.return_value = [
        {"ID": "e1", "CreateIndex": 10, "Status": "complete"},
        {"ID": "e3", "CreateIndex": 30, "Status": "blocked"},
        {"ID": "e2", "CreateIndex": 20, "Status": "complete"},
    ]
    evaluation = backend.latest_evaluation("vol1")
    assert evaluation.id == "e3"
    assert evaluation.status == "blocked"


def test_latest_evaluation_none(backend, client):
    client.job_evaluations.return_value = []
    assert backend.latest_evaluation("vol1") is None


def test_used_addresses(backend, client):
    client.list_jobs.return_value = [
        {"ID": "vol1", "Status": "running"},
        {"ID": "vol2", "Status": "pending"},
        {"ID": "vol3", "Status": "dead"},
        {"ID": "gone", "Status": "running"},
        {"ID": "web", "Status": "running"},
    ]
    jobs = {
        "vol1": {"Meta": {"JIVA_CTL_IP": "10.0.0.1", "JIVA_REP_IP_0": "10.0.0.2"}},
        "vol2": {"Meta": {"JIVA_CTL_IP": "10.0.1.1", "JIVA_REP_IP_0": "10.0.0.9", "JIVA_REP_COUNT": "1"}},
        "web": {"Meta": None},
    }

    def get_job(job_id):
        if job_id not in jobs:
            raise VolumeNotFound(name=job_id)
        return jobs[job_id]

    client.get_job.side_effect = get_job

    assert backend.used_addresses("10.0.0.0/24") == {"10.0.0.1", "10.0.0.2", "10.0.0.9"}
    assert backend.used_addresses("10.0.0.0/24", exclude="vol1") == {"10.0.0.9"}
