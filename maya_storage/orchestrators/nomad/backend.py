"""Nomad implementation of the backend adapter capabilities."""

import ipaddress
from typing import Optional, Set

from oslo_log import log as logging

from maya_storage.exceptions import VolumeNotFound
from maya_storage.lib.config import NomadConfig
from maya_storage.orchestrators.base import (
    AddressInventory,
    BackendAdapter,
    Evaluation,
    JobHandle,
    JobRecord,
)
from maya_storage.orchestrators.nomad import jobspec
from maya_storage.orchestrators.nomad.client import NomadClient
from maya_storage.provisioner.network import cidr
from maya_storage.provisioner.topology import BACKEND_IP_PREFIX, META_FRONTEND_IP, Topology

LOG = logging.getLogger(__name__)

JOB_STATUS_DEAD = "dead"


class NomadBackend(BackendAdapter, AddressInventory):
    """Submits volume topologies as Nomad jobs."""

    name = "nomad"
    index_placeholder = "${NOMAD_ALLOC_INDEX}"

    def __init__(self, client: NomadClient, purge_on_delete: bool = False):
        self.client = client
        self.purge_on_delete = purge_on_delete

    @classmethod
    def from_config(cls, config: NomadConfig) -> "NomadBackend":
        client = NomadClient(
            address=config.address,
            region=config.region,
            token=config.token,
            timeout=config.timeout,
            retry_count=config.retry_count,
            verify_ssl=config.verify_ssl,
            ca_bundle=config.ca_bundle,
            client_cert=config.client_cert,
            client_key=config.client_key,
        )
        return cls(client)

    def submit(self, topology: Topology) -> JobHandle:
        job = jobspec.to_nomad_job(topology)
        LOG.info("Registering Nomad job %s in region %s", topology.id, topology.region)
        response = self.client.register_job(job)
        eval_id = (response or {}).get("EvalID") or ""
        LOG.info("Registered Nomad job %s (evaluation %s)", topology.id, eval_id or "none")
        return JobHandle(name=topology.name, eval_id=eval_id)

    def read(self, name: str) -> JobRecord:
        return jobspec.from_nomad_job(self.client.get_job(name))

    def delete(self, name: str) -> None:
        # Unknown names surface as VolumeNotFound before anything is deregistered
        self.client.get_job(name)
        LOG.info("Deregistering Nomad job %s (purge=%s)", name, self.purge_on_delete)
        self.client.deregister_job(name, purge=self.purge_on_delete)

    def latest_evaluation(self, name: str) -> Optional[Evaluation]:
        evaluations = self.client.job_evaluations(name)
        if not evaluations:
            return None
        latest = max(evaluations, key=lambda e: e.get("CreateIndex") or 0)
        return jobspec.evaluation_from_nomad(latest)

    def used_addresses(self, subnet: str, exclude: Optional[str] = None) -> Set[str]:
        network = cidr.parse_network(subnet)
        used = set()

        for stub in self.client.list_jobs():
            job_id = stub.get("ID")
            if not job_id or job_id == exclude:
                continue
            if stub.get("Status") == JOB_STATUS_DEAD:
                continue
            try:
                job = self.client.get_job(job_id)
            except VolumeNotFound:
                # Removed between listing and reading
                continue
            used.update(self._job_addresses(job.get("Meta") or {}, network))

        LOG.debug("Addresses in use on %s: %s", subnet, sorted(used))
        return used

    @staticmethod
    def _job_addresses(meta, network: ipaddress.IPv4Network) -> Set[str]:
        addresses = set()
        for key, value in meta.items():
            if key != META_FRONTEND_IP and not key.startswith(BACKEND_IP_PREFIX):
                continue
            try:
                address = ipaddress.IPv4Address(str(value).strip())
            except ValueError:
                continue
            if address in network:
                addresses.add(str(address))
        return addresses
