"""Volume topology (job) model and builder.

A topology is one job with two task groups:

- the frontend group runs a single controller instance
- the backend group runs one replica per replica count, spread across hosts

The job's metadata records what is needed to reconstruct connection details
later (target portal, IQN, replica addresses) without re-deriving them.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

from oslo_log import log as logging

from maya_storage.exceptions import IncompleteSpec, MissingProperty
from maya_storage.provisioner.network import cidr
from maya_storage.provisioner.properties import VolumeProperties
from maya_storage.provisioner.resolver import validate_required

LOG = logging.getLogger(__name__)

JOB_TYPE_SERVICE = "service"
JOB_PRIORITY = 50

GROUP_NAME = "jiva-pod"
FRONTEND_TASK = "fe"
BACKEND_TASK = "be"
TASK_DRIVER = "raw_exec"

ISCSI_PORT = 3260
IQN_PREFIX = "iqn.2016-09.com.openebs.jiva"

FRONTEND_LAUNCHER = "launch-jiva-ctl-with-ip"
BACKEND_LAUNCHER = "launch-jiva-rep-with-ip"
LAUNCHER_BASE_URL = "https://raw.githubusercontent.com/openebs/jiva/master/scripts/"

DEFAULT_INDEX_PLACEHOLDER = "${NOMAD_ALLOC_INDEX}"

# Metadata keys
META_BACKEND_VOLSIZE = "JIVA_REP_VOLSIZE"
META_FRONTEND_IP = "JIVA_CTL_IP"
META_TARGET_PORTAL = "JIVA_TARGET_PORTAL"
META_IQN = "JIVA_IQN"
META_REPLICA_COUNT = "JIVA_REP_COUNT"
BACKEND_IP_PREFIX = "JIVA_REP_IP_"


@dataclass
class Constraint:
    l_target: str = ""
    operand: str = "="
    r_target: str = ""


@dataclass
class RestartPolicy:
    """Restart attempts allowed inside a rolling interval.

    Exceeding `attempts` within `interval` is terminal for the instance.
    """

    attempts: int = 3
    interval: timedelta = timedelta(minutes=5)
    delay: timedelta = timedelta(seconds=25)
    mode: str = "delay"


@dataclass
class Resources:
    cpu: int = 50
    memory_mb: int = 50
    network_mbits: int = 50


@dataclass
class Artifact:
    source: str
    relative_dest: str = "local/"


@dataclass
class LogConfig:
    max_files: int = 3
    max_file_size_mb: int = 1


@dataclass
class Task:
    name: str
    driver: str = TASK_DRIVER
    config: Dict[str, Any] = field(default_factory=dict)
    env: Dict[str, str] = field(default_factory=dict)
    resources: Resources = field(default_factory=Resources)
    artifacts: List[Artifact] = field(default_factory=list)
    log_config: LogConfig = field(default_factory=LogConfig)


@dataclass
class TaskGroup:
    name: str
    count: int
    tasks: List[Task]
    constraints: List[Constraint] = field(default_factory=list)
    restart_policy: RestartPolicy = field(default_factory=RestartPolicy)


@dataclass
class Topology:
    """A volume's job definition, as submitted to an orchestrator."""

    name: str
    region: str
    datacenters: List[str]
    task_groups: List[TaskGroup]
    meta: Dict[str, str] = field(default_factory=dict)
    constraints: List[Constraint] = field(default_factory=list)
    job_type: str = JOB_TYPE_SERVICE
    priority: int = JOB_PRIORITY

    @property
    def id(self) -> str:
        # Job ID is the volume name
        return self.name

    def group(self, name: str) -> Optional[TaskGroup]:
        for group in self.task_groups:
            if group.name == name:
                return group
        return None

    @property
    def frontend_group(self) -> Optional[TaskGroup]:
        return self.group(f"{FRONTEND_TASK}-{GROUP_NAME}")

    @property
    def backend_group(self) -> Optional[TaskGroup]:
        return self.group(f"{BACKEND_TASK}-{GROUP_NAME}")


def backend_ip_key(index: int) -> str:
    return f"{BACKEND_IP_PREFIX}{index}"


class TopologyBuilder:
    """Builds the frontend/backend topology of a resolved, allocated volume."""

    def __init__(
        self,
        index_placeholder: str = DEFAULT_INDEX_PLACEHOLDER,
        restart_policy: Optional[RestartPolicy] = None,
        resources: Optional[Resources] = None,
    ):
        self.index_placeholder = index_placeholder
        self.restart_policy = restart_policy or RestartPolicy()
        self.resources = resources or Resources()

    def build(self, name: str, properties: VolumeProperties) -> Topology:
        """Build the topology for volume `name`.

        Raises:
            IncompleteSpec: a required property is missing or the replica
                addresses do not match the replica count
        """
        if not name:
            raise IncompleteSpec(details="volume name is missing")

        try:
            validate_required(properties)
        except MissingProperty as e:
            raise IncompleteSpec(details=str(e))

        replica_count = properties.replica_count
        backend_ips = list(properties.replica_ips)
        if replica_count <= 0:
            raise IncompleteSpec(details=f"invalid replica count '{replica_count}'")
        if len(backend_ips) != replica_count:
            raise IncompleteSpec(
                details=f"replica IP count '{len(backend_ips)}' does not match replica count '{replica_count}'"
            )

        frontend_ip = properties.controller_ip
        size = properties.storage_size
        prefixlen = str(cidr.parse_network(properties.subnet_cidr).prefixlen)
        idx = self.index_placeholder

        meta = {
            META_BACKEND_VOLSIZE: size,
            META_FRONTEND_IP: frontend_ip,
            META_TARGET_PORTAL: f"{frontend_ip}:{ISCSI_PORT}",
            META_IQN: f"{IQN_PREFIX}:{name}",
            META_REPLICA_COUNT: str(replica_count),
        }

        # The frontend environment interpolates the orchestrator's instance index
        frontend_env = {
            "JIVA_CTL_NAME": f"{name}-{FRONTEND_TASK}{idx}",
            "JIVA_CTL_VERSION": properties.controller_image,
            "JIVA_CTL_VOLNAME": name,
            "JIVA_CTL_VOLSIZE": size,
            "JIVA_CTL_IP": frontend_ip,
            "JIVA_CTL_SUBNET": prefixlen,
            "JIVA_CTL_IFACE": properties.interface,
        }

        backend_env = {
            "NOMAD_ALLOC_INDEX": idx,
            "JIVA_REP_NAME": f"{name}-{BACKEND_TASK}{idx}",
            "JIVA_CTL_IP": frontend_ip,
            "JIVA_REP_VOLNAME": name,
            "JIVA_REP_VOLSIZE": size,
            "JIVA_REP_VOLSTORE": self._volume_store(properties.persistence_location, name),
            "JIVA_REP_VERSION": properties.controller_image,
            "JIVA_REP_NETWORK": properties.network_type,
            "JIVA_REP_IFACE": properties.interface,
            "JIVA_REP_SUBNET": prefixlen,
        }

        # Each replica picks its own address by instance index
        for i, ip in enumerate(backend_ips):
            backend_env[backend_ip_key(i)] = ip
            meta[backend_ip_key(i)] = ip

        frontend = TaskGroup(
            name=f"{FRONTEND_TASK}-{GROUP_NAME}",
            count=1,
            restart_policy=self._restart_policy(),
            tasks=[self._task(FRONTEND_TASK, FRONTEND_LAUNCHER, frontend_env)],
        )

        # Replicas must not share a host
        backend = TaskGroup(
            name=f"{BACKEND_TASK}-{GROUP_NAME}",
            count=replica_count,
            constraints=[Constraint(operand="distinct_hosts", r_target="true")],
            restart_policy=self._restart_policy(),
            tasks=[self._task(BACKEND_TASK, BACKEND_LAUNCHER, backend_env)],
        )

        topology = Topology(
            name=name,
            region=properties.region,
            datacenters=[properties.datacenter],
            constraints=[Constraint(l_target="${attr.kernel.name}", operand="=", r_target="linux")],
            meta=meta,
            task_groups=[frontend, backend],
        )
        LOG.debug("Built topology for volume %s with %d replica(s)", name, replica_count)
        return topology

    def _volume_store(self, persistence_location: str, name: str) -> str:
        base = persistence_location.rstrip("/")
        return f"{base}/{name}/{BACKEND_TASK}{self.index_placeholder}"

    def _restart_policy(self) -> RestartPolicy:
        policy = self.restart_policy
        return RestartPolicy(
            attempts=policy.attempts,
            interval=policy.interval,
            delay=policy.delay,
            mode=policy.mode,
        )

    def _task(self, task_name: str, launcher: str, env: Dict[str, str]) -> Task:
        return Task(
            name=task_name,
            config={"command": launcher},
            env=env,
            resources=Resources(
                cpu=self.resources.cpu,
                memory_mb=self.resources.memory_mb,
                network_mbits=self.resources.network_mbits,
            ),
            artifacts=[Artifact(source=LAUNCHER_BASE_URL + launcher)],
        )
