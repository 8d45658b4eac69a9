"""Network allocator for volume frontends and replicas.

Addresses are drawn in ascending order from the usable host range of the
volume's subnet. The first drawn address goes to the frontend, the rest to
the replicas in order.

Thread Safety Model:
--------------------
Allocation for a given subnet runs inside a named lock
(`maya-subnet-<subnet>`), so two requests on the same subnet never see the
same free addresses. Subnets of different sizes can share addresses
(10.0.0.0/25 lies inside 10.0.0.0/24), so an allocation also waits while an
overlapping subnet has an allocation in flight. Requests on disjoint subnets
do not block each other. The lock is process local; addresses recorded in
live topologies (via the orchestrator's AddressInventory capability) cover
allocations made by other processes once their topologies are submitted.

Partial Allocation:
-------------------
A claim may already carry a frontend IP, replica IPs, or both (explicit user
values, or a retry after a failed submission). Only the missing role is
allocated; existing addresses are kept and excluded from the draw.
"""

import contextlib
import ipaddress
import threading
from typing import Dict, Iterator, List, Optional, Set

from oslo_concurrency import lockutils
from oslo_log import log as logging

from maya_storage.exceptions import (
    IncompleteSpec,
    InvalidProperty,
    MissingProperty,
)
from maya_storage.lib.validators import parse_positive_int
from maya_storage.orchestrators.base import AddressInventory
from maya_storage.provisioner.network import cidr
from maya_storage.provisioner.network.base import NetworkAllocation
from maya_storage.provisioner.properties import PropertyKey, VolumeClaim
from maya_storage.provisioner.resolver import validate_replica_ips

LOG = logging.getLogger(__name__)

LOCK_PREFIX = "maya-subnet-"


class NetworkAllocator:
    """Allocates frontend and replica addresses for volume claims."""

    def __init__(self, inventory: Optional[AddressInventory] = None):
        """Initialize allocator.

        Args:
            inventory: Optional source of addresses already used by live
                topologies on the orchestrator
        """
        self.inventory = inventory
        # {subnet: {volume name: set of addresses}}
        self._reservations: Dict[str, Dict[str, Set[str]]] = {}
        # {volume name: subnet}
        self._subnet_by_volume: Dict[str, str] = {}
        self._ledger_lock = threading.Lock()
        # {network: number of allocations in flight}
        self._in_flight: Dict[ipaddress.IPv4Network, int] = {}
        self._in_flight_changed = threading.Condition(self._ledger_lock)

    def allocate(self, claim: VolumeClaim) -> NetworkAllocation:
        """Assign the claim's missing frontend and replica addresses.

        The claim's controllerIPs and replicaIPs properties are updated in
        place, but only once every requested address has been found.

        Returns:
            NetworkAllocation for the claim

        Raises:
            MissingProperty: subnet or replica count not resolved yet
            InvalidProperty: the replica count is not a positive integer, or
                an address on the claim is malformed, outside the subnet, or
                duplicated
            ReplicaIPCountMismatch: replica IPs on the claim disagree with the
                replica count
            InvalidCIDR: the subnet cannot be parsed
            AddressPoolExhausted: not enough free addresses in the subnet
            BackendError: the orchestrator could not list addresses in use
        """
        props = claim.properties
        if not props.is_set(PropertyKey.SUBNET_CIDR):
            raise MissingProperty(key=PropertyKey.SUBNET_CIDR.value)
        if props.replica_count is None:
            raise MissingProperty(key=PropertyKey.REPLICA_COUNT.value)
        try:
            parse_positive_int(props.replica_count)
        except ValueError as e:
            raise InvalidProperty(key=PropertyKey.REPLICA_COUNT.value, details=str(e))

        validate_replica_ips(props)

        subnet = cidr.subnet_of(props.subnet_cidr)

        with self._exclusive(cidr.parse_network(subnet)):
            with lockutils.lock(LOCK_PREFIX + subnet):
                return self._allocate_locked(claim, subnet)

    def release(self, name: str) -> None:
        """Forget the addresses reserved for a volume.

        Idempotent: releasing an unknown volume is a no-op.
        """
        with self._ledger_lock:
            subnet = self._subnet_by_volume.pop(name, None)
            if subnet is None:
                return
            released = self._reservations.get(subnet, {}).pop(name, set())
        LOG.debug("Released %d address(es) of volume %s in %s", len(released), name, subnet)

    def reserved(self, subnet: str) -> Set[str]:
        """Addresses reserved in-process inside a subnet, across all volumes."""
        network = cidr.parse_network(cidr.subnet_of(subnet))
        with self._ledger_lock:
            return self._reserved_in(network, exclude_volume=None)

    @contextlib.contextmanager
    def _exclusive(self, network: ipaddress.IPv4Network) -> Iterator[None]:
        """Wait until no overlapping, different subnet is being allocated."""
        with self._in_flight_changed:
            self._in_flight_changed.wait_for(
                lambda: not any(other != network and other.overlaps(network) for other in self._in_flight)
            )
            self._in_flight[network] = self._in_flight.get(network, 0) + 1
        try:
            yield
        finally:
            with self._in_flight_changed:
                self._in_flight[network] -= 1
                if not self._in_flight[network]:
                    del self._in_flight[network]
                self._in_flight_changed.notify_all()

    def _reserved_in(self, network: ipaddress.IPv4Network, exclude_volume: Optional[str]) -> Set[str]:
        # Caller holds the ledger lock
        found = set()
        for subnet, volumes in self._reservations.items():
            if not cidr.parse_network(subnet).overlaps(network):
                continue
            for volume, addresses in volumes.items():
                if volume == exclude_volume:
                    continue
                found.update(ip for ip in addresses if ipaddress.IPv4Address(ip) in network)
        return found

    def _allocate_locked(self, claim: VolumeClaim, subnet: str) -> NetworkAllocation:
        props = claim.properties
        replica_count = props.replica_count

        frontend_ip = props.controller_ip
        backend_ips = list(props.replica_ips or [])
        used = self._used_addresses(subnet, exclude_volume=claim.name)
        self._check_claimed_addresses(subnet, frontend_ip, backend_ips, used)

        used.update(backend_ips)
        if frontend_ip:
            used.add(frontend_ip)

        if not frontend_ip and not backend_ips:
            # One address for the frontend plus one per replica
            ips = cidr.available_addresses(subnet, 1 + replica_count, exclude=used)
            frontend_ip, backend_ips = ips[0], ips[1:]
            LOG.info(
                "Allocated frontend %s and %d replica address(es) for volume %s in %s",
                frontend_ip, len(backend_ips), claim.name, subnet,
            )
        elif not frontend_ip:
            frontend_ip = cidr.available_addresses(subnet, 1, exclude=used)[0]
            LOG.info("Allocated frontend %s for volume %s in %s", frontend_ip, claim.name, subnet)
        elif not backend_ips:
            backend_ips = cidr.available_addresses(subnet, replica_count, exclude=used)
            LOG.info(
                "Allocated %d replica address(es) for volume %s in %s",
                len(backend_ips), claim.name, subnet,
            )
        else:
            LOG.debug("Volume %s already carries all of its addresses", claim.name)

        allocation = NetworkAllocation(
            frontend_ip=frontend_ip,
            backend_ips=tuple(backend_ips),
            subnet=subnet,
        )
        if len(allocation.backend_ips) != replica_count:
            raise IncompleteSpec(
                details=f"allocated {len(allocation.backend_ips)} replica address(es) for replica count {replica_count}"
            )

        props.controller_ip = allocation.frontend_ip
        props.replica_ips = list(allocation.backend_ips)
        self._reserve(claim.name, subnet, allocation.addresses)
        return allocation

    def _check_claimed_addresses(
        self, subnet: str, frontend_ip: Optional[str], backend_ips: List[str], used: Set[str]
    ) -> None:
        network = cidr.parse_network(subnet)
        seen = set()

        checks = []
        if frontend_ip:
            checks.append((PropertyKey.CONTROLLER_IPS, frontend_ip))
        checks.extend((PropertyKey.REPLICA_IPS, ip) for ip in backend_ips)

        for key, ip in checks:
            try:
                address = ipaddress.IPv4Address(ip)
            except ValueError as e:
                raise InvalidProperty(key=key.value, details=f"invalid IPv4 address: {e}")
            if address not in network:
                raise InvalidProperty(key=key.value, details=f"address {ip} is not in subnet {subnet}")
            if address in seen:
                raise InvalidProperty(key=key.value, details=f"address {ip} is assigned more than once")
            if str(address) in used:
                raise InvalidProperty(key=key.value, details=f"address {ip} is already in use by another volume")
            seen.add(address)

    def _used_addresses(self, subnet: str, exclude_volume: str) -> Set[str]:
        network = cidr.parse_network(subnet)
        with self._ledger_lock:
            used = self._reserved_in(network, exclude_volume=exclude_volume)

        if self.inventory is not None:
            used.update(self.inventory.used_addresses(subnet, exclude=exclude_volume))

        return used

    def _reserve(self, name: str, subnet: str, addresses) -> None:
        with self._ledger_lock:
            previous = self._subnet_by_volume.get(name)
            if previous is not None and previous != subnet:
                self._reservations.get(previous, {}).pop(name, None)
            self._subnet_by_volume[name] = subnet
            self._reservations.setdefault(subnet, {})[name] = set(addresses)
