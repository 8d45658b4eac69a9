"""CIDR helpers for address allocation."""

import ipaddress
from typing import Iterable, Iterator, List, Optional

from maya_storage.exceptions import AddressPoolExhausted, InvalidCIDR


def parse_network(cidr: str) -> ipaddress.IPv4Network:
    """Parse an IPv4 network in CIDR notation.

    Host bits are allowed ("172.28.128.1/24" is the 172.28.128.0/24 network).

    Raises:
        InvalidCIDR: If the CIDR is malformed or not IPv4
    """
    if cidr is None or not str(cidr).strip():
        raise InvalidCIDR(cidr=cidr, details="empty CIDR")

    raw = str(cidr).strip()
    if "/" not in raw:
        raise InvalidCIDR(cidr=cidr, details="CIDR must be in format IP/PREFIX")

    try:
        network = ipaddress.ip_network(raw, strict=False)
    except ValueError as e:
        raise InvalidCIDR(cidr=cidr, details=str(e))

    if network.version != 4:
        raise InvalidCIDR(cidr=cidr, details=f"only IPv4 networks are supported, got IPv{network.version}")

    return network


def subnet_of(network_cidr: str, prefixlen: Optional[int] = None) -> str:
    """Derive a usable subnet from a network CIDR.

    The result is deterministic: the first subnet of `prefixlen` contained in
    the network, or the network itself when `prefixlen` is omitted.

    Raises:
        InvalidCIDR: If the network is malformed or `prefixlen` does not fit
    """
    network = parse_network(network_cidr)
    if prefixlen is None or prefixlen == network.prefixlen:
        return str(network)

    if prefixlen < network.prefixlen or prefixlen > 32:
        raise InvalidCIDR(
            cidr=network_cidr,
            details=f"prefix length {prefixlen} does not fit inside /{network.prefixlen}",
        )

    return str(next(network.subnets(new_prefix=prefixlen)))


def usable_hosts(subnet: str) -> Iterator[ipaddress.IPv4Address]:
    """Iterate the usable host addresses of a subnet in ascending order.

    Network and broadcast addresses are excluded, except for /31 and /32
    where every address is a host address.
    """
    network = parse_network(subnet)
    if network.prefixlen >= 31:
        return iter(network)
    return network.hosts()


def host_count(subnet: str) -> int:
    network = parse_network(subnet)
    if network.prefixlen >= 31:
        return network.num_addresses
    return network.num_addresses - 2


def available_addresses(subnet: str, count: int, exclude: Iterable[str] = ()) -> List[str]:
    """Return the first `count` usable addresses of `subnet` not in `exclude`.

    Raises:
        InvalidCIDR: If the subnet is malformed
        AddressPoolExhausted: If fewer than `count` addresses are free
    """
    network = parse_network(subnet)
    excluded = set()
    for ip in exclude:
        try:
            excluded.add(ipaddress.IPv4Address(str(ip).strip()))
        except ValueError:
            continue

    if count <= 0:
        return []

    addresses = []
    for host in usable_hosts(subnet):
        if host in excluded:
            continue
        addresses.append(str(host))
        if len(addresses) == count:
            return addresses

    available = host_count(subnet) - len([ip for ip in excluded if ip in network])
    raise AddressPoolExhausted(subnet=str(network), requested=count, available=max(available, 0))
