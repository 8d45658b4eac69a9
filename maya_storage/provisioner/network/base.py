"""Network allocation result."""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class NetworkAllocation:
    """Addresses assigned to one volume.

    Attributes:
        frontend_ip: Address of the controller (frontend) instance
        backend_ips: Replica addresses, ordered by replica ordinal
        subnet: Subnet every address belongs to, in CIDR notation
    """

    frontend_ip: str
    backend_ips: Tuple[str, ...]
    subnet: str

    @property
    def addresses(self) -> Tuple[str, ...]:
        return (self.frontend_ip,) + tuple(self.backend_ips)
