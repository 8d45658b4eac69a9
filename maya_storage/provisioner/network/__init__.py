"""Address allocation for volume frontends and replicas.

- cidr: subnet derivation and ascending host address selection
- NetworkAllocator: per-subnet serialized allocation with partial re-use
"""

from .base import NetworkAllocation

__all__ = ["NetworkAllocation"]
