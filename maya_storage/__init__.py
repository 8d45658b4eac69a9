"""
Maya Storage - replicated block storage volumes on a cluster orchestrator.

This package turns volume claims into multi-replica job topologies, submits
them to an orchestrator (Nomad), and reports volume status back from the
orchestrator's job and evaluation records.
"""

__version__ = "0.1.0"
__all__ = ["api", "cli", "orchestrators", "provisioner"]
