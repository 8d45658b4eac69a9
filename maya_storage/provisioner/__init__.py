"""Provisioning transformation engine.

- properties: typed volume properties and the volume claim
- resolver: layered property resolution
- network: address allocation
- topology: job topology model and builder
- status: volume status reconciliation
- engine: the end-to-end provisioning pipeline
"""
