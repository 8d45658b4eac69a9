"""
Unit tests for the orchestrator registry.
"""

import pytest

from maya_storage.exceptions import CapabilityNotSupported, OrchestratorNotFound
from maya_storage.orchestrators.base import AddressInventory, EvaluationReader, TopologySubmitter
from maya_storage.orchestrators.registry import OrchestratorRegistry


class MinimalBackend:
    """Backend that implements no capability at all."""

    name = "minimal"


@pytest.mark.unit
def test_get_registered(registry, fake_backend):
    assert registry.get("fake") is fake_backend
    assert registry.names() == ["fake"]


@pytest.mark.unit
def test_get_unknown(registry):
    with pytest.raises(OrchestratorNotFound, match="kubernetes"):
        registry.get("kubernetes")


@pytest.mark.unit
def test_capability_supported(registry, fake_backend):
    assert registry.capability("fake", TopologySubmitter) is fake_backend
    assert registry.capability("fake", AddressInventory) is fake_backend


@pytest.mark.unit
def test_capability_not_supported():
    registry = OrchestratorRegistry()
    registry.register("minimal", MinimalBackend())

    assert registry.capability("minimal", EvaluationReader) is None
    with pytest.raises(CapabilityNotSupported) as exc_info:
        registry.require("minimal", EvaluationReader)
    assert exc_info.value.kwargs == {"capability": "EvaluationReader", "orchestrator": "minimal"}


@pytest.mark.unit
def test_register_empty_name():
    with pytest.raises(ValueError):
        OrchestratorRegistry().register("", MinimalBackend())


@pytest.mark.unit
def test_register_replaces(registry):
    replacement = MinimalBackend()
    registry.register("fake", replacement)
    assert registry.get("fake") is replacement
