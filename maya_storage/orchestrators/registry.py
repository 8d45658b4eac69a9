"""Registry of orchestrator backends.

The registry is built once at startup and handed to whatever needs a backend
(the provisioner, the API dependency). There is no module level instance.
"""

from typing import Dict, List, Optional, Type, TypeVar

from oslo_log import log as logging

from maya_storage.exceptions import CapabilityNotSupported, OrchestratorNotFound

LOG = logging.getLogger(__name__)

C = TypeVar("C")


class OrchestratorRegistry:
    def __init__(self):
        self._backends: Dict[str, object] = {}

    def register(self, name: str, backend: object) -> None:
        if not name:
            raise ValueError("Orchestrator name cannot be empty")
        if name in self._backends:
            LOG.warning("Replacing registered orchestrator %s", name)
        self._backends[name] = backend
        LOG.debug("Registered orchestrator %s (%s)", name, type(backend).__name__)

    def names(self) -> List[str]:
        return sorted(self._backends)

    def get(self, name: str) -> object:
        """Return the backend registered as `name`.

        Raises:
            OrchestratorNotFound: nothing is registered under `name`
        """
        try:
            return self._backends[name]
        except KeyError:
            raise OrchestratorNotFound(name=name)

    def capability(self, name: str, capability: Type[C]) -> Optional[C]:
        """Return the backend as `capability`, or None if it does not implement it."""
        backend = self.get(name)
        if isinstance(backend, capability):
            return backend
        return None

    def require(self, name: str, capability: Type[C]) -> C:
        """Like capability(), but raise when the backend lacks it.

        Raises:
            OrchestratorNotFound: nothing is registered under `name`
            CapabilityNotSupported: the backend does not implement `capability`
        """
        backend = self.capability(name, capability)
        if backend is None:
            raise CapabilityNotSupported(capability=capability.__name__, orchestrator=name)
        return backend
