"""Maya Storage exceptions."""


class MayaStorageException(Exception):
    """Base exception for provisioning errors."""

    message = "An unknown exception occurred."

    def __init__(self, message=None, **kwargs):
        """Initialize exception with optional custom message."""
        self.kwargs = kwargs
        if message:
            self.message = message
        super(MayaStorageException, self).__init__(self.message % kwargs)


# Claim / property errors


class MissingProperty(MayaStorageException):
    """A required volume property is absent after resolution.

    Not retryable: the caller must supply the property or fix the
    datacenter configuration.
    """

    message = "Missing required property '%(key)s'"

    @property
    def key(self):
        return self.kwargs.get("key")


class InvalidProperty(MayaStorageException):
    """A volume property is unknown or cannot be parsed."""

    message = "Invalid property '%(key)s': %(details)s"

    @property
    def key(self):
        return self.kwargs.get("key")


class ReplicaIPCountMismatch(MayaStorageException):
    """Explicit replica IPs disagree with the replica count.

    Raised before any address allocation takes place.
    """

    message = "Replica IP count '%(ip_count)s' does not match replica count '%(replica_count)s'"


class DatacenterNotFound(MayaStorageException):
    """The datacenter has no configuration to source defaults from."""

    message = "No details available for datacenter '%(datacenter)s'"


# Network errors


class InvalidCIDR(MayaStorageException):
    """A network or subnet CIDR cannot be parsed."""

    message = "Invalid CIDR '%(cidr)s': %(details)s"


class AddressPoolExhausted(MayaStorageException):
    """Fewer usable addresses remain in the subnet than were requested.

    This is a non-retryable error for the same subnet. The caller may retry
    with a different subnet, or free addresses by deleting volumes.
    """

    message = "Subnet %(subnet)s exhausted: requested %(requested)s address(es), %(available)s available"


# Topology errors


class IncompleteSpec(MayaStorageException):
    """Topology builder invoked with missing or inconsistent inputs.

    Indicates the builder ran before resolution and allocation completed.
    """

    message = "Incomplete volume spec: %(details)s"


# Backend errors


class NotFound(MayaStorageException):
    """Generic resource not found error."""

    message = "Resource %(resource_id)s not found"


class VolumeNotFound(NotFound):
    """Volume topology not found in the orchestrator."""

    message = "Volume %(name)s not found"


class BackendError(MayaStorageException):
    """Orchestrator submission or transport failure."""

    message = "Orchestrator error: %(details)s"


class BackendConnectionError(BackendError):
    """Orchestrator could not be reached."""

    message = "Failed to connect to orchestrator: %(details)s"


class BackendTimeout(BackendError):
    """Orchestrator request timed out."""

    message = "Orchestrator request timed out after %(timeout)s seconds"


# Registry errors


class OrchestratorNotFound(MayaStorageException):
    """No orchestrator registered under the requested name."""

    message = "Orchestrator '%(name)s' is not registered"


class CapabilityNotSupported(MayaStorageException):
    """Orchestrator does not implement the requested capability."""

    message = "Capability '%(capability)s' not supported by orchestrator '%(orchestrator)s'"
