"""Property resolution for volume claims.

Precedence, for every property: a value already on the claim, then the
orchestrator or datacenter scoped default, then the built-in default. A value
already set on the claim is never overwritten, which makes resolution
idempotent.
"""

from typing import Dict

from oslo_log import log as logging

from maya_storage.exceptions import (
    InvalidProperty,
    MissingProperty,
    ReplicaIPCountMismatch,
)
from maya_storage.lib.defaults import DATACENTER_KINDS, DefaultPropertySource
from maya_storage.lib.validators import parse_positive_int, parse_quantity
from maya_storage.provisioner.network.cidr import subnet_of
from maya_storage.provisioner.properties import (
    ALLOCATED_KEYS,
    REQUIRED_KEYS,
    PropertyKey,
    VolumeClaim,
    VolumeProperties,
)

LOG = logging.getLogger(__name__)

BUILTIN_DEFAULTS: Dict[PropertyKey, str] = {
    PropertyKey.NETWORK_TYPE: "host",
    PropertyKey.NETWORK_CIDR: "172.28.128.0/24",
    PropertyKey.INTERFACE: "enp0s8",
    PropertyKey.PERSISTENCE_LOCATION: "/tmp/",
    PropertyKey.REPLICA_COUNT: "2",
}

STORAGE_RESOURCE = "storage"


def validate_required(properties: VolumeProperties, skip=()) -> None:
    """Check every required property is set.

    Raises:
        MissingProperty: naming the first absent key
    """
    for key in REQUIRED_KEYS:
        if key in skip:
            continue
        if not properties.is_set(key):
            raise MissingProperty(key=key.value)


def validate_replica_ips(properties: VolumeProperties) -> None:
    """Check explicit replica IPs agree with the replica count.

    Raises:
        ReplicaIPCountMismatch: list length differs from the replica count
    """
    if not properties.is_set(PropertyKey.REPLICA_IPS) or properties.replica_count is None:
        return
    if len(properties.replica_ips) != properties.replica_count:
        raise ReplicaIPCountMismatch(
            ip_count=len(properties.replica_ips),
            replica_count=properties.replica_count,
        )


class PropertyResolver:
    """Fills in the properties of a claim from its layered sources."""

    def __init__(self, defaults: DefaultPropertySource, builtin_defaults=None):
        self.defaults = defaults
        self.builtin_defaults = dict(BUILTIN_DEFAULTS if builtin_defaults is None else builtin_defaults)

    def resolve(self, claim: VolumeClaim) -> VolumeProperties:
        """Resolve the claim's properties in place.

        Network addresses are not allocated here; controllerIPs and
        replicaIPs are left for the network allocator.

        Returns:
            The claim's (now resolved) properties

        Raises:
            MissingProperty: a required property could not be sourced
            InvalidProperty: a property value cannot be parsed
            ReplicaIPCountMismatch: explicit replica IPs disagree with the count
            DatacenterNotFound: the datacenter has no configuration
            InvalidCIDR: the network CIDR cannot be parsed
        """
        props = claim.properties

        self._set_storage_size(claim)

        if not props.is_set(PropertyKey.REGION):
            self._set_if_present(props, PropertyKey.REGION, self.defaults.region())

        if not props.is_set(PropertyKey.DATACENTER):
            self._set_if_present(props, PropertyKey.DATACENTER, self.defaults.default_datacenter())

        # Datacenter scoped lookups below need both of these
        for key in (PropertyKey.REGION, PropertyKey.DATACENTER):
            if not props.is_set(key):
                raise MissingProperty(key=key.value)

        if not props.is_set(PropertyKey.CONTROLLER_IMAGE):
            self._set_if_present(props, PropertyKey.CONTROLLER_IMAGE, self.defaults.controller_image())

        # User provided options score over datacenter specific configuration
        for kind in DATACENTER_KINDS:
            if props.is_set(kind):
                continue
            value = self.defaults.lookup(props.datacenter, kind)
            if not value:
                value = self.builtin_defaults.get(kind)
            self._set_if_present(props, kind, value)

        if not props.is_set(PropertyKey.SUBNET_CIDR) and props.is_set(PropertyKey.NETWORK_CIDR):
            props.subnet_cidr = subnet_of(props.network_cidr)

        if props.replica_count is not None:
            try:
                parse_positive_int(props.replica_count)
            except ValueError as e:
                raise InvalidProperty(key=PropertyKey.REPLICA_COUNT.value, details=str(e))

        validate_replica_ips(props)
        validate_required(props, skip=ALLOCATED_KEYS)

        LOG.debug("Resolved properties for volume %s: %s", claim.name, props.labels())
        return props

    def _set_storage_size(self, claim: VolumeClaim) -> None:
        props = claim.properties
        if not props.is_set(PropertyKey.STORAGE_SIZE):
            size = (claim.resources.get(STORAGE_RESOURCE) or "").strip()
            if not size:
                # Reported by validate_required, in key order
                return
            props.storage_size = size

        try:
            parse_quantity(props.storage_size)
        except ValueError as e:
            raise InvalidProperty(key=PropertyKey.STORAGE_SIZE.value, details=str(e))

    @staticmethod
    def _set_if_present(props: VolumeProperties, key: PropertyKey, value) -> None:
        if value is None or value == "":
            return
        try:
            props.set(key, value)
        except ValueError as e:
            raise InvalidProperty(key=key.value, details=str(e))
