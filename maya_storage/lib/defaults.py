"""Datacenter-scoped default properties.

A DefaultPropertySource supplies the values a claim falls back to when it
does not set a property itself: the orchestrator region, the default
datacenter, the controller image, and per-datacenter container networking and
storage options.
"""

from abc import ABC, abstractmethod
from typing import Optional

from oslo_log import log as logging

from maya_storage.exceptions import DatacenterNotFound, InvalidProperty
from maya_storage.lib.config import DatacenterConfig, MayaConfig
from maya_storage.lib.validators import parse_positive_int
from maya_storage.provisioner.properties import PropertyKey

LOG = logging.getLogger(__name__)

# Property kinds a datacenter can provide defaults for.
DATACENTER_KINDS = (
    PropertyKey.PERSISTENCE_LOCATION,
    PropertyKey.REPLICA_COUNT,
    PropertyKey.NETWORK_TYPE,
    PropertyKey.NETWORK_CIDR,
    PropertyKey.INTERFACE,
)


class DefaultPropertySource(ABC):
    """Source of orchestrator and datacenter scoped property defaults."""

    @abstractmethod
    def region(self) -> Optional[str]:
        """Region of the orchestrator deployment."""

    @abstractmethod
    def default_datacenter(self) -> Optional[str]:
        """Datacenter used when a claim does not name one."""

    @abstractmethod
    def controller_image(self) -> Optional[str]:
        """Controller image used when a claim does not name one."""

    @abstractmethod
    def lookup(self, datacenter: str, kind: PropertyKey) -> Optional[str]:
        """Return the datacenter's value for `kind`, or None if not configured.

        Raises:
            DatacenterNotFound: The datacenter is unknown
        """


class ConfigDefaultPropertySource(DefaultPropertySource):
    """Defaults backed by the `[datacenter "<name>"]` sections of the config file."""

    def __init__(self, config: MayaConfig):
        self.config = config

    def region(self) -> Optional[str]:
        return self.config.nomad.region or None

    def default_datacenter(self) -> Optional[str]:
        return self.config.default_datacenter or None

    def controller_image(self) -> Optional[str]:
        return self.config.controller_image

    def lookup(self, datacenter: str, kind: PropertyKey) -> Optional[str]:
        dc = self._datacenter(datacenter)
        kind = PropertyKey(kind)

        if kind == PropertyKey.NETWORK_TYPE:
            value = dc.cn_type
        elif kind == PropertyKey.NETWORK_CIDR:
            value = dc.cn_network_cidr
        elif kind == PropertyKey.INTERFACE:
            value = dc.cn_interface
        elif kind == PropertyKey.PERSISTENCE_LOCATION:
            value = dc.cs_persistence_location
        elif kind == PropertyKey.REPLICA_COUNT:
            value = dc.cs_replica_count
            if value:
                try:
                    parse_positive_int(value)
                except ValueError as e:
                    raise InvalidProperty(
                        key=kind.value,
                        details=f"datacenter '{datacenter}' has invalid cs-replica-count: {e}",
                    )
        else:
            return None

        LOG.debug("Datacenter %s default for %s: %r", datacenter, kind.value, value)
        return value or None

    def _datacenter(self, datacenter: str) -> DatacenterConfig:
        if not datacenter:
            raise DatacenterNotFound(datacenter="")
        dc = self.config.datacenters.get(datacenter)
        if dc is None:
            raise DatacenterNotFound(datacenter=datacenter)
        return dc
