"""
Typed volume properties and the volume claim.

Every property a claim may carry is declared here with its type. The public
(label) name of each property is its PropertyKey value, so claims can still
be expressed as flat string maps at the HTTP and CLI boundaries.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from maya_storage.exceptions import InvalidProperty
from maya_storage.lib.validators import validate_name


class PropertyKey(str, Enum):
    """Recognized volume property keys."""

    REGION = "region"
    DATACENTER = "datacenter"
    CONTROLLER_IMAGE = "controllerImage"
    CONTROLLER_IPS = "controllerIPs"
    REPLICA_IPS = "replicaIPs"
    REPLICA_COUNT = "replicaCount"
    NETWORK_TYPE = "networkType"
    NETWORK_CIDR = "networkCIDR"
    SUBNET_CIDR = "subnetCIDR"
    INTERFACE = "interface"
    PERSISTENCE_LOCATION = "persistenceLocation"
    STORAGE_SIZE = "storageSize"


# Keys that must be non-empty before a topology can be built, in the order
# they are reported when missing.
REQUIRED_KEYS = (
    PropertyKey.REGION,
    PropertyKey.DATACENTER,
    PropertyKey.CONTROLLER_IMAGE,
    PropertyKey.CONTROLLER_IPS,
    PropertyKey.REPLICA_IPS,
    PropertyKey.NETWORK_TYPE,
    PropertyKey.SUBNET_CIDR,
    PropertyKey.INTERFACE,
    PropertyKey.PERSISTENCE_LOCATION,
    PropertyKey.STORAGE_SIZE,
    PropertyKey.REPLICA_COUNT,
)

# Keys filled by the network allocator rather than by property resolution.
ALLOCATED_KEYS = (PropertyKey.CONTROLLER_IPS, PropertyKey.REPLICA_IPS)

_STRING_FIELDS = (
    "region",
    "datacenter",
    "controller_image",
    "controller_ip",
    "network_type",
    "network_cidr",
    "subnet_cidr",
    "interface",
    "persistence_location",
    "storage_size",
)


class VolumeProperties(BaseModel):
    """Resolved (or partially resolved) properties of a volume."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", validate_assignment=True)

    region: Optional[str] = Field(None, alias=PropertyKey.REGION.value)
    datacenter: Optional[str] = Field(None, alias=PropertyKey.DATACENTER.value)
    controller_image: Optional[str] = Field(None, alias=PropertyKey.CONTROLLER_IMAGE.value)
    controller_ip: Optional[str] = Field(None, alias=PropertyKey.CONTROLLER_IPS.value)
    replica_ips: Optional[List[str]] = Field(None, alias=PropertyKey.REPLICA_IPS.value)
    replica_count: Optional[int] = Field(None, alias=PropertyKey.REPLICA_COUNT.value)
    network_type: Optional[str] = Field(None, alias=PropertyKey.NETWORK_TYPE.value)
    network_cidr: Optional[str] = Field(None, alias=PropertyKey.NETWORK_CIDR.value)
    subnet_cidr: Optional[str] = Field(None, alias=PropertyKey.SUBNET_CIDR.value)
    interface: Optional[str] = Field(None, alias=PropertyKey.INTERFACE.value)
    persistence_location: Optional[str] = Field(None, alias=PropertyKey.PERSISTENCE_LOCATION.value)
    storage_size: Optional[str] = Field(None, alias=PropertyKey.STORAGE_SIZE.value)

    @field_validator(*_STRING_FIELDS, mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("replica_ips", mode="before")
    @classmethod
    def split_replica_ips(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = [ip.strip() for ip in v.split(",")]
        if isinstance(v, (list, tuple)):
            ips = [str(ip).strip() for ip in v if str(ip).strip()]
            return ips or None
        return v

    @field_validator("replica_count", mode="before")
    @classmethod
    def blank_count_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def get(self, key: PropertyKey) -> Any:
        return getattr(self, _FIELD_BY_KEY[PropertyKey(key)])

    def set(self, key: PropertyKey, value: Any) -> None:
        setattr(self, _FIELD_BY_KEY[PropertyKey(key)], value)

    def is_set(self, key: PropertyKey) -> bool:
        value = self.get(key)
        return value is not None and value != "" and value != []

    def labels(self) -> Dict[str, str]:
        """Render the properties as a flat string map, skipping unset keys."""
        labels = {}
        for key in PropertyKey:
            if not self.is_set(key):
                continue
            value = self.get(key)
            if isinstance(value, list):
                value = ",".join(value)
            labels[key.value] = str(value)
        return labels


_FIELD_BY_KEY = {PropertyKey(info.alias): name for name, info in VolumeProperties.model_fields.items()}


class VolumeClaim(BaseModel):
    """A request describing the desired volume.

    The claim is owned by the caller and mutated in place while its
    properties are resolved and its addresses allocated.
    """

    name: str = Field(..., min_length=1, max_length=64)
    properties: VolumeProperties = Field(default_factory=VolumeProperties)
    resources: Dict[str, str] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        validate_name(v)
        return v

    @classmethod
    def from_labels(
        cls,
        name: str,
        labels: Optional[Dict[str, Any]] = None,
        resources: Optional[Dict[str, Any]] = None,
    ) -> "VolumeClaim":
        """Build a claim from a flat label map.

        Raises:
            InvalidProperty: Unknown label key, malformed value, or bad name
        """
        try:
            validate_name(name)
        except ValueError as e:
            raise InvalidProperty(key="name", details=str(e))

        try:
            properties = VolumeProperties.model_validate(dict(labels or {}))
        except ValidationError as e:
            error = e.errors()[0]
            key = error["loc"][0] if error.get("loc") else "labels"
            raise InvalidProperty(key=key, details=error["msg"])

        return cls(
            name=name,
            properties=properties,
            resources={str(k): str(v) for k, v in (resources or {}).items()},
        )
