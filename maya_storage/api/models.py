"""
Pydantic models for API requests and responses.
"""

from typing import Dict

from pydantic import BaseModel, Field, field_validator

from maya_storage.lib.validators import validate_name


class VolumeCreate(BaseModel):
    """Request model for provisioning a volume."""

    name: str = Field(..., description="Volume name", min_length=1, max_length=64)
    labels: Dict[str, str] = Field(
        default_factory=dict, description="Volume properties (e.g., replicaCount, networkCIDR)"
    )
    resources: Dict[str, str] = Field(
        default_factory=dict, description="Requested resources (e.g., {\"storage\": \"5Gi\"})"
    )

    @field_validator("name")
    def validate_volume_name(cls, v: str) -> str:
        validate_name(v)
        return v


class VolumeResponse(BaseModel):
    """Response model for volume operations."""

    request_id: str
    status: str
    data: dict


class VSMResponse(BaseModel):
    """Response model for reading a volume's topology record."""

    request_id: str
    status: str
    data: dict


class SuccessResponse(BaseModel):
    """Generic success response."""

    request_id: str
    status: str
    data: dict


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: dict = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    request_id: str
    status: str
    error: ErrorDetail
