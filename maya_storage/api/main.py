"""
FastAPI main application.
"""

import logging
import re
import uuid
from functools import lru_cache
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from maya_storage import __version__
from maya_storage.api.models import (
    ErrorDetail,
    ErrorResponse,
    SuccessResponse,
    VolumeCreate,
    VolumeResponse,
    VSMResponse,
)
from maya_storage.exceptions import (
    AddressPoolExhausted,
    BackendError,
    BackendTimeout,
    CapabilityNotSupported,
    DatacenterNotFound,
    InvalidCIDR,
    InvalidProperty,
    MayaStorageException,
    MissingProperty,
    NotFound,
    ReplicaIPCountMismatch,
)
from maya_storage.lib.config import load_config
from maya_storage.provisioner.engine import Provisioner, build_provisioner
from maya_storage.provisioner.properties import VolumeClaim

app = FastAPI(
    title="Maya Storage API",
    description="REST API for provisioning replicated block storage volumes",
    version=__version__,
)
logger = logging.getLogger(__name__)

# Most specific first
_STATUS_BY_EXCEPTION = (
    (MissingProperty, 400),
    (InvalidProperty, 400),
    (ReplicaIPCountMismatch, 400),
    (InvalidCIDR, 400),
    (DatacenterNotFound, 400),
    (AddressPoolExhausted, 409),
    (NotFound, 404),
    (BackendTimeout, 504),
    (BackendError, 502),
    (CapabilityNotSupported, 501),
)

_ERROR_RESPONSES = {
    status_code: {"model": ErrorResponse} for status_code in sorted({code for _, code in _STATUS_BY_EXCEPTION} | {500})
}


@lru_cache(maxsize=1)
def get_provisioner() -> Provisioner:
    """Provisioner built from the configuration file, created on first use."""
    return build_provisioner(load_config())


def _status_code(exc: MayaStorageException) -> int:
    for exc_type, status_code in _STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return status_code
    return 500


def _error_code(exc: Exception) -> str:
    # MissingProperty -> MISSING_PROPERTY
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])", "_", type(exc).__name__).upper()


@app.exception_handler(MayaStorageException)
async def maya_exception_handler(request: Request, exc: MayaStorageException) -> JSONResponse:
    """Map provisioning errors to HTTP status codes."""
    request_id = str(uuid.uuid4())
    status_code = _status_code(exc)
    if status_code >= 500:
        logger.error("Request failed (request_id=%s, path=%s): %s", request_id, request.url.path, exc)
    else:
        logger.info("Request rejected (request_id=%s, path=%s): %s", request_id, request.url.path, exc)
    body = ErrorResponse(
        request_id=request_id,
        status="error",
        error=ErrorDetail(
            code=_error_code(exc),
            message=str(exc),
            details={k: str(v) for k, v in exc.kwargs.items()},
        ),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    request_id = str(uuid.uuid4())
    logger.exception("Unhandled error (request_id=%s, path=%s)", request_id, request.url.path)
    body = ErrorResponse(
        request_id=request_id,
        status="error",
        error=ErrorDetail(code="INTERNAL_ERROR", message="Internal server error"),
    )
    return JSONResponse(status_code=500, content=body.model_dump())


# Volume endpoints


@app.post("/latest/volumes", response_model=VolumeResponse, status_code=201, responses=_ERROR_RESPONSES)
def create_volume(volume: VolumeCreate, provisioner: Provisioner = Depends(get_provisioner)) -> Dict[str, Any]:
    """
    Provision a new volume.

    Unset labels are resolved from the datacenter configuration; frontend and
    replica addresses are allocated from the volume's subnet.

    Example:
    ```json
    {
        "name": "vol1",
        "labels": {"replicaCount": "2"},
        "resources": {"storage": "5Gi"}
    }
    ```
    """
    request_id = str(uuid.uuid4())
    claim = VolumeClaim.from_labels(volume.name, volume.labels, volume.resources)
    handle = provisioner.provision(claim)
    result = {"name": handle.name, "eval_id": handle.eval_id, "labels": claim.properties.labels()}
    return {"request_id": request_id, "status": "ok", "data": {"volume": result}}


@app.get("/latest/volumes/{name}", response_model=VolumeResponse, responses=_ERROR_RESPONSES)
def get_volume(name: str, provisioner: Provisioner = Depends(get_provisioner)) -> Dict[str, Any]:
    """
    Get the current status of a volume.
    """
    request_id = str(uuid.uuid4())
    status = provisioner.status(name)
    return {"request_id": request_id, "status": "ok", "data": {"volume": status.model_dump()}}


@app.delete("/latest/volumes/{name}", response_model=SuccessResponse, responses=_ERROR_RESPONSES)
def delete_volume(name: str, provisioner: Provisioner = Depends(get_provisioner)) -> Dict[str, Any]:
    """
    Delete a volume.
    """
    request_id = str(uuid.uuid4())
    provisioner.remove(name)
    return {"request_id": request_id, "status": "ok", "data": {"deleted": True}}


# VSM endpoints


@app.get("/latest/vsms/{name}", response_model=VSMResponse, responses=_ERROR_RESPONSES)
def read_vsm(name: str, provisioner: Provisioner = Depends(get_provisioner)) -> Dict[str, Any]:
    """
    Read the orchestrator record backing a volume.
    """
    request_id = str(uuid.uuid4())
    job = provisioner.read(name)
    result = {
        "name": job.name,
        "status": job.status,
        "status_description": job.status_description,
        "meta": dict(job.meta),
    }
    return {"request_id": request_id, "status": "ok", "data": {"vsm": result}}
