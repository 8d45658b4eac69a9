"""HTTP API client for Nomad."""

from typing import Any, Dict, List, Optional

import requests
from oslo_log import log as logging
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from maya_storage.exceptions import (
    BackendConnectionError,
    BackendError,
    BackendTimeout,
    NotFound,
    VolumeNotFound,
)

LOG = logging.getLogger(__name__)


class NomadClient:
    """REST API client for the Nomad job, evaluation and listing endpoints."""

    def __init__(
        self,
        address: str,
        region: Optional[str] = None,
        token: Optional[str] = None,
        timeout: int = 30,
        retry_count: int = 3,
        verify_ssl: bool = True,
        ca_bundle: Optional[str] = None,
        client_cert: Optional[str] = None,
        client_key: Optional[str] = None,
    ):
        """Initialize Nomad API client.

        Args:
            address: Nomad agent URL (e.g., http://127.0.0.1:4646)
            region: Region sent with every request; agent default when None
            token: ACL token sent as X-Nomad-Token
            timeout: HTTP request timeout in seconds
            retry_count: Number of retries for failed GET requests
            verify_ssl: Whether to verify SSL certificates
            ca_bundle: Path to CA bundle file for SSL verification
            client_cert: Path to client certificate file for mTLS
            client_key: Path to client private key file for mTLS
        """
        self.base_url = address.rstrip("/")
        self.region = region
        self.timeout = timeout
        self.retry_count = retry_count

        if ca_bundle:
            self.verify_ssl = ca_bundle
        else:
            self.verify_ssl = verify_ssl

        self.session = requests.Session()

        if token:
            self.session.headers.update({"X-Nomad-Token": token})

        if client_cert:
            if client_key:
                self.session.cert = (client_cert, client_key)
            else:
                self.session.cert = client_cert

        # Only GET is retried; a job registration is not repeated behind the caller's back
        retry_strategy = Retry(
            total=retry_count,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _make_request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        resource_id: Optional[str] = None,
    ) -> Any:
        """Make HTTP request to the Nomad API.

        Args:
            method: HTTP method (GET, PUT, DELETE)
            path: API path (e.g., /v1/jobs)
            json_data: Request body as JSON
            params: Query parameters
            resource_id: Job ID reported when the resource is not found

        Returns:
            Decoded JSON response (empty dict for an empty body)

        Raises:
            BackendConnectionError: Connection failed
            BackendTimeout: Request timed out
            BackendError: API returned an error
            VolumeNotFound: Job not found (404)
        """
        url = self.base_url + path
        params = dict(params or {})
        if self.region:
            params.setdefault("region", self.region)

        LOG.debug("Making %s request to %s with params=%s", method, path, params)

        try:
            response = self.session.request(
                method=method,
                url=url,
                json=json_data,
                params=params,
                timeout=self.timeout,
                verify=self.verify_ssl,
            )
        except requests.exceptions.Timeout:
            LOG.error("Request timeout after %ss: %s", self.timeout, path)
            raise BackendTimeout(timeout=self.timeout)
        except requests.exceptions.ConnectionError as e:
            LOG.error("Connection error: %s, %s", path, e)
            raise BackendConnectionError(details=str(e))
        except requests.exceptions.RequestException as e:
            LOG.error("Request exception: %s, %s", path, e)
            raise BackendError(details=str(e))

        LOG.debug("Response status: %s", response.status_code)

        if response.status_code >= 400:
            # Nomad reports errors as plain text
            error_msg = (response.text or "").strip() or response.reason

            if response.status_code == 404:
                LOG.warning("Resource not found: %s, error: %s", path, error_msg)
                if resource_id:
                    raise VolumeNotFound(name=resource_id)
                raise NotFound(resource_id=path)

            LOG.error("API error: HTTP %s, %s", response.status_code, error_msg)
            raise BackendError(details=f"HTTP {response.status_code}: {error_msg}")

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise BackendError(details=f"invalid JSON response from {path}: {e}")

    # Job operations

    def register_job(self, job: Dict[str, Any]) -> Dict[str, Any]:
        """Register (create or update) a job.

        Args:
            job: Job in Nomad's JSON job model

        Returns:
            Registration response including EvalID
        """
        return self._make_request("PUT", "/v1/jobs", json_data={"Job": job})

    def get_job(self, job_id: str) -> Dict[str, Any]:
        """Raises VolumeNotFound if the job does not exist."""
        return self._make_request("GET", f"/v1/job/{job_id}", resource_id=job_id)

    def deregister_job(self, job_id: str, purge: bool = False) -> Dict[str, Any]:
        params = {"purge": "true"} if purge else None
        return self._make_request("DELETE", f"/v1/job/{job_id}", params=params, resource_id=job_id)

    def job_evaluations(self, job_id: str) -> List[Dict[str, Any]]:
        return self._make_request("GET", f"/v1/job/{job_id}/evaluations", resource_id=job_id) or []

    def list_jobs(self, prefix: Optional[str] = None) -> List[Dict[str, Any]]:
        """List job stubs, optionally filtered by ID prefix."""
        params = {"prefix": prefix} if prefix else None
        return self._make_request("GET", "/v1/jobs", params=params) or []
