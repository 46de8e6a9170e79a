"""HTTP client for the platform control plane."""

import json
import socket
from typing import List, Optional

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from deploy_agent.core.exceptions import DiffReportError, RegistrationError
from deploy_agent.core.models import DiffRecord, EnvVar, Manifest

logger = structlog.get_logger()

_ENV_LIST = TypeAdapter(List[EnvVar])


class ControlPlaneClient:
    """Talks to the control plane on behalf of one application unit.

    Each call opens its own ``httpx.Client``; a custom ``transport`` can be
    supplied to route requests elsewhere (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        server_url: str,
        token: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout),
            headers={"Authorization": f"bearer {self.token}"},
            transport=self.transport,
        )

    def register_unit(self, app_name: str, manifest: Optional[Manifest] = None) -> List[EnvVar]:
        """Register this unit and return the application's environment.

        Raises:
            RegistrationError: On network failure, non-2xx status or an
                unreadable response body
        """
        url = f"{self.server_url}/apps/{app_name}/units/register"
        data = {"hostname": socket.gethostname()}
        if manifest is not None:
            data["customdata"] = json.dumps(manifest.custom_data())

        logger.info("Registering unit", url=url)
        try:
            with self._client() as client:
                resp = client.post(url, data=data)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RegistrationError(
                f"Unit registration failed with status {e.response.status_code}: {e.response.text}",
                code="registration_rejected",
            ) from e
        except httpx.HTTPError as e:
            raise RegistrationError(f"Unit registration request failed: {e}", code="registration_unreachable") from e

        try:
            envs = _ENV_LIST.validate_json(resp.content)
        except ValidationError as e:
            raise RegistrationError(f"Invalid registration response: {e}", code="invalid_response") from e

        logger.info("Unit registered", env_count=len(envs))
        return envs

    def report_diff(self, app_name: str, diff: DiffRecord) -> None:
        """Send the staged diff (possibly empty) to the control plane.

        Raises:
            DiffReportError: On network failure or non-2xx status
        """
        url = f"{self.server_url}/apps/{app_name}/diff"
        logger.info("Reporting deploy diff", url=url, first_deploy=diff.is_first_deploy, bytes=len(diff.content))
        try:
            with self._client() as client:
                resp = client.post(url, content=diff.content.encode("utf-8"))
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DiffReportError(
                f"Diff report failed with status {e.response.status_code}",
                code="diff_rejected",
            ) from e
        except httpx.HTTPError as e:
            raise DiffReportError(f"Diff report request failed: {e}", code="diff_unreachable") from e
