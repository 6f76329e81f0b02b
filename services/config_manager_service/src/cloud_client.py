"""
Cloud Heartbeat Client

Polls the management backend for the agent's configuration. The heartbeat
carries the timestamp of the configuration the agent holds; the backend only
returns a config map when a newer one exists.
"""

from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from shared.common_utils.logger import logger
from .schemas import HeartbeatRequest, HeartbeatResponse
from .validator import TransientSyncError

HEARTBEAT_PATH = "/v1/agent/heartbeat"


class CloudClient:
    """Fetches the remote configuration map over HTTP."""

    def __init__(
        self,
        backend_url: str,
        app_id: str,
        app_secret: str,
        rasp_id: str,
        timeout: float = 10.0,
        verify: bool = False,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.backend_url = backend_url.rstrip("/")
        self.app_id = app_id
        self.app_secret = app_secret
        self.rasp_id = rasp_id
        self.config_time = 0
        # Reusable HTTP client, created on first use
        self._client: Optional[httpx.Client] = None
        self._timeout = timeout
        self._verify = verify
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=self._timeout, verify=self._verify, transport=self._transport
            )
        return self._client

    def _headers(self) -> Dict[str, str]:
        return {
            "X-OpenRASP-AppID": self.app_id,
            "X-OpenRASP-AppSecret": self.app_secret,
            "Content-Type": "application/json",
        }

    def fetch_config(self) -> Optional[Dict[str, Any]]:
        """
        Send one heartbeat.

        Returns:
            The new configuration map, or None when the agent is up to date

        Raises:
            TransientSyncError: on transport, HTTP or payload errors
        """
        request = HeartbeatRequest(rasp_id=self.rasp_id, config_time=self.config_time)
        try:
            response = self._get_client().post(
                f"{self.backend_url}{HEARTBEAT_PATH}",
                json=request.model_dump(),
                headers=self._headers(),
            )
            response.raise_for_status()
            heartbeat = HeartbeatResponse.model_validate(response.json())
        except httpx.HTTPError as e:
            raise TransientSyncError(f"heartbeat request failed: {e}")
        except (ValueError, ValidationError) as e:
            raise TransientSyncError(f"heartbeat response could not be parsed: {e}")

        if heartbeat.status != 0:
            raise TransientSyncError(
                f"heartbeat rejected with status {heartbeat.status}: {heartbeat.description}"
            )
        if heartbeat.data is None or heartbeat.data.config is None:
            logger.debug("Heartbeat returned no configuration change")
            return None

        self.config_time = heartbeat.data.config_time
        return heartbeat.data.config

    def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None
