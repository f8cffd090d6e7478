import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from app import config
from app.errors import RemoteBackendError
from app.models.room_models import RoomCreateResponse

log = logging.getLogger(__name__)

HEALTH_PROBE_TIMEOUT = 5.0


class RoomBackendClient:
    """Client for the remote room service (`GET /health`, `POST /api/rooms`)."""

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = (base_url if base_url is not None else config.room_backend_url()).rstrip("/")
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def _client(self, timeout: Optional[float]) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=timeout, transport=self._transport)

    def is_healthy(self) -> bool:
        if not self.configured:
            return False
        try:
            with self._client(HEALTH_PROBE_TIMEOUT) as client:
                r = client.get("/health")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log.warning("Room backend health probe failed: %s", e)
            return False
        if r.status_code != 200:
            log.warning("Room backend health probe returned %d", r.status_code)
            return False
        return True

    def create_room(self, payload: Dict[str, Any]) -> RoomCreateResponse:
        if not self.configured:
            raise RemoteBackendError("ROOM_BACKEND_URL is not configured")

        # no timeout: the caller waits for the remote service to finish
        with self._client(None) as client:
            r = client.post("/api/rooms", json=payload)

        if r.status_code not in (200, 201):
            raise RemoteBackendError(
                f"Room backend returned {r.status_code}: {r.text[:200]}",
                status_code=r.status_code,
            )
        try:
            return RoomCreateResponse.model_validate(r.json())
        except (ValueError, ValidationError) as e:
            raise RemoteBackendError(f"Unusable room backend response: {e}") from e
