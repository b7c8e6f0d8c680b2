"""
Consul Coordination Store
=========================

HTTP adapter exposing a Consul agent's KV and Session endpoints as a
CoordinationStore.

Endpoints:
----------
| Operation        | Method | Path                         | Query            |
|------------------|--------|------------------------------|------------------|
| session_create   | PUT    | /v1/session/create           | dc               |
| session_renew    | PUT    | /v1/session/renew/{id}       | dc               |
| session_destroy  | PUT    | /v1/session/destroy/{id}     | dc               |
| kv_put           | PUT    | /v1/kv/{key}                 | acquire/release  |
| kv_get           | GET    | /v1/kv/{key}                 | dc               |

Failure Handling:
-----------------
- httpx.HTTPError (connect, timeout, protocol) -> TransportError.request_failed
- Non-2xx status -> TransportError.unexpected_status
- GET on a missing key (404) -> "" (absence is an answer, not a failure)

No request is retried here. Request timeouts come from the client.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from kvlock.core import constants as C
from kvlock.core.config import ConsulConfig
from kvlock.core.errors import TransportError
from kvlock.storage.protocols import SessionSpec

logger = logging.getLogger(__name__)


class ConsulCoordinationStore:
    """
    CoordinationStore backed by the Consul HTTP API.

    Usage:
        async with ConsulCoordinationStore.from_config(config.consul) as store:
            sessions = SessionManager(store, ttl_seconds=15)
            coordinator = LockCoordinator(sessions, store)
    """

    __slots__ = ("_client", "_datacenter")

    def __init__(
        self,
        base_url: str = ConsulConfig().base_url,
        *,
        token: Optional[str] = None,
        datacenter: Optional[str] = None,
        timeout_s: float = C.HTTP_TIMEOUT_S,
        verify_tls: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {C.CONSUL_TOKEN_HEADER: token} if token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout_s,
            verify=verify_tls,
            transport=transport,
        )
        self._datacenter = datacenter

    @classmethod
    def from_config(
        cls,
        config: ConsulConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> ConsulCoordinationStore:
        return cls(
            config.base_url,
            token=config.token,
            datacenter=config.datacenter,
            timeout_s=config.timeout_s,
            verify_tls=config.verify_tls,
            transport=transport,
        )

    # -------------------------------------------------------------------------
    # SESSION ENDPOINTS
    # -------------------------------------------------------------------------
    async def session_create(self, spec: SessionSpec) -> str:
        return await self._request(
            "session_create", "PUT", "/session/create", json=spec.to_payload()
        )

    async def session_renew(self, session_id: str) -> str:
        return await self._request(
            "session_renew", "PUT", f"/session/renew/{quote(session_id, safe='')}"
        )

    async def session_destroy(self, session_id: str) -> str:
        return await self._request(
            "session_destroy", "PUT", f"/session/destroy/{quote(session_id, safe='')}"
        )

    # -------------------------------------------------------------------------
    # KV ENDPOINTS
    # -------------------------------------------------------------------------
    async def kv_put(
        self,
        key: str,
        value: str = "",
        *,
        acquire: Optional[str] = None,
        release: Optional[str] = None,
    ) -> str:
        if acquire is not None and release is not None:
            raise ValueError("acquire and release are mutually exclusive")

        params: dict[str, str] = {}
        if acquire is not None:
            params["acquire"] = acquire
        if release is not None:
            params["release"] = release

        return await self._request(
            "kv_put",
            "PUT",
            self._kv_path(key),
            params=params,
            content=value.encode("utf-8"),
        )

    async def kv_get(self, key: str) -> str:
        return await self._request(
            "kv_get", "GET", self._kv_path(key), missing_ok=True
        )

    # -------------------------------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------------------------------
    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ConsulCoordinationStore:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # INTERNALS
    # -------------------------------------------------------------------------
    @staticmethod
    def _kv_path(key: str) -> str:
        return "/kv/" + quote(key.lstrip("/"), safe="/")

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, str]] = None,
        json: Optional[dict[str, Any]] = None,
        content: Optional[bytes] = None,
        missing_ok: bool = False,
    ) -> str:
        query = dict(params or {})
        if self._datacenter:
            query["dc"] = self._datacenter

        try:
            response = await self._client.request(
                method, path, params=query, json=json, content=content
            )
        except httpx.HTTPError as e:
            logger.debug(f"Consul {operation} {path} failed: {e}")
            raise TransportError.request_failed(operation, e) from e

        if missing_ok and response.status_code == 404:
            return ""

        if not response.is_success:
            raise TransportError.unexpected_status(
                operation, response.status_code, response.text
            )

        return response.text
