"""Async HTTP transport for the photopager REST API, with retries."""

from __future__ import annotations

import asyncio
import os
from typing import Any

import httpx
import structlog

from photopager.client import CursorRejectedError

log = structlog.get_logger("photopager.client.http")

DEFAULT_API_URL = "http://127.0.0.1:8000"

_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 0.5  # seconds


class ApiTransport:
    """Thin async wrapper around ``httpx.AsyncClient`` for JSON GETs.

    Server errors and timeouts are retried with exponential backoff; a 422
    whose ``code`` is ``invalid_cursor`` raises :class:`CursorRejectedError`;
    any other error status raises ``httpx.HTTPStatusError``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        max_retries: int = _MAX_RETRIES,
        retry_base_delay: float = _RETRY_BASE_DELAY,
    ) -> None:
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                base_url=base_url or os.environ.get("PHOTOPAGER_API_URL", DEFAULT_API_URL),
                headers={"Accept": "application/json"},
                timeout=timeout,
            )
        self._client = client
        self._max_retries = max(1, max_retries)
        self._retry_base_delay = retry_base_delay

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ApiTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """GET *path* and return the decoded JSON body. ``None`` params are dropped."""
        clean = {k: v for k, v in (params or {}).items() if v is not None}
        response = await self._request_with_retry(path, clean)
        return response.json()

    # ── internal ───────────────────────────────────────────────────────────

    async def _request_with_retry(self, url: str, params: dict[str, Any]) -> httpx.Response:
        last_exc: Exception | None = None
        for attempt in range(self._max_retries):
            try:
                resp = await self._client.get(url, params=params)
                if resp.status_code < 500:
                    self._raise_for_status(resp)
                    return resp

                log.warning(
                    "api.server_error",
                    url=url,
                    status=resp.status_code,
                    attempt=attempt + 1,
                    max_retries=self._max_retries,
                )
                last_exc = httpx.HTTPStatusError(
                    f"{resp.status_code}", request=resp.request, response=resp
                )
            except httpx.TimeoutException as exc:
                log.warning(
                    "api.timeout",
                    url=url,
                    attempt=attempt + 1,
                    max_retries=self._max_retries,
                )
                last_exc = exc

            if attempt < self._max_retries - 1:
                await asyncio.sleep(self._retry_base_delay * (2**attempt))

        raise last_exc  # type: ignore[misc]

    @staticmethod
    def _raise_for_status(resp: httpx.Response) -> None:
        if resp.status_code == 422:
            body = _json_or_none(resp)
            if isinstance(body, dict) and body.get("code") == "invalid_cursor":
                raise CursorRejectedError(body.get("detail") or "invalid cursor")
        resp.raise_for_status()


def _json_or_none(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None
