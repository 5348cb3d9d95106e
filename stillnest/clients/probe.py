from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)


class HttpProbe:
    """Active connectivity check against a lightweight same-origin endpoint.

    Returns ``True`` only for a 2xx answer received within ``timeout`` seconds.
    Timeouts, transport failures and error statuses all read as "not connected".
    """

    def __init__(
        self,
        base_url: str,
        *,
        path: str = "/api/health",
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.path = path
        self.timeout = timeout
        self._transport = transport

    async def _head(self) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        ) as client:
            return await client.head(self.path, headers={"Cache-Control": "no-cache"})

    async def __call__(self) -> bool:
        try:
            response = await asyncio.wait_for(self._head(), timeout=self.timeout)
        except (httpx.HTTPError, asyncio.TimeoutError, OSError) as exc:
            logger.debug("Connectivity probe to %s%s failed: %r", self.base_url, self.path, exc)
            return False
        return response.is_success


__all__ = ["HttpProbe"]
