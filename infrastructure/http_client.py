"""Shared async HTTP client with configurable timeout and optional basic auth."""

from typing import Any, Optional

import httpx


class HttpClient:
    """Thin async wrapper around httpx.AsyncClient.

    One instance per external provider keeps timeouts and credentials
    independently configurable (ZeptoMail uses a header token, Twilio uses
    HTTP basic auth on every request).
    """

    def __init__(
        self,
        timeout: float = 5.0,
        auth: Optional[tuple[str, str]] = None,
    ) -> None:
        self._client = httpx.AsyncClient(timeout=timeout, auth=auth)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self._client.post(url, **kwargs)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self._client.get(url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
