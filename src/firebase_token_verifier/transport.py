from __future__ import annotations

import json
from typing import Any

import httpx

DEFAULT_TIMEOUT = 10.0


class HttpResponse:
    def __init__(self, status: int, headers: httpx.Headers, text: str) -> None:
        self.status = status
        self.headers = headers
        self.text = text
        self.data: Any = None
        self._is_json = False
        content_type = headers.get("content-type", "")
        if "json" in content_type.lower():
            try:
                self.data = json.loads(text)
                self._is_json = True
            except ValueError:
                self.data = None

    def is_json(self) -> bool:
        return self._is_json

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> HttpResponse:
        return cls(response.status_code, response.headers, response.text)


class HttpError(Exception):
    """An HTTP exchange that completed but did not produce a usable response."""

    def __init__(self, response: HttpResponse) -> None:
        self.response = response
        super().__init__(f"HTTP request failed with status {response.status}")


class HttpClient:
    """Thin async wrapper around httpx used for certificate fetches.

    An injected ``httpx.AsyncClient`` is used as-is and never closed here.
    Without one, each request opens a short-lived client carrying the
    configured proxy, timeout and transport. Connection failures surface as
    the underlying ``httpx`` exceptions; nothing is retried.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        proxy: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if client is not None and (proxy is not None or transport is not None):
            raise ValueError("proxy/transport cannot be combined with an explicit client")
        self._client = client
        self.proxy = proxy
        self.timeout = timeout
        self.transport = transport

    async def send(self, method: str, url: str) -> HttpResponse:
        if self._client is not None:
            raw = await self._client.request(method, url)
        else:
            async with httpx.AsyncClient(
                proxy=self.proxy,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                raw = await client.request(method, url)
        response = HttpResponse.from_httpx(raw)
        if not 200 <= response.status < 300:
            raise HttpError(response)
        return response
