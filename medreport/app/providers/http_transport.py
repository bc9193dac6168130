from __future__ import annotations

import httpx

from medreport.app.providers.base import Transport
from medreport.app.providers.types import GenerateRequest, RawResponse


class HttpxTransport(Transport):
    """POSTs prompts to the generation endpoint with ``httpx.AsyncClient``.

    The per-attempt deadline is enforced by the executor, so the client is
    built without its own timeout unless one is given.
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    async def send(self, request: GenerateRequest) -> RawResponse:
        response = await self._client.post(
            self.url,
            headers=self._headers(),
            json=request.payload(),
        )
        return RawResponse(
            status_code=response.status_code,
            text=response.text,
            headers=dict(response.headers),
        )

    async def aclose(self) -> None:
        await self._client.aclose()
