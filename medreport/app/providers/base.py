from __future__ import annotations

from typing import Protocol

from medreport.app.providers.types import GenerateRequest, RawResponse


class Transport(Protocol):
    """Sends one generation request and returns the raw HTTP response.

    Implementations raise ``httpx.TimeoutException`` or
    ``httpx.TransportError`` for network-level failures.
    """

    async def send(self, request: GenerateRequest) -> RawResponse:
        ...

    async def aclose(self) -> None:
        ...
