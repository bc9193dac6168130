import json

import httpx
import pytest

from conftest import FakeTransport
from medreport.app.core.errors import NetworkError
from medreport.app.providers.http_transport import HttpxTransport
from medreport.app.providers.registry import ServiceRegistry
from medreport.app.providers.types import ExecutorConfig, GenerateRequest
from medreport.app.services.executor import RequestExecutor


@pytest.mark.asyncio
async def test_send_posts_prompt_as_json():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["content_type"] = request.headers["content-type"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "response": "{}"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = HttpxTransport("http://mock.example.com/api/generate", client=client)

    raw = await transport.send(GenerateRequest(prompt="hello"))
    await transport.aclose()

    assert seen == {
        "method": "POST",
        "url": "http://mock.example.com/api/generate",
        "content_type": "application/json",
        "body": {"text": "hello"},
    }
    assert raw.status_code == 200
    assert "application/json" in raw.content_type
    assert json.loads(raw.text)["success"] is True


@pytest.mark.asyncio
async def test_executor_over_mock_transport_retries_429():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(429, text="slow down")
        return httpx.Response(200, json={"success": True, "response": "{}"})

    async def no_sleep(seconds):
        return None

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    executor = RequestExecutor(
        HttpxTransport("http://mock.example.com/api/generate", client=client),
        config=ExecutorConfig(max_attempts=2, base_delay_ms=10, jitter_ms=0),
        sleep=no_sleep,
    )

    body = await executor.execute("prompt")

    assert body == {"success": True, "response": "{}"}
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_connect_error_surfaces_as_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection failed", request=request)

    async def no_sleep(seconds):
        return None

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    executor = RequestExecutor(
        HttpxTransport("http://mock.example.com/api/generate", client=client),
        config=ExecutorConfig(max_attempts=2, base_delay_ms=0, jitter_ms=0),
        sleep=no_sleep,
    )

    with pytest.raises(NetworkError) as exc_info:
        await executor.execute("prompt")
    assert "Connection failed" in exc_info.value.message


@pytest.mark.asyncio
async def test_registry_builds_and_closes_service():
    registry = ServiceRegistry()
    transport = FakeTransport([])

    registry.build_registry(transport=transport)
    service = registry.get()

    assert service.executor.transport is transport
    assert service.config == service.executor.config

    await registry.close()
    assert transport.closed is True
