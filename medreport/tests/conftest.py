import asyncio
import json
import random
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from medreport.app.main import app
from medreport.app.providers.base import Transport
from medreport.app.providers.registry import get_analysis_service
from medreport.app.providers.types import ExecutorConfig, GenerateRequest, RawResponse
from medreport.app.services.analysis_service import AnalysisService
from medreport.app.services.executor import RequestExecutor

HANG = object()


def json_response(status_code: int = 200, body=None, content_type: str = "application/json") -> RawResponse:
    text = "" if body is None else json.dumps(body)
    return RawResponse(status_code=status_code, text=text, headers={"content-type": content_type})


def analysis_envelope(document: dict, fenced: bool = True) -> RawResponse:
    text = json.dumps(document)
    if fenced:
        text = f"```json\n{text}\n```"
    return json_response(200, {"success": True, "response": text})


SAMPLE_ANALYSIS = {
    "symptoms": ["fever", "sore throat"],
    "possibleConditions": [
        {"name": "Viral pharyngitis", "severity": "Mild", "description": "Throat infection"}
    ],
    "temporaryMeds": [
        {"name": "Paracetamol", "dosage": "500mg", "frequency": "Twice daily", "notes": "Consult doctor first"}
    ],
    "dietPlan": {"recommended": ["warm soup"], "avoid": ["cold drinks"]},
    "doctors": [{"specialization": "ENT Specialist", "city": "Pune", "notes": "Throat examination"}],
}


class FakeTransport(Transport):
    """Replays a scripted sequence of responses, exceptions, or hangs."""

    def __init__(self, steps):
        self.steps = list(steps)
        self.requests: list[GenerateRequest] = []
        self.closed = False

    async def send(self, request: GenerateRequest) -> RawResponse:
        self.requests.append(request)
        if not self.steps:
            raise AssertionError("FakeTransport ran out of scripted steps")
        step = self.steps.pop(0)
        if step is HANG:
            await asyncio.sleep(3600)
        if isinstance(step, BaseException):
            raise step
        return step

    async def aclose(self) -> None:
        self.closed = True


class RecordingSleep:
    """Records requested waits without suspending."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def config():
    return ExecutorConfig(max_attempts=4, base_delay_ms=2000, timeout_ms=1000, jitter_ms=0)


@pytest.fixture
def make_executor(sleep, config):
    def _make(steps, **overrides):
        transport = FakeTransport(steps)
        executor = RequestExecutor(
            transport,
            config=replace(config, **overrides),
            sleep=sleep,
            rng=random.Random(1234),
        )
        return executor, transport

    return _make


@pytest.fixture
def client_for():
    """TestClient whose analysis service replays the given transport steps."""
    clients = []

    def _make(steps, **overrides):
        transport = FakeTransport(steps)
        config = ExecutorConfig(
            **{"max_attempts": 2, "base_delay_ms": 0, "timeout_ms": 1000, "jitter_ms": 0, **overrides}
        )
        executor = RequestExecutor(transport, config=config, sleep=RecordingSleep())
        service = AnalysisService(executor, config=config)
        app.dependency_overrides[get_analysis_service] = lambda: service
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client, transport

    try:
        yield _make
    finally:
        for client in clients:
            client.__exit__(None, None, None)
        app.dependency_overrides.clear()
