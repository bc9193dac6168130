import pytest

from conftest import SAMPLE_ANALYSIS, FakeTransport, RecordingSleep, analysis_envelope, json_response
from medreport.app.core.errors import RateLimitExceeded
from medreport.app.domain.schemas import PatientDetails
from medreport.app.providers.types import ExecutorConfig
from medreport.app.services.analysis_service import AnalysisService
from medreport.app.services.executor import RequestExecutor
from medreport.app.services.view_state import (
    REPORT_REQUIRED_MESSAGE,
    AnalysisController,
    ViewPhase,
    ViewState,
)


def make_controller(steps):
    config = ExecutorConfig(max_attempts=1, base_delay_ms=0, jitter_ms=0)
    executor = RequestExecutor(FakeTransport(steps), config=config, sleep=RecordingSleep())
    return AnalysisController(AnalysisService(executor, config=config))


def test_pending_disables_submit_and_shows_loader():
    state = ViewState().pending()

    assert state.phase is ViewPhase.PENDING
    assert state.submit_enabled is False
    assert state.loading_visible is True
    assert state.results_visible is False


def test_failure_restores_form_and_hides_results():
    state = ViewState().pending().succeeded().pending().failed("Error: boom")

    assert state.phase is ViewPhase.FAILED
    assert state.submit_enabled is True
    assert state.loading_visible is False
    assert state.results_visible is False
    assert state.error_message == "Error: boom"


def test_invalid_transition_raises():
    with pytest.raises(ValueError):
        ViewState().succeeded()
    with pytest.raises(ValueError):
        ViewState().pending().pending()
    with pytest.raises(ValueError):
        ViewState().failed("Error: boom")


def test_reset_returns_to_idle():
    state = ViewState().pending().succeeded().reset()
    assert state == ViewState()


@pytest.mark.asyncio
async def test_controller_success_shows_results():
    controller = make_controller([analysis_envelope(SAMPLE_ANALYSIS)])

    report = await controller.submit(PatientDetails(name="A", age="40", city="Pune", report_text="cough"))

    assert controller.state.phase is ViewPhase.SUCCEEDED
    assert controller.state.results_visible is True
    assert controller.report is report

    controller.reset()
    assert controller.state.phase is ViewPhase.IDLE
    assert controller.report is None


@pytest.mark.asyncio
async def test_controller_failure_shows_message():
    controller = make_controller([json_response(429, {"retryAfterSeconds": 9})])

    with pytest.raises(RateLimitExceeded):
        await controller.submit(PatientDetails(report_text="cough"))

    assert controller.state.phase is ViewPhase.FAILED
    assert controller.state.submit_enabled is True
    assert controller.state.error_message == "Error: Rate limit exceeded. Try again in 9 seconds."
    assert controller.report is None


@pytest.mark.asyncio
async def test_controller_rejects_blank_report_without_request():
    controller = make_controller([])

    with pytest.raises(ValueError, match=REPORT_REQUIRED_MESSAGE):
        await controller.submit(PatientDetails(report_text="   "))

    assert controller.state.phase is ViewPhase.IDLE
    assert controller.service.executor.transport.requests == []
