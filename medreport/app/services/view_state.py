"""Form view state driven by the phases of an analysis request."""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from medreport.app.core.errors import AnalyzerError
from medreport.app.core.logging import get_logger
from medreport.app.domain.schemas import AnalysisReport, PatientDetails
from medreport.app.services.analysis_service import AnalysisService

logger = get_logger(__name__)

REPORT_REQUIRED_MESSAGE = "Please describe your medical report"


class ViewPhase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_ALLOWED = {
    ViewPhase.IDLE: {ViewPhase.PENDING},
    ViewPhase.PENDING: {ViewPhase.SUCCEEDED, ViewPhase.FAILED},
    ViewPhase.SUCCEEDED: {ViewPhase.PENDING, ViewPhase.IDLE},
    ViewPhase.FAILED: {ViewPhase.PENDING, ViewPhase.IDLE},
}


@dataclass(frozen=True)
class ViewState:
    phase: ViewPhase = ViewPhase.IDLE
    submit_enabled: bool = True
    loading_visible: bool = False
    results_visible: bool = False
    error_message: str | None = None

    def _to(self, phase: ViewPhase, **changes) -> ViewState:
        if phase not in _ALLOWED[self.phase]:
            raise ValueError(f"Cannot move from {self.phase.value} to {phase.value}")
        return replace(self, phase=phase, **changes)

    def pending(self) -> ViewState:
        return self._to(
            ViewPhase.PENDING,
            submit_enabled=False,
            loading_visible=True,
            error_message=None,
        )

    def succeeded(self) -> ViewState:
        return self._to(
            ViewPhase.SUCCEEDED,
            submit_enabled=True,
            loading_visible=False,
            results_visible=True,
        )

    def failed(self, message: str) -> ViewState:
        # No partial results survive a failure.
        return self._to(
            ViewPhase.FAILED,
            submit_enabled=True,
            loading_visible=False,
            results_visible=False,
            error_message=message,
        )

    def reset(self) -> ViewState:
        return ViewState()


class AnalysisController:
    """Runs one form submission and tracks the resulting view state."""

    def __init__(self, service: AnalysisService):
        self.service = service
        self.state = ViewState()
        self.report: AnalysisReport | None = None

    async def submit(self, patient: PatientDetails) -> AnalysisReport:
        # Rejected before any request is made; the form stays as it was.
        if not patient.report_text.strip():
            raise ValueError(REPORT_REQUIRED_MESSAGE)

        self.report = None
        self.state = self.state.pending()
        try:
            report = await self.service.analyze(patient)
        except AnalyzerError as exc:
            self.state = self.state.failed(f"Error: {exc.message}")
            logger.warning("Analysis failed", data={"code": exc.code})
            raise
        except BaseException:
            self.state = self.state.failed("Error: analysis was interrupted")
            raise

        self.report = report
        self.state = self.state.succeeded()
        return report

    def reset(self) -> None:
        self.report = None
        self.state = self.state.reset()
