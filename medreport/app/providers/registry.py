from __future__ import annotations

from medreport.app.config.settings import settings
from medreport.app.providers.base import Transport
from medreport.app.providers.http_transport import HttpxTransport
from medreport.app.services.analysis_service import AnalysisService
from medreport.app.services.executor import RequestExecutor


class ServiceRegistry:
    """Owns the transport and the analysis service for the app's lifetime."""

    def __init__(self):
        self._transport: Transport | None = None
        self._service: AnalysisService | None = None

    def build_registry(self, transport: Transport | None = None) -> None:
        self._transport = transport or HttpxTransport(settings.generate_url)
        config = settings.executor_config
        executor = RequestExecutor(self._transport, config=config)
        self._service = AnalysisService(executor, config=config)

    def get(self) -> AnalysisService:
        if self._service is None:
            self.build_registry()
        return self._service

    async def close(self) -> None:
        if self._transport is not None:
            await self._transport.aclose()
        self._transport = None
        self._service = None


# Global registry instance
registry = ServiceRegistry()


def get_analysis_service() -> AnalysisService:
    return registry.get()
