from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from medreport.app.domain.schemas import AnalysisReport, PatientDetails
from medreport.app.providers.registry import get_analysis_service
from medreport.app.services.analysis_service import AnalysisService
from medreport.app.services.view_state import AnalysisController

router = APIRouter()


@router.post("/analyze", response_model=AnalysisReport)
async def analyze(
    patient: PatientDetails,
    service: AnalysisService = Depends(get_analysis_service),
) -> AnalysisReport:
    """Submit a medical report for analysis.

    Upstream failures surface as ``AnalyzerError`` and are rendered by the
    app's exception handler.
    """
    controller = AnalysisController(service)
    try:
        return await controller.submit(patient)
    except ValueError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION_ERROR", "message": str(exc)},
        )
