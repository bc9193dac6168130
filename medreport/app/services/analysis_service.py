from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from medreport.app.core.errors import AnalysisFailed, MalformedPayload
from medreport.app.core.logging import get_logger
from medreport.app.domain.schemas import (
    AnalysisReport,
    DoctorLink,
    MedicalAnalysis,
    PatientDetails,
)
from medreport.app.providers.types import ExecutorConfig
from medreport.app.services.executor import RequestExecutor
from medreport.app.services.extraction import extract_json

logger = get_logger(__name__)

DOCTOR_SEARCH_URL = "https://www.google.com/search?q={query}"

_PROMPT_TEMPLATE = """You are an expert medical AI assistant. Analyze the following medical report.

Patient Details:
- Name: {name}
- Age: {age} years
- Location: {city}

Medical Report: {report}

Provide analysis in this EXACT JSON format (no markdown, no extra text):

{{
  "symptoms": ["symptom1", "symptom2", "symptom3"],
  "possibleConditions": [
    {{
      "name": "Condition name",
      "severity": "Mild",
      "description": "Brief explanation"
    }}
  ],
  "temporaryMeds": [
    {{
      "name": "Medication name",
      "dosage": "500mg",
      "frequency": "Twice daily",
      "notes": "Consult doctor first"
    }}
  ],
  "dietPlan": {{
    "recommended": ["food1", "food2", "food3"],
    "avoid": ["food1", "food2"]
  }},
  "doctors": [
    {{
      "specialization": "Specialist type",
      "city": "{city}",
      "notes": "Why recommended"
    }}
  ]
}}"""


def build_prompt(patient: PatientDetails) -> str:
    return _PROMPT_TEMPLATE.format(
        name=patient.name,
        age=patient.age,
        city=patient.city,
        report=patient.report_text,
    )


def unwrap_envelope(body: Any) -> str:
    """Return the model text from a generation envelope.

    A missing body or ``success: false`` is an application-level failure
    even when the HTTP exchange succeeded.
    """
    if not isinstance(body, dict) or body.get("success") is False:
        message = body.get("message") if isinstance(body, dict) else None
        raise AnalysisFailed(message or "Analysis failed")
    response = body.get("response")
    if response is None:
        return ""
    if isinstance(response, str):
        return response
    return json.dumps(response)


def parse_analysis(text: str) -> MedicalAnalysis:
    document = extract_json(text)
    try:
        return MedicalAnalysis.model_validate(document)
    except ValidationError as exc:
        raise MalformedPayload(text, reason=f"{exc.error_count()} validation error(s)") from exc


def doctor_search_url(specialization: str, city: str) -> str:
    """Web search deep link for doctors of a specialization in a city."""
    query = f"{specialization} doctors in {city}"
    return DOCTOR_SEARCH_URL.format(query=quote(query, safe="!~*'()"))


def doctor_links(analysis: MedicalAnalysis) -> list[DoctorLink]:
    return [
        DoctorLink(
            specialization=doctor.specialization,
            city=doctor.city,
            url=doctor_search_url(doctor.specialization, doctor.city),
        )
        for doctor in analysis.doctors
    ]


class AnalysisService:
    def __init__(self, executor: RequestExecutor, config: ExecutorConfig | None = None):
        self.executor = executor
        self.config = config

    async def analyze(self, patient: PatientDetails) -> AnalysisReport:
        body = await self.executor.execute(build_prompt(patient), self.config)
        text = unwrap_envelope(body)
        try:
            analysis = parse_analysis(text)
        except MalformedPayload as exc:
            logger.error(
                "Failed to parse AI response",
                data={"raw_text": exc.raw_text[:2000], "reason": (exc.detail or {}).get("reason")},
            )
            raise
        logger.info(
            "Analysis completed",
            data={
                "symptoms": len(analysis.symptoms),
                "conditions": len(analysis.possible_conditions),
                "doctors": len(analysis.doctors),
            },
        )
        return AnalysisReport(
            patient=patient,
            analysis=analysis,
            doctor_links=doctor_links(analysis),
        )
