"""Pydantic models for the analysis document and API payloads."""
from pydantic import BaseModel, ConfigDict, Field, field_validator


class PatientDetails(BaseModel):
    name: str = ""
    age: str = ""
    city: str = ""
    report_text: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Asha",
                    "age": "34",
                    "city": "Pune",
                    "report_text": "Fever for three days, sore throat and body ache.",
                }
            ]
        }
    }

    @field_validator("age", mode="before")
    @classmethod
    def coerce_age(cls, v):
        return "" if v is None else str(v)


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Condition(_Document):
    name: str
    severity: str = ""
    description: str = ""


class Medication(_Document):
    name: str
    dosage: str = ""
    frequency: str = ""
    notes: str | None = None


class DietPlan(_Document):
    recommended: list[str] = Field(default_factory=list)
    avoid: list[str] = Field(default_factory=list)


class DoctorRecommendation(_Document):
    specialization: str
    city: str = ""
    notes: str = ""


class MedicalAnalysis(_Document):
    """The JSON document the model is asked to produce."""

    symptoms: list[str] = Field(default_factory=list)
    possible_conditions: list[Condition] = Field(default_factory=list, alias="possibleConditions")
    temporary_meds: list[Medication] = Field(default_factory=list, alias="temporaryMeds")
    diet_plan: DietPlan = Field(default_factory=DietPlan, alias="dietPlan")
    doctors: list[DoctorRecommendation] = Field(default_factory=list)


class DoctorLink(BaseModel):
    specialization: str
    city: str
    url: str


class AnalysisReport(BaseModel):
    patient: PatientDetails
    analysis: MedicalAnalysis
    doctor_links: list[DoctorLink] = Field(default_factory=list)
