from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SymptomSeverity(str, Enum):
    mild = "Mild"
    moderate = "Moderate"
    severe = "Severe"


class Likelihood(str, Enum):
    low = "Low"
    medium = "Medium"
    high = "High"


class SymptomInput(BaseModel):
    symptoms: list[str] = Field(..., min_length=1)
    duration: str = ""
    severity: SymptomSeverity = SymptomSeverity.mild
    age: str = ""
    sex: str = ""
    history: Optional[str] = None
    activity: Optional[str] = None


class SymptomCondition(BaseModel):
    name: str
    probability: Likelihood = Likelihood.low
    description: str = ""
    matching_symptoms: list[str] = Field(default_factory=list)


class SymptomRecommendations(BaseModel):
    self_care: list[str] = Field(default_factory=list)
    doctor_visit: str = ""
    emergency: str = ""


class SymptomCheckResult(BaseModel):
    conditions: list[SymptomCondition] = Field(default_factory=list)
    severity_level: Likelihood = Likelihood.low
    recommendations: SymptomRecommendations = Field(default_factory=SymptomRecommendations)
    disclaimer: str = ""


class SymptomSaveRequest(BaseModel):
    input: SymptomInput
    result: SymptomCheckResult
