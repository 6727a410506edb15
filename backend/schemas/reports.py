from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


SYMPTOM_CHECK_FILE_TYPE = "symptom-check"


class FindingStatus(str, Enum):
    normal = "Normal"
    warning = "Warning"
    critical = "Critical"
    unknown = "Unknown"


class Finding(BaseModel):
    parameter: str
    value: str = ""
    unit: Optional[str] = None
    reference_range: Optional[str] = None
    status: FindingStatus = FindingStatus.unknown
    interpretation: str = ""
    category: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> FindingStatus:
        if isinstance(value, FindingStatus):
            return value
        text = str(value or "").strip().lower()
        for status in FindingStatus:
            if status.value.lower() == text:
                return status
        return FindingStatus.unknown

    @field_validator("value", mode="before")
    @classmethod
    def _stringify_value(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)


class AnalysisResult(BaseModel):
    summary: str = ""
    findings: list[Finding] = Field(default_factory=list)
    research_context: str = ""
    patient_advice: list[str] = Field(default_factory=list)
    disclaimer: str = ""


class SavedReportCreate(BaseModel):
    id: Optional[str] = None
    user_id: Optional[str] = None  # None marks a transient guest report
    file_name: str
    file_type: str
    result: AnalysisResult


class SavedReport(SavedReportCreate):
    id: str
    timestamp: datetime

    @property
    def is_symptom_check(self) -> bool:
        return self.file_type == SYMPTOM_CHECK_FILE_TYPE
