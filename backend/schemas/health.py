from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator

from schemas.reports import SavedReport
from utils.datetime_utils import parse_iso_datetime


RATING_MIN = 1
RATING_MAX = 5


def _clamp_rating(value: Any) -> Any:
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return value  # let pydantic report the type error
    if numeric != numeric:
        return value
    return int(round(min(RATING_MAX, max(RATING_MIN, numeric))))


class DailyLogCreate(BaseModel):
    """A daily check-in. Ratings are 1..5 and are clamped, not rejected."""
    user_id: Optional[str] = None
    date: str
    mood: int
    stress: int
    sleep_quality: int
    pain: int
    energy: int
    notes: Optional[str] = None

    # Wearable data (manual entry)
    steps: Optional[int] = None
    heart_rate: Optional[int] = None
    sleep_hours: Optional[float] = None
    calories: Optional[float] = None

    @field_validator("mood", "stress", "sleep_quality", "pain", "energy", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> Any:
        return _clamp_rating(value)

    @field_validator("steps", mode="before")
    @classmethod
    def _non_negative_steps(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        try:
            return max(0, int(round(float(value))))
        except (TypeError, ValueError):
            return value

    @field_validator("sleep_hours", "calories", mode="before")
    @classmethod
    def _non_negative_float(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        try:
            return max(0.0, float(value))
        except (TypeError, ValueError):
            return value

    @field_validator("heart_rate", mode="before")
    @classmethod
    def _positive_heart_rate(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        try:
            bpm = int(round(float(value)))
        except (TypeError, ValueError):
            return value
        return bpm if bpm > 0 else None

    @field_validator("date")
    @classmethod
    def _iso_date(cls, value: str) -> str:
        if parse_iso_datetime(value) is None:
            raise ValueError("date must be an ISO date or datetime")
        return value


class DailyLogEntry(DailyLogCreate):
    id: str
    user_id: str


class RiskLevel(str, Enum):
    low = "Low"
    moderate = "Moderate"
    high = "High"
    severe = "Severe"


class RiskAssessment(BaseModel):
    title: str
    score: int = Field(..., ge=0, le=100)
    level: RiskLevel
    description: str
    suggestions: list[str] = Field(default_factory=list)


class TimelineEventType(str, Enum):
    report = "report"
    log = "log"
    symptom_check = "symptom_check"


class TimelineEvent(BaseModel):
    id: str
    date: str
    type: TimelineEventType
    title: str
    summary: str
    details: Union[SavedReport, DailyLogEntry]


class InsightType(str, Enum):
    pattern = "pattern"
    improvement = "improvement"
    warning = "warning"


class HealthInsight(BaseModel):
    type: InsightType = InsightType.pattern
    title: str
    description: str = ""


class MonthlySummary(BaseModel):
    month: str
    total_logs: int
    avg_steps: int
    risks: list[RiskAssessment] = Field(default_factory=list)
