from .chat import ChatMessage, ChatRequest, ChatRole, ChatStateResponse, ChatTurnResponse, LanguageRequest
from .emergency import EmergencyContact, EmergencyProfile, EmergencyProfileInput
from .health import (
    DailyLogCreate,
    DailyLogEntry,
    HealthInsight,
    InsightType,
    MonthlySummary,
    RiskAssessment,
    RiskLevel,
    TimelineEvent,
    TimelineEventType,
)
from .reports import SYMPTOM_CHECK_FILE_TYPE, AnalysisResult, Finding, FindingStatus, SavedReport, SavedReportCreate
from .symptoms import (
    Likelihood,
    SymptomCheckResult,
    SymptomCondition,
    SymptomInput,
    SymptomRecommendations,
    SymptomSaveRequest,
    SymptomSeverity,
)
from .user import Sex, SignInResponse, UserProfile, UserProfileUpdate

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ChatRole",
    "ChatStateResponse",
    "ChatTurnResponse",
    "LanguageRequest",
    "EmergencyContact",
    "EmergencyProfile",
    "EmergencyProfileInput",
    "DailyLogCreate",
    "DailyLogEntry",
    "HealthInsight",
    "InsightType",
    "MonthlySummary",
    "RiskAssessment",
    "RiskLevel",
    "TimelineEvent",
    "TimelineEventType",
    "SYMPTOM_CHECK_FILE_TYPE",
    "AnalysisResult",
    "Finding",
    "FindingStatus",
    "SavedReport",
    "SavedReportCreate",
    "Likelihood",
    "SymptomCheckResult",
    "SymptomCondition",
    "SymptomInput",
    "SymptomRecommendations",
    "SymptomSaveRequest",
    "SymptomSeverity",
    "Sex",
    "SignInResponse",
    "UserProfile",
    "UserProfileUpdate",
]
