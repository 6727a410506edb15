import json
import logging
from datetime import date
from typing import Any

from pydantic import ValidationError

from ai.context_builder import language_name
from ai.providers.base import AIProvider
from schemas.health import DailyLogEntry, HealthInsight
from schemas.reports import AnalysisResult, Finding, FindingStatus, SavedReport
from schemas.symptoms import (
    Likelihood,
    SymptomCheckResult,
    SymptomCondition,
    SymptomInput,
    SymptomRecommendations,
)

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "Could not generate summary."
DEFAULT_RESEARCH_CONTEXT = "No context provided."
DEFAULT_DISCLAIMER = "Consult a doctor."
SYMPTOM_CATEGORY = "Symptom Analysis"
SYMPTOM_RESEARCH_CONTEXT = (
    "This analysis is based on reported symptoms and does not constitute a clinical diagnosis."
)
INSIGHT_LOG_WINDOW = 30
INSIGHT_REPORT_WINDOW = 5

_TEXT_MIME_PREFIXES = ("text/",)
_TEXT_MIME_TYPES = {"application/json", "application/csv", "application/xml"}

_PROBABILITY_TO_STATUS = {
    Likelihood.high: FindingStatus.critical,
    Likelihood.medium: FindingStatus.warning,
    Likelihood.low: FindingStatus.normal,
}

REPORT_ANALYSIS_PROMPT = """You are Vitalis, a world-class advanced medical AI assistant.
Your goal is to analyze medical documents and visual inputs uploaded by the user.

ACCEPTED INPUTS:
1. Medical Reports (PDF, images of documents): lab results, prescriptions, discharge summaries.
2. Medical Imaging: X-rays, CT scans, MRIs.
3. Visual Symptoms: photos of skin conditions, wounds, injuries, or other visible symptoms.

If the input is NOT related to health/medicine, return a polite error in the "summary" field explaining
that you can only analyze medical data, and return empty arrays for the other fields.

FOR DOCUMENTS:
Extract every distinct medical parameter as a finding. If the document provides a reference range, extract it;
otherwise provide the standard medical reference range for that parameter if known.

FOR VISUAL SYMPTOMS / IMAGING:
Describe the visual observations as findings. Use "N/A" or the normal appearance as the reference range.

Assign each finding a status: "Normal", "Warning", "Critical", or "Unknown", with a short interpretation.

Return ONLY valid JSON with this structure:
{
  "summary": "patient-friendly summary of the overall health status",
  "findings": [
    {"category": "...", "parameter": "...", "value": "...", "unit": "...", "referenceRange": "...",
     "status": "Normal|Warning|Critical|Unknown", "interpretation": "..."}
  ],
  "researchContext": "medical context about the conditions or markers found",
  "patientAdvice": ["actionable step or question for the doctor"],
  "disclaimer": "standard medical AI disclaimer"
}"""

SYMPTOM_CHECK_PROMPT = """Act as an experienced triage nurse and medical AI.
Analyze the following patient inputs and provide a symptom assessment.

Patient Data:
- Symptoms: {symptoms}
- Duration: {duration}
- Reported Severity: {severity}
- Age/Sex: {age}, {sex}
- Medical History: {history}
- Recent Activity: {activity}

Task:
1. Identify 2-3 likely conditions based on the symptoms.
2. Assess the overall severity level (Low, Medium, High). High means immediate medical attention is needed.
3. Provide clear self-care recommendations and specific advice on when to see a doctor.

Return ONLY valid JSON with this structure:
{{
  "conditions": [{{"name": "...", "probability": "Low|Medium|High", "description": "...", "matching_symptoms": ["..."]}}],
  "severity_level": "Low|Medium|High",
  "recommendations": {{"self_care": ["..."], "doctor_visit": "...", "emergency": "..."}},
  "disclaimer": "..."
}}"""

HEALTH_INSIGHTS_PROMPT = """Analyze the following user health data to identify patterns, risks, and improvements.

Daily Logs (most recent first):
{logs}

Recent Medical Reports/Analyses:
{reports}

Task:
Generate 3-5 specific, short, actionable insights.
Look for correlations (e.g. "High stress correlates with poor sleep").
Look for trends (e.g. "Mood has improved over the last week").
Look for recurring issues from reports.

Return ONLY a JSON array: [{{"type": "pattern|improvement|warning", "title": "...", "description": "..."}}]"""


class ReportAnalysisError(Exception):
    """The analysis service failed or returned something that is not a JSON document."""


def _language_suffix(language: str | None) -> str:
    if not language:
        return ""
    return f"\n\nWrite all free-text fields in {language_name(language)}."


def _extract_json(text: str) -> Any:
    raw = (text or "").strip()
    # Handle markdown code blocks
    if "```" in raw:
        raw = raw.split("```")[1]
        if raw.startswith("json"):
            raw = raw[4:]
        raw = raw.strip()
    return json.loads(raw)


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return default


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item not in (None, "")]


def _coerce_likelihood(value: Any) -> Likelihood:
    if isinstance(value, Likelihood):
        return value
    text = str(value or "").strip().lower()
    for level in Likelihood:
        if level.value.lower() == text:
            return level
    return Likelihood.low


def parse_analysis_result(data: Any) -> AnalysisResult:
    """Coerce a loosely shaped analysis document into an AnalysisResult, defaulting what is missing."""
    if not isinstance(data, dict):
        logger.warning(f"Analysis payload was {type(data).__name__}, not an object; using defaults")
        data = {}

    findings: list[Finding] = []
    for raw in data.get("findings") or []:
        if not isinstance(raw, dict):
            continue
        try:
            findings.append(Finding(
                parameter=str(_pick(raw, "parameter", "name", default="")),
                value=raw.get("value"),
                unit=_opt_str(_pick(raw, "unit")),
                reference_range=_opt_str(_pick(raw, "referenceRange", "reference_range")),
                status=raw.get("status"),
                interpretation=str(_pick(raw, "interpretation", default="")),
                category=_opt_str(_pick(raw, "category")),
            ))
        except ValidationError as e:
            logger.warning(f"Skipping malformed finding: {e}")

    return AnalysisResult(
        summary=str(_pick(data, "summary", default=DEFAULT_SUMMARY)),
        findings=findings,
        research_context=str(_pick(data, "researchContext", "research_context", default=DEFAULT_RESEARCH_CONTEXT)),
        patient_advice=_string_list(_pick(data, "patientAdvice", "patient_advice", default=[])),
        disclaimer=str(_pick(data, "disclaimer", default=DEFAULT_DISCLAIMER)),
    )


def parse_symptom_result(data: Any) -> SymptomCheckResult:
    if not isinstance(data, dict):
        logger.warning("Symptom payload was not an object; using defaults")
        data = {}

    conditions = []
    for raw in data.get("conditions") or []:
        if not isinstance(raw, dict) or not raw.get("name"):
            continue
        conditions.append(SymptomCondition(
            name=str(raw["name"]),
            probability=_coerce_likelihood(raw.get("probability")),
            description=str(raw.get("description") or ""),
            matching_symptoms=_string_list(_pick(raw, "matching_symptoms", "matchingSymptoms", default=[])),
        ))

    recs = _pick(data, "recommendations", default={})
    if not isinstance(recs, dict):
        recs = {}
    return SymptomCheckResult(
        conditions=conditions,
        severity_level=_coerce_likelihood(_pick(data, "severity_level", "severityLevel")),
        recommendations=SymptomRecommendations(
            self_care=_string_list(_pick(recs, "self_care", "selfCare", default=[])),
            doctor_visit=str(_pick(recs, "doctor_visit", "doctorVisit", default="")),
            emergency=str(_pick(recs, "emergency", default="")),
        ),
        disclaimer=str(data.get("disclaimer") or ""),
    )


def is_text_mime(mime_type: str) -> bool:
    mime = (mime_type or "").lower()
    return mime.startswith(_TEXT_MIME_PREFIXES) or mime in _TEXT_MIME_TYPES


async def analyze_medical_report(
    provider: AIProvider,
    content: bytes,
    mime_type: str,
    language: str | None = None,
) -> AnalysisResult:
    """Send a document, image, or text file to the analysis service.

    Text-like uploads are inlined into the prompt; everything else is attached as
    binary media. Raises ReportAnalysisError when the call fails or the reply is
    not JSON. Missing fields inside a JSON reply fall back to placeholder text.
    """
    system = REPORT_ANALYSIS_PROMPT + _language_suffix(language)
    try:
        if is_text_mime(mime_type):
            text = content.decode("utf-8", errors="replace")
            result = await provider.chat(
                messages=[{
                    "role": "user",
                    "content": f"Here is the content of the medical file ({mime_type}):\n\n{text}",
                }],
                model=provider.get_reasoning_model(),
                system=system,
                json_response=True,
            )
        else:
            result = await provider.chat_with_media(
                messages=[{"role": "user", "content": "Analyze the attached medical input."}],
                media_bytes=content,
                mime_type=mime_type,
                model=provider.get_reasoning_model(),
                system=system,
                json_response=True,
            )
        parsed = _extract_json(result.get("content") or "{}")
    except Exception as e:
        logger.error(f"Report analysis failed: {e}")
        raise ReportAnalysisError("Failed to analyze the medical report. Please try again.") from e

    return parse_analysis_result(parsed)


async def check_symptoms(
    provider: AIProvider,
    symptom_input: SymptomInput,
    language: str | None = None,
) -> SymptomCheckResult:
    prompt = SYMPTOM_CHECK_PROMPT.format(
        symptoms=", ".join(symptom_input.symptoms),
        duration=symptom_input.duration,
        severity=symptom_input.severity.value,
        age=symptom_input.age,
        sex=symptom_input.sex,
        history=symptom_input.history or "None provided",
        activity=symptom_input.activity or "None provided",
    ) + _language_suffix(language)
    try:
        result = await provider.chat(
            messages=[{"role": "user", "content": prompt}],
            model=provider.get_reasoning_model(),
            json_response=True,
        )
        parsed = _extract_json(result.get("content") or "{}")
    except Exception as e:
        logger.error(f"Symptom check failed: {e}")
        raise ReportAnalysisError("Unable to process symptoms at this time.") from e

    return parse_symptom_result(parsed)


def symptom_check_file_name(today: date) -> str:
    return f"Symptom Check - {today.isoformat()}"


def symptom_result_to_analysis(
    symptom_input: SymptomInput,
    result: SymptomCheckResult,
) -> AnalysisResult:
    """Reshape a triage result into the stored report shape."""
    findings = [
        Finding(
            parameter=condition.name,
            value=condition.probability.value,
            status=_PROBABILITY_TO_STATUS[condition.probability],
            interpretation=condition.description,
            category=SYMPTOM_CATEGORY,
        )
        for condition in result.conditions
    ]
    advice = list(result.recommendations.self_care)
    advice.append(f"Medical Advice: {result.recommendations.doctor_visit}")
    return AnalysisResult(
        summary=f"Symptom Check: {', '.join(symptom_input.symptoms)}. Severity: {result.severity_level.value}",
        findings=findings,
        research_context=SYMPTOM_RESEARCH_CONTEXT,
        patient_advice=advice,
        disclaimer=result.disclaimer,
    )


async def generate_health_insights(
    provider: AIProvider,
    logs: list[DailyLogEntry],
    reports: list[SavedReport],
) -> list[HealthInsight]:
    """Best-effort narrative insights; any failure yields an empty list."""
    log_rows = [entry.model_dump(mode="json", exclude_none=True) for entry in logs[:INSIGHT_LOG_WINDOW]]
    report_rows = [
        {"date": report.timestamp.isoformat(), "summary": report.result.summary}
        for report in reports[:INSIGHT_REPORT_WINDOW]
    ]
    prompt = HEALTH_INSIGHTS_PROMPT.format(
        logs=json.dumps(log_rows, ensure_ascii=False),
        reports=json.dumps(report_rows, ensure_ascii=False),
    )
    try:
        result = await provider.chat(
            messages=[{"role": "user", "content": prompt}],
            model=provider.get_utility_model(),
            json_response=True,
        )
        parsed = _extract_json(result.get("content") or "[]")
    except Exception as e:
        logger.error(f"Insights generation failed: {e}")
        return []

    if isinstance(parsed, dict):
        parsed = parsed.get("insights") or []
    if not isinstance(parsed, list):
        return []

    insights: list[HealthInsight] = []
    for raw in parsed:
        if not isinstance(raw, dict) or not raw.get("title"):
            continue
        try:
            insights.append(HealthInsight(
                type=str(raw.get("type") or "pattern").lower(),
                title=str(raw["title"]),
                description=str(raw.get("description") or ""),
            ))
        except ValidationError as e:
            logger.warning(f"Skipping malformed insight: {e}")
    return insights
