import logging

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile, status

from ai.chat_session import ChatSessionRegistry
from ai.providers import AIProvider
from ai.report_analyzer import (
    ReportAnalysisError,
    analyze_medical_report,
    check_symptoms,
    symptom_check_file_name,
    symptom_result_to_analysis,
)
from api.chat import GUEST_SESSION_HEADER, get_chat_manager
from api.deps import get_ai_provider, get_chat_registry, get_store
from auth.utils import get_current_user_id, get_optional_user_id
from schemas.reports import SYMPTOM_CHECK_FILE_TYPE, SavedReport, SavedReportCreate
from schemas.symptoms import SymptomCheckResult, SymptomInput, SymptomSaveRequest
from services.record_store import RecordStore
from utils.datetime_utils import today_utc
from utils.upload_utils import resolve_upload_mime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analysis", tags=["analysis"])


@router.post("/report", response_model=SavedReport)
async def analyze_report(
    file: UploadFile = File(...),
    language: str | None = Form(None),
    user_id: str | None = Depends(get_optional_user_id),
    x_guest_session: str | None = Header(None, alias=GUEST_SESSION_HEADER),
    store: RecordStore = Depends(get_store),
    provider: AIProvider = Depends(get_ai_provider),
    registry: ChatSessionRegistry = Depends(get_chat_registry),
):
    """Analyze an uploaded report, keep it for signed-in users, and brief the assistant about it."""
    payload = await file.read()
    try:
        mime_type = resolve_upload_mime(payload, file.filename, file.content_type)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        result = await analyze_medical_report(provider, payload, mime_type, language)
    except ReportAnalysisError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    report = await store.upsert_report(SavedReportCreate(
        user_id=user_id,
        file_name=file.filename or "upload",
        file_type=mime_type,
        result=result,
    ))

    if user_id or (x_guest_session or "").strip():
        manager = await get_chat_manager(user_id, x_guest_session, store, registry)
        if language:
            manager.set_language(language)
        await manager.inject_analysis_context(result)
    logger.info(f"Analyzed {mime_type} upload ({len(payload)} bytes) for {user_id or 'guest'}")
    return report


@router.post("/symptoms", response_model=SymptomCheckResult)
async def run_symptom_check(
    req: SymptomInput,
    language: str | None = None,
    provider: AIProvider = Depends(get_ai_provider),
):
    try:
        return await check_symptoms(provider, req, language)
    except ReportAnalysisError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/symptoms/save", response_model=SavedReport, status_code=status.HTTP_201_CREATED)
async def save_symptom_check(
    req: SymptomSaveRequest,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    today = today_utc()
    return await store.upsert_report(SavedReportCreate(
        user_id=user_id,
        file_name=symptom_check_file_name(today),
        file_type=SYMPTOM_CHECK_FILE_TYPE,
        result=symptom_result_to_analysis(req.input, req.result),
    ))
