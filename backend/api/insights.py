import asyncio

from fastapi import APIRouter, Depends

from ai.providers import AIProvider
from ai.report_analyzer import generate_health_insights
from api.deps import get_ai_provider, get_store
from auth.utils import get_current_user_id
from schemas.health import HealthInsight, MonthlySummary, RiskAssessment
from services.record_store import RecordStore
from services.risk_service import build_monthly_summary, calculate_health_risks
from utils.datetime_utils import today_utc

router = APIRouter(prefix="/insights", tags=["insights"])


@router.get("/risks", response_model=list[RiskAssessment])
async def get_risks(
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return calculate_health_risks(await store.list_logs(user_id))


@router.get("/monthly", response_model=MonthlySummary)
async def get_monthly_summary(
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    logs = await store.list_logs(user_id)
    return build_monthly_summary(logs, calculate_health_risks(logs), today_utc())


@router.get("/ai", response_model=list[HealthInsight])
async def get_ai_insights(
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
    provider: AIProvider = Depends(get_ai_provider),
):
    logs, reports = await asyncio.gather(store.list_logs(user_id), store.list_reports(user_id))
    if not logs and not reports:
        return []
    return await generate_health_insights(provider, logs, reports)
