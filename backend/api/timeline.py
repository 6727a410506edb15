from fastapi import APIRouter, Depends

from api.deps import get_store
from auth.utils import get_current_user_id
from schemas.health import TimelineEvent
from services.record_store import RecordStore
from services.timeline_service import build_timeline

router = APIRouter(prefix="/timeline", tags=["timeline"])


@router.get("", response_model=list[TimelineEvent])
async def get_timeline(
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return await build_timeline(store, user_id)
