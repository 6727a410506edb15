from fastapi import APIRouter, Depends, HTTPException, status

from api.deps import get_store
from auth.utils import get_current_user_id
from schemas.health import DailyLogCreate, DailyLogEntry
from services.record_store import RecordStore

router = APIRouter(prefix="/logs", tags=["logs"])


@router.post("", response_model=DailyLogEntry, status_code=status.HTTP_201_CREATED)
async def create_log(
    req: DailyLogCreate,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    if req.user_id and req.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot log entries for another user")
    return await store.append_log(req.model_copy(update={"user_id": user_id}))


@router.get("", response_model=list[DailyLogEntry])
async def list_logs(
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return await store.list_logs(user_id)
