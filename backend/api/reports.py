from fastapi import APIRouter, Depends, HTTPException, status

from api.deps import get_store
from auth.utils import get_current_user_id
from schemas.reports import SavedReport, SavedReportCreate
from services.record_store import RecordOwnershipError, RecordStore

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("", response_model=list[SavedReport])
async def list_reports(
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return await store.list_reports(user_id)


@router.put("", response_model=SavedReport)
async def save_report(
    req: SavedReportCreate,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    if req.user_id and req.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot save reports for another user")
    try:
        return await store.upsert_report(req.model_copy(update={"user_id": user_id}))
    except RecordOwnershipError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot save reports for another user")


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(
    report_id: str,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    await store.delete_report(report_id, user_id=user_id)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_all_reports(
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    await store.delete_all_reports(user_id)
