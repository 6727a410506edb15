from fastapi import APIRouter, Depends

from api.deps import get_store
from auth.utils import get_current_user_id
from schemas.emergency import EmergencyProfile, EmergencyProfileInput
from services.record_store import RecordStore

router = APIRouter(prefix="/emergency", tags=["emergency"])


@router.get("", response_model=EmergencyProfile | None)
async def get_emergency_profile(
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return await store.get_emergency_profile(user_id)


@router.put("", response_model=EmergencyProfile)
async def save_emergency_profile(
    req: EmergencyProfileInput,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    profile = EmergencyProfile(user_id=user_id, **req.model_dump())
    return await store.upsert_emergency_profile(profile)
