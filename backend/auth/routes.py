import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ai.chat_session import ChatSessionRegistry
from api.deps import get_chat_registry, get_store
from auth.utils import create_token, get_current_user_id
from schemas.user import SignInResponse, UserProfile, UserProfileUpdate
from services.identity_service import demo_sign_in, update_user_profile
from services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def user_chat_key(user_id: str) -> str:
    return f"user:{user_id}"


@router.post("/demo-login", response_model=SignInResponse)
async def demo_login(store: RecordStore = Depends(get_store)):
    profile = await demo_sign_in(store)
    logger.info(f"Demo sign-in for {profile.id}")
    return SignInResponse(access_token=create_token(profile.id), user=profile)


@router.get("/me", response_model=UserProfile)
async def me(
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    profile = await store.get_user_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return profile


@router.put("/profile", response_model=UserProfile)
async def update_profile(
    req: UserProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
    registry: ChatSessionRegistry = Depends(get_chat_registry),
):
    profile = await update_user_profile(store, user_id, req)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    # Personalization reads the profile held by the chat manager
    manager = await registry.get(user_chat_key(user_id), profile)
    manager.state.profile = profile
    return profile


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    user_id: str = Depends(get_current_user_id),
    registry: ChatSessionRegistry = Depends(get_chat_registry),
):
    await registry.drop(user_chat_key(user_id))
    logger.info(f"Signed out {user_id}")
