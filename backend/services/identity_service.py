from __future__ import annotations

import logging
from urllib.parse import quote_plus

from config import settings
from schemas.user import Sex, UserProfile, UserProfileUpdate
from services.record_store import RecordStore
from utils.datetime_utils import utcnow_naive

logger = logging.getLogger(__name__)


def _avatar_url(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote_plus(name)}&background=0D9488&color=fff"


async def demo_sign_in(store: RecordStore) -> UserProfile:
    """Simulated third-party sign-in: returns the stored demo profile, creating it on first use."""
    existing = await store.get_user_profile(settings.DEMO_USER_ID)
    if existing:
        return existing

    profile = UserProfile(
        id=settings.DEMO_USER_ID,
        name=settings.DEMO_USER_NAME,
        email=settings.DEMO_USER_EMAIL,
        image=_avatar_url(settings.DEMO_USER_NAME),
        sex=Sex.undisclosed,
        health_history=[],
        created_at=utcnow_naive(),
    )
    logger.info(f"Creating demo profile {profile.id}")
    return await store.save_user_profile(profile)


async def update_user_profile(store: RecordStore, user_id: str, updates: UserProfileUpdate) -> UserProfile | None:
    current = await store.get_user_profile(user_id)
    if current is None:
        return None
    changes = updates.model_dump(exclude_unset=True)
    # name and history are required on the stored profile; null means "leave as is"
    for key in ("name", "health_history"):
        if key in changes and changes[key] is None:
            changes.pop(key)
    if "health_history" in changes:
        changes["health_history"] = [tag.strip() for tag in changes["health_history"] if tag and tag.strip()]
    merged = current.model_copy(update=changes)
    return await store.save_user_profile(merged)
