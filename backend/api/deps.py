"""Process-wide collaborators shared by the routers.

Tests swap these through ``app.dependency_overrides``.
"""

import logging
from functools import lru_cache

from ai.chat_session import ChatSessionRegistry
from ai.providers import AIProvider, get_provider
from config import settings
from db.database import SessionLocal
from services.record_store import RecordStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_store() -> RecordStore:
    return RecordStore(SessionLocal, latency_ms=settings.STORE_SIMULATED_LATENCY_MS)


@lru_cache(maxsize=1)
def get_ai_provider() -> AIProvider:
    if not settings.AI_API_KEY:
        logger.warning("AI_API_KEY is not set; completion calls will fail and fall back")
    return get_provider(
        settings.AI_PROVIDER,
        settings.AI_API_KEY,
        reasoning_model=settings.AI_REASONING_MODEL,
        utility_model=settings.AI_UTILITY_MODEL,
        timeout_seconds=settings.AI_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=1)
def get_chat_registry() -> ChatSessionRegistry:
    return ChatSessionRegistry(
        get_store(),
        get_ai_provider(),
        settings.DEFAULT_LANGUAGE,
        max_guest_sessions=settings.CHAT_MAX_GUEST_SESSIONS,
    )
