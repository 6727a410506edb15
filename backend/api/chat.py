import logging

from fastapi import APIRouter, Depends, Header, HTTPException, status

from ai.chat_session import ChatBusyError, ChatSessionManager, ChatSessionRegistry
from api.deps import get_chat_registry, get_store
from auth.routes import user_chat_key
from auth.utils import get_optional_user_id
from schemas.chat import ChatMessage, ChatRequest, ChatStateResponse, ChatTurnResponse, LanguageRequest
from services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

GUEST_SESSION_HEADER = "X-Guest-Session"


async def get_chat_manager(
    user_id: str | None = Depends(get_optional_user_id),
    x_guest_session: str | None = Header(None, alias=GUEST_SESSION_HEADER),
    store: RecordStore = Depends(get_store),
    registry: ChatSessionRegistry = Depends(get_chat_registry),
) -> ChatSessionManager:
    """The caller's conversation: keyed by user id when signed in, else by guest session key."""
    if user_id:
        profile = await store.get_user_profile(user_id)
        if profile is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
        return await registry.get(user_chat_key(user_id), profile)

    guest_key = (x_guest_session or "").strip()
    if not guest_key:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Sign in or send an {GUEST_SESSION_HEADER} header to chat as a guest.",
        )
    return await registry.get(f"guest:{guest_key}")


def chat_state(manager: ChatSessionManager) -> ChatStateResponse:
    state = manager.state
    return ChatStateResponse(
        messages=manager.history,
        is_open=state.is_open,
        is_busy=state.is_busy,
        language=state.language,
        persisted=manager.persisted,
    )


@router.get("", response_model=ChatStateResponse)
async def get_chat(manager: ChatSessionManager = Depends(get_chat_manager)):
    return chat_state(manager)


@router.post("", response_model=ChatTurnResponse)
async def send_message(req: ChatRequest, manager: ChatSessionManager = Depends(get_chat_manager)):
    if req.language:
        manager.set_language(req.language)
    try:
        reply: ChatMessage = await manager.submit_turn(req.message)
    except ChatBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return ChatTurnResponse(reply=reply, **chat_state(manager).model_dump())


@router.post("/reset", response_model=ChatStateResponse)
async def reset_chat(manager: ChatSessionManager = Depends(get_chat_manager)):
    await manager.reset()
    return chat_state(manager)


@router.put("/language", response_model=ChatStateResponse)
async def set_chat_language(req: LanguageRequest, manager: ChatSessionManager = Depends(get_chat_manager)):
    manager.set_language(req.language)
    return chat_state(manager)
