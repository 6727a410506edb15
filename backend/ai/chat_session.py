"""Per-identity conversational context: history, hydration, analysis injection, turn submission."""

import asyncio
import logging
import uuid
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from ai.context_builder import (
    analysis_intro_message,
    build_completion_request,
    build_system_preamble,
    fallback_message,
    normalize_language,
)
from ai.providers.base import AIProvider
from schemas.chat import ChatMessage, ChatRole
from schemas.reports import AnalysisResult
from schemas.user import UserProfile
from services.record_store import CONVERSATION_CAPACITY, RecordStore, StorageFault

logger = logging.getLogger(__name__)

DEFAULT_MAX_GUEST_SESSIONS = 500


class ChatBusyError(Exception):
    """A turn is already in flight for this conversation."""


class ConversationBuffer:
    """Ordered message history that keeps only the most recent entries."""

    def __init__(self, messages: Iterable[ChatMessage] = (), capacity: int = CONVERSATION_CAPACITY):
        self._items: deque[ChatMessage] = deque(messages, maxlen=capacity)

    def append(self, message: ChatMessage) -> None:
        self._items.append(message)

    def replace(self, messages: Iterable[ChatMessage]) -> None:
        self._items.clear()
        self._items.extend(messages)

    def clear(self) -> None:
        self._items.clear()

    def snapshot(self) -> list[ChatMessage]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(list(self._items))


@dataclass
class ChatSessionState:
    profile: UserProfile | None = None
    history: ConversationBuffer = field(default_factory=ConversationBuffer)
    is_open: bool = False
    is_busy: bool = False
    language: str = "en"
    analysis: AnalysisResult | None = None
    injected_summaries: set[str] = field(default_factory=set)

    @property
    def user_id(self) -> str | None:
        return self.profile.id if self.profile else None


def _new_message(role: ChatRole, text: str) -> ChatMessage:
    return ChatMessage(id=uuid.uuid4().hex, role=role, text=text)


class ChatSessionManager:
    """Owns one conversation and its write-through persistence for signed-in users.

    Only one turn may be in flight at a time. A second submission while busy
    raises ChatBusyError and leaves the history untouched.
    """

    def __init__(self, store: RecordStore, provider: AIProvider, language: str = "en"):
        self._store = store
        self._provider = provider
        self.state = ChatSessionState(language=normalize_language(language))

    @property
    def history(self) -> list[ChatMessage]:
        return self.state.history.snapshot()

    @property
    def persisted(self) -> bool:
        return self.state.user_id is not None

    async def _persist(self) -> None:
        user_id = self.state.user_id
        if user_id is None or not len(self.state.history):
            return
        await self._store.save_conversation(user_id, self.state.history.snapshot())

    async def switch_identity(self, profile: UserProfile | None) -> list[ChatMessage]:
        """Discard in-memory history and hydrate from whatever the new identity has persisted."""
        self.state.profile = profile
        self.state.history.clear()
        if profile is None:
            self.state.is_open = False
            return []
        stored = await self._store.load_conversation(profile.id)
        self.state.history.replace(stored)
        logger.info(f"Hydrated {len(stored)} chat messages for user {profile.id}")
        return self.history

    def set_language(self, code: str) -> str:
        self.state.language = normalize_language(code, default=self.state.language)
        return self.state.language

    async def inject_analysis_context(self, result: AnalysisResult) -> ChatMessage | None:
        """Introduce a new analysis once per distinct summary; returns the intro message if appended."""
        self.state.analysis = result
        if result.summary in self.state.injected_summaries:
            return None
        self.state.injected_summaries.add(result.summary)
        intro = _new_message(ChatRole.assistant, analysis_intro_message(result.summary, self.state.language))
        self.state.history.append(intro)
        self.state.is_open = True
        await self._persist()
        return intro

    async def submit_turn(self, text: str) -> ChatMessage:
        if self.state.is_busy:
            raise ChatBusyError("A reply is still being generated")
        self.state.is_busy = True
        try:
            preamble = build_system_preamble(self.state.language, self.state.profile, self.state.analysis)
            previous = self.state.history.snapshot()
            request = build_completion_request(preamble, previous, text)

            was_open = self.state.is_open
            self.state.history.append(_new_message(ChatRole.user, text))
            self.state.is_open = True
            try:
                await self._persist()
            except StorageFault:
                self.state.history.replace(previous)
                self.state.is_open = was_open
                raise

            reply_text = ""
            try:
                result = await self._provider.chat(
                    messages=request.messages,
                    model=self._provider.get_utility_model(),
                    system=request.system,
                )
                reply_text = str(result.get("content") or "").strip()
                if not reply_text:
                    logger.warning("Chat completion returned an empty reply")
            except Exception as e:
                logger.warning(f"Chat completion failed: {e}")
                reply_text = ""

            reply = _new_message(ChatRole.assistant, reply_text or fallback_message(self.state.language))
            self.state.history.append(reply)
            await self._persist()
            return reply
        finally:
            self.state.is_busy = False

    async def reset(self) -> list[ChatMessage]:
        """Guests lose their conversation; signed-in history is kept."""
        if self.state.user_id is not None:
            return self.history
        self.state.history.clear()
        self.state.is_open = False
        self.state.analysis = None
        return []


class ChatSessionRegistry:
    """One manager per signed-in user id or guest session key, created on first use.

    Guest managers are capped at ``max_guest_sessions``; the least recently
    used guest is forgotten first. Signed-in managers live until ``drop``.
    """

    def __init__(
        self,
        store: RecordStore,
        provider: AIProvider,
        default_language: str = "en",
        max_guest_sessions: int = DEFAULT_MAX_GUEST_SESSIONS,
    ):
        self._store = store
        self._provider = provider
        self._default_language = default_language
        self._max_guest_sessions = max(int(max_guest_sessions), 1)
        self._managers: dict[str, ChatSessionManager] = {}
        # Guest keys in least-recently-used order
        self._guest_keys: dict[str, None] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str, profile: UserProfile | None = None) -> ChatSessionManager:
        async with self._lock:
            manager = self._managers.get(key)
            if manager is None:
                manager = ChatSessionManager(self._store, self._provider, self._default_language)
                await manager.switch_identity(profile)
                self._managers[key] = manager
                if profile is None:
                    self._guest_keys[key] = None
                    self._evict_guests()
            elif key in self._guest_keys:
                self._guest_keys.pop(key)
                self._guest_keys[key] = None
            return manager

    def _evict_guests(self) -> None:
        while len(self._guest_keys) > self._max_guest_sessions:
            oldest = next(iter(self._guest_keys))
            self._guest_keys.pop(oldest)
            self._managers.pop(oldest, None)
            logger.debug(f"Evicted idle guest chat session {oldest}")

    async def drop(self, key: str) -> None:
        """Sign-out: the conversation returns to empty and the manager is forgotten."""
        async with self._lock:
            manager = self._managers.pop(key, None)
            self._guest_keys.pop(key, None)
        if manager is not None:
            await manager.switch_identity(None)

    def __len__(self) -> int:
        return len(self._managers)
