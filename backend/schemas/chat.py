from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ChatRole(str, Enum):
    user = "user"
    assistant = "assistant"


class ChatMessage(BaseModel):
    id: str
    role: ChatRole
    text: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    language: Optional[str] = None


class LanguageRequest(BaseModel):
    language: str = Field(..., min_length=2, max_length=16)


class ChatStateResponse(BaseModel):
    messages: list[ChatMessage]
    is_open: bool
    is_busy: bool
    language: str
    persisted: bool


class ChatTurnResponse(ChatStateResponse):
    reply: ChatMessage
