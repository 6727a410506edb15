from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Sex(str, Enum):
    male = "Male"
    female = "Female"
    other = "Other"
    undisclosed = "Prefer not to say"


class UserProfile(BaseModel):
    id: str
    name: str
    email: str
    image: Optional[str] = None
    sex: Optional[Sex] = None
    health_history: list[str] = Field(default_factory=list)
    created_at: datetime


class UserProfileUpdate(BaseModel):
    name: Optional[str] = None
    image: Optional[str] = None
    sex: Optional[Sex] = None
    health_history: Optional[list[str]] = None


class SignInResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserProfile
