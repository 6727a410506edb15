from typing import Optional

from pydantic import BaseModel, Field


class EmergencyContact(BaseModel):
    name: str
    relation: str = ""
    phone: str


class EmergencyProfileInput(BaseModel):
    """Body for PUT /emergency; the owner comes from the session, not the payload."""
    blood_group: str = ""
    allergies: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)
    chronic_conditions: list[str] = Field(default_factory=list)
    contacts: list[EmergencyContact] = Field(default_factory=list)
    doctor_name: Optional[str] = None
    doctor_phone: Optional[str] = None


class EmergencyProfile(EmergencyProfileInput):
    user_id: str
