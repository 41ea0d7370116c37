from typing import Literal

from pydantic import BaseModel, Field


class Profile(BaseModel):
    user_id: str
    role: Literal["patient", "doctor"] = "patient"
    name: str | None = None
    age: int | None = None
    gender: str | None = None
    blood_group: str | None = None
    phone: str | None = None
    emergency_contact: str | None = None
    emergency_contact_name: str | None = None
    allergies: list[str] = []
    chronic_conditions: list[str] = []
    created_at: str | None = None
    updated_at: str | None = None


class ProfileUpdate(BaseModel):
    name: str | None = None
    age: int | None = Field(None, ge=0, le=150)
    gender: str | None = None
    blood_group: str | None = None
    phone: str | None = None
    emergency_contact: str | None = None
    emergency_contact_name: str | None = None
    allergies: list[str] | None = None
    chronic_conditions: list[str] | None = None


class MinimumSafeDataset(BaseModel):
    """What a doctor sees first on an emergency scan."""
    name: str | None = None
    age: int | None = None
    gender: str | None = None
    blood_group: str | None = None
    allergies: list[str] = []
    chronic_conditions: list[str] = []
    emergency_contact: str | None = None
    emergency_contact_name: str | None = None
