from typing import Literal

from pydantic import BaseModel, Field


class RefillRequestCreate(BaseModel):
    medication_name: str = Field(..., min_length=1)
    prescription_id: str | None = None
    request_notes: str | None = None


class RefillResponse(BaseModel):
    status: Literal["approved", "denied"]
    response: str | None = None


class RefillRequest(BaseModel):
    id: str
    patient_id: str
    prescription_id: str | None = None
    medication_name: str
    status: Literal["pending", "approved", "denied"] = "pending"
    request_notes: str | None = None
    doctor_response: str | None = None
    doctor_id: str | None = None
    created_at: str
    updated_at: str
