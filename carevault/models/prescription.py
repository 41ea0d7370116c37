from typing import Literal

from pydantic import BaseModel, Field

from carevault.models.medication import ConflictResult, InteractionResult, Medication


class PrescriptionCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str | None = None
    medications: list[Medication] = []
    file_url: str | None = None
    file_type: str | None = None
    patient_id: str | None = None


class Prescription(BaseModel):
    id: str
    patient_id: str
    doctor_id: str | None = None
    title: str
    description: str | None = None
    medications: list[Medication] = []
    file_url: str | None = None
    file_type: str | None = None
    is_verified: bool
    upload_source: Literal["doctor", "user"]
    created_at: str
    updated_at: str | None = None


class SubmissionRequest(PrescriptionCreate):
    """A draft prescription plus whatever safety findings the doctor has acknowledged.

    The server re-runs every gate on each attempt; a gate passes only when
    all of its current findings appear in the matching acknowledgment list.
    """
    acknowledged_conflicts: list[ConflictResult] = []
    acknowledged_interactions: list[InteractionResult] = []


class SubmissionResult(BaseModel):
    status: Literal["submitted", "cancelled"]
    prescription: Prescription | None = None
    cancelled_at: Literal["allergy", "interaction"] | None = None
    conflicts: list[ConflictResult] = []
    interactions: list[InteractionResult] = []
