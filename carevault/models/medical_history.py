"""Pydantic models for the append-only medical-history ledger."""

from pydantic import BaseModel, Field, field_validator

DRUG_ALLERGY_CONFLICT = "drug_allergy_conflict"
DRUG_INTERACTION_WARNING = "drug_interaction_warning"

# Written only by the safety-gate audit helpers
AUDIT_RECORD_TYPES = {DRUG_ALLERGY_CONFLICT, DRUG_INTERACTION_WARNING}


class MedicalRecordCreate(BaseModel):
    record_type: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str | None = None
    date_recorded: str | None = None
    patient_id: str | None = None
    attachments: list[str] = []

    @field_validator("record_type")
    @classmethod
    def check_record_type(cls, v: str) -> str:
        if v.strip().lower() in AUDIT_RECORD_TYPES:
            raise ValueError(f"record_type {v!r} is reserved for safety audit entries")
        return v


class MedicalRecord(BaseModel):
    """One ledger entry.

    Audit entries use record_type ``drug_allergy_conflict`` or
    ``drug_interaction_warning`` and carry a JSON payload in description.
    """
    id: str
    patient_id: str
    recorded_by: str | None = None
    record_type: str
    title: str
    description: str | None = None
    date_recorded: str
    attachments: list[str] = []
    created_at: str
