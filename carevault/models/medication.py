"""Medication and drug-safety result models."""

from typing import Literal

from pydantic import BaseModel, Field


class Medication(BaseModel):
    name: str = ""
    dosage: str = ""
    frequency: str = ""
    duration: str = ""


class ConflictResult(BaseModel):
    """A medication in a draft that matches one of the patient's allergies."""
    medication: str
    allergy: str
    severity: Literal["high", "medium"] = "high"


class InteractionResult(BaseModel):
    """A pair of medications matching a known drug-drug interaction row.

    drug1/drug2 carry the medication names as written on the prescriptions,
    not the canonical names from the interaction table.
    """
    drug1: str
    drug2: str
    severity: Literal["high", "moderate", "low"]
    description: str


class DriftAdvisory(BaseModel):
    id: str
    type: Literal["history_mismatch", "wearable_context", "timing_gap"]
    message: str
    detail: str
    severity: Literal["info", "caution"]


class WearableReading(BaseModel):
    type: Literal["heart_rate", "blood_pressure", "spo2", "temperature", "steps"]
    label: str
    value: str
    unit: str
    timestamp: str
    status: Literal["normal", "elevated", "low", "unavailable"] = "normal"


class AllergyCheckRequest(BaseModel):
    medications: list[Medication] = []
    allergies: list[str] = []


class InteractionCheckRequest(BaseModel):
    new_medications: list[Medication] = []
    existing_medications: list[Medication] = []


class MedicalRecordLike(BaseModel):
    """The subset of a medical-history record the drift analyzer reads."""
    record_type: str
    title: str = ""
    date_recorded: str


class DriftRequest(BaseModel):
    medications: list[Medication] = []
    medical_history: list[MedicalRecordLike] = []
    wearable_readings: list[WearableReading] = []
    allergies: list[str] = []
    chronic_conditions: list[str] = []


class SafetyCheckResponse(BaseModel):
    conflicts: list[ConflictResult] = []
    interactions: list[InteractionResult] = []
    advisories: list[DriftAdvisory] = []
    checked: int = Field(0, ge=0)
