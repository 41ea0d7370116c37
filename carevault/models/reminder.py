import re

from pydantic import BaseModel, Field, field_validator

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _check_times(times: list[str]) -> list[str]:
    for item in times:
        if not _TIME_PATTERN.match(item):
            raise ValueError(f"reminder time must be HH:MM, got {item!r}")
    return times


class ReminderCreate(BaseModel):
    medication_name: str = Field(..., min_length=1)
    dosage: str | None = None
    frequency: str = Field(..., min_length=1)
    reminder_times: list[str] = []
    start_date: str | None = None
    end_date: str | None = None
    prescription_id: str | None = None

    @field_validator("reminder_times")
    @classmethod
    def check_times(cls, v: list[str]) -> list[str]:
        return _check_times(v)


class ReminderUpdate(BaseModel):
    medication_name: str | None = None
    dosage: str | None = None
    frequency: str | None = None
    reminder_times: list[str] | None = None
    end_date: str | None = None
    is_active: bool | None = None

    @field_validator("reminder_times")
    @classmethod
    def check_times(cls, v: list[str] | None) -> list[str] | None:
        return v if v is None else _check_times(v)


class MedicationReminder(BaseModel):
    id: str
    patient_id: str
    prescription_id: str | None = None
    medication_name: str
    dosage: str | None = None
    frequency: str
    reminder_times: list[str] = []
    start_date: str
    end_date: str | None = None
    is_active: bool = True
    created_at: str
    updated_at: str
