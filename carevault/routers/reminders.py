from fastapi import APIRouter, Depends

from carevault.auth import require_role
from carevault.models.profile import Profile
from carevault.models.reminder import MedicationReminder, ReminderCreate, ReminderUpdate
from carevault.services.reminders import (
    add_reminder,
    delete_reminder,
    list_reminders,
    toggle_reminder,
    update_reminder,
)

router = APIRouter(prefix="/api/reminders", tags=["reminders"])

patient_only = require_role("patient")


@router.get("", response_model=list[MedicationReminder])
async def get_reminders(user: Profile = Depends(patient_only)):
    return await list_reminders(user)


@router.post("", response_model=MedicationReminder)
async def create_reminder(body: ReminderCreate, user: Profile = Depends(patient_only)):
    return await add_reminder(user, body)


@router.patch("/{reminder_id}", response_model=MedicationReminder)
async def patch_reminder(reminder_id: str, body: ReminderUpdate, user: Profile = Depends(patient_only)):
    return await update_reminder(user, reminder_id, body)


@router.post("/{reminder_id}/toggle", response_model=MedicationReminder)
async def flip_reminder(reminder_id: str, active: bool, user: Profile = Depends(patient_only)):
    return await toggle_reminder(user, reminder_id, active)


@router.delete("/{reminder_id}")
async def remove_reminder(reminder_id: str, user: Profile = Depends(patient_only)):
    await delete_reminder(user, reminder_id)
    return {"id": reminder_id, "deleted": True}
