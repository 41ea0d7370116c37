import json
import logging
import uuid

from carevault.database import get_db, load_json_list, to_timestamp, today_iso, utcnow
from carevault.errors import NotFound, TransientBackendFailure, ValidationFailure
from carevault.models.profile import Profile
from carevault.models.reminder import MedicationReminder, ReminderCreate, ReminderUpdate

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("medication_name", "frequency")


def _row_to_reminder(row) -> MedicationReminder:
    return MedicationReminder(
        id=row["id"],
        patient_id=row["patient_id"],
        prescription_id=row["prescription_id"],
        medication_name=row["medication_name"],
        dosage=row["dosage"],
        frequency=row["frequency"],
        reminder_times=load_json_list(row["reminder_times"]),
        start_date=row["start_date"],
        end_date=row["end_date"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def list_reminders(patient: Profile) -> list[MedicationReminder]:
    db = await get_db()
    rows = await db.fetch_all(
        "SELECT * FROM medication_reminders WHERE patient_id = ? ORDER BY created_at DESC",
        (patient.user_id,),
    )
    return [_row_to_reminder(row) for row in rows]


async def _get_owned(patient: Profile, reminder_id: str) -> MedicationReminder:
    db = await get_db()
    row = await db.fetch_one(
        "SELECT * FROM medication_reminders WHERE id = ? AND patient_id = ?",
        (reminder_id, patient.user_id),
    )
    if not row:
        raise NotFound("Reminder not found")
    return _row_to_reminder(row)


async def add_reminder(patient: Profile, body: ReminderCreate) -> MedicationReminder:
    db = await get_db()
    reminder_id = str(uuid.uuid4())
    now = to_timestamp(utcnow())
    try:
        await db.execute(
            """INSERT INTO medication_reminders (
                id, patient_id, prescription_id, medication_name, dosage, frequency,
                reminder_times, start_date, end_date, is_active, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)""",
            (
                reminder_id, patient.user_id, body.prescription_id, body.medication_name,
                body.dosage, body.frequency, json.dumps(body.reminder_times),
                body.start_date or today_iso(), body.end_date, now, now,
            ),
        )
        await db.commit()
    except Exception as exc:
        logger.error("Failed to create reminder for %s: %s", patient.user_id, exc)
        raise TransientBackendFailure("Failed to create reminder") from exc
    return await _get_owned(patient, reminder_id)


async def update_reminder(patient: Profile, reminder_id: str, body: ReminderUpdate) -> MedicationReminder:
    await _get_owned(patient, reminder_id)
    changes = body.model_dump(exclude_unset=True)
    for key in _REQUIRED_FIELDS:
        if key in changes and not (changes[key] or "").strip():
            raise ValidationFailure(f"{key} cannot be empty")
    if not changes:
        return await _get_owned(patient, reminder_id)

    columns = []
    values = []
    for key, value in changes.items():
        columns.append(f"{key} = ?")
        if key == "reminder_times":
            value = json.dumps(value or [])
        elif key == "is_active":
            value = 1 if value else 0
        values.append(value)
    columns.append("updated_at = ?")
    values.append(to_timestamp(utcnow()))

    db = await get_db()
    try:
        await db.execute(
            f"UPDATE medication_reminders SET {', '.join(columns)} WHERE id = ? AND patient_id = ?",
            (*values, reminder_id, patient.user_id),
        )
        await db.commit()
    except Exception as exc:
        logger.error("Failed to update reminder %s: %s", reminder_id, exc)
        raise TransientBackendFailure("Failed to update reminder") from exc
    return await _get_owned(patient, reminder_id)


async def toggle_reminder(patient: Profile, reminder_id: str, is_active: bool) -> MedicationReminder:
    return await update_reminder(patient, reminder_id, ReminderUpdate(is_active=is_active))


async def delete_reminder(patient: Profile, reminder_id: str) -> None:
    await _get_owned(patient, reminder_id)
    db = await get_db()
    try:
        await db.execute(
            "DELETE FROM medication_reminders WHERE id = ? AND patient_id = ?",
            (reminder_id, patient.user_id),
        )
        await db.commit()
    except Exception as exc:
        logger.error("Failed to delete reminder %s: %s", reminder_id, exc)
        raise TransientBackendFailure("Failed to delete reminder") from exc
