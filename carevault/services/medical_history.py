"""Append-only medical-history ledger.

Every write is an insert; there is no update or delete path.
"""

import json
import logging
import uuid

from carevault.database import get_db, load_json_list, to_timestamp, today_iso, utcnow
from carevault.errors import TransientBackendFailure
from carevault.models.medical_history import MedicalRecord

logger = logging.getLogger(__name__)


def _row_to_record(row) -> MedicalRecord:
    return MedicalRecord(
        id=row["id"],
        patient_id=row["patient_id"],
        recorded_by=row["recorded_by"],
        record_type=row["record_type"],
        title=row["title"],
        description=row["description"],
        date_recorded=row["date_recorded"],
        attachments=load_json_list(row["attachments"]),
        created_at=row["created_at"],
    )


async def add_record(
    patient_id: str,
    recorded_by: str | None,
    record_type: str,
    title: str,
    description: str | None = None,
    date_recorded: str | None = None,
    attachments: list[str] | None = None,
) -> MedicalRecord:
    db = await get_db()
    record_id = str(uuid.uuid4())
    now = to_timestamp(utcnow())
    date_value = date_recorded or today_iso()
    try:
        await db.execute(
            """INSERT INTO medical_history (
                id, patient_id, recorded_by, record_type, title, description,
                date_recorded, attachments, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                record_id, patient_id, recorded_by, record_type, title, description,
                date_value, json.dumps(attachments or []), now,
            ),
        )
        await db.commit()
    except Exception as exc:
        logger.error("Failed to insert medical history record for %s: %s", patient_id, exc)
        raise TransientBackendFailure("Failed to add record") from exc

    return MedicalRecord(
        id=record_id,
        patient_id=patient_id,
        recorded_by=recorded_by,
        record_type=record_type,
        title=title,
        description=description,
        date_recorded=date_value,
        attachments=attachments or [],
        created_at=now,
    )


async def list_records(patient_id: str) -> list[MedicalRecord]:
    """All records for a patient, newest date_recorded first."""
    db = await get_db()
    rows = await db.fetch_all(
        "SELECT * FROM medical_history WHERE patient_id = ? ORDER BY date_recorded DESC, created_at DESC",
        (patient_id,),
    )
    return [_row_to_record(row) for row in rows]
