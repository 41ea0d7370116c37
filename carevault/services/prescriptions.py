import json
import logging
import uuid

from carevault.database import get_db, load_json_list, to_timestamp, utcnow
from carevault.errors import AuthenticationRequired, TransientBackendFailure
from carevault.models.medication import Medication
from carevault.models.prescription import Prescription, PrescriptionCreate
from carevault.models.profile import Profile

logger = logging.getLogger(__name__)


def _parse_medications(raw: str | None) -> list[Medication]:
    meds = []
    for item in load_json_list(raw):
        if isinstance(item, dict):
            meds.append(Medication(
                name=str(item.get("name") or ""),
                dosage=str(item.get("dosage") or ""),
                frequency=str(item.get("frequency") or ""),
                duration=str(item.get("duration") or ""),
            ))
    return meds


def _row_to_prescription(row) -> Prescription:
    return Prescription(
        id=row["id"],
        patient_id=row["patient_id"],
        doctor_id=row["doctor_id"],
        title=row["title"],
        description=row["description"],
        medications=_parse_medications(row["medications"]),
        file_url=row["file_url"],
        file_type=row["file_type"],
        is_verified=bool(row["is_verified"]),
        upload_source=row["upload_source"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def add_prescription(actor: Profile | None, body: PrescriptionCreate) -> Prescription:
    """Persist a prescription authored by ``actor``.

    Verification follows authorship: doctor-authored rows are verified,
    patient self-entries are not. Callers cannot set either flag.
    """
    if actor is None:
        raise AuthenticationRequired("Not authenticated")

    is_doctor = actor.role == "doctor"
    patient_id = body.patient_id if (is_doctor and body.patient_id) else actor.user_id
    prescription_id = str(uuid.uuid4())
    now = to_timestamp(utcnow())
    medications = [m for m in body.medications if m.name.strip()]

    db = await get_db()
    try:
        await db.execute(
            """INSERT INTO prescriptions (
                id, patient_id, doctor_id, title, description, medications,
                file_url, file_type, is_verified, upload_source, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                prescription_id,
                patient_id,
                actor.user_id if is_doctor else None,
                body.title,
                body.description,
                json.dumps([m.model_dump() for m in medications]),
                body.file_url,
                body.file_type,
                1 if is_doctor else 0,
                "doctor" if is_doctor else "user",
                now,
                now,
            ),
        )
        await db.commit()
    except Exception as exc:
        logger.error("Failed to add prescription for %s: %s", patient_id, exc)
        raise TransientBackendFailure("Failed to add prescription") from exc

    logger.info(
        "Prescription %s added for %s (source=%s)",
        prescription_id, patient_id, "doctor" if is_doctor else "user",
    )
    return Prescription(
        id=prescription_id,
        patient_id=patient_id,
        doctor_id=actor.user_id if is_doctor else None,
        title=body.title,
        description=body.description,
        medications=medications,
        file_url=body.file_url,
        file_type=body.file_type,
        is_verified=is_doctor,
        upload_source="doctor" if is_doctor else "user",
        created_at=now,
        updated_at=now,
    )


async def list_prescriptions(patient_id: str | None = None) -> list[Prescription]:
    """Prescriptions newest first, optionally for a single patient."""
    db = await get_db()
    if patient_id:
        rows = await db.fetch_all(
            "SELECT * FROM prescriptions WHERE patient_id = ? ORDER BY created_at DESC",
            (patient_id,),
        )
    else:
        rows = await db.fetch_all("SELECT * FROM prescriptions ORDER BY created_at DESC")
    return [_row_to_prescription(row) for row in rows]


def existing_medications(prescriptions: list[Prescription]) -> list[Medication]:
    """Flatten the named medications across a patient's prescriptions."""
    return [
        med
        for prescription in prescriptions
        for med in prescription.medications
        if med.name
    ]
