import logging
import uuid

from carevault.database import get_db, to_timestamp, utcnow
from carevault.errors import NotFound, TransientBackendFailure, ValidationFailure
from carevault.models.profile import Profile
from carevault.models.refill import RefillRequest, RefillRequestCreate, RefillResponse

logger = logging.getLogger(__name__)


def _row_to_request(row) -> RefillRequest:
    return RefillRequest(
        id=row["id"],
        patient_id=row["patient_id"],
        prescription_id=row["prescription_id"],
        medication_name=row["medication_name"],
        status=row["status"],
        request_notes=row["request_notes"],
        doctor_response=row["doctor_response"],
        doctor_id=row["doctor_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def create_request(patient: Profile, body: RefillRequestCreate) -> RefillRequest:
    db = await get_db()
    request_id = str(uuid.uuid4())
    now = to_timestamp(utcnow())
    try:
        await db.execute(
            """INSERT INTO refill_requests (
                id, patient_id, prescription_id, medication_name, status,
                request_notes, created_at, updated_at
            ) VALUES (?, ?, ?, ?, 'pending', ?, ?, ?)""",
            (request_id, patient.user_id, body.prescription_id, body.medication_name,
             body.request_notes, now, now),
        )
        await db.commit()
    except Exception as exc:
        logger.error("Failed to submit refill request for %s: %s", patient.user_id, exc)
        raise TransientBackendFailure("Failed to submit refill request") from exc
    return await get_request(request_id)


async def get_request(request_id: str) -> RefillRequest:
    db = await get_db()
    row = await db.fetch_one("SELECT * FROM refill_requests WHERE id = ?", (request_id,))
    if not row:
        raise NotFound("Refill request not found")
    return _row_to_request(row)


async def list_requests(actor: Profile) -> list[RefillRequest]:
    """Patients see their own requests, doctors see all of them."""
    db = await get_db()
    if actor.role == "patient":
        rows = await db.fetch_all(
            "SELECT * FROM refill_requests WHERE patient_id = ? ORDER BY created_at DESC",
            (actor.user_id,),
        )
    else:
        rows = await db.fetch_all("SELECT * FROM refill_requests ORDER BY created_at DESC")
    return [_row_to_request(row) for row in rows]


async def respond_to_request(doctor: Profile, request_id: str, body: RefillResponse) -> RefillRequest:
    db = await get_db()
    try:
        updated = await db.execute(
            """UPDATE refill_requests
               SET status = ?, doctor_response = ?, doctor_id = ?, updated_at = ?
               WHERE id = ? AND status = 'pending'""",
            (body.status, body.response, doctor.user_id, to_timestamp(utcnow()), request_id),
        )
        await db.commit()
    except Exception as exc:
        logger.error("Failed to update refill request %s: %s", request_id, exc)
        raise TransientBackendFailure("Failed to update request") from exc

    if updated == 0:
        existing = await get_request(request_id)
        raise ValidationFailure(f"Refill request is already {existing.status}")
    logger.info("Refill request %s %s by %s", request_id, body.status, doctor.user_id)
    return await get_request(request_id)
