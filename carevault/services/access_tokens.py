"""Time-limited, single-use emergency access tokens.

Lifecycle: a patient issues a token (Active); the first doctor to open it
consumes it (Consumed); once ``expires_at`` passes the token is rejected
regardless of use (Expired). Consumption is a single conditional UPDATE,
so two doctors racing on the same token cannot both win.
"""

import logging
import re
import secrets
from datetime import datetime, timedelta

from carevault.config import (
    ACCESS_TOKEN_MAX_TTL_MINUTES,
    ACCESS_TOKEN_TTL_MINUTES,
    DOCTOR_ACCESS_PATH,
    PUBLIC_BASE_URL,
)
from carevault.database import get_db, to_timestamp, utcnow
from carevault.errors import (
    AuthenticationRequired,
    PermissionDenied,
    TransientBackendFailure,
    ValidationFailure,
)
from carevault.models.access_token import TokenIssued, TokenValidation
from carevault.models.profile import Profile

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{22,128}$")


def is_well_formed(token: str | None) -> bool:
    return bool(token) and bool(_TOKEN_PATTERN.match(token))


def access_url(token: str) -> str:
    return f"{PUBLIC_BASE_URL.rstrip('/')}{DOCTOR_ACCESS_PATH}?token={token}"


async def generate_token(actor: Profile | None, ttl_minutes: int | None = None) -> TokenIssued:
    """Issue a token that lets one doctor open ``actor``'s record."""
    if actor is None:
        raise AuthenticationRequired("Not authenticated")
    if actor.role != "patient":
        raise PermissionDenied("Only patients can issue emergency access tokens")

    ttl = ACCESS_TOKEN_TTL_MINUTES if ttl_minutes is None else ttl_minutes
    if ttl < 1 or ttl > ACCESS_TOKEN_MAX_TTL_MINUTES:
        raise ValidationFailure(
            f"ttl_minutes must be between 1 and {ACCESS_TOKEN_MAX_TTL_MINUTES}"
        )

    token = secrets.token_urlsafe(TOKEN_BYTES)
    now = utcnow()
    expires_at = to_timestamp(now + timedelta(minutes=ttl))

    db = await get_db()
    try:
        await db.execute(
            "INSERT INTO access_tokens (token, patient_id, expires_at, created_at) VALUES (?, ?, ?, ?)",
            (token, actor.user_id, expires_at, to_timestamp(now)),
        )
        await db.commit()
    except Exception as exc:
        logger.error("Failed to generate access token for %s: %s", actor.user_id, exc)
        raise TransientBackendFailure("Failed to generate access token") from exc

    logger.info("Issued access token for patient %s (ttl=%d min)", actor.user_id, ttl)
    return TokenIssued(token=token, expires_at=expires_at, access_url=access_url(token))


async def validate_token(token: str, now: datetime | None = None) -> TokenValidation:
    """Look up an unexpired token. A miss is ``valid=False``, never an error."""
    if not is_well_formed(token):
        return TokenValidation(valid=False)

    db = await get_db()
    row = await db.fetch_one(
        "SELECT patient_id, expires_at, used_by FROM access_tokens WHERE token = ? AND expires_at > ?",
        (token, to_timestamp(now or utcnow())),
    )
    if not row:
        return TokenValidation(valid=False)

    return TokenValidation(
        valid=True,
        patient_id=row["patient_id"],
        expires_at=row["expires_at"],
        used_by=row["used_by"],
    )


async def use_token(token: str, actor: Profile | None, now: datetime | None = None) -> bool:
    """Consume a token for ``actor``.

    Succeeds only if the token is unexpired and either unused or already
    consumed by the same user (so a doctor can reopen their own session).
    Returns False when another doctor got there first or the token expired.
    """
    if actor is None:
        raise AuthenticationRequired("Not authenticated")

    stamp = to_timestamp(now or utcnow())
    db = await get_db()
    try:
        updated = await db.execute(
            """UPDATE access_tokens
               SET used_by = ?, used_at = COALESCE(used_at, ?)
               WHERE token = ? AND expires_at > ? AND (used_by IS NULL OR used_by = ?)""",
            (actor.user_id, stamp, token, stamp, actor.user_id),
        )
        await db.commit()
    except Exception as exc:
        logger.error("Failed to consume access token: %s", exc)
        raise TransientBackendFailure("Failed to record token use") from exc

    if updated != 1:
        logger.info("Access token consumption rejected for %s", actor.user_id)
        return False
    logger.info("Access token consumed by %s", actor.user_id)
    return True


async def has_active_access(patient_id: str, doctor_id: str, now: datetime | None = None) -> bool:
    """True while ``doctor_id`` holds a consumed, unexpired token for the patient."""
    db = await get_db()
    row = await db.fetch_one(
        """SELECT 1 FROM access_tokens
           WHERE patient_id = ? AND used_by = ? AND expires_at > ?
           LIMIT 1""",
        (patient_id, doctor_id, to_timestamp(now or utcnow())),
    )
    return row is not None


async def ensure_doctor_access(doctor: Profile, patient_id: str, now: datetime | None = None) -> None:
    if not await has_active_access(patient_id, doctor.user_id, now):
        logger.info("Doctor %s has no active access to %s", doctor.user_id, patient_id)
        raise PermissionDenied("Open the patient's emergency access link first")
