"""Best-effort audit writes for acknowledged safety findings.

An audit failure is logged and reported as ``False``; it never raises and
never changes the outcome of the operation that triggered it.
"""

import json
import logging
from typing import Any

from carevault.database import to_timestamp, utcnow
from carevault.services.medical_history import add_record

logger = logging.getLogger(__name__)


async def record_audit(
    *,
    patient_id: str,
    doctor_id: str,
    record_type: str,
    title: str,
    findings_key: str,
    findings: list[dict[str, Any]],
    acknowledged: bool,
) -> bool:
    payload = {
        findings_key: findings,
        "acknowledged": acknowledged,
        "timestamp": to_timestamp(utcnow()),
        "acknowledged_by": doctor_id,
    }
    try:
        await add_record(
            patient_id=patient_id,
            recorded_by=doctor_id,
            record_type=record_type,
            title=title,
            description=json.dumps(payload),
        )
    except Exception as exc:
        logger.error("Failed to log %s for patient %s: %s", record_type, patient_id, exc)
        return False
    logger.info("Logged %s for patient %s (%d finding(s))", record_type, patient_id, len(findings))
    return True
