"""Doctor-side emergency access to a patient record via a scanned token.

The token is checked and consumed before any patient data is read. Every
rejection carries a ``redirect_to`` target for the client.
"""

import logging

from carevault.errors import AuthenticationRequired, PermissionDenied, ValidationFailure
from carevault.models.emergency import PatientRecordView
from carevault.models.profile import Profile
from carevault.services.access_tokens import is_well_formed, use_token, validate_token
from carevault.services.drift_analysis import analyze_drift
from carevault.services.medical_history import list_records
from carevault.services.prescriptions import existing_medications, list_prescriptions
from carevault.services.profiles import get_profile, safe_dataset
from carevault.services.wearables import wearables

logger = logging.getLogger(__name__)

DOCTOR_DASHBOARD = "/doctor-dashboard"
PATIENT_DASHBOARD = "/dashboard"


async def open_patient_record(token: str | None, actor: Profile | None) -> PatientRecordView:
    if not is_well_formed(token):
        raise ValidationFailure("Invalid access link", redirect_to=DOCTOR_DASHBOARD)
    if actor is None:
        raise AuthenticationRequired(
            "Sign in to open this access link",
            redirect_to=f"/auth?redirect=/doctor-access?token={token}",
        )
    if actor.role != "doctor":
        raise PermissionDenied(
            "Only doctors can access patient records via QR",
            redirect_to=PATIENT_DASHBOARD,
        )

    validation = await validate_token(token)
    if not validation.valid or not validation.patient_id:
        raise ValidationFailure("Access token expired or invalid", redirect_to=DOCTOR_DASHBOARD)

    if not await use_token(token, actor):
        raise ValidationFailure("Access token expired or already used", redirect_to=DOCTOR_DASHBOARD)

    patient_id = validation.patient_id
    logger.info("Doctor %s opened record of %s via access token", actor.user_id, patient_id)

    patient = await get_profile(patient_id)
    prescriptions = await list_prescriptions(patient_id)
    history = await list_records(patient_id)
    readings = wearables.latest(patient_id)

    advisories = analyze_drift(
        existing_medications(prescriptions),
        history,
        readings,
        patient.allergies,
        patient.chronic_conditions,
    )

    return PatientRecordView(
        patient_id=patient_id,
        expires_at=validation.expires_at,
        safe_dataset=safe_dataset(patient),
        prescriptions=prescriptions,
        medical_history=history,
        wearable_readings=readings,
        advisories=advisories,
    )
