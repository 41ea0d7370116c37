from fastapi import APIRouter, Depends, Query

from carevault.auth import get_current_user, resolve_patient_id
from carevault.models.medical_history import MedicalRecord, MedicalRecordCreate
from carevault.models.profile import Profile
from carevault.services.medical_history import add_record, list_records

router = APIRouter(prefix="/api/records", tags=["medical-history"])


@router.get("", response_model=list[MedicalRecord])
async def get_records(
    patient_id: str | None = Query(None),
    user: Profile = Depends(get_current_user),
):
    """Medical history timeline, newest first."""
    return await list_records(await resolve_patient_id(user, patient_id))


@router.post("", response_model=MedicalRecord)
async def create_record(body: MedicalRecordCreate, user: Profile = Depends(get_current_user)):
    patient_id = await resolve_patient_id(user, body.patient_id)
    return await add_record(
        patient_id=patient_id,
        recorded_by=user.user_id,
        record_type=body.record_type,
        title=body.title,
        description=body.description,
        date_recorded=body.date_recorded,
        attachments=body.attachments,
    )
