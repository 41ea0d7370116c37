from fastapi import APIRouter, Depends, Query

from carevault.auth import get_current_user, resolve_patient_id
from carevault.models.ocr import OCRScanRequest, OCRScanResponse
from carevault.models.prescription import Prescription, SubmissionRequest, SubmissionResult
from carevault.models.profile import Profile
from carevault.services.ocr import scan_prescription
from carevault.services.prescriptions import list_prescriptions
from carevault.services.submission import acknowledgment_decider, submit_prescription

router = APIRouter(prefix="/api/prescriptions", tags=["prescriptions"])


@router.get("", response_model=list[Prescription])
async def get_prescriptions(
    patient_id: str | None = Query(None),
    user: Profile = Depends(get_current_user),
):
    """List prescriptions, newest first."""
    return await list_prescriptions(await resolve_patient_id(user, patient_id))


@router.post("", response_model=SubmissionResult)
async def create_prescription(body: SubmissionRequest, user: Profile = Depends(get_current_user)):
    """Submit a prescription.

    Doctor submissions pass the allergy gate, then the interaction gate.
    A gate with unacknowledged findings answers 409 with ``gate`` and the
    findings; resubmit with them in ``acknowledged_conflicts`` /
    ``acknowledged_interactions`` to proceed. Not resubmitting cancels.
    """
    decide = acknowledgment_decider(body.acknowledged_conflicts, body.acknowledged_interactions)
    return await submit_prescription(user, body, decide)


@router.post("/scan", response_model=OCRScanResponse)
async def scan(body: OCRScanRequest, user: Profile = Depends(get_current_user)):
    """Extract medications from a prescription image.

    Scanning failures return an empty extraction with ``error`` set so the
    user can fall back to manual entry.
    """
    return await scan_prescription(body.image_base64)
