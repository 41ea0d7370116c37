from fastapi import APIRouter, Depends, Query

from carevault.auth import get_current_user, get_optional_user, require_role
from carevault.models.access_token import TokenCreate, TokenIssued, TokenValidation
from carevault.models.emergency import PatientRecordView
from carevault.models.profile import Profile
from carevault.services.access_tokens import generate_token, validate_token
from carevault.services.emergency import open_patient_record

router = APIRouter(prefix="/api", tags=["emergency-access"])


@router.post("/access-tokens", response_model=TokenIssued)
async def issue_token(body: TokenCreate | None = None, user: Profile = Depends(get_current_user)):
    """Issue a time-limited emergency access token for the signed-in patient.

    The returned ``access_url`` is what the QR code encodes.
    """
    ttl = body.ttl_minutes if body else None
    return await generate_token(user, ttl)


@router.get("/access-tokens/validate", response_model=TokenValidation)
async def check_token(
    token: str = Query(""),
    user: Profile = Depends(require_role("doctor")),
):
    """Check a token without consuming it."""
    return await validate_token(token)


@router.get("/doctor-access", response_model=PatientRecordView)
async def doctor_access(
    token: str | None = Query(None),
    user: Profile | None = Depends(get_optional_user),
):
    """Open a patient's record from a scanned access link.

    The token is validated and consumed before any patient data is read.
    Rejections include a ``redirect_to`` for the client.
    """
    return await open_patient_record(token, user)
