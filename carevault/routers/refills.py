from fastapi import APIRouter, Depends

from carevault.auth import get_current_user, require_role
from carevault.models.profile import Profile
from carevault.models.refill import RefillRequest, RefillRequestCreate, RefillResponse
from carevault.services.refills import create_request, list_requests, respond_to_request

router = APIRouter(prefix="/api/refills", tags=["refills"])


@router.get("", response_model=list[RefillRequest])
async def get_refills(user: Profile = Depends(get_current_user)):
    return await list_requests(user)


@router.post("", response_model=RefillRequest)
async def request_refill(body: RefillRequestCreate, user: Profile = Depends(require_role("patient"))):
    return await create_request(user, body)


@router.post("/{request_id}/respond", response_model=RefillRequest)
async def respond(
    request_id: str,
    body: RefillResponse,
    user: Profile = Depends(require_role("doctor")),
):
    """Approve or deny a pending refill request."""
    return await respond_to_request(user, request_id, body)
