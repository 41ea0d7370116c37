"""Stateless safety previews for the view layer.

These recompute on every call; nothing here is persisted.
"""

from fastapi import APIRouter, Depends

from carevault.auth import get_current_user
from carevault.models.medication import (
    AllergyCheckRequest,
    DriftRequest,
    InteractionCheckRequest,
    SafetyCheckResponse,
)
from carevault.models.profile import Profile
from carevault.services.allergy_check import check_medications
from carevault.services.drift_analysis import analyze_drift
from carevault.services.interaction_check import check_interactions

router = APIRouter(prefix="/api/safety", tags=["safety"])


@router.post("/allergy-check", response_model=SafetyCheckResponse)
async def allergy_check(body: AllergyCheckRequest, user: Profile = Depends(get_current_user)):
    conflicts = check_medications(body.medications, body.allergies)
    return SafetyCheckResponse(conflicts=conflicts, checked=len(body.medications))


@router.post("/interaction-check", response_model=SafetyCheckResponse)
async def interaction_check(body: InteractionCheckRequest, user: Profile = Depends(get_current_user)):
    interactions = check_interactions(body.new_medications, body.existing_medications)
    return SafetyCheckResponse(
        interactions=interactions,
        checked=len(body.new_medications) + len(body.existing_medications),
    )


@router.post("/drift", response_model=SafetyCheckResponse)
async def drift(body: DriftRequest, user: Profile = Depends(get_current_user)):
    advisories = analyze_drift(
        body.medications,
        body.medical_history,
        body.wearable_readings,
        body.allergies,
        body.chronic_conditions,
    )
    return SafetyCheckResponse(advisories=advisories, checked=len(body.medications))
