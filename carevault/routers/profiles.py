from fastapi import APIRouter, Depends

from carevault.auth import get_current_user
from carevault.models.profile import MinimumSafeDataset, Profile, ProfileUpdate
from carevault.services.profiles import safe_dataset, update_profile

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("", response_model=Profile)
async def read_profile(user: Profile = Depends(get_current_user)):
    """Get the signed-in user's profile."""
    return user


@router.patch("", response_model=Profile)
async def patch_profile(body: ProfileUpdate, user: Profile = Depends(get_current_user)):
    """Update the signed-in user's profile, including allergies and chronic conditions."""
    return await update_profile(user.user_id, body)


@router.get("/safe-dataset", response_model=MinimumSafeDataset)
async def read_safe_dataset(user: Profile = Depends(get_current_user)):
    return safe_dataset(user)
