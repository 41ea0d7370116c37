"""Caller identity for request handlers.

Sessions are handled upstream; requests arrive with the signed-in user's id
in ``X-User-Id`` and the role comes from that user's profile.
"""

from fastapi import Depends, Header

from carevault.errors import AuthenticationRequired, PermissionDenied
from carevault.models.profile import Profile
from carevault.services.access_tokens import ensure_doctor_access
from carevault.services.profiles import find_profile


async def get_optional_user(x_user_id: str | None = Header(None)) -> Profile | None:
    if not x_user_id:
        return None
    return await find_profile(x_user_id)


async def get_current_user(user: Profile | None = Depends(get_optional_user)) -> Profile:
    if user is None:
        raise AuthenticationRequired("Not authenticated")
    return user


def require_role(*roles: str):
    async def role_checker(current_user: Profile = Depends(get_current_user)) -> Profile:
        if current_user.role not in roles:
            raise PermissionDenied(f"Requires role: {', '.join(roles)}")
        return current_user

    return role_checker


async def resolve_patient_id(actor: Profile, patient_id: str | None) -> str:
    """Patients always act on themselves.

    Doctors must name a patient and hold a consumed, unexpired access token
    for them.
    """
    if actor.role == "patient":
        if patient_id and patient_id != actor.user_id:
            raise PermissionDenied("Patients can only access their own records")
        return actor.user_id
    if not patient_id:
        raise PermissionDenied("patient_id is required")
    await ensure_doctor_access(actor, patient_id)
    return patient_id
