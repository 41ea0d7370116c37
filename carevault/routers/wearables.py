from fastapi import APIRouter, Depends

from carevault.auth import require_role
from carevault.models.medication import WearableReading
from carevault.models.profile import Profile
from carevault.services.wearables import wearables

router = APIRouter(prefix="/api/wearables", tags=["wearables"])

patient_only = require_role("patient")


@router.post("/connect")
async def connect_device(user: Profile = Depends(patient_only)):
    connected = await wearables.connect(user.user_id)
    return {"connected": connected}


@router.post("/sync", response_model=list[WearableReading])
async def sync_readings(user: Profile = Depends(patient_only)):
    """Pull a fresh set of readings from the connected device."""
    return await wearables.sync(user.user_id)


@router.get("", response_model=list[WearableReading])
async def latest_readings(user: Profile = Depends(patient_only)):
    return wearables.latest(user.user_id)


@router.post("/disconnect")
async def disconnect_device(user: Profile = Depends(patient_only)):
    await wearables.disconnect(user.user_id)
    return {"connected": False}
