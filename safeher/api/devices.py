import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Response, status

from ..repositories import repository
from ..schemas import DeviceProfile, DeviceUpdate, RegisterDeviceRequest

router = APIRouter()
log = logging.getLogger(__name__)


@router.post("/devices/register", response_model=DeviceProfile, status_code=status.HTTP_201_CREATED)
def register_device(payload: RegisterDeviceRequest, response: Response):
    """
    Registers the browser device on first launch.

    Registration is idempotent: if the device_id already exists the stored
    device is returned unchanged (200) and the payload is ignored.

    Request:
    {
        "device_id": "device_V1StGXR8",
        "name": "Asha",
        "phone": "9999999999",
        "email": "asha@example.com"
    }
    """
    existing = repository.get_device(payload.device_id)
    if existing:
        log.info("Device %s already registered, returning stored profile", payload.device_id)
        response.status_code = status.HTTP_200_OK
        return existing
    return repository.create_device(
        device_id=payload.device_id,
        name=payload.name,
        phone=payload.phone,
        email=payload.email,
    )


@router.get("/devices/{device_id}", response_model=Optional[DeviceProfile])
def get_device(device_id: str):
    return repository.get_device(device_id)


@router.put("/devices/{device_id}", response_model=DeviceProfile)
def update_device(device_id: str, payload: DeviceUpdate):
    dev = repository.update_device(
        device_id=device_id,
        name=payload.name,
        phone=payload.phone,
        email=payload.email,
    )
    if not dev:
        raise HTTPException(status_code=404, detail="Device not found")
    return dev
