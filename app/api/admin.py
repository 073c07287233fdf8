from fastapi import APIRouter, Request

from app.core.container import get_services
from app.models.device import DeviceListing
from app.models.firmware import ReleaseRequest, ReleaseResult

router = APIRouter()


@router.get("/devices", response_model=DeviceListing)
async def list_devices(request: Request):
    services = get_services(request)
    return services.devices.list_devices()


@router.post("/firmware/release", response_model=ReleaseResult)
async def release_firmware(release: ReleaseRequest, request: Request):
    services = get_services(request)
    return await services.releases.release(release)
