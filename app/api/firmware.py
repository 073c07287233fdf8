import re
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse, StreamingResponse

from app.config.settings import get_settings
from app.core.container import get_services
from app.models.firmware import CheckRequest, UpdateDecision

router = APIRouter()

_LEADING_INT = re.compile(r"^\s*[+-]?\d+")


def parse_rssi(raw: Optional[str]) -> Optional[int]:
    """Leading integer of the raw value ("-67dBm" -> -67), None otherwise."""
    if not raw:
        return None
    match = _LEADING_INT.match(raw)
    return int(match.group()) if match else None


@router.get("/check", response_model=UpdateDecision, response_model_exclude_none=True)
async def check_update(
    request: Request,
    device: Optional[str] = None,
    version: Optional[str] = None,
    model: Optional[str] = None,
    rssi: Optional[str] = None,
):
    services = get_services(request)
    check = CheckRequest(
        device=device,
        version=version,
        model=model or get_settings().default_device_model,
        rssi=parse_rssi(rssi),
    )
    return await services.negotiator.check_update(
        check,
        base_url=str(request.base_url),
        api_key=getattr(request.state, "api_key", ""),
    )


@router.get("/download/{version}")
async def download_firmware(version: str, request: Request):
    services = get_services(request)
    target = await services.downloads.resolve(version)

    if target.redirect_url:
        return RedirectResponse(target.redirect_url, status_code=302)

    filename = target.release.filename
    return StreamingResponse(
        services.blob_store.stream(filename),
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Content-Length": str(target.size),
        },
    )
