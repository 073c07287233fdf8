import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import admin, firmware
from app.config.settings import get_settings
from app.core.container import build_services, get_services
from app.core.errors import OTAError
from app.middleware.auth import ApiKeyMiddleware

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ENDPOINTS = [
    "/api/v1/firmware/check",
    "/api/v1/firmware/download/:version",
    "/admin/devices",
    "/admin/firmware/release",
    "/health",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level)

    services = build_services(settings)
    app.state.services = services

    if settings.catalog_seed_file:
        await services.releases.seed_from_file(settings.catalog_seed_file)

    logger.info(f"{settings.server_name} started")
    yield
    await app.state.services.close()
    logger.info(f"{settings.server_name} stopped")


app = FastAPI(title="OTA Firmware Server", version="1.0.0", lifespan=lifespan)

app.add_middleware(ApiKeyMiddleware)

app.include_router(firmware.router, prefix="/api/v1/firmware", tags=["firmware"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])


@app.get("/")
async def server_info(request: Request):
    services = get_services(request)
    return {
        "server": get_settings().server_name,
        "status": "running",
        "firmware_versions": services.catalog.versions(),
        "endpoints": ENDPOINTS,
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.exception_handler(OTAError)
async def ota_error_handler(request: Request, exc: OTAError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
