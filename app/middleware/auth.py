from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from app.config.settings import get_settings
from app.core.errors import Forbidden, OTAError, Unauthenticated

PROTECTED_PREFIXES = ("/api/", "/admin/")


def authenticate(authorization: str, api_keys: set[str]) -> str:
    """Return the API key from a ``Bearer <token>`` header or raise."""
    if not authorization:
        raise Unauthenticated()

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthenticated("Invalid authorization format")

    api_key = parts[1]
    if api_key not in api_keys:
        raise Forbidden()
    return api_key


class ApiKeyMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.url.path.startswith(PROTECTED_PREFIXES):
            settings = get_settings()
            try:
                request.state.api_key = authenticate(
                    request.headers.get("authorization", ""), settings.api_keys
                )
            except OTAError as e:
                return JSONResponse(status_code=e.status_code, content={"detail": e.detail})

        response = await call_next(request)
        return response
