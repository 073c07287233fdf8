from typing import Optional


class OTAError(Exception):
    """Base error; carries the HTTP status and the client-facing detail."""

    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class MissingParameter(OTAError):
    status_code = 400
    default_detail = "Missing device or version parameter"


class MissingRequiredField(OTAError):
    status_code = 400
    default_detail = "Missing required fields"


class DuplicateVersion(OTAError):
    status_code = 400
    default_detail = "Version already exists"


class Unauthenticated(OTAError):
    status_code = 401
    default_detail = "No authorization header"


class Forbidden(OTAError):
    status_code = 403
    default_detail = "Invalid API key"


class VersionNotFound(OTAError):
    status_code = 404
    default_detail = "Firmware version not found"


class ArtifactMissing(OTAError):
    status_code = 404
    default_detail = "Firmware file not found"


class TransientIO(OTAError):
    """Blob store I/O failed or timed out. Not retried here."""

    status_code = 500
    default_detail = "Firmware storage unavailable"
