"""Error taxonomy shared by services and routers.

Services raise these; ``main.py`` installs one handler that renders them
as JSON with the matching HTTP status.
"""

from typing import Any


class CareVaultError(Exception):
    status_code = 500
    kind = "error"

    def __init__(self, detail: str, **extra: Any) -> None:
        super().__init__(detail)
        self.detail = detail
        self.extra = extra

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": self.detail, **self.extra}


class AuthenticationRequired(CareVaultError):
    status_code = 401
    kind = "authentication_required"


class PermissionDenied(CareVaultError):
    status_code = 403
    kind = "permission_denied"


class ValidationFailure(CareVaultError):
    status_code = 400
    kind = "validation_failure"


class NotFound(CareVaultError):
    status_code = 404
    kind = "not_found"


class AcknowledgmentRequired(CareVaultError):
    """A safety gate found conflicts the submitting doctor has not acknowledged."""

    status_code = 409
    kind = "acknowledgment_required"


class TransientBackendFailure(CareVaultError):
    status_code = 503
    kind = "backend_unavailable"


class OCRFailure(CareVaultError):
    status_code = 502
    kind = "ocr_failure"
