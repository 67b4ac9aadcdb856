"""Exception taxonomy for tracked-code operations."""


class QRTrackError(Exception):
    """Base class for all service errors."""

    status_code: int = 500
    detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class CodeNotFoundError(QRTrackError):
    """No tracked code exists with the requested id."""

    status_code = 404
    detail = "QR code not found"

    def __init__(self, code_id: str) -> None:
        super().__init__(f"QR code '{code_id}' not found")
        self.code_id = code_id


class CodeValidationError(QRTrackError):
    """Input rejected before any storage call."""

    status_code = 422
    detail = "Invalid QR code data"


class PersistenceReadError(QRTrackError):
    """The backing store could not be read or holds corrupt data."""

    status_code = 503
    detail = "Storage unavailable"


class PersistenceWriteError(QRTrackError):
    """The backing store rejected a write."""

    status_code = 503
    detail = "Storage unavailable"
