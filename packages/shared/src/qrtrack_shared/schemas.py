"""Shared Pydantic schemas for the persisted tracked-code record."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator, model_validator


def utcnow() -> datetime:
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # Naive instants are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ScanObservation(BaseModel):
    """A single visit to a tracking URL, before it is stored.

    Produced by the redirect flow and handed to the scan recorder.
    """

    timestamp: datetime = Field(
        default_factory=utcnow,
        description="Instant the scan was observed",
    )
    user_agent: str | None = Field(default=None, description="HTTP User-Agent header")
    ip: str | None = Field(default=None, description="Client IP address (not collected)")

    @field_validator("timestamp")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return _as_aware(v)


class ScanEvent(BaseModel):
    """A stored scan of a tracked code."""

    id: str = Field(description="Scan identifier, unique within its code")
    timestamp: datetime = Field(description="Instant the scan was observed")
    user_agent: str | None = Field(default=None, description="HTTP User-Agent header")
    ip: str | None = Field(default=None, description="Client IP address (not collected)")

    @field_validator("timestamp")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return _as_aware(v)


class TrackedCode(BaseModel):
    """A QR code with a stable tracking URL and its scan history.

    `total_scans` mirrors `len(scans)`. Scans are kept in arrival order,
    which is not necessarily timestamp order.
    """

    id: str = Field(description="Opaque code identifier")
    name: str = Field(description="User supplied label")
    target_url: str = Field(description="Destination the tracking URL redirects to")
    tracking_url: str = Field(description="Indirection URL encoded into the QR image")
    created_at: datetime = Field(default_factory=utcnow)
    total_scans: int = Field(default=0, ge=0)
    scans: list[ScanEvent] = Field(default_factory=list)

    model_config = {"json_schema_extra": {"example": {
        "id": "k3J9xQ2mPa",
        "name": "Spring flyer",
        "target_url": "https://example.com/spring",
        "tracking_url": "http://localhost:8000/track/k3J9xQ2mPa",
        "created_at": "2024-03-01T09:00:00Z",
        "total_scans": 1,
        "scans": [{
            "id": "5b0e6f0c8a2d4c3f9e4b7a1d2c3e4f50",
            "timestamp": "2024-03-02T14:12:09Z",
            "user_agent": "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)",
            "ip": None,
        }],
    }}}

    @field_validator("created_at")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return _as_aware(v)

    @property
    def counter_matches(self) -> bool:
        """Whether the stored counter agrees with the scan list."""
        return self.total_scans == len(self.scans)


class TrackedCodeReplace(TrackedCode):
    """Whole-record replacement submitted by the owner.

    The counter is always re-derived from the submitted scan list.
    """

    @model_validator(mode="after")
    def sync_total_scans(self) -> "TrackedCodeReplace":
        self.total_scans = len(self.scans)
        return self
