"""QRTrack Shared - Persisted record schemas for tracked QR codes."""

from qrtrack_shared.schemas import (
    ScanEvent,
    ScanObservation,
    TrackedCode,
    TrackedCodeReplace,
    utcnow,
)

__all__ = ["ScanEvent", "ScanObservation", "TrackedCode", "TrackedCodeReplace", "utcnow"]
