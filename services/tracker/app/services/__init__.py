"""Tracked code business logic services."""

from app.services.qr_image import QROptions, render_qr_png
from app.services.redirect import RedirectCoordinator, Resolution
from app.services.scan_recorder import ScanRecorder, append_scan
from app.services.storage import (
    CodeRepository,
    KeyValueStore,
    RedisKeyValueStore,
    SqlKeyValueStore,
    close_code_repository,
    get_code_repository,
)

__all__ = [
    # Storage
    "CodeRepository",
    "KeyValueStore",
    "RedisKeyValueStore",
    "SqlKeyValueStore",
    "get_code_repository",
    "close_code_repository",
    # Scans
    "ScanRecorder",
    "append_scan",
    "RedirectCoordinator",
    "Resolution",
    # Images
    "QROptions",
    "render_qr_png",
]
