"""Dependency injection utilities for FastAPI routes."""

from typing import Annotated
from zoneinfo import ZoneInfo

from fastapi import Depends

from app.core.config import get_settings
from app.services.redirect import RedirectCoordinator
from app.services.scan_recorder import ScanListener, ScanRecorder
from app.services.storage import CodeRepository, get_code_repository

# Listeners attached to every recorder handed to a route
_scan_listeners: list[ScanListener] = []


def add_scan_listener(listener: ScanListener) -> None:
    """Register a listener for scans recorded through the HTTP routes."""
    if listener not in _scan_listeners:
        _scan_listeners.append(listener)


RepositoryDep = Annotated[CodeRepository, Depends(get_code_repository)]


async def get_scan_recorder(repository: RepositoryDep) -> ScanRecorder:
    """Scan recorder over the current repository with all listeners attached."""
    recorder = ScanRecorder(repository)
    for listener in _scan_listeners:
        recorder.subscribe(listener)
    return recorder


async def get_redirect_coordinator(
    recorder: Annotated[ScanRecorder, Depends(get_scan_recorder)],
) -> RedirectCoordinator:
    """Redirect coordinator for the tracking route."""
    return RedirectCoordinator(recorder)


def get_analytics_timezone() -> ZoneInfo:
    """Zone used for analytics day, week and hour buckets."""
    return ZoneInfo(get_settings().analytics_timezone)


CoordinatorDep = Annotated[RedirectCoordinator, Depends(get_redirect_coordinator)]
AnalyticsZoneDep = Annotated[ZoneInfo, Depends(get_analytics_timezone)]
