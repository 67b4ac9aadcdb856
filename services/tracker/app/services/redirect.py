"""Redirect coordinator: resolves tracking ids and records the scan."""

from dataclasses import dataclass
from datetime import datetime

import structlog
from qrtrack_shared import ScanObservation, TrackedCode, utcnow

from app.services.scan_recorder import ScanRecorder

logger = structlog.get_logger()


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving a tracking id."""

    found: bool
    target_url: str | None = None
    code: TrackedCode | None = None

    @classmethod
    def not_found(cls) -> "Resolution":
        return cls(found=False)


class RedirectCoordinator:
    """Turns a tracking id into its destination, recording a scan on the way.

    The scan is saved before `resolve` returns, so analytics read right
    after a redirect already include it.
    """

    def __init__(self, recorder: ScanRecorder):
        self._recorder = recorder

    async def resolve(
        self,
        code_id: str,
        user_agent: str | None = None,
        now: datetime | None = None,
    ) -> Resolution:
        observation = ScanObservation(timestamp=now or utcnow(), user_agent=user_agent)
        code = await self._recorder.record(code_id, observation)
        if code is None:
            logger.info("Redirect failed - code not found", code_id=code_id)
            return Resolution.not_found()

        logger.info("Redirect resolved", code_id=code_id, total_scans=code.total_scans)
        return Resolution(found=True, target_url=code.target_url, code=code)
