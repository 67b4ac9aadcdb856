"""Scan recorder: appends scan events to tracked codes."""

import uuid
from collections.abc import Awaitable, Callable

import structlog
from qrtrack_shared import ScanEvent, ScanObservation, TrackedCode

from app.services.storage import CodeRepository

logger = structlog.get_logger()

# Called with (updated_code, new_scan) once the scan has been saved
ScanListener = Callable[[TrackedCode, ScanEvent], Awaitable[None]]


def new_scan_id() -> str:
    """Random scan id; safe under rapid repeated scans of one code."""
    return uuid.uuid4().hex


def append_scan(code: TrackedCode, observation: ScanObservation) -> TrackedCode:
    """Return a copy of `code` with one more scan built from `observation`.

    The counter is re-derived from the scan list, so a record that was
    already out of sync is repaired rather than carried forward.
    """
    scan = ScanEvent(
        id=new_scan_id(),
        timestamp=observation.timestamp,
        user_agent=observation.user_agent,
        ip=observation.ip,
    )
    scans = [*code.scans, scan]
    return code.model_copy(update={"scans": scans, "total_scans": len(scans)})


class ScanRecorder:
    """Persists scans and notifies listeners.

    Usage:
        recorder = ScanRecorder(repository)
        recorder.subscribe(on_scan)
        updated = await recorder.record(code_id, ScanObservation(user_agent=ua))
    """

    def __init__(self, repository: CodeRepository):
        self._repository = repository
        self._listeners: list[ScanListener] = []

    def subscribe(self, listener: ScanListener) -> None:
        """Register a coroutine called after every saved scan."""
        self._listeners.append(listener)
        logger.debug("Scan listener registered", listener=getattr(listener, "__name__", repr(listener)))

    def unsubscribe(self, listener: ScanListener) -> None:
        """Remove a previously registered listener."""
        self._listeners.remove(listener)

    async def record(
        self,
        code_id: str,
        observation: ScanObservation,
    ) -> TrackedCode | None:
        """Append a scan to the code with `code_id` and save it.

        Returns the updated code, or None if no such code exists. Storage
        failures propagate; nothing is reported as recorded unless the save
        succeeded.
        """
        async with self._repository.transaction() as codes:
            for index, code in enumerate(codes):
                if code.id == code_id:
                    updated = append_scan(code, observation)
                    codes[index] = updated
                    break
            else:
                logger.info("Scan ignored - code not found", code_id=code_id)
                return None

        scan = updated.scans[-1]
        logger.info(
            "Scan recorded",
            code_id=code_id,
            scan_id=scan.id,
            total_scans=updated.total_scans,
        )
        await self._notify(updated, scan)
        return updated

    async def _notify(self, code: TrackedCode, scan: ScanEvent) -> None:
        for listener in list(self._listeners):
            try:
                await listener(code, scan)
            except Exception as e:
                # The scan is already saved; a listener cannot undo it
                logger.error(
                    "Scan listener failed",
                    code_id=code.id,
                    scan_id=scan.id,
                    error=str(e),
                )
