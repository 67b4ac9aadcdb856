import pytest
from qrtrack_shared import ScanObservation

from conftest import make_code, utc

from app.core.exceptions import PersistenceWriteError
from app.services.scan_recorder import ScanRecorder, append_scan


def test_append_scan_adds_one_event_and_increments_counter():
    code = make_code(timestamps=[utc(2024, 3, 1, 9, 0)])
    observation = ScanObservation(timestamp=utc(2024, 3, 2, 10, 0), user_agent="Mozilla/5.0")

    updated = append_scan(code, observation)

    assert updated.total_scans == 2
    assert len(updated.scans) == 2
    scan = updated.scans[-1]
    assert scan.timestamp == observation.timestamp
    assert scan.user_agent == "Mozilla/5.0"
    assert scan.ip is None
    # Input record is left alone
    assert code.total_scans == 1
    assert len(code.scans) == 1


def test_append_scan_generates_distinct_ids_for_same_instant():
    code = make_code()
    observation = ScanObservation(timestamp=utc(2024, 3, 2, 10, 0))

    for _ in range(50):
        code = append_scan(code, observation)

    assert len({scan.id for scan in code.scans}) == 50


def test_append_scan_repairs_out_of_sync_counter():
    code = make_code(timestamps=[utc(2024, 3, 1)]).model_copy(update={"total_scans": 9})

    updated = append_scan(code, ScanObservation())

    assert updated.total_scans == len(updated.scans) == 2


async def test_record_persists_scan(repository):
    await repository.save_all([make_code("one"), make_code("two")])
    recorder = ScanRecorder(repository)

    updated = await recorder.record("two", ScanObservation(user_agent="curl/8.0"))

    assert updated is not None
    assert updated.total_scans == 1
    stored = {code.id: code for code in await repository.load_all()}
    assert stored["two"].total_scans == 1
    assert stored["two"].scans[0].user_agent == "curl/8.0"
    assert stored["one"].total_scans == 0


async def test_record_unknown_code_returns_none(repository):
    await repository.save_all([make_code("one")])
    recorder = ScanRecorder(repository)

    assert await recorder.record("missing", ScanObservation()) is None
    assert (await repository.load_all())[0].total_scans == 0


async def test_listeners_run_after_save(repository):
    await repository.save_all([make_code("one")])
    recorder = ScanRecorder(repository)
    seen = []

    async def listener(code, scan):
        stored = await repository.load_all()
        seen.append((code.id, scan.id, stored[0].total_scans))

    recorder.subscribe(listener)
    updated = await recorder.record("one", ScanObservation())

    assert seen == [("one", updated.scans[0].id, 1)]


async def test_failing_listener_does_not_undo_scan(repository):
    await repository.save_all([make_code("one")])
    recorder = ScanRecorder(repository)

    async def broken(code, scan):
        raise RuntimeError("listener down")

    calls = []

    async def healthy(code, scan):
        calls.append(scan.id)

    recorder.subscribe(broken)
    recorder.subscribe(healthy)
    updated = await recorder.record("one", ScanObservation())

    assert updated.total_scans == 1
    assert len(calls) == 1
    assert (await repository.load_all())[0].total_scans == 1


async def test_unsubscribed_listener_is_not_called(repository):
    await repository.save_all([make_code("one")])
    recorder = ScanRecorder(repository)
    calls = []

    async def listener(code, scan):
        calls.append(scan.id)

    recorder.subscribe(listener)
    recorder.unsubscribe(listener)
    await recorder.record("one", ScanObservation())

    assert calls == []


async def test_write_failure_is_raised_and_not_announced(repository, monkeypatch):
    await repository.save_all([make_code("one")])
    recorder = ScanRecorder(repository)
    calls = []

    async def listener(code, scan):
        calls.append(scan.id)

    async def failing_set(key, value):
        raise PersistenceWriteError("disk full")

    recorder.subscribe(listener)
    monkeypatch.setattr(repository.store, "set", failing_set)

    with pytest.raises(PersistenceWriteError):
        await recorder.record("one", ScanObservation())

    assert calls == []
    monkeypatch.undo()
    assert (await repository.load_all())[0].total_scans == 0
