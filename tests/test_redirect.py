import asyncio
from datetime import timedelta

from conftest import utc

from app.aggregators import compute_analytics
from app.services import code_service
from app.services.redirect import RedirectCoordinator
from app.services.scan_recorder import ScanRecorder

T0 = utc(2024, 3, 11, 10, 0)


async def test_resolve_known_code_records_scan_before_returning(repository):
    code = await code_service.create_code(repository, "Flyer", "https://example.com", "http://test")
    coordinator = RedirectCoordinator(ScanRecorder(repository))

    resolution = await coordinator.resolve(code.id, user_agent="Mozilla/5.0")

    assert resolution.found
    assert resolution.target_url == "https://example.com"
    stored = await code_service.get_code(repository, code.id)
    assert stored.total_scans == 1
    assert stored.scans[0].user_agent == "Mozilla/5.0"
    assert stored.scans[0].ip is None


async def test_resolve_unknown_code_is_not_found(repository):
    coordinator = RedirectCoordinator(ScanRecorder(repository))

    resolution = await coordinator.resolve("missing")

    assert not resolution.found
    assert resolution.target_url is None
    assert await repository.load_all() == []


async def test_three_resolves_then_analytics(repository):
    code = await code_service.create_code(repository, "Flyer", "https://example.com", "http://test", now=T0)
    coordinator = RedirectCoordinator(ScanRecorder(repository))

    await coordinator.resolve(code.id, now=T0 + timedelta(hours=1))
    await coordinator.resolve(code.id, now=T0 + timedelta(hours=25))

    summary = compute_analytics(
        await code_service.get_code(repository, code.id),
        now=T0 + timedelta(hours=25),
    )
    assert summary.today_scans == 1
    assert summary.weekly_scans == 2

    await coordinator.resolve(code.id, now=T0 + timedelta(days=8))

    stored = await code_service.get_code(repository, code.id)
    assert stored.total_scans == 3
    summary = compute_analytics(stored, now=T0 + timedelta(days=8))
    assert summary.total_scans == 3
    assert summary.today_scans == 1
    assert summary.weekly_scans == 1
    assert summary.scans_by_date["2024-03-12"] == 1
    assert sum(summary.scans_by_hour.values()) == 3


async def test_concurrent_resolves_do_not_lose_scans(repository):
    code = await code_service.create_code(repository, "Flyer", "https://example.com", "http://test")
    coordinator = RedirectCoordinator(ScanRecorder(repository))

    results = await asyncio.gather(*(coordinator.resolve(code.id) for _ in range(25)))

    assert all(r.found for r in results)
    stored = await code_service.get_code(repository, code.id)
    assert stored.total_scans == len(stored.scans) == 25
    assert len({scan.id for scan in stored.scans}) == 25


async def test_deleting_one_code_keeps_other_histories(repository):
    first = await code_service.create_code(repository, "A", "https://a.example", "http://test")
    second = await code_service.create_code(repository, "B", "https://b.example", "http://test")
    coordinator = RedirectCoordinator(ScanRecorder(repository))
    await coordinator.resolve(first.id)
    await coordinator.resolve(second.id)
    await coordinator.resolve(second.id)

    await code_service.delete_code(repository, first.id)

    remaining = await repository.load_all()
    assert [c.id for c in remaining] == [second.id]
    assert remaining[0].total_scans == 2
    assert not (await coordinator.resolve(first.id)).found
