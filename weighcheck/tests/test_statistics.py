"""
Worker statistics rebuild tests.
"""

import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from weighcheck.app.db.session import Base
from weighcheck.app.models.entry import Entry
from weighcheck.app.models.entry_enums import LeaderboardWindow
from weighcheck.app.models.worker_statistics import WorkerStatistics
from weighcheck.app.repositories.settings_repository import CompensationSettings
from weighcheck.app.repositories.statistics_repository import StatisticsRepository
from weighcheck.app.services.leaderboard import load_standings, rank
from weighcheck.app.services.statistics import StatisticsService, local_day_start, to_local_date

NOW = datetime(2024, 8, 18, 2, 0, tzinfo=timezone.utc)  # 09:00 WIB on the 18th


def make_entry(receipt, created_at, worker_id=1, discrepancy=0.5):
    return Entry(
        receipt_number=receipt,
        worker_id=worker_id,
        worker_name=f"worker{worker_id}",
        manifest_weight=5.0,
        measured_weight=5.0 + discrepancy,
        discrepancy=discrepancy,
        photo_url_1=f"https://example.com/{receipt}_foto1.jpg",
        created_at=created_at,
    )


def test_local_day_start_is_local_midnight():
    assert local_day_start(NOW) == datetime(2024, 8, 17, 17, 0, tzinfo=timezone.utc)


def test_naive_timestamps_are_utc():
    assert to_local_date(datetime(2024, 8, 17, 18, 0)).isoformat() == "2024-08-18"


@pytest.mark.asyncio
async def test_refresh_counts_local_days(db_session):
    db_session.add_all([
        make_entry("JT01", datetime(2024, 8, 16, 18, 0), discrepancy=1.0),   # 17th local
        make_entry("JT02", datetime(2024, 8, 17, 10, 0), discrepancy=0.0),   # 17th local
        make_entry("JT03", datetime(2024, 8, 17, 18, 0), discrepancy=-0.4),  # 18th local
    ])
    await db_session.commit()

    stats = await StatisticsService.refresh_worker(db_session, 1, CompensationSettings(), NOW)

    assert stats.total_entries == 3
    assert stats.days_with_entries == 2
    assert stats.total_earnings == 3 * 500 + 2 * 50000
    assert stats.daily_entries == 1
    assert stats.daily_earnings == 500 + 50000
    assert stats.avg_discrepancy == 0.2
    assert stats.level == "Beginner"


@pytest.mark.asyncio
async def test_disabled_settings_zero_earnings(db_session):
    db_session.add(make_entry("JT01", datetime(2024, 8, 17, 18, 0)))
    await db_session.commit()

    stats = await StatisticsService.refresh_worker(
        db_session, 1, CompensationSettings(rate_per_entry=500, daily_bonus=50000, enabled=False), NOW
    )

    assert stats.total_entries == 1
    assert stats.total_earnings == 0
    assert stats.daily_earnings == 0


@pytest.mark.asyncio
async def test_worker_without_entries_loses_row(db_session):
    entry = make_entry("JT01", datetime(2024, 8, 17, 18, 0))
    db_session.add(entry)
    await db_session.commit()
    await StatisticsService.refresh_worker(db_session, 1, now=NOW)

    await db_session.delete(entry)
    await db_session.commit()

    assert await StatisticsService.refresh_worker(db_session, 1, now=NOW) is None
    assert await StatisticsRepository.get(db_session, 1) is None


@pytest.mark.asyncio
async def test_refresh_all_and_daily_standings(db_session):
    db_session.add_all([
        make_entry("JT01", datetime(2024, 8, 17, 18, 0), worker_id=1),
        make_entry("JT02", datetime(2024, 8, 16, 10, 0), worker_id=2),
        make_entry("JT03", datetime(2024, 8, 16, 11, 0), worker_id=2),
    ])
    await db_session.commit()

    assert await StatisticsService.refresh_all(db_session, NOW) == 2

    alltime = rank(await load_standings(db_session, LeaderboardWindow.ALLTIME, NOW))
    assert [r.worker_id for r in alltime] == [2, 1]

    daily = rank(await load_standings(db_session, LeaderboardWindow.DAILY, NOW), LeaderboardWindow.DAILY)
    assert [(r.worker_id, r.entries, r.earnings) for r in daily] == [(1, 1, 50500)]


@pytest.mark.asyncio
async def test_refresh_overwrites_row_inserted_concurrently(db_session, session_factory, mocker):
    db_session.add(make_entry("JT01", datetime(2024, 8, 17, 18, 0)))
    await db_session.commit()
    async with session_factory() as other:
        other.add(WorkerStatistics(worker_id=1, worker_name="stale", total_entries=99))
        await other.commit()

    real_get = StatisticsRepository.get
    reads = []

    async def missing_on_first_read(db, worker_id):
        reads.append(worker_id)
        if len(reads) == 1:
            return None
        return await real_get(db, worker_id)

    mocker.patch.object(StatisticsRepository, "get", side_effect=missing_on_first_read)

    stats = await StatisticsService.refresh_worker(db_session, 1, CompensationSettings(), NOW)

    assert stats.total_entries == 1
    assert stats.worker_name == "worker1"


@pytest.mark.asyncio
async def test_concurrent_refreshes_of_new_worker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'statistics.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        session.add(make_entry("JT01", datetime(2024, 8, 17, 18, 0)))
        await session.commit()

    async def refresh():
        async with factory() as session:
            stats = await StatisticsService.refresh_worker(session, 1, CompensationSettings(), NOW)
            return stats.total_entries

    try:
        assert await asyncio.gather(refresh(), refresh()) == [1, 1]
    finally:
        await engine.dispose()
