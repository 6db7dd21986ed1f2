import asyncio
from pathlib import Path
from types import SimpleNamespace

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from audit_engine.db import session as db_session
from audit_engine.db.base import Base
from audit_engine.models import FixEntity, FixEntityStatus, Opportunity, Suggestion
from audit_engine.services import fix_entities, fix_entity_scheduler, leader_lock


@pytest.mark.anyio("asyncio")
async def test_run_once_publishes_across_opportunities(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'scheduler.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    monkeypatch.setattr(db_session, "SessionLocal", factory)

    async def _never_broken(_suggestion) -> bool:
        return False

    monkeypatch.setattr(fix_entities, "url_still_broken", _never_broken)

    async with factory() as session:
        for site in ("site-1", "site-2"):
            opportunity = Opportunity(site_id=site, type="broken-internal-links")
            session.add(opportunity)
            await session.flush()
            suggestion = Suggestion(opportunity_id=opportunity.id, data={"url": f"https://{site}.example.com/"})
            session.add(suggestion)
            await session.flush()
            session.add(
                FixEntity(opportunity_id=opportunity.id, status=FixEntityStatus.deployed, suggestions=[suggestion])
            )
        await session.commit()

    assert await fix_entity_scheduler._run_once() == 2
    async with factory() as session:
        statuses = (await session.execute(select(FixEntity.status))).scalars().all()
    assert statuses == [FixEntityStatus.published, FixEntityStatus.published]
    assert await fix_entity_scheduler._run_once() == 0
    await engine.dispose()


@pytest.mark.anyio("asyncio")
async def test_run_once_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(fix_entity_scheduler.settings, "fix_entity_reconcile_enabled", False)
    assert await fix_entity_scheduler._run_once() == 0


@pytest.mark.anyio("asyncio")
async def test_loop_survives_failures_until_stopped(monkeypatch: pytest.MonkeyPatch) -> None:
    stop = asyncio.Event()
    calls = {"count": 0}

    async def _fake_run_once() -> int:
        calls["count"] += 1
        if calls["count"] == 1:
            raise RuntimeError("database unavailable")
        stop.set()
        return 1

    monkeypatch.setattr(fix_entity_scheduler, "_run_once", _fake_run_once)
    monkeypatch.setattr(fix_entity_scheduler, "MIN_INTERVAL_SECONDS", 0)
    monkeypatch.setattr(fix_entity_scheduler.settings, "fix_entity_reconcile_interval_seconds", 0)

    await asyncio.wait_for(fix_entity_scheduler._loop(stop), timeout=5)

    assert calls["count"] == 2


@pytest.mark.anyio("asyncio")
async def test_start_and_stop_manage_the_task(monkeypatch: pytest.MonkeyPatch) -> None:
    ran = asyncio.Event()

    async def _fake_run_once() -> int:
        ran.set()
        return 0

    monkeypatch.setattr(fix_entity_scheduler, "_run_once", _fake_run_once)
    monkeypatch.setattr(fix_entity_scheduler.settings, "fix_entity_reconcile_enabled", True)
    state = SimpleNamespace()

    fix_entity_scheduler.start(state)
    task = state.fix_entity_scheduler_task
    fix_entity_scheduler.start(state)
    assert state.fix_entity_scheduler_task is task

    await asyncio.wait_for(ran.wait(), timeout=5)
    await fix_entity_scheduler.stop(state)

    assert task.done()
    assert state.fix_entity_scheduler_task is None


@pytest.mark.anyio("asyncio")
async def test_leader_lock_runs_directly_without_postgres() -> None:
    seen: list[asyncio.Event] = []

    async def _work(stop: asyncio.Event) -> None:
        seen.append(stop)

    stop = asyncio.Event()
    await leader_lock.run_as_leader(name="fix_entity_scheduler", stop=stop, work=_work)

    assert seen == [stop]
    assert leader_lock.advisory_key("a") == leader_lock.advisory_key("a")
    assert 0 <= leader_lock.advisory_key("a") < 2**63 - 1
