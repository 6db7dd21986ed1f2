from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Any

from audit_engine.core.config import settings
from audit_engine.db import session as db_session
from audit_engine.models import FixEntityStatus
from audit_engine.services import fix_entities, leader_lock, suggestion_store

logger = logging.getLogger(__name__)

MIN_INTERVAL_SECONDS = 60


async def _run_once() -> int:
    if not settings.fix_entity_reconcile_enabled:
        return 0

    async with db_session.SessionLocal() as session:
        opportunity_ids = await suggestion_store.list_opportunity_ids_with_fix_status(session, FixEntityStatus.deployed)

    published = 0
    for opportunity_id in opportunity_ids:
        result = await fix_entities.publish_deployed_fix_entities(
            db_session.SessionLocal,
            opportunity_id=opportunity_id,
            is_issue_still_broken=fix_entities.url_still_broken,
        )
        published += result.published
    return published


async def _loop(stop: asyncio.Event) -> None:
    interval = max(MIN_INTERVAL_SECONDS, settings.fix_entity_reconcile_interval_seconds)
    while not stop.is_set():
        try:
            published = await _run_once()
            if published:
                logger.info("fix_entity_reconcile_published", extra={"published": published})
        except asyncio.CancelledError:
            break
        except Exception as exc:
            logger.warning("fix_entity_reconcile_failed", extra={"error": str(exc)})

        with suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop.wait(), timeout=interval)


def start(state: Any) -> None:
    if not settings.fix_entity_reconcile_enabled:
        return
    if getattr(state, "fix_entity_scheduler_task", None) is not None:
        return

    stop_event = asyncio.Event()
    state.fix_entity_scheduler_stop = stop_event
    state.fix_entity_scheduler_task = asyncio.create_task(
        leader_lock.run_as_leader(name="fix_entity_scheduler", stop=stop_event, work=_loop)
    )


async def stop(state: Any) -> None:
    stop_event = getattr(state, "fix_entity_scheduler_stop", None)
    task = getattr(state, "fix_entity_scheduler_task", None)
    if stop_event is not None:
        stop_event.set()
    if task is not None:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
    state.fix_entity_scheduler_stop = None
    state.fix_entity_scheduler_task = None
