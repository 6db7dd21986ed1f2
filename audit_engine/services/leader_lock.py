from __future__ import annotations

import asyncio
import hashlib
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from audit_engine.core.config import settings
from audit_engine.db.session import engine

logger = logging.getLogger(__name__)

RETRY_SECONDS = 15
_lock_engine: AsyncEngine | None = None


def _uses_postgres() -> bool:
    return (engine.url.get_backend_name() or "").lower() == "postgresql"


def advisory_key(name: str) -> int:
    digest = hashlib.blake2b((name or "").encode("utf-8"), digest_size=8).digest()
    # signed BIGINT
    return int.from_bytes(digest, "big", signed=False) % (2**63 - 1)


def _get_lock_engine() -> AsyncEngine:
    """Single-connection engine; the advisory lock lives as long as its session."""
    global _lock_engine
    if _lock_engine is None:
        _lock_engine = create_async_engine(
            settings.database_url, future=True, pool_size=1, max_overflow=0, pool_pre_ping=True
        )
    return _lock_engine


async def _pause(stop: asyncio.Event, seconds: int) -> None:
    with suppress(asyncio.TimeoutError):
        await asyncio.wait_for(stop.wait(), timeout=seconds)


async def run_as_leader(
    *,
    name: str,
    stop: asyncio.Event,
    work: Callable[[asyncio.Event], Awaitable[None]],
    retry_seconds: int = RETRY_SECONDS,
) -> None:
    """Run `work` on a single replica, elected through a Postgres advisory lock.

    Other backends have no cross-process lock, so `work` runs directly.
    """
    if not _uses_postgres():
        await work(stop)
        return

    key = advisory_key(name)
    retry = max(5, retry_seconds)
    while not stop.is_set():
        try:
            async with _get_lock_engine().connect() as conn:
                held = (await conn.execute(text("SELECT pg_try_advisory_lock(:key)"), {"key": key})).scalar()
                if not held:
                    await _pause(stop, retry)
                    continue
                logger.info("leader_elected", extra={"lock_name": name})
                try:
                    await work(stop)
                finally:
                    with suppress(Exception):
                        await conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": key})
                return
        except asyncio.CancelledError:
            break
        except Exception as exc:
            logger.warning("leader_election_failed", extra={"lock_name": name, "error": str(exc)})
            await _pause(stop, retry)
