"""Promote deployed fixes to published once production confirms them.

A fix entity moves DEPLOYED -> PUBLISHED only when every suggestion it
covers is reported resolved by a live check. Each transition commits in its
own session so that one failed write leaves the rest of the pass intact.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from audit_engine.core import metrics
from audit_engine.core.config import settings
from audit_engine.core.errors import PartialFailureError
from audit_engine.models import FixEntity, FixEntityStatus, Suggestion
from audit_engine.services import suggestion_store

logger = logging.getLogger(__name__)

StillBrokenPredicate = Callable[[Suggestion], Awaitable[bool] | bool]

SYSTEM_ACTOR = "system"
_URL_KEYS = ("url", "urlTo", "targetUrl", "url_to")


@dataclass(slots=True)
class ReconcileResult:
    opportunity_id: UUID
    considered: int = 0
    published: int = 0
    skipped: int = 0
    errors: int = 0

    def raise_for_errors(self) -> None:
        if self.errors:
            raise PartialFailureError(
                f"Fix entity publishing for opportunity {self.opportunity_id} completed with {self.errors} errors",
                errors=self.errors,
                total=self.published + self.errors,
            )


async def _is_resolved(fix_entity: FixEntity, predicate: StillBrokenPredicate) -> bool:
    suggestions = list(fix_entity.suggestions or [])
    if not suggestions:
        return False
    for suggestion in suggestions:
        try:
            outcome = predicate(suggestion)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as exc:
            logger.debug(
                "fix_entity_live_check_failed",
                extra={"fix_entity_id": str(fix_entity.id), "suggestion_id": str(suggestion.id), "error": str(exc)},
            )
            return False
        if outcome is not False:
            return False
    return True


async def _publish_fix_entity(session_factory: async_sessionmaker[AsyncSession], fix_entity_id: UUID) -> bool:
    async with session_factory() as session:
        result = await session.execute(
            update(FixEntity)
            .where(FixEntity.id == fix_entity_id, FixEntity.status == FixEntityStatus.deployed)
            .values(status=FixEntityStatus.published, updated_by=SYSTEM_ACTOR)
        )
        await session.commit()
        return bool(result.rowcount)


async def publish_deployed_fix_entities(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    opportunity_id: UUID,
    is_issue_still_broken: StillBrokenPredicate,
) -> ReconcileResult:
    outcome = ReconcileResult(opportunity_id=opportunity_id)
    async with session_factory() as session:
        deployed = await suggestion_store.list_fix_entities(session, opportunity_id, status=FixEntityStatus.deployed)
    outcome.considered = len(deployed)
    logger.info("fix_entity_publish_started", extra={"opportunity_id": str(opportunity_id), "deployed": len(deployed)})
    if not deployed:
        return outcome

    eligible: list[UUID] = []
    for fix_entity in deployed:
        if await _is_resolved(fix_entity, is_issue_still_broken):
            eligible.append(fix_entity.id)
        else:
            outcome.skipped += 1

    results = await asyncio.gather(
        *(_publish_fix_entity(session_factory, fix_entity_id) for fix_entity_id in eligible),
        return_exceptions=True,
    )
    for fix_entity_id, result in zip(eligible, results):
        if isinstance(result, BaseException):
            outcome.errors += 1
            logger.warning(
                "fix_entity_publish_failed",
                extra={"opportunity_id": str(opportunity_id), "fix_entity_id": str(fix_entity_id), "error": str(result)},
            )
        elif result:
            outcome.published += 1
        else:
            # status changed under us; nothing to publish
            outcome.skipped += 1

    metrics.record_fix_published(outcome.published)
    if outcome.errors:
        metrics.record_fix_publish_failed(outcome.errors)
        logger.warning(
            "fix_entity_publish_completed_with_errors",
            extra={"opportunity_id": str(opportunity_id), "errors": outcome.errors, "published": outcome.published},
        )
    else:
        logger.info(
            "fix_entity_publish_completed",
            extra={"opportunity_id": str(opportunity_id), "published": outcome.published, "skipped": outcome.skipped},
        )
    return outcome


def suggestion_target_url(suggestion: Suggestion | Any) -> str | None:
    data = getattr(suggestion, "data", None) or {}
    for key in _URL_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


async def url_still_broken(suggestion: Suggestion, *, transport: httpx.AsyncBaseTransport | None = None) -> bool:
    """Live check used by the scheduler: anything but a success response counts as broken."""
    url = suggestion_target_url(suggestion)
    if not url:
        return True
    async with httpx.AsyncClient(
        timeout=settings.live_check_timeout_seconds, follow_redirects=True, transport=transport
    ) as client:
        response = await client.get(url)
    return response.status_code >= 400
