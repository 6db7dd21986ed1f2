from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar, cast

from sqlalchemy.ext.asyncio import AsyncSession

from audit_engine.core import metrics
from audit_engine.core.config import settings
from audit_engine.core.errors import ConfigurationError
from audit_engine.core.redis_client import get_redis, json_dumps
from audit_engine.models import Opportunity
from audit_engine.schemas.mystique import AggregationGroup, MystiqueMessage
from audit_engine.services import suggestion_store
from audit_engine.services.mystique_aggregation import process_suggestions_for_mystique

logger = logging.getLogger(__name__)
T = TypeVar("T")

REMEDIATION_MESSAGE_TYPE = "guidance:accessibility-remediation"


@dataclass(slots=True)
class SendSummary:
    sent: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.sent + self.failed


async def _await_if_needed(result: Awaitable[T] | T) -> T:
    if inspect.isawaitable(result):
        return await cast(Awaitable[T], result)
    return cast(T, result)


def build_mystique_message(
    group: AggregationGroup,
    *,
    site_id: str | None,
    audit_id: str | None,
    opportunity_id: str | None,
    delivery_type: str | None = None,
) -> MystiqueMessage:
    data: dict[str, Any] = group.to_message_data()
    data["opportunityId"] = opportunity_id or ""
    return MystiqueMessage(
        type=REMEDIATION_MESSAGE_TYPE,
        site_id=site_id or "",
        audit_id=audit_id or "",
        delivery_type=delivery_type or settings.delivery_type,
        data=data,
    )


async def send_message(message: MystiqueMessage, *, queue_key: str | None = None) -> None:
    redis = get_redis()
    if redis is None:
        raise ConfigurationError("Mystique queue not configured: REDIS_URL required")
    await _await_if_needed(redis.rpush(queue_key or settings.mystique_queue_key, json_dumps(message.to_payload())))


async def send_aggregation_groups(
    groups: Sequence[AggregationGroup],
    *,
    site_id: str | None,
    audit_id: str | None,
    opportunity_id: str | None,
    delivery_type: str | None = None,
    queue_key: str | None = None,
) -> SendSummary:
    """Send one message per group. A failed send is counted, the others still go out."""
    summary = SendSummary()
    if not groups:
        return summary

    messages = [
        build_mystique_message(
            group, site_id=site_id, audit_id=audit_id, opportunity_id=opportunity_id, delivery_type=delivery_type
        )
        for group in groups
    ]
    results = await asyncio.gather(
        *(send_message(message, queue_key=queue_key) for message in messages),
        return_exceptions=True,
    )
    for group, result in zip(groups, results):
        if isinstance(result, BaseException):
            summary.failed += 1
            logger.warning(
                "mystique_send_failed",
                extra={"aggregation_key": group.aggregation_key, "opportunity_id": opportunity_id, "error": str(result)},
            )
        else:
            summary.sent += 1

    metrics.record_mystique_sent(summary.sent)
    if summary.failed:
        metrics.record_mystique_failed(summary.failed)
    logger.info(
        "mystique_send_completed",
        extra={"opportunity_id": opportunity_id, "sent": summary.sent, "failed": summary.failed},
    )
    return summary


async def send_suggestions_for_mystique(
    session: AsyncSession,
    opportunity: Opportunity,
    *,
    delivery_type: str | None = None,
    queue_key: str | None = None,
) -> SendSummary:
    suggestions = await suggestion_store.list_active_suggestions(session, opportunity.id)
    groups = process_suggestions_for_mystique(
        suggestions,
        granularity=settings.aggregation_granularity_overrides or None,
        use_code_fix_flow=settings.mystique_use_code_fix_flow,
    )
    if not groups:
        logger.info("mystique_nothing_to_send", extra={"opportunity_id": str(opportunity.id)})
        return SendSummary()
    return await send_aggregation_groups(
        groups,
        site_id=opportunity.site_id,
        audit_id=opportunity.audit_id,
        opportunity_id=str(opportunity.id),
        delivery_type=delivery_type,
        queue_key=queue_key,
    )
