from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from audit_engine.models import FixEntity, FixEntityStatus, Opportunity, Suggestion, SuggestionStatus, fix_entity_suggestions

TERMINAL_SUGGESTION_STATUSES = (SuggestionStatus.fixed, SuggestionStatus.skipped)


async def get_opportunity(session: AsyncSession, opportunity_id: UUID) -> Opportunity | None:
    return await session.get(Opportunity, opportunity_id)


async def list_suggestions(session: AsyncSession, opportunity_id: UUID) -> list[Suggestion]:
    result = await session.execute(
        select(Suggestion).where(Suggestion.opportunity_id == opportunity_id).order_by(Suggestion.created_at, Suggestion.rank)
    )
    return list(result.scalars().all())


async def list_active_suggestions(session: AsyncSession, opportunity_id: UUID) -> list[Suggestion]:
    result = await session.execute(
        select(Suggestion)
        .where(
            Suggestion.opportunity_id == opportunity_id,
            Suggestion.status.not_in(TERMINAL_SUGGESTION_STATUSES),
        )
        .order_by(Suggestion.created_at, Suggestion.rank)
    )
    return list(result.scalars().all())


async def list_suggestions_by_status(
    session: AsyncSession, opportunity_id: UUID, status: SuggestionStatus
) -> list[Suggestion]:
    result = await session.execute(
        select(Suggestion)
        .where(Suggestion.opportunity_id == opportunity_id, Suggestion.status == status)
        .order_by(Suggestion.created_at, Suggestion.rank)
    )
    return list(result.scalars().all())


async def list_fix_entities(
    session: AsyncSession, opportunity_id: UUID, *, status: FixEntityStatus | None = None
) -> list[FixEntity]:
    stmt = (
        select(FixEntity)
        .where(FixEntity.opportunity_id == opportunity_id)
        .options(selectinload(FixEntity.suggestions))
        .order_by(FixEntity.created_at)
    )
    if status is not None:
        stmt = stmt.where(FixEntity.status == status)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_suggestions_for_fix_entity(session: AsyncSession, fix_entity_id: UUID) -> list[Suggestion]:
    result = await session.execute(
        select(Suggestion)
        .join(fix_entity_suggestions, fix_entity_suggestions.c.suggestion_id == Suggestion.id)
        .where(fix_entity_suggestions.c.fix_entity_id == fix_entity_id)
    )
    return list(result.scalars().all())


async def list_fix_entities_for_suggestion(session: AsyncSession, suggestion_id: UUID) -> list[FixEntity]:
    result = await session.execute(
        select(FixEntity)
        .join(fix_entity_suggestions, fix_entity_suggestions.c.fix_entity_id == FixEntity.id)
        .where(fix_entity_suggestions.c.suggestion_id == suggestion_id)
    )
    return list(result.scalars().all())


async def list_opportunity_ids_with_fix_status(session: AsyncSession, status: FixEntityStatus) -> list[UUID]:
    result = await session.execute(select(FixEntity.opportunity_id).where(FixEntity.status == status).distinct())
    return list(result.scalars().all())
