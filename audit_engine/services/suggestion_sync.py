from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from audit_engine.models import FixEntity, FixEntityStatus, Opportunity, Suggestion, SuggestionStatus
from audit_engine.services import suggestion_store

logger = logging.getLogger(__name__)

KeyBuilder = Callable[[Mapping[str, Any]], str]
MergeData = Callable[[Mapping[str, Any], Mapping[str, Any]], dict[str, Any]]

SYSTEM_ACTOR = "system"
_PROTECTED_FROM_OUTDATED = (
    SuggestionStatus.outdated,
    SuggestionStatus.fixed,
    SuggestionStatus.error,
    SuggestionStatus.skipped,
)


def shallow_merge(existing: Mapping[str, Any], new: Mapping[str, Any]) -> dict[str, Any]:
    return {**existing, **new}


def keep_existing(existing: Mapping[str, Any], new: Mapping[str, Any]) -> dict[str, Any]:
    return dict(existing)


def keep_latest(existing: Mapping[str, Any], new: Mapping[str, Any]) -> dict[str, Any]:
    return dict(new)


def _fresh_status(requires_validation: bool) -> SuggestionStatus:
    return SuggestionStatus.pending_validation if requires_validation else SuggestionStatus.new


async def sync_suggestions(
    session: AsyncSession,
    opportunity: Opportunity,
    new_data: Sequence[Mapping[str, Any]],
    *,
    build_key: KeyBuilder,
    map_new_suggestion: Callable[[Mapping[str, Any]], dict[str, Any]],
    merge_data: MergeData = shallow_merge,
    status_for_outdated: SuggestionStatus = SuggestionStatus.outdated,
    requires_validation: bool = False,
) -> list[Suggestion]:
    """Reconcile stored suggestions of `opportunity` with a fresh audit result.

    Returns the suggestions created by this call. The caller commits.
    """
    incoming = {build_key(item): item for item in new_data}
    existing = await suggestion_store.list_suggestions(session, opportunity.id)
    existing_keys: set[str] = set()

    outdated = 0
    for suggestion in existing:
        key = build_key(suggestion.data or {})
        existing_keys.add(key)
        item = incoming.get(key)
        if item is None:
            if suggestion.status not in _PROTECTED_FROM_OUTDATED:
                suggestion.status = status_for_outdated
                suggestion.updated_by = SYSTEM_ACTOR
                outdated += 1
            continue

        suggestion.data = merge_data(suggestion.data or {}, item)
        if suggestion.status == SuggestionStatus.outdated:
            logger.warning("suggestion_regression_detected", extra={"suggestion_id": str(suggestion.id), "key": key})
            suggestion.status = _fresh_status(requires_validation)
        suggestion.updated_by = SYSTEM_ACTOR

    created: list[Suggestion] = []
    for key, item in incoming.items():
        if key in existing_keys:
            continue
        values = dict(map_new_suggestion(item))
        values.pop("opportunity_id", None)
        values["status"] = _fresh_status(requires_validation)
        suggestion = Suggestion(opportunity_id=opportunity.id, updated_by=SYSTEM_ACTOR, **values)
        session.add(suggestion)
        created.append(suggestion)

    await session.flush()
    logger.info(
        "suggestions_synced",
        extra={
            "opportunity_id": str(opportunity.id),
            "site_id": opportunity.site_id,
            "outdated": outdated,
            "updated": len(existing_keys & set(incoming)),
            "created": len(created),
        },
    )
    return created


async def _build_fix_entity(
    opportunity: Opportunity,
    suggestion: Suggestion,
    *,
    is_issue_fixed: Callable[[Suggestion], Awaitable[bool] | bool],
    get_page_path: Callable[[Mapping[str, Any]], str],
    get_updated_value: Callable[[Mapping[str, Any]], str] | None,
    get_old_value: Callable[[Mapping[str, Any]], str] | None,
    delivery_type: str | None,
) -> FixEntity | None:
    data = suggestion.data or {}
    fixed = is_issue_fixed(suggestion)
    if inspect.isawaitable(fixed):
        fixed = await fixed
    if not fixed:
        return None

    page_path = get_page_path(data)
    if get_updated_value is not None:
        updated_value = get_updated_value(data)
    else:
        suggested = data.get("urlsSuggested") or []
        updated_value = data.get("urlEdited") or (suggested[0] if suggested else "")
    old_value = get_old_value(data) if get_old_value is not None else ""

    # nothing is touched until every value above is known
    logger.info("suggestion_fixed_detected", extra={"page_path": page_path})
    suggestion.status = SuggestionStatus.fixed
    suggestion.updated_by = SYSTEM_ACTOR
    return FixEntity(
        opportunity_id=opportunity.id,
        type=suggestion.type,
        status=FixEntityStatus.published,
        executed_at=datetime.now(timezone.utc),
        change_details={
            "system": delivery_type,
            "pagePath": page_path,
            "oldValue": old_value,
            "updatedValue": updated_value,
        },
        updated_by=SYSTEM_ACTOR,
        suggestions=[suggestion],
    )


async def reconcile_disappeared_suggestions(
    session: AsyncSession,
    opportunity: Opportunity,
    current_data: Sequence[Mapping[str, Any]],
    *,
    build_key: KeyBuilder,
    is_issue_fixed: Callable[[Suggestion], Awaitable[bool] | bool],
    get_page_path: Callable[[Mapping[str, Any]], str],
    get_updated_value: Callable[[Mapping[str, Any]], str] | None = None,
    get_old_value: Callable[[Mapping[str, Any]], str] | None = None,
    delivery_type: str | None = None,
) -> list[FixEntity]:
    """Mark NEW suggestions missing from the current audit as FIXED once verified.

    Each verified suggestion gets a PUBLISHED fix entity. A failing candidate is
    logged and left untouched while the others proceed; nothing is raised and
    the caller commits. The returned list is exactly what was staged.
    """
    try:
        current_keys = {build_key(item) for item in current_data or []}
        existing = await suggestion_store.list_suggestions_by_status(session, opportunity.id, SuggestionStatus.new)
        candidates = [s for s in existing if build_key(s.data or {}) not in current_keys]
    except Exception as exc:
        logger.warning(
            "disappeared_suggestion_reconcile_failed",
            extra={"opportunity_id": str(opportunity.id), "error": str(exc)},
        )
        return []

    created: list[FixEntity] = []
    for suggestion in candidates:
        try:
            fix_entity = await _build_fix_entity(
                opportunity,
                suggestion,
                is_issue_fixed=is_issue_fixed,
                get_page_path=get_page_path,
                get_updated_value=get_updated_value,
                get_old_value=get_old_value,
                delivery_type=delivery_type,
            )
        except Exception as exc:
            logger.warning(
                "disappeared_suggestion_check_failed",
                extra={"suggestion_id": str(suggestion.id), "error": str(exc)},
            )
            continue
        if fix_entity is None:
            continue
        session.add(fix_entity)
        created.append(fix_entity)

    if created:
        try:
            await session.flush()
        except Exception as exc:
            logger.warning(
                "disappeared_suggestion_reconcile_failed",
                extra={"opportunity_id": str(opportunity.id), "error": str(exc)},
            )
            await session.rollback()
            return []
    return created
