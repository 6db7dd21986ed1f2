"""Broken content-fragment path audit: analyse, persist, hand off for enrichment."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from audit_engine.core.config import Settings, settings as default_settings
from audit_engine.core.errors import AuditEngineError, ConfigurationError
from audit_engine.models import Opportunity, Suggestion, SuggestionStatus
from audit_engine.schemas.mystique import MystiqueMessage
from audit_engine.services import suggestion_store
from audit_engine.services.aem_author_client import AemAuthorClient
from audit_engine.services.analysis import AnalysisStrategy
from audit_engine.services.cache import PathIndexCache
from audit_engine.services.path_index import PathIndex
from audit_engine.services.rules.base import AvailabilityClient
from audit_engine.services.suggestion_sync import sync_suggestions

logger = logging.getLogger(__name__)

AUDIT_TYPE = "content-fragment-404"
GUIDANCE_TYPE = f"guidance:{AUDIT_TYPE}"
SUGGESTION_TYPE = "AI_INSIGHTS"


def _broken_url(item: Any) -> str | None:
    if isinstance(item, str):
        return item
    if isinstance(item, Mapping):
        url = item.get("url")
        return url if isinstance(url, str) else None
    return None


def build_fix_key(data: Mapping[str, Any]) -> str:
    return f"{data.get('requestedPath')}|{data.get('type')}"


async def analyze_broken_paths(
    broken_paths: Sequence[Any],
    *,
    client: AvailabilityClient | None = None,
    path_index: PathIndex | None = None,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    cfg = settings or default_settings
    path_index = path_index if path_index is not None else PathIndex()
    result: dict[str, Any] = {"brokenPaths": list(broken_paths)}

    if client is None:
        try:
            client = AemAuthorClient.create_from(cfg, PathIndexCache(path_index), transport=transport)
        except ConfigurationError as exc:
            logger.error("aem_client_unavailable", extra={"error": str(exc)})
            result.update({"success": False, "error": str(exc)})
            return result

    strategy = AnalysisStrategy(client, path_index, max_distance=cfg.similar_path_max_distance)
    urls = [url for url in (_broken_url(item) for item in broken_paths) if url]
    fixes = await strategy.analyze(urls)
    logger.info("content_fragment_fixes_found", extra={"paths": len(urls), "fixes": len(fixes)})
    result.update({"suggestions": [fix.to_json() for fix in fixes], "success": True})
    return result


def provide_suggestions(audit_result: Mapping[str, Any]) -> list[dict[str, Any]]:
    if not audit_result.get("success"):
        raise AuditEngineError("Audit failed, skipping content fragment path suggestions generation")
    suggestions = list(audit_result.get("suggestions") or [])
    logger.info("content_fragment_suggestions_provided", extra={"count": len(suggestions)})
    return suggestions


def _enrich(audit_result: Mapping[str, Any]) -> list[dict[str, Any]]:
    by_url = {
        item["url"]: item
        for item in audit_result.get("brokenPaths") or []
        if isinstance(item, Mapping) and isinstance(item.get("url"), str)
    }
    enriched = []
    for suggestion in audit_result.get("suggestions") or []:
        request = by_url.get(suggestion.get("requestedPath")) or {}
        enriched.append(
            {
                **suggestion,
                "requestCount": int(request.get("requestCount") or 0),
                "requestUserAgents": list(request.get("requestUserAgents") or []),
            }
        )
    return enriched


async def create_content_fragment_suggestions(
    session: AsyncSession,
    opportunity: Opportunity,
    audit_result: Mapping[str, Any],
    *,
    requires_validation: bool = False,
) -> list[Suggestion]:
    fixes = provide_suggestions(audit_result)
    if not fixes:
        logger.info("content_fragment_no_suggestions", extra={"opportunity_id": str(opportunity.id)})
        return []

    enriched = _enrich({**audit_result, "suggestions": fixes})
    return await sync_suggestions(
        session,
        opportunity,
        enriched,
        build_key=build_fix_key,
        map_new_suggestion=lambda data: {"type": SUGGESTION_TYPE, "rank": data["requestCount"], "data": dict(data)},
        requires_validation=requires_validation,
    )


def build_guidance_message(
    opportunity: Opportunity,
    suggestions: Sequence[Suggestion],
    *,
    audit_url: str,
    delivery_type: str | None = None,
) -> MystiqueMessage:
    entries = []
    for suggestion in suggestions:
        data = suggestion.data or {}
        entries.append(
            {
                "suggestionId": str(suggestion.id),
                "requestedPath": data.get("requestedPath"),
                "requestCount": data.get("requestCount"),
                "requestUserAgents": data.get("requestUserAgents"),
                "suggestedPath": data.get("suggestedPath"),
                "reason": data.get("reason"),
            }
        )
    return MystiqueMessage(
        type=GUIDANCE_TYPE,
        site_id=opportunity.site_id,
        audit_id=opportunity.audit_id or "",
        delivery_type=delivery_type or default_settings.delivery_type,
        url=audit_url,
        data={"opportunityId": str(opportunity.id), "contentFragment404s": entries},
    )


async def load_guidance_message(
    session: AsyncSession,
    opportunity: Opportunity,
    *,
    audit_url: str,
    delivery_type: str | None = None,
) -> MystiqueMessage | None:
    suggestions = await suggestion_store.list_suggestions_by_status(session, opportunity.id, SuggestionStatus.new)
    if not suggestions:
        logger.info("content_fragment_nothing_to_enrich", extra={"opportunity_id": str(opportunity.id)})
        return None
    return build_guidance_message(opportunity, suggestions, audit_url=audit_url, delivery_type=delivery_type)
