"""Group accessibility suggestions into Mystique guidance requests.

Each eligible issue type maps to one aggregation granularity. The granularity
decides how issues are bucketed before they are handed to the queue: globally
per issue type, per page and component, or per page.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from audit_engine.schemas.mystique import AggregationGroup, Issue

logger = logging.getLogger(__name__)


class AggregationGranularity(str, enum.Enum):
    PER_TYPE = "PER_TYPE"
    PER_PAGE_PER_COMPONENT = "PER_PAGE_PER_COMPONENT"
    PER_PAGE = "PER_PAGE"


_G = AggregationGranularity

ISSUE_TYPE_GRANULARITY: Mapping[str, AggregationGranularity] = MappingProxyType(
    {
        # attribute-only fixes: one guidance applies everywhere
        "aria-prohibited-attr": _G.PER_TYPE,
        "aria-valid-attr-value": _G.PER_TYPE,
        "aria-required-attr": _G.PER_TYPE,
        "aria-hidden-focus": _G.PER_TYPE,
        "aria-roles": _G.PER_TYPE,
        # fixes that depend on the element and its surroundings
        "aria-allowed-attr": _G.PER_PAGE_PER_COMPONENT,
        "button-name": _G.PER_PAGE_PER_COMPONENT,
        "link-name": _G.PER_PAGE_PER_COMPONENT,
        "select-name": _G.PER_PAGE_PER_COMPONENT,
        "input-button-name": _G.PER_PAGE_PER_COMPONENT,
        "image-alt": _G.PER_PAGE_PER_COMPONENT,
        "svg-img-alt": _G.PER_PAGE_PER_COMPONENT,
        "label": _G.PER_PAGE_PER_COMPONENT,
        "nested-interactive": _G.PER_PAGE_PER_COMPONENT,
        # document structure fixes
        "frame-title": _G.PER_PAGE,
        "list": _G.PER_PAGE,
        "listitem": _G.PER_PAGE,
        "definition-list": _G.PER_PAGE,
        "dlitem": _G.PER_PAGE,
    }
)

ISSUE_TYPES_FOR_MYSTIQUE: frozenset[str] = frozenset(ISSUE_TYPE_GRANULARITY)

TERMINAL_STATUSES = frozenset({"FIXED", "SKIPPED"})


def resolve_granularity(
    issue_type: str,
    overrides: Mapping[str, AggregationGranularity | str] | None = None,
) -> AggregationGranularity:
    if overrides and issue_type in overrides:
        return AggregationGranularity(overrides[issue_type])
    return ISSUE_TYPE_GRANULARITY[issue_type]


def compute_aggregation_key(
    issue_type: str,
    url: str,
    source: str | None = None,
    *,
    granularity: Mapping[str, AggregationGranularity | str] | None = None,
) -> str:
    policy = resolve_granularity(issue_type, granularity)
    if policy is AggregationGranularity.PER_TYPE:
        return issue_type
    if policy is AggregationGranularity.PER_PAGE_PER_COMPONENT:
        key = f"{url}|{issue_type}"
    else:
        key = url
    if source:
        key = f"{key}|{source}"
    return key


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _status_value(status: Any) -> str:
    raw = getattr(status, "value", status)
    return str(raw or "").strip().upper()


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def normalize_issue(suggestion_id: str, url: str, issue: Mapping[str, Any]) -> Issue:
    entries = issue.get("htmlWithIssues") or []
    first = entries[0] if entries and isinstance(entries[0], Mapping) else {}
    return Issue(
        issue_name=_text(issue.get("type")),
        suggestion_id=suggestion_id,
        target_selector=_text(first.get("target_selector") or first.get("targetSelector")),
        faulty_line=_text(first.get("update_from") or first.get("updateFrom")),
        issue_description=_text(issue.get("description")),
        url=url,
    )


def _should_send(issue: Any, *, code_change_available: bool, use_code_fix_flow: bool) -> bool:
    if not isinstance(issue, Mapping):
        return False
    if issue.get("type") not in ISSUE_TYPES_FOR_MYSTIQUE:
        return False
    entries = issue.get("htmlWithIssues")
    if not isinstance(entries, list) or not entries:
        return False
    first = entries[0] if isinstance(entries[0], Mapping) else {}
    if first.get("guidance"):
        # with the code-fix flow, guidance is resent until a code change exists
        return use_code_fix_flow and not code_change_available
    return True


def process_suggestions_for_mystique(
    suggestions: Iterable[Any] | None,
    *,
    granularity: Mapping[str, AggregationGranularity | str] | None = None,
    use_code_fix_flow: bool = False,
) -> list[AggregationGroup]:
    """Fold active suggestions into aggregation groups, in first-seen key order."""
    if not isinstance(suggestions, (list, tuple)):
        return []

    groups: dict[str, AggregationGroup] = {}
    for suggestion in suggestions:
        if _status_value(_field(suggestion, "status")) in TERMINAL_STATUSES:
            continue
        data = _field(suggestion, "data")
        if data is None and isinstance(suggestion, Mapping):
            # flattened records carry url/issues next to id/status
            data = suggestion
        if not isinstance(data, Mapping):
            continue
        suggestion_id = str(_field(suggestion, "id") or "")
        url = _text(data.get("url"))
        source = _text(data.get("source"))
        code_change_available = bool(data.get("isCodeChangeAvailable"))

        for issue in data.get("issues") or []:
            if not _should_send(
                issue, code_change_available=code_change_available, use_code_fix_flow=use_code_fix_flow
            ):
                continue
            normalized = normalize_issue(suggestion_id, url, issue)
            key = compute_aggregation_key(issue["type"], url, source, granularity=granularity)
            group = groups.get(key)
            if group is None:
                group = AggregationGroup(aggregation_key=key, url=normalized.url)
                groups[key] = group
            group.issues_list.append(normalized)

    logger.debug("mystique_groups_built", extra={"groups": len(groups)})
    return list(groups.values())
