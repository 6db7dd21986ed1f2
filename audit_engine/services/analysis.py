from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

from audit_engine.core import metrics
from audit_engine.core.errors import ConfigurationError
from audit_engine.services.fixes import Fix, FixType
from audit_engine.services.path_index import PathIndex
from audit_engine.services.rules import BaseRule, LocaleFallbackRule, PublishRule, SimilarPathRule
from audit_engine.services.rules.base import AvailabilityClient
from audit_engine.services.rules.similar_path import MAX_DISTANCE

logger = logging.getLogger(__name__)

GRAPHQL_SUFFIX = re.compile(r"\.cfm.*\.json$")


def clean_path(path: str) -> str:
    """Strip the GraphQL model suffix (`.cfm.model.json` and friends)."""
    return GRAPHQL_SUFFIX.sub("", path)


class AnalysisStrategy:
    def __init__(
        self,
        client: AvailabilityClient | None,
        path_index: PathIndex,
        rules: Sequence[BaseRule] | None = None,
        *,
        max_distance: int = MAX_DISTANCE,
    ) -> None:
        self.client = client
        self.path_index = path_index
        if rules is None:
            rules = [
                PublishRule(client),
                LocaleFallbackRule(client),
                SimilarPathRule(client, max_distance=max_distance),
            ]
        self.rules: list[BaseRule] = sorted(rules, key=lambda rule: rule.get_priority())

    async def analyze_path(self, broken_path: str) -> Fix:
        for rule in self.rules:
            fix = await rule.apply(broken_path)
            if fix is not None:
                logger.debug(
                    "rule_applied",
                    extra={"path": broken_path, "rule": type(rule).__name__, "fix_type": fix.type.value},
                )
                metrics.record_rule_match(fix.type.value)
                return fix

        logger.warning("no_rule_applied", extra={"path": broken_path})
        metrics.record_rule_match(FixType.NOT_FOUND.value)
        return Fix.not_found(broken_path)

    async def analyze(self, broken_paths: Iterable[str]) -> list[Fix]:
        fixes: list[Fix] = []
        failed = 0
        for raw_path in broken_paths:
            path = clean_path(raw_path)
            try:
                fix = await self.analyze_path(path)
            except ConfigurationError:
                raise
            except Exception as exc:
                failed += 1
                logger.warning("path_analysis_failed", extra={"path": path, "error": str(exc)})
                continue
            if fix is not None:
                fixes.append(fix)

        if failed:
            logger.warning("path_analysis_completed_with_errors", extra={"errors": failed, "fixes": len(fixes)})
        return self.process_fixes(fixes)

    def process_fixes(self, fixes: list[Fix]) -> list[Fix]:
        for fix in fixes:
            if fix.type not in (FixType.LOCALE, FixType.SIMILAR) or not fix.suggested_path:
                continue
            content = self.path_index.find(fix.suggested_path)
            if content is not None and not content.is_published():
                status = getattr(content.status, "value", content.status)
                fix.reason = f"Content is in {status} state. Suggest publishing."
        return fixes
