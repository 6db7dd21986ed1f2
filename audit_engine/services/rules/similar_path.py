from __future__ import annotations

import logging

from audit_engine.services.fixes import Fix
from audit_engine.services.levenshtein import candidate_path, find_similar_path
from audit_engine.services.path_utils import get_parent_path, has_double_slashes, remove_double_slashes
from audit_engine.services.rules.base import AvailabilityClient, BaseRule

logger = logging.getLogger(__name__)

MAX_DISTANCE = 3


class SimilarPathRule(BaseRule):
    """Repair malformed slashes, or pick the closest sibling in the parent folder."""

    def __init__(
        self,
        client: AvailabilityClient | None = None,
        *,
        max_distance: int = MAX_DISTANCE,
    ) -> None:
        super().__init__(priority=3, client=client)
        self.max_distance = max_distance

    async def apply_rule(self, broken_path: str) -> Fix | None:
        client = self.get_client()

        search_path = broken_path
        double_slash = await self.check_double_slash(broken_path)
        if double_slash is not None:
            fix, search_path = double_slash
            if fix is not None:
                return fix

        parent = get_parent_path(search_path)
        if not parent:
            return None

        children = await client.get_children_from_path(parent)
        match = find_similar_path(search_path, children, self.max_distance)
        if match is None:
            return None
        logger.debug("similar_path_matched", extra={"path": broken_path, "candidate": candidate_path(match)})
        return Fix.similar(broken_path, candidate_path(match))

    async def check_double_slash(self, broken_path: str) -> tuple[Fix | None, str] | None:
        if not has_double_slashes(broken_path):
            return None
        fixed_path = remove_double_slashes(broken_path) or broken_path
        if await self.get_client().is_available(fixed_path):
            return Fix.publish(broken_path, fixed_path), fixed_path
        return None, fixed_path
