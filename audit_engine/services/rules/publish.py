from __future__ import annotations

import logging

from audit_engine.services.fixes import Fix
from audit_engine.services.rules.base import AvailabilityClient, BaseRule

logger = logging.getLogger(__name__)


class PublishRule(BaseRule):
    """The requested content exists on author and only needs publishing."""

    def __init__(self, client: AvailabilityClient | None = None) -> None:
        super().__init__(priority=1, client=client)

    async def apply_rule(self, broken_path: str) -> Fix | None:
        if await self.get_client().is_available(broken_path):
            logger.debug("publish_rule_matched", extra={"path": broken_path})
            return Fix.publish(broken_path)
        return None
