from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from audit_engine.core.errors import ConfigurationError
from audit_engine.services.fixes import Fix

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 42


class AvailabilityClient(Protocol):
    async def is_available(self, path: str) -> bool: ...

    async def get_children_from_path(self, parent_path: str) -> Sequence[Any]: ...


class BaseRule:
    """One step of the remediation chain. Lower priority runs first."""

    def __init__(self, priority: int = DEFAULT_PRIORITY, client: AvailabilityClient | None = None) -> None:
        self.priority = priority
        self.client = client

    def get_priority(self) -> int:
        return self.priority

    def get_client(self) -> AvailabilityClient:
        if self.client is None:
            logger.error("rule_client_missing", extra={"rule": type(self).__name__})
            raise ConfigurationError("AemAuthorClient not injected")
        return self.client

    async def apply(self, broken_path: str) -> Fix | None:
        return await self.apply_rule(broken_path)

    async def apply_rule(self, broken_path: str) -> Fix | None:
        raise NotImplementedError(f"{type(self).__name__} must implement apply_rule()")
