from __future__ import annotations

import logging

from audit_engine.services.fixes import Fix
from audit_engine.services.language_tree import LanguageTree, default_tree
from audit_engine.services.locale import Locale
from audit_engine.services.path_utils import has_double_slashes
from audit_engine.services.rules.base import AvailabilityClient, BaseRule

logger = logging.getLogger(__name__)


class LocaleFallbackRule(BaseRule):
    """Point a broken localized path at a sibling locale that exists."""

    def __init__(self, client: AvailabilityClient | None = None, language_tree: LanguageTree | None = None) -> None:
        super().__init__(priority=2, client=client)
        self.language_tree = language_tree or default_tree

    async def apply_rule(self, broken_path: str) -> Fix | None:
        if not broken_path:
            return None
        client = self.get_client()

        locale = Locale.from_path(broken_path)
        if locale is not None:
            for code in self.language_tree.find_similar_language_roots(locale.code):
                candidate = locale.replace_in_path(broken_path, code)
                if candidate and candidate != broken_path and await client.is_available(candidate):
                    logger.debug("locale_fallback_matched", extra={"path": broken_path, "candidate": candidate})
                    return Fix.locale(broken_path, candidate)
            return None

        if has_double_slashes(broken_path):
            return await self.try_locale_insertion(broken_path)
        return None

    async def try_locale_insertion(self, broken_path: str) -> Fix | None:
        """A missing locale segment often shows up as `//`; fill it with English codes."""
        client = self.get_client()
        for code in self.language_tree.find_english_fallbacks():
            candidate = broken_path.replace("//", f"/{code}/", 1)
            if await client.is_available(candidate):
                logger.debug("locale_insertion_matched", extra={"path": broken_path, "candidate": candidate})
                return Fix.locale(broken_path, candidate)
        return None
