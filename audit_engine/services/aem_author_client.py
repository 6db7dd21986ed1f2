from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from audit_engine.core.config import Settings
from audit_engine.core.errors import ConfigurationError, UpstreamError
from audit_engine.services.cache import CacheStrategy, NoOpCache
from audit_engine.services.content_path import ContentPath, parse_content_status
from audit_engine.services.path_utils import get_parent_path, is_breaking_point

logger = logging.getLogger(__name__)

FRAGMENTS_API = "/adobe/sites/cf/fragments"
MAX_PAGES = 10
PAGINATION_DELAY_MS = 100


class AemAuthorClient:
    """Availability checks and folder listings against the AEM author Sites API."""

    def __init__(
        self,
        base_url: str,
        token: str,
        cache: CacheStrategy | None = None,
        *,
        timeout: float = 10.0,
        max_pages: int = MAX_PAGES,
        pagination_delay_ms: int = PAGINATION_DELAY_MS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.cache = cache if cache is not None else NoOpCache()
        self.timeout = timeout
        self.max_pages = max(1, int(max_pages))
        self.pagination_delay_ms = max(0, int(pagination_delay_ms))
        self._transport = transport

    @classmethod
    def create_from(
        cls,
        settings: Settings,
        cache: CacheStrategy | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> AemAuthorClient:
        base_url = (settings.aem_author_url or "").strip()
        token = (settings.aem_author_token or "").strip()
        if not base_url or not token:
            raise ConfigurationError("AEM author configuration missing: AEM_AUTHOR_URL and AEM_AUTHOR_TOKEN required")
        return cls(
            base_url,
            token,
            cache,
            timeout=settings.aem_author_timeout_seconds,
            max_pages=settings.aem_max_pages,
            pagination_delay_ms=settings.aem_pagination_delay_ms,
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}", "Accept": "application/json"}

    async def _get_page(self, path: str, cursor: str | None = None) -> httpx.Response:
        params = {"path": path, "projection": "minimal"}
        if cursor:
            params["cursor"] = cursor
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
            return await client.get(FRAGMENTS_API, params=params, headers=self._headers())

    @staticmethod
    def _items(response: httpx.Response, path: str) -> tuple[list[dict[str, Any]], str | None]:
        if not response.content:
            return [], None
        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError(
                f"AEM author returned a malformed body for {path}", path=path, status_code=response.status_code
            ) from exc
        if not isinstance(body, dict):
            return [], None
        items = [item for item in body.get("items") or [] if isinstance(item, dict)]
        return items, body.get("cursor") or None

    async def is_available(self, path: str) -> bool:
        response = await self._get_page(path)
        if response.status_code == 404:
            return False
        if response.status_code >= 400:
            raise UpstreamError(
                f"AEM author availability check failed for {path}: HTTP {response.status_code}",
                path=path,
                status_code=response.status_code,
            )
        # a missing path still answers 200, with no items
        items, _ = self._items(response, path)
        if items:
            self.cache.cache_items(items, parse_content_status)
        return bool(items)

    async def fetch_content(self, path: str) -> list[dict[str, Any]]:
        collected: list[dict[str, Any]] = []
        cursor: str | None = None
        pages = 0
        while True:
            pages += 1
            try:
                response = await self._get_page(path, cursor)
                if response.status_code >= 400:
                    raise UpstreamError(
                        f"AEM author listing failed for {path}: HTTP {response.status_code}",
                        path=path,
                        status_code=response.status_code,
                    )
                items, cursor = self._items(response, path)
            except (httpx.HTTPError, UpstreamError) as exc:
                if pages == 1:
                    raise
                logger.warning("aem_pagination_failed", extra={"path": path, "page": pages, "error": str(exc)})
                break
            collected.extend(items)
            if not cursor or pages >= self.max_pages:
                break
            await asyncio.sleep(self.pagination_delay_ms / 1000)

        self.cache.cache_items(collected, parse_content_status)
        logger.info("aem_crawl_finished", extra={"path": path, "items": len(collected), "pages": pages})
        return collected

    async def get_children_from_path(self, parent_path: str) -> list[ContentPath]:
        if not self.cache.is_available() or is_breaking_point(parent_path):
            return []

        cached = self.cache.find_children(parent_path)
        if cached:
            return cached

        if await self.is_available(parent_path):
            fetched = await self.fetch_content(parent_path)
            return self.cache.find_children(parent_path) or [
                ContentPath(item["path"], parse_content_status(item.get("status")))
                for item in fetched
                if isinstance(item.get("path"), str) and item["path"].rstrip("/") != parent_path.rstrip("/")
            ]

        next_parent = get_parent_path(parent_path)
        if not next_parent:
            return []
        logger.debug("aem_children_walk_up", extra={"path": parent_path, "next_parent": next_parent})
        return await self.get_children_from_path(next_parent)
