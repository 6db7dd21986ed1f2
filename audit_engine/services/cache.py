from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from audit_engine.services.content_path import ContentPath, ContentStatus, parse_content_status
from audit_engine.services.locale import Locale
from audit_engine.services.path_index import PathIndex

StatusParser = Callable[[Any], ContentStatus]


class CacheStrategy(ABC):
    """Where content items fetched from the author system are remembered."""

    @abstractmethod
    def find_children(self, parent_path: str) -> list[ContentPath]:
        raise NotImplementedError

    @abstractmethod
    def cache_items(self, items: Iterable[Mapping[str, Any]], status_parser: StatusParser = parse_content_status) -> None:
        raise NotImplementedError

    @abstractmethod
    def is_available(self) -> bool:
        raise NotImplementedError


class NoOpCache(CacheStrategy):
    def find_children(self, parent_path: str) -> list[ContentPath]:
        return []

    def cache_items(self, items: Iterable[Mapping[str, Any]], status_parser: StatusParser = parse_content_status) -> None:
        return None

    def is_available(self) -> bool:
        return False


class PathIndexCache(CacheStrategy):
    def __init__(self, path_index: PathIndex) -> None:
        self.path_index = path_index

    def find_children(self, parent_path: str) -> list[ContentPath]:
        return self.path_index.find_children(parent_path)

    def cache_items(self, items: Iterable[Mapping[str, Any]], status_parser: StatusParser = parse_content_status) -> None:
        for item in items or ():
            path = item.get("path") if isinstance(item, Mapping) else None
            if not path:
                continue
            content_path = ContentPath(path, status_parser(item.get("status")), Locale.from_path(path))
            self.path_index.insert_content_path(content_path)

    def is_available(self) -> bool:
        return True
