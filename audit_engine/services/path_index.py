from __future__ import annotations

from collections.abc import Iterator

from audit_engine.services.content_path import ContentPath, ContentStatus, parse_content_status
from audit_engine.services.locale import Locale


class _Node:
    __slots__ = ("children", "content")

    def __init__(self) -> None:
        self.children: dict[str, _Node] = {}
        self.content: ContentPath | None = None


class PathIndex:
    """Character trie of content paths.

    Built once per audit run from author responses, then read by the rules.
    Traversals visit branches in the order they were first created.
    """

    def __init__(self) -> None:
        self._root = _Node()
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def insert(
        self,
        path: str,
        status: ContentStatus | str | None = None,
        locale: Locale | str | None = None,
    ) -> None:
        if isinstance(locale, str):
            locale = Locale.from_code(locale)
        if not isinstance(status, ContentStatus):
            status = parse_content_status(status)
        self.insert_content_path(ContentPath(path, status, locale))

    def insert_content_path(self, content_path: ContentPath) -> None:
        if not content_path.is_valid():
            return
        node = self._root
        for char in content_path.path:
            node = node.children.setdefault(char, _Node())
        if node.content is None:
            self._size += 1
        node.content = content_path

    def _walk(self, path: str) -> _Node | None:
        node = self._root
        for char in path:
            node = node.children.get(char)
            if node is None:
                return None
        return node

    def contains(self, path: str | None) -> bool:
        return self.find(path) is not None

    def find(self, path: str | None) -> ContentPath | None:
        if not path:
            return None
        node = self._walk(path)
        return node.content if node is not None else None

    def delete(self, path: str | None) -> bool:
        if not path:
            return False
        trail: list[tuple[_Node, str]] = []
        node = self._root
        for char in path:
            child = node.children.get(char)
            if child is None:
                return False
            trail.append((node, char))
            node = child
        if node.content is None:
            return False
        node.content = None
        self._size -= 1
        # prune branches that no longer lead anywhere
        for parent, char in reversed(trail):
            child = parent.children[char]
            if child.children or child.content is not None:
                break
            del parent.children[char]
        return True

    def _iter_contents(self, node: _Node, *, stop_at: str | None = None) -> Iterator[ContentPath]:
        stack = [node]
        while stack:
            current = stack.pop()
            if current.content is not None and current is not node:
                yield current.content
            for char, child in reversed(list(current.children.items())):
                if stop_at is not None and char == stop_at:
                    continue
                stack.append(child)

    def find_children(self, parent_path: str | None) -> list[ContentPath]:
        """Direct children of `parent_path` that are content items."""
        if not parent_path:
            return []
        node = self._walk(parent_path.rstrip("/") + "/")
        if node is None:
            return []
        return list(self._iter_contents(node, stop_at="/"))

    def find_paths_with_prefix(self, prefix: str | None) -> list[ContentPath]:
        if not prefix:
            return self.get_paths()
        node = self._walk(prefix)
        if node is None:
            return []
        found = list(self._iter_contents(node))
        if node.content is not None:
            found.insert(0, node.content)
        return found

    def get_paths(self) -> list[ContentPath]:
        return list(self._iter_contents(self._root))
