from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from audit_engine.services.locale import Locale


class ContentStatus(str, enum.Enum):
    PUBLISHED = "PUBLISHED"
    MODIFIED = "MODIFIED"
    DRAFT = "DRAFT"
    ARCHIVED = "ARCHIVED"
    DELETED = "DELETED"
    UNKNOWN = "UNKNOWN"


def parse_content_status(value: Any) -> ContentStatus:
    if not isinstance(value, str) or not value:
        return ContentStatus.UNKNOWN
    try:
        return ContentStatus(value.strip().upper())
    except ValueError:
        return ContentStatus.UNKNOWN


@dataclass(frozen=True, slots=True)
class ContentPath:
    path: Any
    status: ContentStatus | str | None = ContentStatus.UNKNOWN
    locale: Locale | None = None

    def is_valid(self) -> bool:
        return isinstance(self.path, str) and bool(self.path.strip())

    def is_published(self) -> bool:
        return self.status == ContentStatus.PUBLISHED

    def to_json(self) -> dict[str, Any]:
        locale = self.locale.to_json() if hasattr(self.locale, "to_json") else self.locale
        status = getattr(self.status, "value", self.status)
        return {"path": self.path, "status": status, "locale": locale}
