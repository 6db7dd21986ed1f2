from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class FixType(str, enum.Enum):
    PUBLISH = "PUBLISH"
    LOCALE = "LOCALE"
    SIMILAR = "SIMILAR"
    NOT_FOUND = "NOT_FOUND"


@dataclass(slots=True)
class Fix:
    """Remediation proposed for one broken content path."""

    requested_path: str
    suggested_path: str | None
    type: FixType
    reason: str

    @classmethod
    def publish(cls, requested_path: str, suggested_path: str | None = None, reason: str = "Content exists on Author") -> Fix:
        return cls(requested_path, suggested_path, FixType.PUBLISH, reason)

    @classmethod
    def locale(cls, requested_path: str, suggested_path: str, reason: str = "Locale fallback detected") -> Fix:
        return cls(requested_path, suggested_path, FixType.LOCALE, reason)

    @classmethod
    def similar(cls, requested_path: str, suggested_path: str, reason: str = "Similar path found") -> Fix:
        return cls(requested_path, suggested_path, FixType.SIMILAR, reason)

    @classmethod
    def not_found(cls, requested_path: str, reason: str = "Not found") -> Fix:
        return cls(requested_path, None, FixType.NOT_FOUND, reason)

    def to_json(self) -> dict[str, Any]:
        return {
            "requestedPath": self.requested_path,
            "suggestedPath": self.suggested_path,
            "type": self.type.value,
            "reason": self.reason,
        }
