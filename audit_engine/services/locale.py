from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any

FIVE_LETTER_PATTERN = re.compile(r"^[a-z]{2}[-_][a-z]{2}$", re.IGNORECASE)
TWO_LETTER_PATTERN = re.compile(r"^[A-Za-z]{2}$")


class LocaleType(str, enum.Enum):
    FIVE_LETTER_LOCALE = "5-letter-locale"
    TWO_LETTER_COUNTRY = "2-letter-country"


@dataclass(frozen=True, slots=True)
class Locale:
    code: str
    type: LocaleType
    language: str | None
    country: str | None

    @classmethod
    def from_code(cls, code: str | None) -> Locale | None:
        raw = (code or "").strip() if isinstance(code, str) else ""
        if not raw:
            return None
        if FIVE_LETTER_PATTERN.match(raw):
            return cls(
                code=raw,
                type=LocaleType.FIVE_LETTER_LOCALE,
                language=raw[:2].lower(),
                country=raw[3:].upper(),
            )
        if TWO_LETTER_PATTERN.match(raw):
            return cls(code=raw, type=LocaleType.TWO_LETTER_COUNTRY, language=None, country=raw.upper())
        return None

    @classmethod
    def from_path(cls, path: str | None) -> Locale | None:
        if not path:
            return None
        for segment in path.split("/"):
            locale = cls.from_code(segment)
            if locale is not None:
                return locale
        return None

    def replace_in_path(self, path: str | None, new_code: str | None) -> str | None:
        if not self.code or not path or not new_code:
            return path
        segments = path.split("/")
        try:
            index = segments.index(self.code)
        except ValueError:
            return path
        segments[index] = new_code
        return "/".join(segments)

    def is_five_letter(self) -> bool:
        return self.type is LocaleType.FIVE_LETTER_LOCALE

    def to_json(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "type": self.type.value,
            "language": self.language,
            "country": self.country,
        }
