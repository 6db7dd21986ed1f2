from __future__ import annotations

import re

from audit_engine.services.locale import Locale

DAM_ROOT = "/content/dam"
DAM_PREFIX = f"{DAM_ROOT}/"

_PROTOCOL_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*://)")
_SLASH_RUN_RE = re.compile(r"/{2,}")


def _split_protocol(path: str) -> tuple[str, str]:
    match = _PROTOCOL_RE.match(path)
    if not match:
        return "", path
    return match.group(1), path[match.end():]


def remove_locale_from_path(path: str | None) -> str | None:
    if not path or not path.startswith(DAM_PREFIX):
        return path
    segments = path.split("/")
    kept = [segment for segment in segments if Locale.from_code(segment) is None]
    if len(kept) == len(segments):
        return path
    return "/".join(kept).rstrip("/")


def get_parent_path(path: str | None) -> str | None:
    if not path or not path.startswith(DAM_PREFIX):
        return None
    trimmed = path.rstrip("/")
    if trimmed == DAM_ROOT:
        return None
    parent = trimmed.rsplit("/", 1)[0]
    return parent or None


def has_double_slashes(path: str | None) -> bool:
    if not path:
        return False
    _, rest = _split_protocol(path)
    return "//" in rest


def remove_double_slashes(path: str | None) -> str | None:
    if not path:
        return path
    protocol, rest = _split_protocol(path)
    return protocol + _SLASH_RUN_RE.sub("/", rest)


def is_breaking_point(path: str | None) -> bool:
    """True where walking up the content tree has to stop."""
    if not path or not path.startswith(DAM_PREFIX):
        return True
    return path.rstrip("/") == DAM_ROOT
