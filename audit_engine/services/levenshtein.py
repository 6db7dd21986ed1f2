from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from audit_engine.services.path_utils import remove_locale_from_path

T = TypeVar("T")


def levenshtein_distance(source: str, target: str) -> int:
    if source == target:
        return 0
    if not source:
        return len(target)
    if not target:
        return len(source)

    previous = list(range(len(target) + 1))
    for i, source_char in enumerate(source, start=1):
        current = [i]
        for j, target_char in enumerate(target, start=1):
            cost = 0 if source_char == target_char else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def candidate_path(candidate: Any) -> str:
    if isinstance(candidate, Mapping):
        value = candidate.get("path")
    else:
        value = getattr(candidate, "path", None)
    return value if isinstance(value, str) else ""


def find_similar_path(broken_path: str, candidates: Iterable[T], max_distance: int) -> T | None:
    """Return the candidate nearest to `broken_path`, ignoring locale segments.

    Ties keep the earliest candidate. Nothing is returned when the best
    distance exceeds `max_distance`.
    """
    normalized_broken = remove_locale_from_path(broken_path) or ""
    best: T | None = None
    best_distance: int | None = None
    for candidate in candidates or ():
        normalized = remove_locale_from_path(candidate_path(candidate)) or ""
        distance = levenshtein_distance(normalized_broken, normalized)
        if best_distance is None or distance < best_distance:
            best, best_distance = candidate, distance

    if best_distance is None or best_distance > max_distance:
        return None
    return best
