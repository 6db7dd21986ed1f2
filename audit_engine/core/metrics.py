from collections import Counter
from threading import Lock
from typing import Dict, Counter as CounterType

_metrics: CounterType[str] = Counter()
_lock = Lock()


def _inc(key: str, amount: int = 1) -> None:
    with _lock:
        _metrics[key] += amount


def record_mystique_sent(count: int = 1) -> None:
    _inc("mystique_messages_sent", count)


def record_mystique_failed(count: int = 1) -> None:
    _inc("mystique_messages_failed", count)


def record_fix_published(count: int = 1) -> None:
    _inc("fix_entities_published", count)


def record_fix_publish_failed(count: int = 1) -> None:
    _inc("fix_entities_publish_failed", count)


def record_rule_match(fix_type: str) -> None:
    _inc(f"rule_matches.{fix_type.lower()}")


def snapshot() -> Dict[str, int]:
    with _lock:
        return dict(_metrics)


def reset() -> None:
    with _lock:
        _metrics.clear()
