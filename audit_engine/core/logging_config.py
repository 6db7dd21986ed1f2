from __future__ import annotations

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

audit_run_id_ctx_var: ContextVar[str | None] = ContextVar("audit_run_id", default=None)

_RESERVED_RECORD_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
}


class AuditRunIdFilter(logging.Filter):
    """Attach the current audit run id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.audit_run_id = audit_run_id_ctx_var.get() or "-"
        return True


def _truncate_text(value: str) -> str:
    return value[:5000] if len(value) > 5000 else value


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (int, float, bool)):
        return value
    if isinstance(value, str):
        return _truncate_text(value)
    if isinstance(value, dict):
        safe: dict[str, Any] = {}
        for idx, (key, item) in enumerate(value.items()):
            if idx >= 100:
                safe["..."] = "truncated"
                break
            safe[str(key)] = _json_safe(item)
        return safe
    if isinstance(value, (list, tuple, set)):
        items: list[Any] = []
        for idx, item in enumerate(value):
            if idx >= 200:
                items.append("...truncated")
                break
            items.append(_json_safe(item))
        return items
    try:
        return _truncate_text(str(value))
    except Exception:  # pragma: no cover
        return "<unserializable>"


class JsonFormatter(logging.Formatter):
    """Structured JSON log lines; `extra` fields are merged into the payload."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "audit_run_id": getattr(record, "audit_run_id", "-"),
        }
        for key, value in (getattr(record, "__dict__", {}) or {}).items():
            if key in _RESERVED_RECORD_KEYS or key in payload or key.startswith("_"):
                continue
            payload[key] = _json_safe(value)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(json_logs: bool = False) -> None:
    """Configure the root logger with an audit-run aware formatter."""
    handler = logging.StreamHandler()
    handler.addFilter(AuditRunIdFilter())
    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s [%(audit_run_id)s] %(message)s")
        )

    logging.basicConfig(level=logging.INFO, handlers=[handler], force=True)
