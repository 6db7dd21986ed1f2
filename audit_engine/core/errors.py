from __future__ import annotations


class AuditEngineError(Exception):
    """Base error for the audit engine."""


class ConfigurationError(AuditEngineError):
    """A required collaborator or setting was not provided."""


class UpstreamError(AuditEngineError):
    def __init__(self, message: str, *, path: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class PartialFailureError(AuditEngineError):
    def __init__(self, message: str, *, errors: int, total: int) -> None:
        super().__init__(message)
        self.errors = errors
        self.total = total
