"""
Disclosure Ingest - Error Hierarchy

    IngestError (base)
    ├── FetchError - timeout, blocked or non-success response for one document/page
    ├── ParseError - no pattern matched, invalid candidate, undecodable body
    ├── PersistenceError - storage read or write failed
    └── ConfigurationError - registry entry or setting missing

FetchError and ParseError are scoped to a single document and are caught by
the connector loop. PersistenceError is caught per record. ConfigurationError
is reported per politician by the regulator connector.
"""
from __future__ import annotations

from typing import Any, Optional


class IngestError(Exception):
    """Base exception for all ingestion errors.

    Attributes:
        message: Human-readable error description
        context: Additional context (url, source, status code, ...)
    """

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message


class FetchError(IngestError):
    """A document or listing page could not be retrieved."""

    def __init__(self, message: str, url: Optional[str] = None,
                 status_code: Optional[int] = None,
                 context: Optional[dict[str, Any]] = None) -> None:
        self.url = url
        self.status_code = status_code
        ctx = dict(context or {})
        if url:
            ctx["url"] = url
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message, ctx)


class ParseError(IngestError):
    """Document content could not be turned into transaction candidates."""
    pass


class PersistenceError(IngestError):
    """A storage read or write failed."""
    pass


class ConfigurationError(IngestError):
    """Configuration is invalid or missing (e.g. a registry entry without CIK)."""
    pass
