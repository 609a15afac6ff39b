"""Relaytrace error hierarchy and exceptions."""

from __future__ import annotations

from typing import Optional


class RelaytraceError(Exception):
    """Base exception for all relaytrace errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(RelaytraceError):
    """Raised when configuration is invalid or conflicting."""
    pass


class MalformedContext(RelaytraceError):
    """Raised when a carrier holds a traceparent that fails validation."""

    def __init__(self, message: str, header_value: Optional[str] = None):
        details = {"traceparent": header_value} if header_value is not None else None
        super().__init__(message, details)
        self.header_value = header_value


class TransportError(RelaytraceError):
    """Raised when an outbound call fails (network, status or body)."""

    def __init__(self, reason: str, status_code: Optional[int] = None):
        details = {"status_code": status_code} if status_code is not None else None
        super().__init__(reason, details)
        self.reason = reason
        self.status_code = status_code
