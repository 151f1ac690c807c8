"""Base error classes and error codes for devicesync.

Contains ErrorCode enum, DeviceSyncError base class, and ConfigurationError.
All devicesync-specific exceptions inherit from DeviceSyncError.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standard error codes for devicesync errors.

    These codes identify error types programmatically and are included
    in serialized error payloads.
    """

    # Configuration errors (CFG_*)
    CFG_INVALID = "CFG_INVALID"
    CFG_MISSING = "CFG_MISSING"

    # Storage errors (STO_*)
    STO_WRITE_FAILED = "STO_WRITE_FAILED"

    # Device errors (DEV_*)
    DEV_AUTH_REJECTED = "DEV_AUTH_REJECTED"
    DEV_UNREACHABLE = "DEV_UNREACHABLE"
    DEV_DELIVERY_FAILED = "DEV_DELIVERY_FAILED"
    DEV_NOT_CONNECTED = "DEV_NOT_CONNECTED"

    # Queue errors (QUE_*)
    QUE_CLOSED = "QUE_CLOSED"

    # Generic errors
    UNKNOWN = "UNKNOWN"


class DeviceSyncError(Exception):
    """Base exception for all devicesync errors.

    Attributes:
        message: Human-readable error message.
        code: Machine-readable error code from ErrorCode enum.
        details: Optional additional context about the error.
        cause: Optional original exception that caused this error.
    """

    default_message: str = "An error occurred"
    default_code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str | None = None,
        *,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details or {}
        self.cause = cause

        super().__init__(self.message)

        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        parts = [f"{self.__class__.__name__}({self.message!r}"]
        if self.code != self.default_code:
            parts.append(f", code={self.code.value!r}")
        if self.details:
            parts.append(f", details={self.details!r}")
        if self.cause:
            parts.append(f", cause={self.cause!r}")
        parts.append(")")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a serializable dictionary."""
        result: dict[str, Any] = {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "detail": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ConfigurationError(DeviceSyncError):
    """Raised for configuration and settings issues."""

    default_message = "Configuration error"
    default_code = ErrorCode.CFG_INVALID

    def __init__(
        self,
        message: str | None = None,
        *,
        config_key: str | None = None,
        config_path: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if config_key:
            details["config_key"] = config_key
        if config_path:
            details["config_path"] = config_path
        super().__init__(message, code=code, details=details, cause=cause)
