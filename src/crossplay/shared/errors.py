"""Crossplay Error Handling Module

This module defines the error handling system for Crossplay, providing
structured error classes with context information.

The error hierarchy follows these principles:
- One Source of Truth: All error codes are defined in ErrorCode enum
- Structured Context: ErrorContext provides additional information
- Proper Exception Chaining: Original exceptions are preserved

Source failures are split by how the resolver must react to them:
a ``TransientSourceError`` is never cached, while a conclusive "not found"
is not an error at all (see ``SourceResult.not_found``).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

# Type alias for primitive context values (str, int, float, bool only)
PrimitiveContextValue = Union[str, int, float, bool]

# Default keys to mask in safe_dict
SAFE_DICT_MASK_KEYS: tuple[str, ...] = ("user_id",)


class ErrorCode(str, Enum):
    """Error codes for Crossplay.

    This enum serves as the single source of truth for all error codes
    used throughout the application.
    """

    # Network and API Errors
    NETWORK_ERROR = "NETWORK_ERROR"
    API_RATE_LIMIT = "API_RATE_LIMIT"
    API_AUTHENTICATION_FAILED = "API_AUTHENTICATION_FAILED"
    API_REQUEST_FAILED = "API_REQUEST_FAILED"
    API_TIMEOUT = "API_TIMEOUT"
    API_SERVER_ERROR = "API_SERVER_ERROR"
    API_INVALID_RESPONSE = "API_INVALID_RESPONSE"

    # Cache Errors
    CACHE_ERROR = "CACHE_ERROR"
    CACHE_READ_FAILED = "CACHE_READ_FAILED"
    CACHE_WRITE_FAILED = "CACHE_WRITE_FAILED"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Configuration Errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"

    # Message routing Errors
    UNKNOWN_MESSAGE_TYPE = "UNKNOWN_MESSAGE_TYPE"
    INVALID_MESSAGE = "INVALID_MESSAGE"
    OPERATION_TIMEOUT = "OPERATION_TIMEOUT"

    # CLI Errors
    CLI_UNEXPECTED_ERROR = "CLI_UNEXPECTED_ERROR"

    # Application Errors
    APPLICATION_ERROR = "APPLICATION_ERROR"


def _coerce_primitives(value: Any | None) -> dict[str, PrimitiveContextValue] | None:
    """Coerce additional_data values to primitives.

    Converts Path, Enum, Decimal to primitive types.

    Args:
        value: Input dictionary or None

    Returns:
        Dictionary with primitive values only, or None

    Raises:
        TypeError: If value is not a dict or contains unconvertible types
    """
    if value is None:
        return None

    if not isinstance(value, dict):
        error_msg = f"additional_data must be dict, got {type(value).__name__}"
        raise TypeError(error_msg)

    coerced: dict[str, PrimitiveContextValue] = {}
    for key, val in value.items():
        if isinstance(val, (str, int, float, bool)):
            coerced[key] = val
        elif isinstance(val, Path):
            coerced[key] = str(val)
        elif isinstance(val, Enum):
            coerced[key] = val.value
        elif isinstance(val, Decimal):
            coerced[key] = float(val)
        else:
            error_msg = (
                f"Cannot coerce {type(val).__name__} to primitive type. "
                f"Only str, int, float, bool, Path, Enum, Decimal are allowed."
            )
            raise TypeError(error_msg)

    return coerced


@dataclass(frozen=True)
class ErrorContext:
    """Context information for errors.

    Only primitive types (str, int, float, bool) are allowed in
    additional_data to ensure safe serialization.

    Attributes:
        operation: Optional operation name that caused the error
        item_id: Optional catalog item the operation was working on
        user_id: Optional user ID (masked in logs)
        additional_data: Optional dict with primitive values only
    """

    operation: str | None = None
    item_id: str | None = None
    user_id: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        """Post-initialization validation and coercion."""
        if self.additional_data is not None:
            coerced = _coerce_primitives(self.additional_data)
            object.__setattr__(self, "additional_data", coerced)

    def safe_dict(self, *, mask_keys: tuple[str, ...] | None = None) -> dict[str, Any]:
        """Export context as dict with sensitive fields masked.

        Args:
            mask_keys: Fields to exclude from output. Defaults to SAFE_DICT_MASK_KEYS.

        Returns:
            Dictionary with masked sensitive fields and guaranteed additional_data key.

        Example:
            >>> context = ErrorContext(user_id="12345", operation="resolve")
            >>> context.safe_dict()
            {'operation': 'resolve', 'additional_data': {}}
        """
        if mask_keys is None:
            mask_keys = SAFE_DICT_MASK_KEYS

        data: dict[str, Any] = {}
        if self.operation is not None and "operation" not in mask_keys:
            data["operation"] = self.operation
        if self.item_id is not None and "item_id" not in mask_keys:
            data["item_id"] = self.item_id
        if self.user_id is not None and "user_id" not in mask_keys:
            data["user_id"] = self.user_id

        if self.additional_data is not None and "additional_data" not in mask_keys:
            data["additional_data"] = self.additional_data
        else:
            data["additional_data"] = {}

        return data


class CrossplayError(Exception):
    """Base exception class for all Crossplay errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize CrossplayError.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            context: Additional context information
            original_error: Original exception that caused this error
        """
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error

        super().__init__(f"{code.value}: {message}")

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging and message responses.

        Returns:
            Dictionary representation of the error with code, message,
            masked context, and original_error (if present)
        """
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }


class DomainError(CrossplayError):
    """Domain-specific errors.

    These errors occur when business rules are violated, for example a
    lookup requested with an empty item id.
    """


class InfrastructureError(CrossplayError):
    """Infrastructure-related errors.

    These errors occur when interacting with external systems like the
    SQLite cache file or third-party HTTP APIs.
    """


class ApplicationError(CrossplayError):
    """Application-level errors.

    Raised for configuration and wiring defects. This is the only error
    family allowed to cross the resolver boundary.
    """


class TransientSourceError(InfrastructureError):
    """A third-party source could not give a conclusive answer.

    Covers network failures, timeouts, non-2xx responses and exhausted
    rate-limit retries. Results built after one of these are never cached.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(code, message, context, original_error)
        self.status_code = status_code


class SourceConnectionError(TransientSourceError):
    """DNS, connection or timeout failure talking to a source."""


class SourceRequestError(TransientSourceError):
    """The source answered with a non-success HTTP status."""


class MalformedResponseError(TransientSourceError):
    """The source answered with a body we could not interpret."""


class RateLimitedError(TransientSourceError):
    """The source answered HTTP 429.

    Raised by the HTTP layer and consumed by the rate limiter, which
    retries with backoff before giving up.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.API_RATE_LIMIT,
            message,
            context,
            status_code=429,
        )
        self.retry_after = retry_after


class RateLimitExhaustedError(TransientSourceError):
    """Rate-limit retries were exhausted for one scheduled request."""


def create_validation_error(
    message: str,
    field: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> DomainError:
    """Create a validation error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"field": field} if field else None
    )
    context = ErrorContext(
        operation=operation,
        additional_data=additional_data,
    )
    return DomainError(
        ErrorCode.VALIDATION_ERROR,
        message,
        context,
        original_error,
    )


def create_config_error(
    message: str,
    config_key: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> ApplicationError:
    """Create a configuration error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"config_key": config_key} if config_key else None
    )
    context = ErrorContext(
        operation=operation,
        additional_data=additional_data,
    )
    return ApplicationError(
        ErrorCode.CONFIGURATION_ERROR,
        message,
        context,
        original_error,
    )


def create_malformed_response_error(
    message: str,
    source: str,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> MalformedResponseError:
    """Create a malformed response error for a source."""
    context = ErrorContext(
        operation=operation,
        additional_data={"source": source},
    )
    return MalformedResponseError(
        ErrorCode.API_INVALID_RESPONSE,
        message,
        context,
        original_error,
    )
