"""Normalize arbitrary raised or returned errors into :class:`ErrorRecord` values."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Optional

from .models import (
    ErrorCategory,
    ErrorRecord,
    ErrorSeverity,
    ErrorShape,
    KnownBackendError,
    StandardError,
    Unstructured,
)

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred"
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"
DATABASE_ERROR_MESSAGE = "Database operation failed"
NETWORK_ERROR_MESSAGE = "Network connection failed"
AUTH_ERROR_MESSAGE = "Authentication failed"
PERMISSION_ERROR_MESSAGE = "You do not have permission to perform this action"

# PostgreSQL insufficient privilege and the REST layer's row-security rejections.
_PERMISSION_CODES = {"42501"}
_PERMISSION_PREFIXES = ("28", "PGRST3")
# Class 23: integrity constraint violations (unique, foreign key, not-null, check).
_VALIDATION_PREFIXES = ("23",)


def _string_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def resolve_error_shape(raw: Any) -> ErrorShape:
    """Resolve a raw error into one of the supported shapes."""

    if raw is None:
        return Unstructured(value=None)

    if isinstance(raw, BaseException):
        # asyncpg exceptions expose the SQLSTATE as ``sqlstate``.
        sqlstate = getattr(raw, "sqlstate", None)
        if isinstance(sqlstate, str):
            return KnownBackendError(
                code=sqlstate,
                message=str(getattr(raw, "message", None) or raw),
                details=_string_or_none(getattr(raw, "detail", None)),
            )
        code = getattr(raw, "code", None)
        if isinstance(code, str):
            return KnownBackendError(
                code=code,
                message=str(raw),
                details=_string_or_none(getattr(raw, "details", None)),
            )
        return StandardError(exception=raw)

    if isinstance(raw, Mapping):
        if "code" in raw and "message" in raw:
            return KnownBackendError(
                code=_string_or_none(raw.get("code")),
                message=str(raw.get("message") or ""),
                details=_string_or_none(raw.get("details")),
            )
        return Unstructured(value=raw)

    if hasattr(raw, "code") and hasattr(raw, "message"):
        return KnownBackendError(
            code=_string_or_none(getattr(raw, "code")),
            message=str(getattr(raw, "message") or ""),
            details=_string_or_none(getattr(raw, "details", None)),
        )

    return Unstructured(value=raw)


def category_for_code(code: Optional[str]) -> ErrorCategory:
    """Map a backend error code to an error category."""

    if not code:
        return ErrorCategory.UNKNOWN
    if code.startswith(_VALIDATION_PREFIXES):
        return ErrorCategory.VALIDATION
    if code in _PERMISSION_CODES or code.startswith(_PERMISSION_PREFIXES):
        return ErrorCategory.PERMISSION
    return ErrorCategory.UNKNOWN


def classify(
    raw: Any,
    context: Optional[Dict[str, Any]] = None,
    severity: Optional[ErrorSeverity] = None,
    *,
    category: Optional[ErrorCategory] = None,
    fallback_message: Optional[str] = None,
) -> ErrorRecord:
    """Classify ``raw`` into an :class:`ErrorRecord`.

    ``category`` pins the category regardless of the error's shape; network and
    authentication call sites use it so transport failures are always tagged
    consistently. ``fallback_message`` replaces the generic message used when the
    raw value carries no message of its own.
    """

    shape = resolve_error_shape(raw)
    effective_severity = severity or ErrorSeverity.ERROR
    code: Optional[str] = None

    if isinstance(shape, KnownBackendError):
        message = shape.message or fallback_message or DATABASE_ERROR_MESSAGE
        code = shape.code
        resolved_category = category_for_code(code)
    elif isinstance(shape, StandardError):
        message = shape.message or fallback_message or UNEXPECTED_ERROR_MESSAGE
        resolved_category = ErrorCategory.UNKNOWN
    else:
        message = fallback_message or UNKNOWN_ERROR_MESSAGE
        resolved_category = ErrorCategory.UNKNOWN

    return ErrorRecord(
        message=message,
        category=category or resolved_category,
        severity=effective_severity,
        code=code,
        context=dict(context) if context else None,
        original_error=raw,
    )


def classify_network_error(raw: Any, context: Optional[Dict[str, Any]] = None) -> ErrorRecord:
    return classify(
        raw,
        context,
        category=ErrorCategory.NETWORK,
        fallback_message=NETWORK_ERROR_MESSAGE,
    )


def classify_auth_error(raw: Any, context: Optional[Dict[str, Any]] = None) -> ErrorRecord:
    return classify(
        raw,
        context,
        category=ErrorCategory.AUTHENTICATION,
        fallback_message=AUTH_ERROR_MESSAGE,
    )


def classify_database_error(
    raw: Any,
    context: Optional[Dict[str, Any]] = None,
    severity: Optional[ErrorSeverity] = None,
) -> ErrorRecord:
    """Classify a persistence failure, keeping code-derived categories when known."""

    record = classify(raw, context, severity, fallback_message=DATABASE_ERROR_MESSAGE)
    if record.category == ErrorCategory.UNKNOWN:
        return record.model_copy(update={"category": ErrorCategory.DATABASE})
    return record


def create_validation_error(message: str, context: Optional[Dict[str, Any]] = None) -> ErrorRecord:
    return ErrorRecord(
        message=message,
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        context=dict(context) if context else None,
    )


def create_permission_error(
    message: str = PERMISSION_ERROR_MESSAGE,
    context: Optional[Dict[str, Any]] = None,
) -> ErrorRecord:
    return ErrorRecord(
        message=message,
        category=ErrorCategory.PERMISSION,
        severity=ErrorSeverity.WARNING,
        context=dict(context) if context else None,
    )


__all__ = [
    "UNKNOWN_ERROR_MESSAGE",
    "category_for_code",
    "classify",
    "classify_auth_error",
    "classify_database_error",
    "classify_network_error",
    "create_permission_error",
    "create_validation_error",
    "resolve_error_shape",
]
