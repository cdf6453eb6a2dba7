"""Error classification, user-facing copy, and persisted error logging."""

from .classifier import (
    UNKNOWN_ERROR_MESSAGE,
    category_for_code,
    classify,
    classify_auth_error,
    classify_database_error,
    classify_network_error,
    create_permission_error,
    create_validation_error,
    resolve_error_shape,
)
from .logger import ERROR_LOG_KEY, ErrorLogger, LoggerConfig, RemoteErrorSink
from .messages import GENERIC_FALLBACK_MESSAGE, get_user_friendly_message, is_user_friendly_message
from .models import (
    ErrorCategory,
    ErrorRecord,
    ErrorSeverity,
    ErrorShape,
    KnownBackendError,
    StandardError,
    Unstructured,
)
from .storage import FileKeyValueStore, InMemoryKeyValueStore, KeyValueStore

__all__ = [
    "ERROR_LOG_KEY",
    "ErrorCategory",
    "ErrorLogger",
    "ErrorRecord",
    "ErrorSeverity",
    "ErrorShape",
    "FileKeyValueStore",
    "GENERIC_FALLBACK_MESSAGE",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "KnownBackendError",
    "LoggerConfig",
    "RemoteErrorSink",
    "StandardError",
    "UNKNOWN_ERROR_MESSAGE",
    "Unstructured",
    "category_for_code",
    "classify",
    "classify_auth_error",
    "classify_database_error",
    "classify_network_error",
    "create_permission_error",
    "create_validation_error",
    "get_user_friendly_message",
    "is_user_friendly_message",
    "resolve_error_shape",
]
