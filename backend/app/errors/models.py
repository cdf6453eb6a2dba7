"""Typed error records produced by the classifier."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ErrorCategory(str, Enum):
    """Closed set of categories every classified error falls into."""

    VALIDATION = "validation"
    PERMISSION = "permission"
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    DATABASE = "database"
    UNKNOWN = "unknown"


class ErrorSeverity(str, Enum):
    """Severity levels used when emitting error records."""

    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorRecord(BaseModel):
    """Normalized error ready to be logged, stored, or shown to a user."""

    message: str
    category: ErrorCategory = ErrorCategory.UNKNOWN
    severity: ErrorSeverity = ErrorSeverity.ERROR
    code: Optional[str] = None
    context: Optional[Dict[str, Any]] = None
    original_error: Any = Field(default=None, exclude=True, repr=False)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True, arbitrary_types_allowed=True)


# Raw error shapes, resolved once at the classification boundary.


@dataclass(frozen=True)
class KnownBackendError:
    """A database or API error exposing a machine-readable code."""

    code: Optional[str]
    message: str
    details: Optional[str] = None


@dataclass(frozen=True)
class StandardError:
    """A regular Python exception without a backend code."""

    exception: BaseException

    @property
    def message(self) -> str:
        return str(self.exception)


@dataclass(frozen=True)
class Unstructured:
    """Anything else: ``None``, strings, arbitrary objects."""

    value: Any


ErrorShape = Union[KnownBackendError, StandardError, Unstructured]


__all__ = [
    "ErrorCategory",
    "ErrorRecord",
    "ErrorSeverity",
    "ErrorShape",
    "KnownBackendError",
    "StandardError",
    "Unstructured",
]
