"""Short, end-user safe copy for classified errors."""
from __future__ import annotations

import re
from typing import Dict

from .models import ErrorCategory, ErrorRecord

GENERIC_FALLBACK_MESSAGE = "An unexpected error occurred. Please try again later."

_MAX_FRIENDLY_LENGTH = 120

CATEGORY_MESSAGES: Dict[ErrorCategory, str] = {
    ErrorCategory.DATABASE: "There was a problem accessing the database.",
    ErrorCategory.AUTHENTICATION: "There was a problem with your account authentication.",
    ErrorCategory.NETWORK: "Network connection issue. Please check your internet connection.",
    ErrorCategory.VALIDATION: "Some information you entered is not valid.",
    ErrorCategory.PERMISSION: "You do not have permission to perform this action.",
    ErrorCategory.UNKNOWN: GENERIC_FALLBACK_MESSAGE,
}

CODE_MESSAGES: Dict[str, str] = {
    "23505": "This information already exists in our system.",
    "42P01": "We encountered a database configuration issue. Please contact support.",
    "42501": "You do not have permission to perform this action.",
    "23503": "This operation cannot be completed because it references missing data.",
    "PGRST301": "Access denied due to security policy.",
    "401": "Invalid login credentials. Please check your email and password.",
    "auth/invalid-email": "Invalid login credentials. Please check your email and password.",
    "auth/user-not-found": "Invalid login credentials. Please check your email and password.",
    "auth/wrong-password": "Invalid login credentials. Please check your email and password.",
    "403": "You do not have permission to access this resource.",
    "404": "The requested resource was not found.",
    "429": "Too many requests. Please try again later.",
    "500": "Server error. Please try again later.",
}

_TECHNICAL_TERMS = (
    "undefined",
    "null",
    "nonetype",
    "nan",
    "exception",
    "traceback",
    "syntax error",
    "unexpected token",
    "stack",
    "reference error",
    "type error",
    "typeerror",
    "keyerror",
    "attribute",
    "object is not",
    "cannot read property",
    "is not a function",
    "failed to fetch",
    "network request failed",
    "json",
    "parse",
    "promise",
    "async",
    "timeout",
    "cors",
    "xhr",
    "http",
    "ssl",
    "certificate",
    "localhost",
    "port",
    "proxy",
    "socket",
    "postgresql",
    "postgres",
    "supabase",
    "database",
    "query",
    "sql",
)

_TECHNICAL_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(term) for term in _TECHNICAL_TERMS) + r")\b",
    re.IGNORECASE,
)


def is_user_friendly_message(message: str) -> bool:
    """Return whether ``message`` is short and free of implementation details."""

    if not message or len(message) > _MAX_FRIENDLY_LENGTH:
        return False
    return _TECHNICAL_PATTERN.search(message) is None


def get_user_friendly_message(record: ErrorRecord) -> str:
    """Map a classified error to copy that can be shown to an end user."""

    if record.code and record.code in CODE_MESSAGES:
        return CODE_MESSAGES[record.code]

    if not record.message:
        return GENERIC_FALLBACK_MESSAGE

    if is_user_friendly_message(record.message):
        return record.message
    return CATEGORY_MESSAGES.get(record.category, GENERIC_FALLBACK_MESSAGE)


__all__ = [
    "CATEGORY_MESSAGES",
    "CODE_MESSAGES",
    "GENERIC_FALLBACK_MESSAGE",
    "get_user_friendly_message",
    "is_user_friendly_message",
]
