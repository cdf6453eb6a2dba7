"""Shared application context for reusable dependencies."""
from __future__ import annotations

from typing import Any, Callable, Optional

_get_current_user: Optional[Callable[..., Any]] = None
_get_services: Optional[Callable[[], Any]] = None


def configure(
    *,
    get_current_user: Callable[..., Any],
    get_services: Callable[[], Any],
) -> None:
    """Register the authentication dependency and service bundle used by routers."""

    global _get_current_user
    global _get_services

    _get_current_user = get_current_user
    _get_services = get_services


def reset() -> None:
    global _get_current_user
    global _get_services

    _get_current_user = None
    _get_services = None


def _require(value: Optional[Any], name: str) -> Any:
    if value is None:
        raise RuntimeError(f"Application context has not been configured yet: {name}")
    return value


def get_current_user(*args: Any, **kwargs: Any) -> Any:
    dependency = _require(_get_current_user, "get_current_user")
    return dependency(*args, **kwargs)


def get_services() -> Any:
    factory = _require(_get_services, "get_services")
    return factory()
