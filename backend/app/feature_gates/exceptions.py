"""Exceptions raised when a caller lacks the subscription a feature needs."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status


@dataclass
class FeatureGateError(Exception):
    """A denied feature access, surfaced to API callers as a 403 by default."""

    code: str
    message: str
    status_code: int = status.HTTP_403_FORBIDDEN
    detail: Optional[Mapping[str, Any]] = None
    payload: Dict[str, Any] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.payload = {"error": self.code, "message": self.message, **(self.detail or {})}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=dict(self.payload))
