"""Payment sheet gateway capability and a callback adapter."""
from __future__ import annotations

import inspect
from collections.abc import Mapping
from typing import Any, Callable, Protocol

from .models import GatewayError, GatewayResult, PaymentSheetConfig


class PaymentGateway(Protocol):
    """The two payment sheet operations the orchestrator depends on."""

    async def init_payment_sheet(self, config: PaymentSheetConfig) -> GatewayResult:
        ...

    async def present_payment_sheet(self) -> GatewayResult:
        ...


def _to_error(raw: Any) -> GatewayError:
    if isinstance(raw, GatewayError):
        return raw
    if isinstance(raw, Mapping):
        code = raw.get("code")
        return GatewayError(
            code=str(code) if code is not None else None,
            message=str(raw.get("message") or ""),
        )
    code = getattr(raw, "code", None)
    message = getattr(raw, "message", None)
    if message is None and isinstance(raw, BaseException):
        message = str(raw)
    return GatewayError(
        code=str(code) if code is not None else None,
        message=str(message or raw),
    )


def to_gateway_result(raw: Any) -> GatewayResult:
    """Normalize ``None``, ``{"error": ...}`` or an object with ``.error`` into a result."""

    if raw is None:
        return GatewayResult()
    if isinstance(raw, GatewayResult):
        return raw
    error = raw.get("error") if isinstance(raw, Mapping) else getattr(raw, "error", None)
    if not error:
        return GatewayResult()
    return GatewayResult(error=_to_error(error))


class CallbackPaymentGateway:
    """Adapts a pair of init/present callables, sync or async, to :class:`PaymentGateway`."""

    def __init__(
        self,
        init_payment_sheet: Callable[[dict], Any],
        present_payment_sheet: Callable[[], Any],
    ) -> None:
        self._init = init_payment_sheet
        self._present = present_payment_sheet

    async def init_payment_sheet(self, config: PaymentSheetConfig) -> GatewayResult:
        result = self._init(config.as_gateway_params())
        if inspect.isawaitable(result):
            result = await result
        return to_gateway_result(result)

    async def present_payment_sheet(self) -> GatewayResult:
        result = self._present()
        if inspect.isawaitable(result):
            result = await result
        return to_gateway_result(result)


__all__ = ["CallbackPaymentGateway", "PaymentGateway", "to_gateway_result"]
