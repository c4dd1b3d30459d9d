"""
x420 exception hierarchy
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


class X420Error(Exception):
    """x420 base exception"""

    pass


class ConfigurationError(X420Error):
    """Invalid middleware options or environment"""

    pass


class SettlementError(X420Error):
    """Raised by providers and stores when a payment cannot be settled"""

    pass


class GateError(X420Error):
    """
    Terminal outcome of the payment gate for one request.

    Rendered to the caller as ``{"error", "message", **extra}`` with ``status_code``.
    """

    status_code = 500
    error = "Internal Server Error"
    default_message = "Payment gate failed"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra: Dict[str, Any] = extra
        super().__init__(self.message)

    def body(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, **self.extra}

    def to_response(self) -> JSONResponse:
        return JSONResponse(self.body(), status_code=self.status_code)


class MissingAuthorization(GateError):
    status_code = 402
    error = "Payment Required"
    default_message = "Missing payment authorization header"


class MalformedAuthorization(GateError):
    status_code = 400
    error = "Bad Request"
    default_message = "Invalid payment authorization format"


class ProviderRejected(GateError):
    status_code = 401
    error = "Unauthorized"
    default_message = "Invalid payment authorization"


class PriceMismatch(GateError):
    status_code = 402
    error = "Payment Required"
    default_message = "Price mismatch - please refresh prices"

    def __init__(
        self,
        expected_price: str,
        expected_asset: str,
        provided_price: Optional[str],
        provided_asset: Optional[str],
    ):
        super().__init__(
            expected={"price": expected_price, "asset": expected_asset},
            provided={"price": provided_price, "asset": provided_asset},
        )


class SettlementFailed(GateError):
    status_code = 500
    error = "Internal Server Error"
    default_message = "Payment settlement failed"
