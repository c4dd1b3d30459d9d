"""
x420: pay-per-request gating for FastAPI apps.

Install both handlers with x420.middleware.install_x420(app, X420Options(...)).
"""

from .config import X420Options  # noqa: F401
from .errors import (  # noqa: F401
    ConfigurationError,
    GateError,
    MalformedAuthorization,
    MissingAuthorization,
    PriceMismatch,
    ProviderRejected,
    SettlementError,
    SettlementFailed,
    X420Error,
)
from .middleware import create_payment_middleware, install_x420  # noqa: F401
from .price_discovery import create_price_discovery_handler, list_prices  # noqa: F401
from .providers import MockPaymentProvider, PaymentProvider  # noqa: F401
from .types import (  # noqa: F401
    PaymentAuthorization,
    PaymentVerificationResult,
    PriceDiscoveryResponse,
    PriceInfo,
    ResourcePrice,
)
