from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from .errors import ConfigurationError
from .providers import PaymentProvider
from .types import PriceInfo, coerce_price_map

logger = logging.getLogger(__name__)

DEFAULT_PRICE_DISCOVERY_PATH = "/x420-prices"
DEFAULT_PAYMENT_HEADER = "x-payment"
PROVIDERS = ("mock", "wallet", "facilitator")

DEFAULT_PRICE_MAP: Dict[str, Dict[str, str]] = {
    "/premium/report": {"price": "100", "asset": "USDC"},
    "/premium/quote": {"price": "25", "asset": "USDC"},
}


@dataclass(frozen=True)
class X420Options:
    payment_provider: PaymentProvider
    price_map: Mapping[str, PriceInfo]
    price_discovery_path: str = DEFAULT_PRICE_DISCOVERY_PATH
    payment_header: str = DEFAULT_PAYMENT_HEADER
    # When the provider does not report amount/asset, fall back to the client's claim.
    trust_claimed_terms: bool = True

    def __post_init__(self) -> None:
        if not self.payment_header:
            raise ConfigurationError("payment_header must be a non-empty header name")
        if not self.price_discovery_path.startswith("/"):
            raise ConfigurationError(f"price_discovery_path must start with '/': {self.price_discovery_path!r}")
        try:
            prices = coerce_price_map(self.price_map)
        except ValueError as e:
            raise ConfigurationError(f"Invalid price map: {e}") from e
        object.__setattr__(self, "price_map", MappingProxyType(prices))


@dataclass
class Settings:
    provider: str
    price_map: Dict[str, PriceInfo]
    price_discovery_path: str = DEFAULT_PRICE_DISCOVERY_PATH
    payment_header: str = DEFAULT_PAYMENT_HEADER
    strict_pricing: bool = False
    facilitator_url: Optional[str] = None
    redis_url: Optional[str] = None
    settlement_ttl_seconds: int = 86400
    extra_headers: Dict[str, str] = field(default_factory=dict)


def _parse_price_map(raw: Optional[str]) -> Dict[str, PriceInfo]:
    if not raw:
        return coerce_price_map(DEFAULT_PRICE_MAP)
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ConfigurationError(f"X420_PRICE_MAP must be valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError("X420_PRICE_MAP must be a JSON object of {path: {price, asset}}")
    try:
        return coerce_price_map(data)
    except ValueError as e:
        raise ConfigurationError(f"Invalid X420_PRICE_MAP entry: {e}") from e


def load_settings() -> Settings:
    provider = os.getenv("X420_PROVIDER", "mock").lower()
    if provider not in PROVIDERS:
        raise ConfigurationError(f"Unknown X420_PROVIDER {provider!r}. Must be one of: {', '.join(PROVIDERS)}")

    facilitator_url = os.getenv("X420_FACILITATOR_URL")
    if provider == "facilitator" and not facilitator_url:
        raise ConfigurationError("Missing X420_FACILITATOR_URL env var. Required when X420_PROVIDER=facilitator.")

    ttl_env = os.getenv("X420_SETTLEMENT_TTL_SECONDS")
    try:
        ttl = int(ttl_env) if ttl_env else 86400
    except ValueError:
        ttl = 86400

    headers_env = os.getenv("X420_FACILITATOR_HEADERS")
    try:
        extra_headers = json.loads(headers_env) if headers_env else {}
    except ValueError as e:
        raise ConfigurationError(f"X420_FACILITATOR_HEADERS must be valid JSON: {e}") from e
    if not isinstance(extra_headers, dict):
        raise ConfigurationError("X420_FACILITATOR_HEADERS must be a JSON object of {header: value}")

    redis_url = os.getenv("REDIS_URL")
    env = os.getenv("APP_ENV", "").lower()
    if provider == "wallet" and not redis_url and env in {"prod", "production"}:
        logger.warning("running without REDIS_URL in production; replay protection is in-memory only.")

    return Settings(
        provider=provider,
        price_map=_parse_price_map(os.getenv("X420_PRICE_MAP")),
        price_discovery_path=os.getenv("X420_PRICE_DISCOVERY_PATH", DEFAULT_PRICE_DISCOVERY_PATH),
        payment_header=os.getenv("X420_PAYMENT_HEADER", DEFAULT_PAYMENT_HEADER),
        strict_pricing=os.getenv("X420_STRICT_PRICING", "false").lower() == "true",
        facilitator_url=facilitator_url,
        redis_url=redis_url,
        settlement_ttl_seconds=ttl,
        extra_headers=extra_headers,
    )
