from __future__ import annotations

import base64
import json
import logging
from typing import Any, Optional, Tuple

from fastapi import Request

from .config import X420Options
from .errors import (
    GateError,
    MalformedAuthorization,
    MissingAuthorization,
    PriceMismatch,
    ProviderRejected,
    SettlementFailed,
)
from .price_discovery import create_price_discovery_handler
from .types import PaymentAuthorization, PaymentVerificationResult, PriceInfo

logger = logging.getLogger(__name__)


def _decode_header(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        pass
    # x402-style clients send base64-encoded JSON
    decoded = base64.b64decode(raw, validate=True).decode("utf-8")
    return json.loads(decoded)


def parse_authorization(raw: str) -> PaymentAuthorization:
    try:
        return PaymentAuthorization.model_validate(_decode_header(raw))
    except ValueError as e:
        raise MalformedAuthorization() from e


def authorized_terms(
    auth: PaymentAuthorization, result: PaymentVerificationResult, trust_claimed_terms: bool = True
) -> Tuple[Optional[str], Optional[str]]:
    """Amount and asset used for price matching; provider-reported values win."""
    amount, asset = result.amount, result.asset
    if trust_claimed_terms:
        amount = amount or auth.amount
        asset = asset or auth.asset
    return amount, asset


def create_payment_middleware(options: X420Options):
    """
    Require a verified, price-matching, settled payment on every priced path.

    On success the authorization and verified wallet are attached to
    ``request.state.payment`` and ``request.state.wallet``.
    """
    header_name = options.payment_header
    provider = options.payment_provider

    async def _gate(request: Request, price: PriceInfo) -> Tuple[PaymentAuthorization, Optional[str]]:
        values = request.headers.getlist(header_name)
        raw = values[0] if values else ""
        if not raw:
            raise MissingAuthorization()

        try:
            auth = parse_authorization(raw)
        except MalformedAuthorization as e:
            logger.warning(
                "invalid payment header from %s path=%s: %s",
                request.client.host if request.client else "unknown",
                request.url.path,
                e.__cause__,
            )
            raise

        result = await provider.verify_payment(auth)
        if not result.valid:
            raise ProviderRejected(result.error or None)

        amount, asset = authorized_terms(auth, result, options.trust_claimed_terms)
        if amount != price.price or asset != price.asset:
            raise PriceMismatch(price.price, price.asset, amount, asset)

        try:
            await provider.settle_payment(auth)
        except Exception as e:
            logger.error("settlement failed path=%s wallet=%s: %s", request.url.path, result.wallet, e)
            raise SettlementFailed() from e

        return auth, result.wallet

    async def payment_gate(request: Request, call_next):
        price = options.price_map.get(request.url.path)
        if price is None:
            return await call_next(request)

        try:
            auth, wallet = await _gate(request, price)
        except GateError as e:
            logger.info("%s issued path=%s reason=%s", e.status_code, request.url.path, e.message)
            return e.to_response()

        request.state.payment = auth
        request.state.wallet = wallet
        logger.info("settled wallet=%s path=%s price=%s %s", wallet, request.url.path, price.price, price.asset)
        return await call_next(request)

    return payment_gate


def install_x420(app, options: X420Options):
    """
    Register both handlers on a FastAPI app.

    ``app.middleware("http")`` wraps in reverse order, so the gate is added
    first and the discovery handler ends up outermost.
    """
    price_discovery = create_price_discovery_handler(options)
    payment_gate = create_payment_middleware(options)
    app.middleware("http")(payment_gate)
    app.middleware("http")(price_discovery)
    return price_discovery, payment_gate
