from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .x420.config import Settings, X420Options, load_settings
from .x420.facilitator import FacilitatorPaymentProvider
from .x420.middleware import install_x420
from .x420.providers import MockPaymentProvider, PaymentProvider
from .x420.store import InMemoryStore, RedisStore
from .x420.wallet import WalletPaymentProvider

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_provider(settings: Settings) -> PaymentProvider:
    if settings.provider == "facilitator":
        logger.info("Using facilitator at %s", settings.facilitator_url)
        return FacilitatorPaymentProvider(settings.facilitator_url, headers=settings.extra_headers)

    if settings.provider == "wallet":
        if settings.redis_url:
            store = RedisStore.from_url(settings.redis_url)
            logger.info("Using Redis settlement store")
        else:
            store = InMemoryStore()
            logger.info("Using in-memory settlement store")
        return WalletPaymentProvider(store, ttl_seconds=settings.settlement_ttl_seconds)

    logger.warning("Running with the mock payment provider - payments are not real")
    return MockPaymentProvider()


def create_app(settings: Settings) -> FastAPI:
    provider = build_provider(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        close = getattr(provider, "close", None)
        if close is not None:
            await close()

    app = FastAPI(title="x420 pay-per-request demo", version="1.0.0", lifespan=lifespan)

    options = X420Options(
        payment_provider=provider,
        price_map=settings.price_map,
        price_discovery_path=settings.price_discovery_path,
        payment_header=settings.payment_header,
        trust_claimed_terms=not settings.strict_pricing,
    )
    install_x420(app, options)
    app.state.x420 = options

    # Added last so it is outermost and answers preflight requests before the gate.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.get("/premium/report")
    async def premium_report(request: Request):
        return {"report": "funding rates are up", "paid_by": request.state.wallet}

    @app.get("/premium/quote")
    async def premium_quote(request: Request, symbol: str = "BTC"):
        payment = request.state.payment
        return {"symbol": symbol, "quote": "42000.00", "paid_by": request.state.wallet, "amount": payment.amount}

    return app


settings = load_settings()
app = create_app(settings)
