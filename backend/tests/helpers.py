from unittest.mock import AsyncMock, MagicMock

from fastapi import FastAPI, Request

from backend.x420.config import X420Options
from backend.x420.middleware import install_x420
from backend.x420.types import PaymentVerificationResult

PRICE_MAP = {
    "/paid": {"price": "100", "asset": "USDC"},
    "/premium/quote": {"price": "25", "asset": "USDC"},
}


def make_provider(result=None, settle_error=None):
    provider = MagicMock()
    provider.verify_payment = AsyncMock(
        return_value=result or PaymentVerificationResult(valid=True, wallet="0xabc", amount="100", asset="USDC")
    )
    provider.settle_payment = AsyncMock(side_effect=settle_error)
    return provider


def make_app(provider, price_map=None, **options):
    app = FastAPI()
    app.state.downstream_calls = []

    @app.get("/paid")
    async def paid(request: Request):
        app.state.downstream_calls.append(request.url.path)
        return {"wallet": request.state.wallet, "payment": request.state.payment.model_dump()}

    @app.api_route("/free", methods=["GET", "POST"])
    async def free():
        app.state.downstream_calls.append("/free")
        return {"free": True}

    install_x420(app, X420Options(payment_provider=provider, price_map=price_map or PRICE_MAP, **options))
    return app
