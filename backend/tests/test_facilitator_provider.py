import json

import httpx
import pytest

from backend.x420.errors import SettlementError
from backend.x420.facilitator import FacilitatorPaymentProvider
from backend.x420.types import PaymentAuthorization

AUTH = PaymentAuthorization(amount="100", asset="USDC", signature="0xsig", wallet="0xabc", nonce="n1")


def _provider(handler):
    return FacilitatorPaymentProvider(
        "https://facilitator.example/",
        headers={"Authorization": "Bearer t"},
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_verify_posts_authorization():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"valid": True, "wallet": "0xabc", "amount": "100", "asset": "USDC"})

    provider = _provider(handler)
    result = await provider.verify_payment(AUTH)
    await provider.close()

    assert result.valid and result.wallet == "0xabc"
    assert seen["url"] == "https://facilitator.example/verify"
    assert seen["auth"] == "Bearer t"
    assert seen["body"]["nonce"] == "n1"


@pytest.mark.asyncio
async def test_verify_http_error_is_invalid():
    provider = _provider(lambda request: httpx.Response(503, text="down"))
    result = await provider.verify_payment(AUTH)
    assert not result.valid
    assert "503" in result.error


@pytest.mark.asyncio
async def test_settle_success():
    provider = _provider(lambda request: httpx.Response(200, json={"success": True}))
    await provider.settle_payment(AUTH)


@pytest.mark.asyncio
async def test_settle_unsuccessful_raises():
    provider = _provider(lambda request: httpx.Response(200, json={"success": False, "error": "insufficient funds"}))
    with pytest.raises(SettlementError, match="insufficient funds"):
        await provider.settle_payment(AUTH)


@pytest.mark.asyncio
async def test_settle_http_error_raises():
    provider = _provider(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(SettlementError):
        await provider.settle_payment(AUTH)
