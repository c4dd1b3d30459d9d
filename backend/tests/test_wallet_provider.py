import asyncio
import threading

import pytest
from eth_account import Account  # type: ignore

from backend.x420.errors import SettlementError
from backend.x420.store import InMemoryStore
from backend.x420.wallet import WalletPaymentProvider, canonical_message, sign_authorization


@pytest.fixture
def acct():
    return Account.create()


@pytest.fixture
def wallet_provider():
    return WalletPaymentProvider(InMemoryStore(), ttl_seconds=60)


def test_canonical_message_is_stable():
    msg = canonical_message("100", "USDC", "0xabc", "n1")
    assert msg == "x420|amount=100|asset=USDC|wallet=0xabc|nonce=n1"


def test_sign_authorization_fills_wallet_and_nonce(acct):
    auth = sign_authorization("100", "USDC", acct.key, network="base")
    assert auth.wallet == acct.address
    assert auth.extension("nonce")
    assert auth.extension("network") == "base"


@pytest.mark.asyncio
async def test_valid_signature_verifies(wallet_provider, acct):
    auth = sign_authorization("100", "USDC", acct.key)
    result = await wallet_provider.verify_payment(auth)
    assert result.valid
    assert result.wallet == acct.address
    assert (result.amount, result.asset) == ("100", "USDC")


@pytest.mark.asyncio
async def test_tampered_amount_is_rejected(wallet_provider, acct):
    auth = sign_authorization("1", "USDC", acct.key)
    forged = auth.model_copy(update={"amount": "100"})
    result = await wallet_provider.verify_payment(forged)
    assert not result.valid
    assert result.error == "signature does not match wallet"


@pytest.mark.asyncio
async def test_other_wallet_is_rejected(wallet_provider, acct):
    auth = sign_authorization("100", "USDC", acct.key)
    other = Account.create()
    result = await wallet_provider.verify_payment(auth.model_copy(update={"wallet": other.address}))
    assert not result.valid


@pytest.mark.asyncio
async def test_garbage_signature_is_rejected(wallet_provider, acct):
    auth = sign_authorization("100", "USDC", acct.key).model_copy(update={"signature": "0x1234"})
    result = await wallet_provider.verify_payment(auth)
    assert not result.valid
    assert result.error == "signature recover failed"


@pytest.mark.asyncio
async def test_missing_nonce_is_rejected(wallet_provider, acct):
    auth = sign_authorization("100", "USDC", acct.key)
    data = auth.model_dump()
    data.pop("nonce")
    result = await wallet_provider.verify_payment(type(auth)(**data))
    assert not result.valid
    assert result.error == "authorization nonce missing"


@pytest.mark.asyncio
async def test_settle_redeems_once(wallet_provider, acct):
    auth = sign_authorization("100", "USDC", acct.key)
    await wallet_provider.settle_payment(auth)
    with pytest.raises(SettlementError):
        await wallet_provider.settle_payment(auth)

    result = await wallet_provider.verify_payment(auth)
    assert not result.valid
    assert result.error == "authorization already redeemed"


class HandshakeStore(InMemoryStore):
    """Store whose redeem only finishes once another coroutine has run."""

    def __init__(self):
        super().__init__()
        self.released = threading.Event()
        self.unblocked = False

    def redeem(self, nonce, wallet, ttl_seconds):
        self.unblocked = self.released.wait(timeout=2)
        return super().redeem(nonce, wallet, ttl_seconds)


@pytest.mark.asyncio
async def test_settle_does_not_block_event_loop(acct):
    store = HandshakeStore()
    provider = WalletPaymentProvider(store, ttl_seconds=60)
    auth = sign_authorization("100", "USDC", acct.key)

    async def release():
        await asyncio.sleep(0)
        store.released.set()

    await asyncio.gather(provider.settle_payment(auth), release())
    assert store.unblocked
    assert store.is_redeemed(auth.extension("nonce"))
