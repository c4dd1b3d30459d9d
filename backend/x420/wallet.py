"""
Local wallet-signature payment provider.

The client signs a canonical message over the payment terms with an Ethereum key
and sends the signature with the authorization. Verification recovers the
signer and compares it with the claimed wallet. Settlement spends the
authorization's nonce in a SettlementStore, so each authorization pays once.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Optional

from eth_account import Account  # type: ignore
from eth_account.messages import encode_defunct  # type: ignore

from .errors import SettlementError
from .store import SettlementStore
from .types import PaymentAuthorization, PaymentVerificationResult

logger = logging.getLogger(__name__)

DEFAULT_DOMAIN = "x420"


def canonical_message(amount: str, asset: str, wallet: str, nonce: str) -> str:
    return f"{DEFAULT_DOMAIN}|amount={amount}|asset={asset}|wallet={wallet}|nonce={nonce}"


def sign_authorization(
    amount: str, asset: str, private_key: Any, nonce: Optional[str] = None, **extra: Any
) -> PaymentAuthorization:
    acct = Account.from_key(private_key)
    nonce = nonce or str(uuid.uuid4())
    msg = canonical_message(amount, asset, acct.address, nonce)
    signed = Account.sign_message(encode_defunct(text=msg), private_key=acct.key)
    return PaymentAuthorization(
        amount=amount,
        asset=asset,
        wallet=acct.address,
        signature=signed.signature.hex(),
        nonce=nonce,
        **extra,
    )


class WalletPaymentProvider:
    def __init__(self, store: SettlementStore, ttl_seconds: int = 86400):
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def verify_payment(self, authorization: PaymentAuthorization) -> PaymentVerificationResult:
        nonce = authorization.extension("nonce")
        if not isinstance(nonce, str) or not nonce:
            return PaymentVerificationResult(valid=False, error="authorization nonce missing")

        msg = canonical_message(authorization.amount, authorization.asset, authorization.wallet, nonce)
        try:
            recovered = Account.recover_message(encode_defunct(text=msg), signature=authorization.signature)
        except Exception as e:
            logger.info("signature recover failed wallet=%s: %s", authorization.wallet, e)
            return PaymentVerificationResult(valid=False, error="signature recover failed")

        if recovered.lower() != authorization.wallet.lower():
            return PaymentVerificationResult(valid=False, error="signature does not match wallet")

        # store calls may hit Redis; run them off the event loop
        if await asyncio.to_thread(self.store.is_redeemed, nonce):
            return PaymentVerificationResult(valid=False, error="authorization already redeemed")

        return PaymentVerificationResult(
            valid=True,
            wallet=recovered,
            amount=authorization.amount,
            asset=authorization.asset,
        )

    async def settle_payment(self, authorization: PaymentAuthorization) -> None:
        nonce = authorization.extension("nonce")
        if not isinstance(nonce, str) or not nonce:
            raise SettlementError("authorization nonce missing")
        receipt_id = await asyncio.to_thread(self.store.redeem, nonce, authorization.wallet, self.ttl_seconds)
        logger.info("redeemed nonce=%s wallet=%s receipt=%s", nonce, authorization.wallet, receipt_id)
