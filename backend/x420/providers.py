from __future__ import annotations

import logging
from typing import List, Optional, Protocol, runtime_checkable

from .errors import SettlementError
from .types import PaymentAuthorization, PaymentVerificationResult

logger = logging.getLogger(__name__)


@runtime_checkable
class PaymentProvider(Protocol):
    """Verify and settle capability consumed by the payment gate."""

    async def verify_payment(self, authorization: PaymentAuthorization) -> PaymentVerificationResult:
        ...

    async def settle_payment(self, authorization: PaymentAuthorization) -> None:
        """Finalize the payment. Raise on failure."""
        ...


class MockPaymentProvider:
    """
    Local stand-in for a real payment network.
    - verify accepts every authorization and echoes its terms, unless reject_reason is set.
    - settle records the authorization, or raises SettlementError when fail_settlement is set.
    """

    def __init__(self, reject_reason: Optional[str] = None, fail_settlement: bool = False):
        self.reject_reason = reject_reason
        self.fail_settlement = fail_settlement
        self.settled: List[PaymentAuthorization] = []

    async def verify_payment(self, authorization: PaymentAuthorization) -> PaymentVerificationResult:
        if self.reject_reason is not None:
            return PaymentVerificationResult(valid=False, error=self.reject_reason or None)
        return PaymentVerificationResult(
            valid=True,
            wallet=authorization.wallet,
            amount=authorization.amount,
            asset=authorization.asset,
        )

    async def settle_payment(self, authorization: PaymentAuthorization) -> None:
        if self.fail_settlement:
            raise SettlementError("mock settlement failure")
        self.settled.append(authorization)
        logger.info("mock settlement wallet=%s amount=%s %s", authorization.wallet, authorization.amount, authorization.asset)
