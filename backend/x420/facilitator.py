"""
FacilitatorPaymentProvider - verify and settle through a remote facilitator service
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from .errors import SettlementError
from .types import PaymentAuthorization, PaymentVerificationResult

logger = logging.getLogger(__name__)


class FacilitatorPaymentProvider:
    """
    Payment provider backed by a facilitator HTTP API.

    POST /verify  body: authorization JSON  -> {valid, wallet?, amount?, asset?, error?}
    POST /settle  body: authorization JSON  -> {success, error?}

    Transport errors and timeouts propagate to the caller.
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def verify_payment(self, authorization: PaymentAuthorization) -> PaymentVerificationResult:
        client = self._get_client()
        response = await client.post("/verify", json=authorization.model_dump())
        if response.status_code >= 400:
            logger.warning("facilitator verify returned %s: %s", response.status_code, response.text[:200])
            return PaymentVerificationResult(valid=False, error=f"Facilitator verify failed ({response.status_code})")
        return PaymentVerificationResult.model_validate(response.json())

    async def settle_payment(self, authorization: PaymentAuthorization) -> None:
        client = self._get_client()
        response = await client.post("/settle", json=authorization.model_dump())
        if response.status_code >= 400:
            raise SettlementError(f"Facilitator settle failed ({response.status_code}): {response.text[:200]}")
        data = response.json()
        if not data.get("success", False):
            raise SettlementError(data.get("error") or "Facilitator reported unsuccessful settlement")
