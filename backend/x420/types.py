from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict


class PriceInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    price: str
    asset: str


PriceMap = Mapping[str, PriceInfo]


class ResourcePrice(BaseModel):
    path: str
    price: str
    asset: str


class PriceDiscoveryResponse(BaseModel):
    prices: List[ResourcePrice]


class PaymentAuthorization(BaseModel):
    """
    Caller-supplied payment claim. Untrusted until a provider verifies it.

    Provider-specific keys (nonce, network, ...) are kept as extras and show up
    in ``model_extra`` and ``model_dump()``.
    """

    model_config = ConfigDict(extra="allow")

    amount: str
    asset: str
    signature: str
    wallet: str

    def extension(self, key: str) -> Optional[object]:
        return (self.model_extra or {}).get(key)


class PaymentVerificationResult(BaseModel):
    valid: bool
    wallet: Optional[str] = None
    amount: Optional[str] = None
    asset: Optional[str] = None
    error: Optional[str] = None


def coerce_price_map(raw: Mapping[str, object]) -> Dict[str, PriceInfo]:
    """Accept PriceInfo values or plain ``{"price", "asset"}`` dicts."""
    out: Dict[str, PriceInfo] = {}
    for path, info in raw.items():
        out[path] = info if isinstance(info, PriceInfo) else PriceInfo.model_validate(info)
    return out
