from __future__ import annotations

from typing import List

from fastapi import Request
from fastapi.responses import JSONResponse

from .config import X420Options
from .types import PriceDiscoveryResponse, PriceMap, ResourcePrice


def list_prices(price_map: PriceMap) -> List[ResourcePrice]:
    return [ResourcePrice(path=path, price=info.price, asset=info.asset) for path, info in price_map.items()]


def create_price_discovery_handler(options: X420Options):
    """Serve the price list on the discovery path; pass every other request through."""
    discovery_path = options.price_discovery_path

    async def price_discovery(request: Request, call_next):
        if request.url.path != discovery_path:
            return await call_next(request)

        body = PriceDiscoveryResponse(prices=list_prices(options.price_map))
        return JSONResponse(body.model_dump(), status_code=200)

    return price_discovery
