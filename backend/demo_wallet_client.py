from __future__ import annotations

import asyncio
import json
from typing import List, Tuple

import httpx
from eth_account import Account  # type: ignore

from .x420.config import DEFAULT_PAYMENT_HEADER, DEFAULT_PRICE_DISCOVERY_PATH
from .x420.wallet import sign_authorization

API_BASE = "http://127.0.0.1:8000"


def timeline_print(events: List[Tuple[str, str]]):
    print("\n=== Payment Timeline ===")
    for i, (label, detail) in enumerate(events, 1):
        print(f"[{i}] {label:<18} {detail}")
    print("========================\n")


async def call_with_wallet(path: str, privkey_hex: str):
    events: List[Tuple[str, str]] = []
    async with httpx.AsyncClient(base_url=API_BASE) as client:
        res = await client.get(DEFAULT_PRICE_DISCOVERY_PATH)
        prices = {p["path"]: p for p in res.json()["prices"]}
        events.append(("Discovered", f"{len(prices)} priced paths"))
        if path not in prices:
            print(f"{path} is not priced; nothing to pay")
            return

        res = await client.get(path)
        events.append(("Unpaid GET", f"{res.status_code} {res.json().get('message')}"))

        price = prices[path]
        auth = sign_authorization(price["price"], price["asset"], privkey_hex)
        events.append(("Signed", f"{auth.amount} {auth.asset} wallet={auth.wallet}"))

        headers = {DEFAULT_PAYMENT_HEADER: auth.model_dump_json()}
        res2 = await client.get(path, headers=headers)
        events.append(("Paid GET", str(res2.status_code)))
        print(json.dumps(res2.json(), indent=2)[:400])

        # replay attempt
        res3 = await client.get(path, headers=headers)
        events.append(("Replay", f"{res3.status_code} {res3.json().get('message')}"))
        timeline_print(events)


async def main():
    acct = Account.create()
    print("Ephemeral wallet:", acct.address)
    await call_with_wallet("/premium/report", acct.key.hex())


if __name__ == "__main__":
    asyncio.run(main())
