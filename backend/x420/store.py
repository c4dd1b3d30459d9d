from __future__ import annotations

import json
import threading
import time
import uuid
from typing import Any, Dict, Optional

import redis

from .errors import SettlementError


class SettlementStore:
    def redeem(self, nonce: str, wallet: str, ttl_seconds: int) -> str:  # pragma: no cover - interface
        """Mark a nonce as spent and return a receipt id. Raise SettlementError if already spent."""
        raise NotImplementedError

    def is_redeemed(self, nonce: str) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    def get_receipt(self, receipt_id: str) -> Optional[Dict[str, Any]]:  # pragma: no cover - interface
        raise NotImplementedError


class InMemoryStore(SettlementStore):
    def __init__(self):
        self._redeemed: Dict[str, float] = {}
        self._receipts: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        expired = [n for n, expires_at in self._redeemed.items() if now > expires_at]
        for n in expired:
            self._redeemed.pop(n, None)
        stale = [rid for rid, rec in self._receipts.items() if now > rec["expires_at"]]
        for rid in stale:
            self._receipts.pop(rid, None)

    def redeem(self, nonce: str, wallet: str, ttl_seconds: int) -> str:
        with self._lock:
            now = time.time()
            self._prune(now)
            if nonce in self._redeemed:
                raise SettlementError("authorization already redeemed")
            expires_at = now + ttl_seconds
            self._redeemed[nonce] = expires_at
            receipt_id = str(uuid.uuid4())
            self._receipts[receipt_id] = {"nonce": nonce, "wallet": wallet, "ts": now, "expires_at": expires_at}
            return receipt_id

    def is_redeemed(self, nonce: str) -> bool:
        with self._lock:
            self._prune(time.time())
            return nonce in self._redeemed

    def get_receipt(self, receipt_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            self._prune(time.time())
            return self._receipts.get(receipt_id)


class RedisStore(SettlementStore):
    def __init__(self, client: "redis.Redis"):
        self._r = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        return cls(redis.Redis.from_url(url))

    def redeem(self, nonce: str, wallet: str, ttl_seconds: int) -> str:
        ttl = max(1, int(ttl_seconds))
        nonce_key = f"x420:nonce:{nonce}"
        pipe = self._r.pipeline()
        try:
            pipe.watch(nonce_key)
            if pipe.exists(nonce_key):
                pipe.unwatch()
                raise SettlementError("authorization already redeemed")
            receipt_id = str(uuid.uuid4())
            record = json.dumps({"nonce": nonce, "wallet": wallet, "ts": time.time()})
            # nonce and receipt are written in one MULTI/EXEC
            pipe.multi()
            pipe.set(nonce_key, receipt_id, ex=ttl)
            pipe.set(f"x420:receipt:{receipt_id}", record, ex=ttl)
            pipe.execute()
            return receipt_id
        except redis.WatchError as e:
            raise SettlementError("authorization already redeemed") from e
        finally:
            pipe.reset()

    def is_redeemed(self, nonce: str) -> bool:
        return bool(self._r.exists(f"x420:nonce:{nonce}"))

    def get_receipt(self, receipt_id: str) -> Optional[Dict[str, Any]]:
        raw = self._r.get(f"x420:receipt:{receipt_id}")
        if not raw:
            return None
        return json.loads(raw)
