# authapi/infra/redis/redis_single_use_token_store.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

import redis  # type: ignore[import-untyped]

from authapi.services._shared.ports import (
    InsertResult,
    SingleUseTokenStore,
    SingleUseTokenView,
)

log = logging.getLogger(__name__)


@dataclass(slots=True)
class RedisSingleUseTokenStore(SingleUseTokenStore):
    """
    Redis-backed single-use token store.

    One string key per code (``sut:<code>``) holding a JSON record, created
    with ``SET NX EX`` so uniqueness and expiry are enforced by Redis itself.
    A per-user set (``sut:u:<user_id>``) indexes codes for account deletion.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k(code: str) -> str:
        return f"sut:{code}"

    @staticmethod
    def _ku(user_id: int) -> str:
        return f"sut:u:{user_id}"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        return int(dt.astimezone(UTC).timestamp())

    @staticmethod
    def _decode(raw: bytes | str | None) -> dict | None:
        if raw is None:
            return None
        if isinstance(raw, bytes | bytearray):
            raw = raw.decode()
        return json.loads(raw)

    # -------------------- API ------------------------

    def code_is_live(self, code: str, *, now: datetime) -> bool:
        return bool(self.r.exists(self._k(code)))

    def insert(
        self, *, code: str, user_id: int, token_type: str, expires_at: datetime
    ) -> InsertResult:
        ttl = max(1, self._to_ts(expires_at) - self._to_ts(datetime.now(UTC)))
        record = json.dumps(
            {"user_id": user_id, "token_type": token_type, "expires_at": self._to_ts(expires_at)}
        )
        created = self.r.set(self._k(code), record, nx=True, ex=ttl)
        if not created:
            return InsertResult.DUPLICATE
        # The code key is the source of truth; the user index may hold stale codes.
        self.r.sadd(self._ku(user_id), code)
        return InsertResult.OK

    def take(self, code: str, token_type: str, *, now: datetime) -> SingleUseTokenView | None:
        """
        Atomically consume ``code`` using WATCH/MULTI/EXEC.

        A concurrent consumer that deletes the key between our read and EXEC
        aborts the transaction; the retry then finds nothing.
        """
        key = self._k(code)
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    record = self._decode(p.get(key))
                    if record is None or record.get("token_type") != token_type:
                        p.unwatch()
                        return None

                    p.multi()
                    p.delete(key)
                    p.srem(self._ku(int(record["user_id"])), code)
                    deleted, _ = p.execute()

                if not deleted:
                    return None
                expires_at = datetime.fromtimestamp(int(record["expires_at"]), tz=UTC)
                if expires_at <= now.astimezone(UTC):
                    return None
                return SingleUseTokenView(
                    code=code,
                    user_id=int(record["user_id"]),
                    token_type=token_type,
                    expires_at=expires_at,
                )
            except redis.WatchError:
                # Concurrent modification detected; retry loop
                continue

    def delete_for_user(self, user_id: int, token_type: str | None = None) -> int:
        key_u = self._ku(user_id)
        codes = [
            member.decode() if isinstance(member, bytes | bytearray) else str(member)
            for member in self.r.smembers(key_u)
        ]
        if token_type is not None:
            records = {c: self._decode(self.r.get(self._k(c))) or {} for c in codes}
            codes = [c for c, rec in records.items() if rec.get("token_type") == token_type]
        if not codes:
            return 0
        pipe = self.r.pipeline(transaction=True)
        for code in codes:
            pipe.delete(self._k(code))
        pipe.srem(key_u, *codes)
        out = pipe.execute()
        return int(sum(out[:-1]))

    def purge_expired(self, *, now: datetime) -> int:
        # Keys carry their own TTL; nothing to sweep.
        log.debug("redis token store relies on key expiry; purge is a no-op")
        return 0
