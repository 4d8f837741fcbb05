"""Redis-backed append-only event store.

Events are stored as JSON strings keyed by ``{prefix}:event:{id}`` and
written with ``SET NX`` so an id can never be overwritten.  A sorted set
``{prefix}:order`` records insertion order (score = insertion sequence
from ``INCR {prefix}:seq``).  All three are written by one server-side
script, so a commit either lands completely or not at all.  Keys carry no
TTL: the ledger never expires.
"""

from __future__ import annotations

import logging

from redis.asyncio import Redis  # type: ignore[import-untyped]

from auditmcp.errors import InvalidEvent
from auditmcp.ledger.policy import PolicyGuard
from auditmcp.ledger.store import EventPredicate
from auditmcp.ledger.store import EventStore
from auditmcp.ledger.store import format_event_id
from auditmcp.ledger.store import order_newest_first
from auditmcp.models.events import AuditEvent

logger = logging.getLogger(__name__)

_SCAN_BATCH_SIZE = 500

# KEYS: event key, sequence counter, order zset. ARGV: event JSON, event id.
# Returns 0 when the id is taken, else the insertion sequence.
_COMMIT_SCRIPT = """
if not redis.call("SET", KEYS[1], ARGV[1], "NX") then
    return 0
end
local seq = redis.call("INCR", KEYS[2])
redis.call("ZADD", KEYS[3], seq, ARGV[2])
return seq
"""


def _decode(raw: bytes | str) -> str:
    return raw.decode() if isinstance(raw, bytes) else raw


class RedisEventStore(EventStore):
    """Ledger persisted in Redis, shared by every process using the same prefix."""

    def __init__(
        self,
        redis: Redis,
        *,
        key_prefix: str = "auditmcp",
        guard: PolicyGuard | None = None,
    ) -> None:
        super().__init__(guard)
        self._redis = redis
        self._prefix = key_prefix
        self._event_key = f"{key_prefix}:event"
        self._order_key = f"{key_prefix}:order"
        self._seq_key = f"{key_prefix}:seq"
        self._id_seq_key = f"{key_prefix}:id_seq"
        self._commit_script = redis.register_script(_COMMIT_SCRIPT)

    # -- write --

    async def _contains(self, event_id: str) -> bool:
        return bool(await self._redis.exists(f"{self._event_key}:{event_id}"))

    async def _commit(self, event: AuditEvent) -> None:
        # Event key, sequence and order index are written in one script so a
        # failed commit never leaves a readable but unindexed event.
        sequence = await self._commit_script(
            keys=[f"{self._event_key}:{event.id}", self._seq_key, self._order_key],
            args=[event.model_dump_json(), event.id],
        )
        if not sequence:
            # Another process committed the same id between check and write.
            raise InvalidEvent(f"duplicate event id {event.id}")

    async def next_event_id(self) -> str:
        while True:
            candidate = format_event_id(await self._redis.incr(self._id_seq_key))
            if not await self._contains(candidate):
                return candidate

    # -- read --

    async def get(self, event_id: str) -> AuditEvent | None:
        data = await self._redis.get(f"{self._event_key}:{event_id}")
        if data is None:
            return None
        return AuditEvent.model_validate_json(data)

    async def scan(self, predicate: EventPredicate | None = None) -> list[AuditEvent]:
        ordered = await self._redis.zrange(self._order_key, 0, -1, withscores=True)
        entries: list[tuple[int, AuditEvent]] = []
        for start in range(0, len(ordered), _SCAN_BATCH_SIZE):
            batch = ordered[start : start + _SCAN_BATCH_SIZE]
            pipe = self._redis.pipeline()
            for raw_id, _ in batch:
                pipe.get(f"{self._event_key}:{_decode(raw_id)}")
            raw_results = await pipe.execute()
            for (raw_id, score), raw in zip(batch, raw_results):
                if raw is None:
                    logger.warning(
                        "Audit event %s is indexed but missing", _decode(raw_id)
                    )
                    continue
                event = AuditEvent.model_validate_json(raw)
                if predicate is None or predicate(event):
                    entries.append((int(score), event))
        return order_newest_first(entries)

    async def count(self) -> int:
        return await self._redis.zcard(self._order_key)

    async def clear(self) -> None:
        """Remove every key under this store's prefix (test helper)."""
        batch: list = []
        async for key in self._redis.scan_iter(match=f"{self._prefix}:*"):
            batch.append(key)
            if len(batch) >= _SCAN_BATCH_SIZE:
                await self._redis.delete(*batch)
                batch.clear()
        if batch:
            await self._redis.delete(*batch)

    async def close(self) -> None:
        await self._redis.aclose()
