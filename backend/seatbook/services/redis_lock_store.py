"""
Redis lock store - one key per seat with a native expiry.

Key layout:
  seat_lock:{trip_id}:{seat_label} -> JSON {holder, created_at, expires_at, ttl_seconds}
  seat_lock:trips                  -> set of trip ids that have had locks

The key's PX expiry equals the TTL, so Redis drops abandoned locks on its
own. The stored expires_at is still checked on every read so a lock is
never treated as held past its TTL because of expiry lag.
"""

import json
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from seatbook.core.exceptions import StoreUnavailable
from seatbook.services.interfaces.lock_store import LockRecord, LockStore

LOCK_KEY_TPL = "seat_lock:{trip_id}:{seat_label}"
TRIPS_KEY = "seat_lock:trips"

# KEYS[1] lock key
# ARGV[1] new value, ARGV[2] holder, ARGV[3] now (epoch seconds), ARGV[4] ttl ms
_CAS_SET_SCRIPT = """
local current = redis.call('get', KEYS[1])
if current then
  local lock = cjson.decode(current)
  if lock['holder'] ~= ARGV[2] and tonumber(lock['expires_at']) > tonumber(ARGV[3]) then
    return 0
  end
end
redis.call('set', KEYS[1], ARGV[1], 'PX', ARGV[4])
return 1
"""

# Delete only if the holder matches
_CAS_DEL_HOLDER_SCRIPT = """
local current = redis.call('get', KEYS[1])
if not current then
  return 0
end
if cjson.decode(current)['holder'] == ARGV[1] then
  return redis.call('del', KEYS[1])
end
return 0
"""

# Delete only if the value is unchanged since it was read
_CAS_DEL_VALUE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
  return redis.call('del', KEYS[1])
end
return 0
"""

_REDIS_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


def _lock_key(trip_id: int, seat_label: str) -> str:
    return LOCK_KEY_TPL.format(trip_id=trip_id, seat_label=seat_label)


def _encode(record: LockRecord) -> str:
    return json.dumps({
        "holder": record.holder,
        "created_at": record.created_at.timestamp(),
        "expires_at": record.expires_at.timestamp(),
        "ttl_seconds": record.ttl_seconds,
    })


def _decode(trip_id: int, seat_label: str, raw: str) -> LockRecord:
    data = json.loads(raw)
    return LockRecord(
        trip_id=trip_id,
        seat_label=seat_label,
        holder=data["holder"],
        created_at=datetime.fromtimestamp(data["created_at"], tz=timezone.utc),
        ttl_seconds=int(data["ttl_seconds"]),
    )


class RedisLockStore(LockStore):
    """
    Redis-based lock store.

    Use when:
    - Many clients poll seat state at once and the database should
      only see commits
    - Native key expiry is preferred over sweeping rows
    """

    def __init__(self, client: redis.Redis):
        self.redis = client
        self._cas_set = client.register_script(_CAS_SET_SCRIPT)
        self._cas_del_holder = client.register_script(_CAS_DEL_HOLDER_SCRIPT)
        self._cas_del_value = client.register_script(_CAS_DEL_VALUE_SCRIPT)

    async def compare_and_set(
        self,
        trip_id: int,
        seat_label: str,
        holder: str,
        ttl_seconds: int,
        now: datetime,
    ) -> Optional[LockRecord]:
        record = LockRecord(
            trip_id=trip_id,
            seat_label=seat_label,
            holder=holder,
            created_at=now,
            ttl_seconds=ttl_seconds,
        )
        try:
            ok = await self._cas_set(
                keys=[_lock_key(trip_id, seat_label)],
                args=[_encode(record), holder, now.timestamp(), ttl_seconds * 1000],
            )
            if ok:
                await self.redis.sadd(TRIPS_KEY, trip_id)
        except _REDIS_ERRORS:
            raise StoreUnavailable("lock store")
        return record if ok else None

    async def get(self, trip_id: int, seat_label: str) -> Optional[LockRecord]:
        try:
            raw = await self.redis.get(_lock_key(trip_id, seat_label))
        except _REDIS_ERRORS:
            raise StoreUnavailable("lock store")
        return _decode(trip_id, seat_label, raw) if raw else None

    async def _raw_for_trip(self, trip_id: int) -> dict[str, str]:
        prefix = _lock_key(trip_id, "")
        keys = [key async for key in self.redis.scan_iter(match=f"{prefix}*", count=100)]
        if not keys:
            return {}
        values = await self.redis.mget(keys)
        # keys may expire between SCAN and MGET
        return {key[len(prefix):]: raw for key, raw in zip(keys, values) if raw is not None}

    async def list_for_trip(self, trip_id: int) -> list[LockRecord]:
        try:
            raw_locks = await self._raw_for_trip(trip_id)
        except _REDIS_ERRORS:
            raise StoreUnavailable("lock store")
        return [
            _decode(trip_id, seat_label, raw)
            for seat_label, raw in sorted(raw_locks.items())
        ]

    async def delete(self, trip_id: int, seat_label: str, holder: Optional[str] = None) -> bool:
        key = _lock_key(trip_id, seat_label)
        try:
            if holder is None:
                deleted = await self.redis.delete(key)
            else:
                deleted = await self._cas_del_holder(keys=[key], args=[holder])
        except _REDIS_ERRORS:
            raise StoreUnavailable("lock store")
        return bool(deleted)

    async def delete_expired(self, trip_id: int, now: datetime) -> int:
        deleted = 0
        try:
            raw_locks = await self._raw_for_trip(trip_id)
            for seat_label, raw in raw_locks.items():
                if _decode(trip_id, seat_label, raw).is_held(now):
                    continue
                # a renewal between read and delete changes the value and wins
                deleted += await self._cas_del_value(
                    keys=[_lock_key(trip_id, seat_label)], args=[raw]
                )
            if not raw_locks:
                await self.redis.srem(TRIPS_KEY, trip_id)
        except _REDIS_ERRORS:
            raise StoreUnavailable("lock store")
        return deleted

    async def trips_with_locks(self) -> list[int]:
        try:
            members = await self.redis.smembers(TRIPS_KEY)
        except _REDIS_ERRORS:
            raise StoreUnavailable("lock store")
        return sorted(int(member) for member in members)
