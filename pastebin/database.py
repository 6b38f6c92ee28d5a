"""
Database layer for paste storage.

Two backends share one contract: Redis (hash per paste, optimistic
WATCH/MULTI transactions) and a sharded in-memory store used for development,
tests, or when Redis is unavailable. Every read path re-checks expiry;
background purging only reclaims memory.
"""
import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, NamedTuple, Optional

from redis import Redis
from redis.exceptions import ConnectionError, RedisError, WatchError

from pastebin.config import settings
from pastebin.exceptions import KeyCollision, StorageError
from pastebin.models import PasteRecord
from pastebin.policy import AccessMode

logger = logging.getLogger(__name__)

KEY_PREFIX = "paste:"


def _get_current_time() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


def resolve_now(now: Optional[datetime] = None) -> datetime:
    """Current time when now is None; naive datetimes are taken as UTC."""
    if now is None:
        return _get_current_time()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


class LookupStatus(str, Enum):
    FOUND = "found"
    MISSING = "missing"
    EXPIRED = "expired"


class Lookup(NamedTuple):
    status: LookupStatus
    record: Optional[PasteRecord] = None


MISSING = Lookup(LookupStatus.MISSING)
EXPIRED = Lookup(LookupStatus.EXPIRED)


class BaseStore:
    """Shared read paths. Backends implement put, lookup, purge_expired, ping."""

    name = "base"

    def put(self, record: PasteRecord, now: Optional[datetime] = None) -> None:
        raise NotImplementedError

    def lookup(self, key: str, mode: AccessMode, now: Optional[datetime] = None) -> Lookup:
        raise NotImplementedError

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        raise NotImplementedError

    def ping(self) -> bool:
        raise NotImplementedError

    def get_normal(self, key: str, now: Optional[datetime] = None) -> Optional[PasteRecord]:
        """View read. Burn-after-reading pastes are removed by the read that returns them."""
        return self.lookup(key, AccessMode.VIEW, now).record

    def get_raw(self, key: str, now: Optional[datetime] = None) -> Optional[PasteRecord]:
        return self.lookup(key, AccessMode.RAW, now).record

    def get_download(self, key: str, now: Optional[datetime] = None) -> Optional[PasteRecord]:
        return self.lookup(key, AccessMode.DOWNLOAD, now).record


class _Shard:
    __slots__ = ("lock", "pastes")

    def __init__(self):
        self.lock = threading.Lock()
        self.pastes: Dict[str, PasteRecord] = {}


class InMemoryStore(BaseStore):
    """Sharded in-memory store; each shard is guarded by its own lock."""

    name = "memory"

    def __init__(self, shard_count: int = 16):
        if shard_count < 1:
            raise ValueError("shard_count must be >= 1")
        self._shards: List[_Shard] = [_Shard() for _ in range(shard_count)]

    def _shard_for(self, key: str) -> _Shard:
        return self._shards[hash(key) % len(self._shards)]

    def put(self, record: PasteRecord, now: Optional[datetime] = None) -> None:
        now = resolve_now(now)
        shard = self._shard_for(record.key)
        with shard.lock:
            existing = shard.pastes.get(record.key)
            if existing is not None and not existing.is_expired(now):
                raise KeyCollision(record.key)
            shard.pastes[record.key] = record

    def lookup(self, key: str, mode: AccessMode, now: Optional[datetime] = None) -> Lookup:
        now = resolve_now(now)
        shard = self._shard_for(key)
        with shard.lock:
            record = shard.pastes.get(key)
            if record is None:
                return MISSING
            if record.is_expired(now):
                if mode.consumes:
                    del shard.pastes[key]
                return EXPIRED
            if mode.consumes and record.burn_after_reading:
                # Present -> Consumed, under the same lock as the checks above
                del shard.pastes[key]
            return Lookup(LookupStatus.FOUND, record)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        now = resolve_now(now)
        purged = 0
        for shard in self._shards:
            with shard.lock:
                expired = [k for k, r in shard.pastes.items() if r.is_expired(now)]
                for key in expired:
                    del shard.pastes[key]
                purged += len(expired)
        return purged

    def ping(self) -> bool:
        """Health check."""
        return True

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.pastes)
        return total


def _serialize(record: PasteRecord) -> Dict[str, str]:
    data = {
        "content": record.content,
        "syntax": record.syntax,
        "burn_after_reading": "1" if record.burn_after_reading else "0",
        "created_at": record.created_at.isoformat(),
    }
    if record.expire_at is not None:
        data["expire_at"] = record.expire_at.isoformat()
    return data


def _deserialize(key: str, data: Dict[str, str]) -> PasteRecord:
    expire_at = data.get("expire_at")
    return PasteRecord(
        key=key,
        content=data["content"],
        syntax=data.get("syntax", settings.DEFAULT_SYNTAX),
        burn_after_reading=data.get("burn_after_reading") == "1",
        expire_at=datetime.fromisoformat(expire_at) if expire_at else None,
        created_at=datetime.fromisoformat(data["created_at"]),
    )


class RedisStore(BaseStore):
    """Redis-backed store. One hash per paste under ``paste:{key}``."""

    name = "redis"

    def __init__(self, redis: Redis):
        self.redis = redis

    @staticmethod
    def _redis_key(key: str) -> str:
        return f"{KEY_PREFIX}{key}"

    def put(self, record: PasteRecord, now: Optional[datetime] = None) -> None:
        now = resolve_now(now)
        redis_key = self._redis_key(record.key)
        try:
            with self.redis.pipeline() as pipe:
                pipe.watch(redis_key)
                existing = pipe.hgetall(redis_key)
                if existing and not _deserialize(record.key, existing).is_expired(now):
                    raise KeyCollision(record.key)
                pipe.multi()
                pipe.delete(redis_key)
                pipe.hset(redis_key, mapping=_serialize(record))
                if record.expire_at is not None:
                    ttl_ms = int((record.expire_at - now).total_seconds() * 1000)
                    pipe.pexpire(redis_key, max(ttl_ms, 1))
                pipe.execute()
        except WatchError:
            # Someone else wrote the key between WATCH and EXEC
            raise KeyCollision(record.key)
        except RedisError as e:
            logger.error(f"Error saving paste {record.key}: {type(e).__name__}: {e}")
            raise StorageError(f"Failed to save paste {record.key}") from e

    def lookup(self, key: str, mode: AccessMode, now: Optional[datetime] = None) -> Lookup:
        now = resolve_now(now)
        redis_key = self._redis_key(key)
        try:
            with self.redis.pipeline() as pipe:
                pipe.watch(redis_key)
                data = pipe.hgetall(redis_key)
                if not data:
                    return MISSING
                record = _deserialize(key, data)
                expired = record.is_expired(now)
                if mode.consumes and (expired or record.burn_after_reading):
                    pipe.multi()
                    pipe.delete(redis_key)
                    pipe.execute()
                if expired:
                    return EXPIRED
                return Lookup(LookupStatus.FOUND, record)
        except WatchError:
            # Another reader consumed (or reclaimed) the paste first
            return MISSING
        except RedisError as e:
            logger.error(f"Error fetching paste {key}: {type(e).__name__}: {e}")
            raise StorageError(f"Failed to fetch paste {key}") from e

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        now = resolve_now(now)
        purged = 0
        try:
            for redis_key in self.redis.scan_iter(match=f"{KEY_PREFIX}*"):
                with self.redis.pipeline() as pipe:
                    pipe.watch(redis_key)
                    data = pipe.hgetall(redis_key)
                    if not data:
                        continue
                    key = redis_key[len(KEY_PREFIX):]
                    if not _deserialize(key, data).is_expired(now):
                        continue
                    pipe.multi()
                    pipe.delete(redis_key)
                    try:
                        pipe.execute()
                    except WatchError:
                        continue
                    purged += 1
        except RedisError as e:
            logger.error(f"Error purging expired pastes: {type(e).__name__}: {e}")
            raise StorageError("Failed to purge expired pastes") from e
        return purged

    def ping(self) -> bool:
        return bool(self.redis.ping())


class PasteDatabase:
    """Selects a storage backend and exposes the paste store contract."""

    def __init__(self, store: Optional[BaseStore] = None):
        """Use the given store, else connect to Redis and fall back to memory."""
        self.using_fallback = False
        if store is not None:
            self.store = store
        elif settings.STORAGE_BACKEND == "memory":
            logger.info("Using in-memory paste storage")
            self.store = InMemoryStore(settings.SHARD_COUNT)
        else:
            self.store = self._connect_redis()

    def _connect_redis(self) -> BaseStore:
        try:
            logger.info(f"Attempting to connect to Redis: {settings.REDIS_URL[:30]}...")
            redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
            redis.ping()
            logger.info("Redis connected successfully")
            return RedisStore(redis)
        except ConnectionError as e:
            logger.error(f"ConnectionError connecting to Redis: {type(e).__name__}: {str(e)}")
        except RedisError as e:
            logger.error(f"Unexpected error connecting to Redis: {type(e).__name__}: {str(e)}")
        logger.warning("Using in-memory fallback. Data will NOT persist across restarts.")
        self.using_fallback = True
        return InMemoryStore(settings.SHARD_COUNT)

    @property
    def backend(self) -> str:
        return self.store.name

    def is_healthy(self) -> bool:
        """Check if the storage backend is alive."""
        try:
            return self.store.ping()
        except RedisError as e:
            logger.error(f"Health check failed: {e}")
        return False

    def put(self, record: PasteRecord, now: Optional[datetime] = None) -> None:
        self.store.put(record, now)
        logger.info(f"Paste {record.key} saved successfully")

    def lookup(self, key: str, mode: AccessMode, now: Optional[datetime] = None) -> Lookup:
        return self.store.lookup(key, mode, now)

    def get_normal(self, key: str, now: Optional[datetime] = None) -> Optional[PasteRecord]:
        return self.store.get_normal(key, now)

    def get_raw(self, key: str, now: Optional[datetime] = None) -> Optional[PasteRecord]:
        return self.store.get_raw(key, now)

    def get_download(self, key: str, now: Optional[datetime] = None) -> Optional[PasteRecord]:
        return self.store.get_download(key, now)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        purged = self.store.purge_expired(now)
        if purged:
            logger.info(f"Purged {purged} expired pastes")
        return purged


# Global database instance
db = PasteDatabase()
