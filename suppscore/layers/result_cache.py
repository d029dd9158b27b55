"""
Result Cache - persists ChainResults per URL for 24 hours.

Backed by a small async key/value storage interface so a persistent store
can replace the in-memory default. Every storage failure is logged and
treated as a miss; the cache never breaks a round trip.
"""
import hashlib
import time
from typing import Callable, Dict, Optional, Protocol

from pydantic import ValidationError

from suppscore.config import config
from suppscore.models.chain import CachedEntry, ChainResult
from suppscore.utils.logger import LayerLogger


KEY_PREFIX = "chain_extract_to_score_"


class KeyValueStorage(Protocol):
    async def get_item(self, key: str) -> Optional[str]: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...


class InMemoryStorage:
    """Process-local storage."""

    def __init__(self):
        self._items: Dict[str, str] = {}

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __len__(self) -> int:
        return len(self._items)


def url_hash(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def cache_key(url: str) -> str:
    return KEY_PREFIX + url_hash(url)


class ResultCache:
    """
    TTL cache of ChainResults keyed by URL hash.

    Entries are stored as JSON, so every ``get`` returns a fresh copy that
    callers may mutate freely.
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage if storage is not None else InMemoryStorage()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.CACHE_TTL_SECONDS
        self._clock = clock
        self.logger = LayerLogger("result_cache")

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def get(self, url: str) -> Optional[ChainResult]:
        """Cached result for ``url``, or None on miss, expiry or storage failure."""
        key = cache_key(url)
        try:
            raw = await self.storage.get_item(key)
        except Exception as e:
            self.logger.log_error(str(e), error_type="cache_read_failed", url=url)
            return None
        if raw is None:
            return None

        try:
            entry = CachedEntry.model_validate_json(raw)
        except ValidationError as e:
            self.logger.log_error(str(e)[:300], error_type="cache_entry_invalid", url=url)
            await self._remove(key, url)
            return None

        age_ms = self._now_ms() - entry.timestamp
        if age_ms >= self.ttl_seconds * 1000:
            self.logger.log_decision("evict_cache_entry", "ttl expired", url=url, age_ms=age_ms)
            await self._remove(key, url)
            return None

        self.logger.log_action("cache_lookup", "hit", url=url, age_ms=age_ms)
        return entry.data

    async def set(self, url: str, result: ChainResult) -> bool:
        """Store ``result``. Trivial results are skipped. Returns True when written."""
        if result.is_trivial():
            self.logger.log_decision("skip_cache", "trivial result", url=url)
            return False

        entry = CachedEntry(data=result, timestamp=self._now_ms())
        try:
            await self.storage.set_item(cache_key(url), entry.model_dump_json(by_alias=True))
        except Exception as e:
            self.logger.log_error(str(e), error_type="cache_write_failed", url=url)
            return False
        return True

    async def _remove(self, key: str, url: str) -> None:
        try:
            await self.storage.remove_item(key)
        except Exception as e:
            self.logger.log_error(str(e), error_type="cache_remove_failed", url=url)
