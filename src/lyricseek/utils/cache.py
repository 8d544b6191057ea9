"""Cache stores for accepted lyrics results."""

import asyncio
import json
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..config import CACHE_FILENAME, CACHE_TTL_DAYS, get_cache_dir
from ..core.models import CacheEntry
from ..exceptions import CacheError
from ..utils.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def expiry_from_now(ttl_days: int = CACHE_TTL_DAYS, now: Optional[datetime] = None) -> datetime:
    """Absolute expiry for an entry written now."""
    return (now or utc_now()) + timedelta(days=ttl_days)


class CacheStore(ABC):
    """Keyed, TTL-based store with upsert writes.

    ``get`` treats expired entries as absent without deleting them and counts
    every hit. ``upsert`` replaces whatever was stored under the key.
    """

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        ...

    @abstractmethod
    async def upsert(self, entry: CacheEntry) -> None:
        ...

    @abstractmethod
    def stats(self) -> Dict[str, Any]:
        ...

    @abstractmethod
    def clear(self) -> int:
        ...

    def _is_live(self, entry: Optional[CacheEntry]) -> bool:
        return entry is not None and not entry.is_expired(self._clock())


class InMemoryCacheStore(CacheStore):
    """Process-local store, used in tests and when no cache dir is wanted."""

    def __init__(self, clock: Clock = utc_now):
        super().__init__(clock)
        self._entries: Dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if not self._is_live(entry):
            return None
        entry.hit_count += 1
        return replace(entry)

    async def upsert(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = replace(entry)

    def stats(self) -> Dict[str, Any]:
        now = self._clock()
        live = sum(1 for e in self._entries.values() if not e.is_expired(now))
        return {
            "entries": len(self._entries),
            "live_entries": live,
            "total_hits": sum(e.hit_count for e in self._entries.values()),
            "location": "memory",
        }

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count


class JsonFileCacheStore(CacheStore):
    """Single JSON document on disk, keyed by cache key.

    Reads and writes go through a worker thread and are serialized by a lock;
    concurrent writers to the same key resolve as last-writer-wins.
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        filename: str = CACHE_FILENAME,
        clock: Clock = utc_now,
    ):
        super().__init__(clock)
        self.cache_dir = Path(cache_dir) if cache_dir else get_cache_dir()
        self.path = self.cache_dir / filename
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load lyrics cache {self.path}: {e}")
            return {}
        return data.get("entries", {}) if isinstance(data, dict) else {}

    def _save(self, entries: Dict[str, Dict[str, Any]]) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump({"entries": entries}, f, indent=2, ensure_ascii=False)
            tmp_path.replace(self.path)
        except OSError as e:
            raise CacheError(f"Failed to save lyrics cache: {e}")

    def _get_sync(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            entries = self._load()
            raw = entries.get(key)
            if raw is None:
                return None
            try:
                entry = CacheEntry.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring malformed cache entry {key}: {e}")
                return None
            if not self._is_live(entry):
                return None
            entry.hit_count += 1
            entries[key] = entry.to_dict()
            try:
                self._save(entries)
            except CacheError as e:
                # The read still succeeds when the hit counter cannot be persisted
                logger.warning(str(e))
            return entry

    def _upsert_sync(self, entry: CacheEntry) -> None:
        with self._lock:
            entries = self._load()
            entries[entry.key] = entry.to_dict()
            self._save(entries)
        logger.debug(f"Cached lyrics for {entry.key} from {entry.source}")

    async def get(self, key: str) -> Optional[CacheEntry]:
        return await asyncio.to_thread(self._get_sync, key)

    async def upsert(self, entry: CacheEntry) -> None:
        await asyncio.to_thread(self._upsert_sync, entry)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            entries = self._load()
        now = self._clock()
        live = 0
        hits = 0
        for raw in entries.values():
            try:
                entry = CacheEntry.from_dict(raw)
            except (KeyError, TypeError, ValueError):
                continue
            hits += entry.hit_count
            if not entry.is_expired(now):
                live += 1
        return {
            "entries": len(entries),
            "live_entries": live,
            "total_hits": hits,
            "location": str(self.path),
        }

    def clear(self) -> int:
        with self._lock:
            count = len(self._load())
            if self.path.exists():
                self.path.unlink()
        logger.info(f"Cleared {count} cached lyrics entries")
        return count
