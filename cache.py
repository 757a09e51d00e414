# ===================================
# cache.py - Last-Known-Good Stock Cache
# ===================================

import logging
import os
import shutil
import tempfile
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional, Type

import redis
from pydantic import BaseModel, ValidationError

from model import CachedEntry, StockHistory, StockQuote

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60


class CacheKind(str, Enum):
    DETAIL = "detail"
    HISTORY = "history"


CACHE_MODELS: Dict[CacheKind, Type[BaseModel]] = {
    CacheKind.DETAIL: StockQuote,
    CacheKind.HISTORY: StockHistory,
}


class FileCacheBackend:
    """One JSON file per symbol and kind inside a cache directory"""

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, data: str, ttl: int) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp_path, self._path(key))
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def clear(self) -> None:
        shutil.rmtree(self.cache_dir, ignore_errors=True)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def size_bytes(self) -> int:
        return sum(path.stat().st_size for path in self.cache_dir.glob("*.json") if path.is_file())


class RedisCacheBackend:
    """Redis-based backend; SETEX bounds the key lifetime on the server side too"""

    prefix = "stock_cache:"

    def __init__(self, client: Optional[redis.Redis] = None, redis_url: str = "redis://localhost:6379"):
        self.client = client if client is not None else redis.from_url(redis_url, decode_responses=True)

    def read(self, key: str) -> Optional[str]:
        return self.client.get(self.prefix + key)

    def write(self, key: str, data: str, ttl: int) -> None:
        self.client.setex(self.prefix + key, ttl, data)

    def delete(self, key: str) -> None:
        self.client.delete(self.prefix + key)

    def clear(self) -> None:
        keys = list(self.client.scan_iter(match=self.prefix + "*"))
        if keys:
            self.client.delete(*keys)

    def size_bytes(self) -> int:
        return sum(self.client.strlen(key) for key in self.client.scan_iter(match=self.prefix + "*"))


class StockCache:
    """Best-effort cache of decoded quotes and histories, keyed by symbol and kind.

    Entries expire ``ttl`` seconds after they were written. Expiry is lazy: a
    stale entry is only removed when ``get`` reads it. Backend failures of any
    kind are logged and treated as a miss (reads) or ignored (writes).
    """

    def __init__(self, backend, ttl: int = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        self.backend = backend
        self.ttl = ttl
        self._clock = clock

    @staticmethod
    def get_cache_key(symbol: str, kind: CacheKind) -> str:
        """Generate cache key"""
        return f"{symbol.upper()}_{CacheKind(kind).value}"

    def put(self, symbol: str, payload: BaseModel, kind: CacheKind = CacheKind.DETAIL) -> bool:
        kind = CacheKind(kind)
        try:
            entry = CachedEntry(payload=payload.model_dump(), cached_at=self._clock())
            self.backend.write(self.get_cache_key(symbol, kind), entry.model_dump_json(), self.ttl)
            return True
        except Exception as e:
            logger.warning(f"Cache write failed for {symbol} ({kind.value}): {e}")
            return False

    def get(self, symbol: str, kind: CacheKind = CacheKind.DETAIL) -> Optional[BaseModel]:
        kind = CacheKind(kind)
        key = self.get_cache_key(symbol, kind)
        try:
            data = self.backend.read(key)
            if data is None:
                return None
            entry = CachedEntry.model_validate_json(data)
            if self._clock() - entry.cached_at >= self.ttl:
                logger.info(f"Evicting stale cache entry {key}")
                self.backend.delete(key)
                return None
            return CACHE_MODELS[kind].model_validate(entry.payload)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Unreadable cache entry {key}: {e}")
            return None
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

    def clear(self) -> None:
        try:
            self.backend.clear()
        except Exception as e:
            logger.warning(f"Cache clear failed: {e}")

    def size_estimate(self) -> int:
        try:
            return self.backend.size_bytes()
        except Exception as e:
            logger.warning(f"Cache size lookup failed: {e}")
            return 0


def create_cache(settings) -> StockCache:
    """Build the cache backend named in settings"""
    if settings.cache_backend == "redis":
        backend = RedisCacheBackend(redis_url=settings.redis_url)
        logger.info("Redis stock cache initialized")
    else:
        backend = FileCacheBackend(settings.cache_dir)
        logger.info(f"File stock cache initialized at {settings.cache_dir}")
    return StockCache(backend, ttl=settings.cache_ttl)
