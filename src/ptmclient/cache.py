"""Cache: time-bounded payload store keyed by encrypted payload hash."""

from __future__ import annotations

from dataclasses import dataclass, field
import threading
import time
from typing import TYPE_CHECKING, Final

from ptmclient.types import ExtraMetadata

if TYPE_CHECKING:
    from collections.abc import Callable

    from ptmclient.types import EncryptedPayloadHash

DEFAULT_TTL_SECONDS: Final[float] = 300.0
DEFAULT_CLEANUP_INTERVAL_SECONDS: Final[float] = 300.0

INCOMPLETE_SUFFIX: Final[str] = "-incomplete"


@dataclass(frozen=True)
class CacheItem:
    """A payload and the metadata it was sent or received with."""

    payload: bytes
    extra: ExtraMetadata = field(default_factory=ExtraMetadata)


def cache_key(eph: EncryptedPayloadHash) -> str:
    """Key for a complete cache item."""
    return eph.hex()


def incomplete_cache_key(eph: EncryptedPayloadHash) -> str:
    """Key for a payload still waiting for its metadata."""
    return f"{eph.hex()}{INCOMPLETE_SUFFIX}"


@dataclass
class PayloadCache:
    """Thread-safe registry of cache items with expiration.

    Expired entries are evicted lazily on access, plus a sweep on writes once
    ``cleanup_interval_s`` has elapsed since the previous one. No background
    threads are started.
    """

    ttl_seconds: float = DEFAULT_TTL_SECONDS
    cleanup_interval_s: float = DEFAULT_CLEANUP_INTERVAL_SECONDS
    clock: Callable[[], float] = time.monotonic
    _entries: dict[str, tuple[CacheItem, float]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)
    _last_sweep: float | None = None

    def __post_init__(self) -> None:
        if self.ttl_seconds < 0:
            raise ValueError("PayloadCache.ttl_seconds must be >= 0")

    def get(self, key: str) -> CacheItem | None:
        """Return the item under *key* if present and not expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            item, expires_at = entry
            if self.clock() >= expires_at:
                del self._entries[key]
                return None
            return item

    def set(self, key: str, item: CacheItem, ttl_seconds: float | None = None) -> None:
        """Store *item* under *key*, replacing any previous entry."""
        ttl = self.ttl_seconds if ttl_seconds is None else max(0.0, ttl_seconds)
        with self._lock:
            now = self.clock()
            self._entries[key] = (item, now + ttl)
            self._maybe_sweep(now)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def replace(self, key: str, item: CacheItem, *, drop: str) -> None:
        """Store *item* under *key* and remove *drop* in one step."""
        with self._lock:
            now = self.clock()
            self._entries[key] = (item, now + self.ttl_seconds)
            self._entries.pop(drop, None)
            self._maybe_sweep(now)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            now = self.clock()
            return sum(1 for _, expires_at in self._entries.values() if now < expires_at)

    def _maybe_sweep(self, now: float) -> None:
        # Caller holds the lock.
        if self._last_sweep is None:
            self._last_sweep = now
            return
        if now - self._last_sweep < self.cleanup_interval_s:
            return
        self._last_sweep = now
        expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
        for k in expired:
            del self._entries[k]
