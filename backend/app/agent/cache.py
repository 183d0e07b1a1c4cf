import json
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


@dataclass
class _Entry:
    value: Any
    expires_at: float | None


def make_key(namespace: str, *args: Any) -> str:
    """Serialize call arguments into a stable cache key."""
    try:
        payload = json.dumps(args, sort_keys=True, default=repr, separators=(",", ":"))
    except (TypeError, ValueError):
        payload = repr(args)
    return f"{namespace}:{payload}"


class LRUCache:
    """
    Bounded in-memory cache with least-recently-used eviction and an optional
    time-to-live. Instances are created by the pipeline driver and passed
    explicitly to whatever needs memoization.
    """

    def __init__(
        self,
        max_size: int = 128,
        ttl_seconds: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def _expired(self, entry: _Entry) -> bool:
        return entry.expires_at is not None and self._clock() >= entry.expires_at

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return default
        if self._expired(entry):
            del self._entries[key]
            self.misses += 1
            return default
        self._entries.move_to_end(key)
        self.hits += 1
        return entry.value

    def set(self, key: str, value: Any) -> None:
        expires_at = self._clock() + self.ttl_seconds if self.ttl_seconds else None
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = _Entry(value=value, expires_at=expires_at)
        while len(self._entries) > self.max_size:
            evicted_key, _ = self._entries.popitem(last=False)
            self.evictions += 1
            logger.debug("Evicted least recently used cache entry %s", evicted_key[:80])

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and not self._expired(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_compute(self, namespace: str, args: tuple, compute: Callable[[], T]) -> T:
        key = make_key(namespace, *args)
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached
        value = compute()
        self.set(key, value)
        return value

    def stats(self) -> dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "size": len(self._entries),
            "max_size": self.max_size,
        }


def cached_call(cache: LRUCache | None, namespace: str, args: tuple, compute: Callable[[], T]) -> T:
    """Memoize through `cache` when one is supplied, otherwise just compute."""
    if cache is None:
        return compute()
    return cache.get_or_compute(namespace, args, compute)
