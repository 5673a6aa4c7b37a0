import logging
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class GraphResultCache:
    """
    In-memory TTL cache for finished graph results.

    Entries expire ``ttl`` seconds after they were written. Expired entries
    are dropped on read and swept whenever a new entry is written. The graph
    builder only reads through and writes through; nothing in the engine
    invalidates entries.

    Example:
        >>> cache = GraphResultCache()
        >>> cache.set("graph:service:default:web:false", result, ttl=30)
        >>> cache.get("graph:service:default:web:false")
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        if ttl <= 0:
            return
        now = self._clock()
        self._evict_expired(now)
        self._entries[key] = (value, now + ttl)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired graph results")

    def get_stats(self) -> dict[str, Any]:
        total = self.hits + self.misses
        hit_rate = (self.hits / total * 100) if total > 0 else 0

        return {
            "hits": self.hits,
            "misses": self.misses,
            "total": total,
            "hit_rate": f"{hit_rate:.1f}%",
            "cache_size": len(self._entries),
        }


def graph_cache_key(kind: str, namespace: str, name: str, cluster_access: bool) -> str:
    """Key under which a build result is cached."""
    return f"graph:{kind}:{namespace}:{name}:{str(cluster_access).lower()}"
