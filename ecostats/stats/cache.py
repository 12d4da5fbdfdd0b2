"""
统计缓存
Statistics Cache

带 TTL 与命中率统计的进程内缓存。过期检查是惰性的：只在读取时淘汰，
不做后台清理；过期条目在被读取或 clear() 之前一直占用内存。
In-process cache with TTL and hit/miss accounting. Expiry is lazy: entries
are evicted only when read, never in the background; a stale entry occupies
memory until it is read or clear() is called.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from ecostats.stats.models import CacheStats

logger = logging.getLogger(__name__)

T = TypeVar('T')

# 生态统计默认缓存 6 小时
DEFAULT_TTL_SECONDS = 6 * 60 * 60


def estimate_size(value: Any) -> int:
    """
    估算对象大小（字节）
    Estimate object size in bytes

    基于序列化长度的粗略估计，而非精确字节数。
    A serialized-length heuristic, not an exact byte count.

    Examples:
        >>> estimate_size({'a': 1})
        16
    """
    if hasattr(value, 'to_dict'):
        value = value.to_dict()
    return len(json.dumps(value, default=str)) * 2


@dataclass
class CacheEntry(Generic[T]):
    """
    缓存条目
    Cache Entry

    Attributes:
        data: 缓存的数据
              Cached data
        created_at: 创建时间（epoch 秒）
                    Creation time, epoch seconds
        ttl_seconds: 存活时间（秒）
                     Time-to-live in seconds
        access_count: 访问次数
                      Access count
        last_accessed: 最后访问时间（epoch 秒）
                       Last access time, epoch seconds
        size: 估算大小（字节）
              Approximate size in bytes
    """
    data: T
    created_at: float
    ttl_seconds: float
    access_count: int = 0
    last_accessed: float = 0.0
    size: int = 0

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl_seconds

    def remaining(self, now: float) -> float:
        return max(0.0, self.ttl_seconds - (now - self.created_at))


class CacheStore:
    """
    TTL 缓存
    TTL Cache Store

    Attributes:
        default_ttl_seconds: 默认过期时间（秒）
                             Default TTL in seconds

    Examples:
        >>> cache = CacheStore(default_ttl_seconds=300)
        >>> cache.store('ecosystem-stats', {'a': 1})
        >>> cache.get('ecosystem-stats')
        {'a': 1}
    """

    def __init__(
        self,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time
    ):
        """
        初始化缓存
        Initialize cache

        Args:
            default_ttl_seconds: 默认过期时间（秒）
                                 Default TTL in seconds
            clock: 时间源，测试中可注入
                   Time source, injectable for tests
        """
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._hits = 0
        self._misses = 0
        self._total_size = 0

    def store(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """
        写入或替换缓存值
        Insert or replace a cached value

        Args:
            key: 缓存键
                 Cache key
            value: 缓存值
                   Cache value
            ttl_seconds: 过期时间，None 时使用默认值
                         TTL, default TTL when None
        """
        now = self._clock()
        entry = CacheEntry(
            data=value,
            created_at=now,
            ttl_seconds=self.default_ttl_seconds if ttl_seconds is None else ttl_seconds,
            access_count=0,
            last_accessed=now,
            size=estimate_size(value),
        )

        old_entry = self._entries.get(key)
        if old_entry is not None:
            self._total_size -= old_entry.size

        self._entries[key] = entry
        self._total_size += entry.size
        logger.debug(f"Cache stored: {key} ({entry.size} bytes, ttl={entry.ttl_seconds}s)")

    def get(self, key: str) -> Any | None:
        """
        获取缓存值
        Get cached value

        Returns:
            缓存值，如果不存在或已过期则返回 None
            Cached value, or None if absent or expired
        """
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            logger.debug(f"Cache miss: {key}")
            return None

        now = self._clock()
        if entry.is_expired(now):
            del self._entries[key]
            self._total_size -= entry.size
            self._misses += 1
            logger.debug(f"Cache expired: {key}")
            return None

        entry.access_count += 1
        entry.last_accessed = now
        self._hits += 1
        logger.debug(f"Cache hit: {key}")
        return entry.data

    def remaining_ttl(self, key: str) -> float:
        """剩余存活时间（秒），不影响命中统计 / Remaining TTL in seconds, counters untouched"""
        entry = self._entries.get(key)
        if entry is None:
            return 0.0
        return entry.remaining(self._clock())

    def peek(self, key: str) -> Any | None:
        """未过期时返回值，不影响命中统计与访问记录 / Live value lookup, counters untouched"""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry.data

    def get_entry(self, key: str) -> CacheEntry[Any] | None:
        """返回原始条目，不影响命中统计 / Raw entry lookup, counters untouched"""
        return self._entries.get(key)

    def invalidate(self, key: str) -> None:
        """
        使缓存失效
        Invalidate cache

        Args:
            key: 缓存键
                 Cache key
        """
        entry = self._entries.pop(key, None)
        if entry is not None:
            self._total_size -= entry.size

    def clear(self) -> None:
        """清除所有缓存并重置计数"""
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        self._total_size = 0
        logger.debug("Cache cleared")

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> CacheStats:
        """
        获取缓存统计
        Get cache statistics

        Returns:
            CacheStats，空缓存时条目年龄为 0
            CacheStats, entry ages are 0 when the cache is empty
        """
        now = self._clock()
        ages = [now - entry.created_at for entry in self._entries.values()]
        lookups = self._hits + self._misses

        return CacheStats(
            total_entries=len(self._entries),
            total_size=self._total_size,
            hit_rate=self._hits / lookups if lookups > 0 else 0.0,
            hits=self._hits,
            misses=self._misses,
            oldest_entry_age=max(ages) if ages else 0.0,
            newest_entry_age=min(ages) if ages else 0.0,
        )
