"""
生态统计服务
Ecosystem Stats Service

入口：查缓存 → 未命中时加载原始数据 → 组装 → 写入缓存 → 返回；
加载失败时降级为模拟数据。调用方总能拿到一个有效的 EcosystemStats。
Entry point: cache lookup, then on a miss load raw data, assemble, store and
return; a load failure falls back to mock data. Callers always receive a
valid EcosystemStats.

并发未命中时默认只计算一次（single-flight），其余调用方等待同一个 Future。
Concurrent misses share one computation by default (single-flight); the other
callers wait on the same Future.
"""

import copy
import logging
import random
import threading
from concurrent.futures import Future
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable

from ecostats.config import StatsConfig, get_stats_config
from ecostats.exceptions import DataUnavailableError
from ecostats.loader import HttpJsonLoader, JsonFileLoader, RawDataLoader
from ecostats.stats.analytics import AnalyticsDeriver
from ecostats.stats.assembler import StatsAssembler
from ecostats.stats.cache import DEFAULT_TTL_SECONDS, CacheStore
from ecostats.stats.mock_generator import MockDataGenerator
from ecostats.stats.models import CacheInfo, CacheStats, EcosystemStats
from ecostats.stats.trends import TrendGenerator

logger = logging.getLogger(__name__)

CACHE_KEY = 'ecosystem-stats'


class StatsService:
    """
    生态统计服务
    Ecosystem Stats Service

    由调用方显式构造与销毁（close），不使用进程级单例。
    Constructed and torn down (close) by the caller; no process-wide singletons.

    Attributes:
        loader: 原始数据加载器
                Raw data loader
        cache: 缓存
               Cache store
        assembler: 统计组装器
                   Stats assembler
        mock_generator: 模拟数据生成器
                        Mock data generator
        cache_ttl_seconds: 统计结果的缓存时间（秒）
                           Cache TTL of the stats result, in seconds
        single_flight: 是否合并并发的重复计算
                       Whether concurrent misses share one computation

    Examples:
        >>> service = StatsService(JsonFileLoader('missing.json'))
        >>> stats = service.get_ecosystem_stats()
        >>> stats.metadata.data_sources
        ('mock-data-generator',)
    """

    def __init__(
        self,
        loader: RawDataLoader,
        cache: CacheStore | None = None,
        assembler: StatsAssembler | None = None,
        mock_generator: MockDataGenerator | None = None,
        cache_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        single_flight: bool = True,
        now: Callable[[], datetime] | None = None
    ):
        self.loader = loader
        self.cache_ttl_seconds = cache_ttl_seconds
        self.cache = cache if cache is not None else CacheStore(default_ttl_seconds=cache_ttl_seconds)
        self.assembler = assembler if assembler is not None else StatsAssembler(
            cache_ttl_seconds=cache_ttl_seconds
        )
        self.mock_generator = mock_generator if mock_generator is not None else MockDataGenerator(
            cache_ttl_seconds=cache_ttl_seconds
        )
        self.single_flight = single_flight
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._in_flight: dict[str, Future] = {}

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        loader: RawDataLoader | None = None
    ) -> "StatsService":
        """
        从配置字典构建服务
        Build the service from a configuration dictionary

        Args:
            config: 完整配置字典（含 ecosystem_stats 段）
                    Full configuration dictionary
            loader: 覆盖配置中的数据源
                    Overrides the configured data source

        Raises:
            ConfigurationError: 配置值无效
                                Invalid configuration value
        """
        stats_config: StatsConfig = get_stats_config(config)
        rng = random.Random(stats_config.random_seed)
        launch_date = stats_config.launch_datetime
        ttl = stats_config.cache_ttl_seconds

        if loader is None:
            if stats_config.data_url:
                loader = HttpJsonLoader(stats_config.data_url, timeout=stats_config.request_timeout)
            else:
                loader = JsonFileLoader(stats_config.data_path)

        assembler = StatsAssembler(
            deriver=AnalyticsDeriver(rng=rng),
            trend_generator=TrendGenerator(launch_date=launch_date, rng=rng),
            cache_ttl_seconds=ttl,
        )
        mock_generator = MockDataGenerator(
            config=stats_config.mock,
            rng=rng,
            trend_generator=TrendGenerator(
                launch_date=launch_date,
                rng=rng,
                realistic_growth=stats_config.mock.realistic_growth,
            ),
            cache_ttl_seconds=ttl,
        )

        logger.info(
            f"Stats service configured: source={loader.source_name}, ttl={ttl}s, "
            f"single_flight={stats_config.single_flight}"
        )
        return cls(
            loader=loader,
            assembler=assembler,
            mock_generator=mock_generator,
            cache_ttl_seconds=ttl,
            single_flight=stats_config.single_flight,
        )

    def get_ecosystem_stats(self, force_refresh: bool = False) -> EcosystemStats:
        """
        获取生态统计
        Get ecosystem statistics

        Args:
            force_refresh: 跳过缓存查找，强制重新计算
                           Skip the cache lookup and recompute

        Returns:
            EcosystemStats，真实数据或模拟数据
            EcosystemStats, real or synthetic
        """
        if not force_refresh:
            cached = self.cache.get(CACHE_KEY)
            if cached is not None:
                return self._mark_cache_hit(cached)

        if not self.single_flight:
            return self._refresh()

        with self._lock:
            future = self._in_flight.get(CACHE_KEY)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[CACHE_KEY] = future

        if not owner:
            logger.debug(f"Waiting for in-flight computation of {CACHE_KEY}")
            return future.result()

        try:
            # 上一个计算者可能已在本次查找之后写入缓存
            cached = None if force_refresh else self.cache.peek(CACHE_KEY)
            stats = self._mark_cache_hit(cached) if cached is not None else self._refresh()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(stats)
            return stats
        finally:
            with self._lock:
                self._in_flight.pop(CACHE_KEY, None)

    def _refresh(self) -> EcosystemStats:
        now = self._now()
        try:
            dataset = self.loader.load()
            stats = self.assembler.assemble(
                dataset.marketplaces,
                dataset.plugins,
                now=now,
                generated_at=dataset.generated_at,
            )
        except DataUnavailableError as e:
            logger.warning(f"Raw ecosystem data unavailable, using mock data: {e}")
            stats = self.mock_generator.generate(now)
        except Exception as e:
            logger.error(f"Failed to assemble ecosystem stats, using mock data: {e}", exc_info=True)
            stats = self.mock_generator.generate(now)

        # 缓存保存独立副本，调用方修改返回值不会影响缓存
        self.cache.store(CACHE_KEY, copy.deepcopy(stats), self.cache_ttl_seconds)
        return stats

    def _mark_cache_hit(self, stats: EcosystemStats) -> EcosystemStats:
        cache_info = CacheInfo(
            hit=True,
            ttl_ms=int(self.cache_ttl_seconds * 1000),
            remaining_ttl_ms=int(self.cache.remaining_ttl(CACHE_KEY) * 1000),
        )
        stats = copy.deepcopy(stats)
        return replace(stats, metadata=replace(stats.metadata, cache_info=cache_info))

    def get_cache_stats(self) -> CacheStats:
        """缓存诊断信息 / Cache diagnostics"""
        return self.cache.get_stats()

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Ecosystem stats cache cleared")

    def store_collection_result(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """
        缓存其他命名的采集结果
        Cache another named collection result

        Args:
            key: 缓存键
                 Cache key
            value: 采集结果
                   Collection result
            ttl_seconds: 过期时间，None 时使用服务的 TTL
                         TTL, the service TTL when None
        """
        self.cache.store(key, value, self.cache_ttl_seconds if ttl_seconds is None else ttl_seconds)

    def get_collection_result(self, key: str) -> Any | None:
        return self.cache.get(key)

    def close(self) -> None:
        """释放资源并清空缓存 / Release resources and clear the cache"""
        self.cache.clear()
        close = getattr(self.loader, 'close', None)
        if callable(close):
            close()
