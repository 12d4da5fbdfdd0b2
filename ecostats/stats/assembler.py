"""
统计组装器
Stats Assembler

把趋势生成器与分析推导器的输出组合为一个 EcosystemStats，并附加处理元数据
（耗时、输入规模、跳过记录数、缓存信息、新鲜度）。
Composes TrendGenerator and AnalyticsDeriver output into one EcosystemStats
and attaches processing metadata.
"""

import logging
import random
import time
from datetime import datetime, timezone
from typing import Any, Iterable

from ecostats.models import MarketplaceRecord, PluginRecord, format_datetime, parse_records
from ecostats.stats.analytics import AnalyticsDeriver
from ecostats.stats.cache import DEFAULT_TTL_SECONDS
from ecostats.stats.models import (
    CacheInfo,
    EcosystemMetadata,
    EcosystemStats,
    Freshness,
)
from ecostats.stats.trends import GrowthTotals, TrendGenerator

logger = logging.getLogger(__name__)

DEFAULT_DATA_SOURCES = ('github-api', 'marketplace-scanner')


def hours_between(earlier: datetime | None, later: datetime) -> float:
    """
    两个时间点之间的小时数（保留一位小数），earlier 为空时返回 0
    Hours between two instants, rounded to one decimal; 0 when unknown

    Examples:
        >>> from datetime import timedelta
        >>> now = datetime(2025, 11, 1, tzinfo=timezone.utc)
        >>> hours_between(now - timedelta(hours=5), now)
        5.0
    """
    if earlier is None:
        return 0.0
    return round(max(0.0, (later - earlier).total_seconds() / 3600), 1)


class StatsAssembler:
    """
    统计组装器
    Stats Assembler

    同样的输入、当前时间与随机种子得到同样的结果。
    The same inputs, current time and RNG seed reproduce the same result.

    Attributes:
        deriver: 分析推导器
                 Analytics deriver
        trend_generator: 趋势生成器
                         Trend generator
        cache_ttl_seconds: 写入 metadata.cache_info 的 TTL
                           TTL recorded in metadata.cache_info
    """

    def __init__(
        self,
        deriver: AnalyticsDeriver | None = None,
        trend_generator: TrendGenerator | None = None,
        rng: random.Random | None = None,
        cache_ttl_seconds: float = DEFAULT_TTL_SECONDS
    ):
        rng = rng or random.Random()
        self.deriver = deriver or AnalyticsDeriver(rng=rng)
        self.trend_generator = trend_generator or TrendGenerator(rng=rng)
        self.cache_ttl_seconds = cache_ttl_seconds

    def assemble(
        self,
        raw_marketplaces: Iterable[Any],
        raw_plugins: Iterable[Any],
        now: datetime | None = None,
        data_sources: Iterable[str] | None = None,
        generated_at: datetime | None = None
    ) -> EcosystemStats:
        """
        组装生态统计
        Assemble ecosystem statistics

        Args:
            raw_marketplaces: 原始市场字典
                              Raw marketplace dictionaries
            raw_plugins: 原始插件字典
                         Raw plugin dictionaries
            now: 当前时间
                 Current time
            data_sources: 数据来源标识
                          Data source identifiers
            generated_at: 原始数据生成时间（用于新鲜度）
                          Raw dataset generation time, used for freshness

        Returns:
            EcosystemStats
        """
        started = time.perf_counter()
        now = now or datetime.now(timezone.utc)

        marketplaces, skipped_marketplaces = parse_records(
            raw_marketplaces, MarketplaceRecord.from_dict, 'marketplace'
        )
        plugins, skipped_plugins = parse_records(
            raw_plugins, PluginRecord.from_dict, 'plugin'
        )

        derived = self.deriver.derive(marketplaces, plugins, now)
        overview = derived.overview
        growth = self.trend_generator.generate_all_ranges(
            GrowthTotals(
                plugins=overview.total_plugins,
                marketplaces=overview.total_marketplaces,
                developers=overview.total_developers,
                downloads=overview.total_downloads,
            ),
            now=now,
        )

        ttl_ms = int(self.cache_ttl_seconds * 1000)
        processing_time_ms = round((time.perf_counter() - started) * 1000, 3)
        metadata = EcosystemMetadata(
            last_updated=format_datetime(now),
            data_sources=tuple(data_sources or DEFAULT_DATA_SOURCES),
            processing_time_ms=processing_time_ms,
            marketplace_count=len(marketplaces),
            plugin_count=len(plugins),
            skipped_records=skipped_marketplaces + skipped_plugins,
            cache_info=CacheInfo(hit=False, ttl_ms=ttl_ms, remaining_ttl_ms=ttl_ms),
            freshness=self._freshness(marketplaces, plugins, now, generated_at),
        )

        logger.info(
            f"Assembled ecosystem stats from {len(marketplaces)} marketplaces and "
            f"{len(plugins)} plugins in {processing_time_ms:.1f}ms"
        )
        return EcosystemStats(
            overview=overview,
            growth=growth,
            categories=derived.categories,
            developers=derived.developers,
            quality=derived.quality,
            metadata=metadata,
        )

    @staticmethod
    def _freshness(
        marketplaces: list[MarketplaceRecord],
        plugins: list[PluginRecord],
        now: datetime,
        generated_at: datetime | None
    ) -> Freshness:
        # 优先使用数据集生成时间，否则取记录中最新的更新时间
        marketplace_updates = [m.updated_at for m in marketplaces if m.updated_at]
        plugin_updates = [p.updated_at for p in plugins if p.updated_at]
        marketplaces_seen = generated_at or (max(marketplace_updates) if marketplace_updates else None)
        plugins_seen = max(plugin_updates) if plugin_updates else generated_at
        return Freshness(
            marketplaces_age=hours_between(marketplaces_seen, now),
            plugins_age=hours_between(plugins_seen, now),
        )
