"""
模拟数据生成器
Mock Data Generator

真实数据不可用时生成结构完全相同的合成统计数据，只有
metadata.data_sources 为 ['mock-data-generator']。
Generates synthetic statistics with exactly the same shape as real data when
the raw dataset is unavailable; only metadata.data_sources differs.
"""

import logging
import random
import time
from datetime import datetime, timedelta, timezone

from ecostats.config import MockDataConfig
from ecostats.models import format_datetime
from ecostats.stats.analytics import CATEGORY_TAXONOMY, MAX_DEVELOPERS, percent
from ecostats.stats.cache import DEFAULT_TTL_SECONDS
from ecostats.stats.models import (
    CacheInfo,
    CategoryAnalytics,
    DeveloperAnalytics,
    EcosystemMetadata,
    EcosystemOverview,
    EcosystemStats,
    Freshness,
    MaintenanceMetrics,
    QualityDistribution,
    QualityIndicators,
    QualityIssue,
    QualityScoreMetrics,
    SecurityMetrics,
    TopPlugin,
    VerificationBadge,
    VerificationMetrics,
)
from ecostats.stats.trends import GrowthTotals, TrendGenerator

logger = logging.getLogger(__name__)

MOCK_DATA_SOURCE = 'mock-data-generator'

MOCK_TAGS = (
    'automation', 'productivity', 'development', 'testing', 'documentation',
    'api', 'database', 'security', 'frontend', 'backend', 'devops',
    'ai', 'machine-learning', 'code-review', 'debugging', 'monitoring',
)


class MockDataGenerator:
    """
    模拟数据生成器
    Mock Data Generator

    Examples:
        >>> generator = MockDataGenerator(rng=random.Random(3))
        >>> stats = generator.generate()
        >>> stats.metadata.data_sources
        ('mock-data-generator',)
        >>> sum(c.plugin_count for c in stats.categories) == stats.overview.total_plugins
        True
    """

    def __init__(
        self,
        config: MockDataConfig | None = None,
        rng: random.Random | None = None,
        trend_generator: TrendGenerator | None = None,
        cache_ttl_seconds: float = DEFAULT_TTL_SECONDS
    ):
        self.config = config if config is not None else MockDataConfig()
        self.rng = rng or random.Random()
        self.trend_generator = trend_generator or TrendGenerator(
            rng=self.rng, realistic_growth=self.config.realistic_growth
        )
        self.cache_ttl_seconds = cache_ttl_seconds

    def _quality_score(self) -> int:
        if self.config.realistic_quality:
            return self.rng.randint(75, 94)
        return self.rng.randint(60, 89)

    def generate(self, now: datetime | None = None) -> EcosystemStats:
        """
        生成完整的模拟统计
        Generate complete mock statistics

        Args:
            now: 当前时间
                 Current time

        Returns:
            EcosystemStats
        """
        started = time.perf_counter()
        now = now or datetime.now(timezone.utc)

        overview = self._overview(now)
        growth = self.trend_generator.generate_all_ranges(
            GrowthTotals(
                plugins=overview.total_plugins,
                marketplaces=overview.total_marketplaces,
                developers=overview.total_developers,
                downloads=overview.total_downloads,
            ),
            now=now,
            synthetic=True,
        )
        categories = self._categories(overview.total_plugins)
        overview.total_categories = len(categories)
        developers = self._developers(now)
        quality = self._quality(overview.total_plugins)

        ttl_ms = int(self.cache_ttl_seconds * 1000)
        metadata = EcosystemMetadata(
            last_updated=format_datetime(now),
            data_sources=(MOCK_DATA_SOURCE,),
            processing_time_ms=round((time.perf_counter() - started) * 1000, 3),
            marketplace_count=self.config.marketplace_count,
            plugin_count=overview.total_plugins,
            skipped_records=0,
            cache_info=CacheInfo(hit=False, ttl_ms=ttl_ms, remaining_ttl_ms=ttl_ms),
            freshness=Freshness(marketplaces_age=0.0, plugins_age=0.0),
        )

        logger.info(
            f"Generated mock ecosystem stats: {overview.total_plugins} plugins, "
            f"{overview.total_marketplaces} marketplaces, {len(categories)} categories"
        )
        return EcosystemStats(
            overview=overview,
            growth=growth,
            categories=categories,
            developers=developers,
            quality=quality,
            metadata=metadata,
        )

    def _overview(self, now: datetime) -> EcosystemOverview:
        total_plugins = self.config.total_plugins
        total_marketplaces = self.config.marketplace_count
        total_stars = total_plugins * self.rng.randint(10, 59)
        return EcosystemOverview(
            total_plugins=total_plugins,
            total_marketplaces=total_marketplaces,
            total_developers=self.config.developer_count,
            total_downloads=total_plugins * self.rng.randint(500, 1499),
            total_stars=total_stars,
            total_forks=int(total_stars * 0.3),
            verified_marketplaces=int(total_marketplaces * 0.6),
            verified_plugins=int(total_plugins * 0.7),
            average_quality_score=float(self._quality_score()),
            total_categories=0,
            marketplaces_with_manifest=total_marketplaces,
            last_updated=format_datetime(now),
        )

    def _categories(self, total_plugins: int) -> list[CategoryAnalytics]:
        names = list(CATEGORY_TAXONOMY)[:self.config.category_count]
        if not total_plugins:
            return []

        # 逐个分配剩余插件，最后一个分类取余量，保证构成完整划分
        categories: list[CategoryAnalytics] = []
        remaining = total_plugins
        for index, name in enumerate(names):
            is_last = index == len(names) - 1
            count = remaining if is_last else remaining // (len(names) - index)
            remaining -= count

            top_plugins = sorted(
                (
                    TopPlugin(
                        id=f"mock-plugin-{index + 1}-{i + 1}",
                        name=f"Mock Plugin {index + 1}.{i + 1}",
                        stars=self.rng.randint(50, 549),
                        downloads=self.rng.randint(500, 5499),
                        quality_score=float(self._quality_score()),
                    )
                    for i in range(min(5, count))
                ),
                key=lambda p: p.stars,
                reverse=True,
            )
            categories.append(CategoryAnalytics(
                category=name,
                plugin_count=count,
                percentage=percent(count, total_plugins),
                average_quality_score=float(self._quality_score()),
                total_downloads=count * self.rng.randint(200, 999),
                developer_count=self.rng.randint(2, 6),
                growth_rate=round(self.rng.random() * 20 - 5, 2),
                popular_tags=self.rng.sample(MOCK_TAGS, 5),
                top_plugins=top_plugins,
            ))

        categories.sort(key=lambda c: c.plugin_count, reverse=True)
        return categories

    def _developers(self, now: datetime) -> list[DeveloperAnalytics]:
        names = list(CATEGORY_TAXONOMY)
        developers: list[DeveloperAnalytics] = []
        for i in range(self.config.developer_count):
            plugin_count = self.rng.randint(1, 5)
            stars = plugin_count * self.rng.randint(10, 59)
            first = now - timedelta(days=self.rng.random() * 365)
            last = now - timedelta(days=self.rng.random() * 30)
            developers.append(DeveloperAnalytics(
                developer=f"Developer {i + 1}",
                marketplace_count=1,
                plugin_count=plugin_count,
                total_downloads=plugin_count * self.rng.randint(100, 1099),
                total_stars=stars,
                total_forks=int(stars * 0.3),
                average_quality_score=float(self._quality_score()),
                categories=sorted(self.rng.sample(names, self.rng.randint(1, 3))),
                first_plugin_date=format_datetime(min(first, last)),
                last_plugin_date=format_datetime(max(first, last)),
                verified_plugin_count=self.rng.randint(0, plugin_count - 1),
            ))

        developers.sort(key=lambda d: d.total_stars, reverse=True)
        return developers[:MAX_DEVELOPERS]

    def _quality(self, total_plugins: int) -> QualityIndicators:
        verified = int(total_plugins * 0.7)
        recently_updated = int(total_plugins * 0.6)
        abandoned = int(total_plugins * 0.1)

        # 按固定比例划分质量分布，poor 取余量
        excellent = int(total_plugins * 0.15)
        good = int(total_plugins * 0.25)
        fair = int(total_plugins * 0.35)
        distribution = QualityDistribution(
            excellent=excellent,
            good=good,
            fair=fair,
            poor=total_plugins - excellent - good - fair,
        )

        return QualityIndicators(
            verification=VerificationMetrics(
                verified_plugins=verified,
                verification_rate=percent(verified, total_plugins),
                badges=[
                    VerificationBadge('security', int(verified * 0.6)),
                    VerificationBadge('quality', int(verified * 0.8)),
                    VerificationBadge('popularity', int(verified * 0.4)),
                    VerificationBadge('maintenance', int(verified * 0.7)),
                ],
            ),
            maintenance=MaintenanceMetrics(
                recently_updated=recently_updated,
                active_maintenance_rate=percent(recently_updated, total_plugins),
                avg_update_frequency=float(self.rng.randint(7, 36)),
                abandoned_plugins=abandoned,
            ),
            quality_metrics=QualityScoreMetrics(
                avg_quality_score=float(self._quality_score()),
                high_quality_plugins=excellent + good,
                distribution=distribution,
                common_issues=[
                    QualityIssue('Missing documentation', int(total_plugins * 0.3), 'medium'),
                    QualityIssue('No recent updates', abandoned, 'high'),
                    QualityIssue('Low test coverage', int(total_plugins * 0.2), 'medium'),
                    QualityIssue('Security vulnerabilities', int(total_plugins * 0.05), 'high'),
                ],
            ),
            security=SecurityMetrics(
                scanned_plugins=int(total_plugins * 0.8),
                critical_issues=int(total_plugins * 0.02),
                security_score=float(self.rng.randint(70, 94)),
            ),
        )
