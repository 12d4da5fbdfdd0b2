"""
生态统计聚合与缓存
Ecosystem Statistics Aggregation and Caching

把插件市场的原始记录聚合为概览、增长趋势、分类、开发者与质量指标，
并以带 TTL 的缓存提供给调用方；真实数据不可用时降级为模拟数据。
Aggregates raw plugin marketplace records into overview, growth, category,
developer and quality analytics, served from a TTL cache with a mock-data
fallback.
"""

from ecostats.stats.models import (
    TIME_RANGES,
    TrendDataPoint,
    GrowthSeries,
    EcosystemOverview,
    CategoryAnalytics,
    DeveloperAnalytics,
    QualityIndicators,
    EcosystemMetadata,
    EcosystemStats,
    CacheStats,
)
from ecostats.stats.cache import CacheStore, CacheEntry
from ecostats.stats.trends import TrendGenerator, GrowthTotals
from ecostats.stats.estimators import (
    PluginCountEstimator,
    RegexPluginCountEstimator,
    EngagementEstimator,
    DefaultEngagementEstimator,
)
from ecostats.stats.analytics import AnalyticsDeriver
from ecostats.stats.assembler import StatsAssembler
from ecostats.stats.mock_generator import MockDataGenerator
from ecostats.stats.service import StatsService
from ecostats.stats.api import EcosystemStatsAPI, StatsQuery

__all__ = [
    # Models
    'TIME_RANGES',
    'TrendDataPoint',
    'GrowthSeries',
    'EcosystemOverview',
    'CategoryAnalytics',
    'DeveloperAnalytics',
    'QualityIndicators',
    'EcosystemMetadata',
    'EcosystemStats',
    'CacheStats',
    # Cache
    'CacheStore',
    'CacheEntry',
    # Trends
    'TrendGenerator',
    'GrowthTotals',
    # Estimators
    'PluginCountEstimator',
    'RegexPluginCountEstimator',
    'EngagementEstimator',
    'DefaultEngagementEstimator',
    # Analytics
    'AnalyticsDeriver',
    # Assembly
    'StatsAssembler',
    'MockDataGenerator',
    # Service
    'StatsService',
    # API
    'EcosystemStatsAPI',
    'StatsQuery',
]
