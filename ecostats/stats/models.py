"""
统计数据模型
Statistics Data Models

定义生态统计聚合结果的数据类。属性使用 snake_case，to_dict() 输出
仪表盘组件使用的 camelCase 结构。
Defines the data classes of the aggregated ecosystem statistics. Attributes
are snake_case; to_dict() renders the camelCase shape consumed by dashboard
components.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

TimeRange = Literal['7d', '30d', '90d', '6m', '1y', 'all']

# 所有支持的时间范围，按时间跨度升序
TIME_RANGES: tuple[str, ...] = ('7d', '30d', '90d', '6m', '1y', 'all')


@dataclass
class TrendDataPoint:
    """
    趋势数据点
    Trend Data Point

    Attributes:
        date: ISO-8601 时间字符串
              ISO-8601 timestamp
        value: 非负数值
               Non-negative value
        change: 相对上一个点的变化量，第一个点为 None
                Change relative to the previous point, None for the first point
    """
    date: str
    value: int
    change: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {'date': self.date, 'value': self.value}
        if self.change is not None:
            data['change'] = self.change
        return data


@dataclass
class GrowthSeries:
    """
    单个时间范围内四项指标的增长序列
    Growth series of the four tracked metrics for one time range

    四个序列共享相同的日期。
    All four sequences share the same dates.
    """
    plugins: list[TrendDataPoint] = field(default_factory=list)
    marketplaces: list[TrendDataPoint] = field(default_factory=list)
    developers: list[TrendDataPoint] = field(default_factory=list)
    downloads: list[TrendDataPoint] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            'plugins': [p.to_dict() for p in self.plugins],
            'marketplaces': [p.to_dict() for p in self.marketplaces],
            'developers': [p.to_dict() for p in self.developers],
            'downloads': [p.to_dict() for p in self.downloads],
        }


@dataclass
class EcosystemOverview:
    """
    生态概览
    Ecosystem Overview

    total_downloads 是由 star/fork 等代理指标推算的估计值，而非实测。
    total_downloads is an estimate derived from proxy signals, not a measurement.
    """
    total_plugins: int = 0
    total_marketplaces: int = 0
    total_developers: int = 0
    total_downloads: int = 0
    total_stars: int = 0
    total_forks: int = 0
    verified_marketplaces: int = 0
    verified_plugins: int = 0
    average_quality_score: float = 0.0
    total_categories: int = 0
    marketplaces_with_manifest: int = 0
    last_updated: str = ''

    def to_dict(self) -> dict[str, Any]:
        return {
            'totalPlugins': self.total_plugins,
            'totalMarketplaces': self.total_marketplaces,
            'totalDevelopers': self.total_developers,
            'totalDownloads': self.total_downloads,
            'totalStars': self.total_stars,
            'totalForks': self.total_forks,
            'verifiedMarketplaces': self.verified_marketplaces,
            'verifiedPlugins': self.verified_plugins,
            'averageQualityScore': self.average_quality_score,
            'totalCategories': self.total_categories,
            'marketplacesWithManifest': self.marketplaces_with_manifest,
            'lastUpdated': self.last_updated,
        }


@dataclass
class TopPlugin:
    """分类下的热门插件 / Top plugin within a category"""
    id: str
    name: str
    stars: int = 0
    downloads: int = 0
    quality_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'stars': self.stars,
            'downloads': self.downloads,
            'qualityScore': self.quality_score,
        }


@dataclass
class CategoryAnalytics:
    """
    分类分析
    Category Analytics

    Attributes:
        category: 分类名称
                  Category name
        plugin_count: 分类下插件数
                      Plugins in the category
        percentage: 占全部插件的百分比
                    Share of all plugins, in percent
        average_quality_score: 平均质量评分（0-100）
                               Average quality score (0-100)
        total_downloads: 估算下载量
                         Estimated downloads
        developer_count: 独立开发者数
                         Distinct developers
        growth_rate: 近 30 天更新的插件占比（各分类独立计算）
                     Share of plugins updated in the last 30 days, per category
        popular_tags: 高频标签
                      Most frequent tags
        top_plugins: 热门插件
                     Top plugins
    """
    category: str
    plugin_count: int = 0
    percentage: float = 0.0
    average_quality_score: float = 0.0
    total_downloads: int = 0
    developer_count: int = 0
    growth_rate: float = 0.0
    popular_tags: list[str] = field(default_factory=list)
    top_plugins: list[TopPlugin] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            'category': self.category,
            'pluginCount': self.plugin_count,
            'percentage': self.percentage,
            'averageQualityScore': self.average_quality_score,
            'totalDownloads': self.total_downloads,
            'developerCount': self.developer_count,
            'growthRate': self.growth_rate,
            'popularTags': list(self.popular_tags),
            'topPlugins': [p.to_dict() for p in self.top_plugins],
        }


@dataclass
class DeveloperAnalytics:
    """
    开发者分析
    Developer Analytics

    plugin_count 与 total_downloads 均为估计值。
    plugin_count and total_downloads are estimates.
    """
    developer: str
    marketplace_count: int = 0
    plugin_count: int = 0
    total_downloads: int = 0
    total_stars: int = 0
    total_forks: int = 0
    average_quality_score: float = 0.0
    categories: list[str] = field(default_factory=list)
    first_plugin_date: str = ''
    last_plugin_date: str = ''
    verified_plugin_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            'developer': self.developer,
            'marketplaceCount': self.marketplace_count,
            'pluginCount': self.plugin_count,
            'totalDownloads': self.total_downloads,
            'totalStars': self.total_stars,
            'totalForks': self.total_forks,
            'averageQualityScore': self.average_quality_score,
            'categories': list(self.categories),
            'firstPluginDate': self.first_plugin_date,
            'lastPluginDate': self.last_plugin_date,
            'verifiedPluginCount': self.verified_plugin_count,
        }


@dataclass
class VerificationBadge:
    type: str
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {'type': self.type, 'count': self.count}


@dataclass
class QualityIssue:
    issue: str
    frequency: int = 0
    severity: str = 'medium'

    def to_dict(self) -> dict[str, Any]:
        return {'issue': self.issue, 'frequency': self.frequency, 'severity': self.severity}


@dataclass
class VerificationMetrics:
    verified_plugins: int = 0
    verification_rate: float = 0.0
    badges: list[VerificationBadge] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            'verifiedPlugins': self.verified_plugins,
            'verificationRate': self.verification_rate,
            'badges': [b.to_dict() for b in self.badges],
        }


@dataclass
class MaintenanceMetrics:
    """
    维护指标
    Maintenance Metrics

    Attributes:
        recently_updated: 近 30 天内更新的插件数
        active_maintenance_rate: 活跃维护率（百分比）
        avg_update_frequency: 距上次更新的平均天数
        abandoned_plugins: 6 个月以上未更新的插件数
    """
    recently_updated: int = 0
    active_maintenance_rate: float = 0.0
    avg_update_frequency: float = 0.0
    abandoned_plugins: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            'recentlyUpdated': self.recently_updated,
            'activeMaintenanceRate': self.active_maintenance_rate,
            'avgUpdateFrequency': self.avg_update_frequency,
            'abandonedPlugins': self.abandoned_plugins,
        }


@dataclass
class QualityDistribution:
    """质量分布：excellent ≥ 90, good ≥ 80, fair ≥ 70, poor < 70"""
    excellent: int = 0
    good: int = 0
    fair: int = 0
    poor: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            'excellent': self.excellent,
            'good': self.good,
            'fair': self.fair,
            'poor': self.poor,
        }


@dataclass
class QualityScoreMetrics:
    avg_quality_score: float = 0.0
    high_quality_plugins: int = 0
    distribution: QualityDistribution = field(default_factory=QualityDistribution)
    common_issues: list[QualityIssue] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            'avgQualityScore': self.avg_quality_score,
            'highQualityPlugins': self.high_quality_plugins,
            'distribution': self.distribution.to_dict(),
            'commonIssues': [i.to_dict() for i in self.common_issues],
        }


@dataclass
class SecurityMetrics:
    scanned_plugins: int = 0
    critical_issues: int = 0
    security_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            'scannedPlugins': self.scanned_plugins,
            'criticalIssues': self.critical_issues,
            'securityScore': self.security_score,
        }


@dataclass
class QualityIndicators:
    """
    质量与可信度指标
    Quality and Trust Indicators

    所有比率与评分均为 [0, 100] 区间的百分比。
    All rate and score fields are percentages in [0, 100].
    """
    verification: VerificationMetrics = field(default_factory=VerificationMetrics)
    maintenance: MaintenanceMetrics = field(default_factory=MaintenanceMetrics)
    quality_metrics: QualityScoreMetrics = field(default_factory=QualityScoreMetrics)
    security: SecurityMetrics | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            'verification': self.verification.to_dict(),
            'maintenance': self.maintenance.to_dict(),
            'qualityMetrics': self.quality_metrics.to_dict(),
        }
        if self.security is not None:
            data['security'] = self.security.to_dict()
        return data


@dataclass(frozen=True)
class CacheInfo:
    """缓存信息（毫秒） / Cache information, in milliseconds"""
    hit: bool = False
    ttl_ms: int = 0
    remaining_ttl_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {'hit': self.hit, 'ttl': self.ttl_ms, 'remainingTtl': self.remaining_ttl_ms}


@dataclass(frozen=True)
class Freshness:
    """数据新鲜度（小时） / Data freshness, in hours"""
    marketplaces_age: float = 0.0
    plugins_age: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {'marketplacesAge': self.marketplaces_age, 'pluginsAge': self.plugins_age}


@dataclass(frozen=True)
class EcosystemMetadata:
    """
    处理元数据
    Processing Metadata

    Attributes:
        last_updated: 组装时间
                      Assembly time
        data_sources: 数据来源；降级时为 ['mock-data-generator']
                      Data sources; ['mock-data-generator'] when degraded
        processing_time_ms: 组装耗时（毫秒）
                            Assembly duration in milliseconds
        marketplace_count: 输入市场记录数
                           Input marketplace record count
        plugin_count: 输入插件记录数
                      Input plugin record count
        skipped_records: 因格式错误被跳过的记录数
                         Records skipped because they were malformed
        cache_info: 缓存信息
                    Cache information
        freshness: 新鲜度
                   Freshness
    """
    last_updated: str = ''
    data_sources: tuple[str, ...] = ()
    processing_time_ms: float = 0.0
    marketplace_count: int = 0
    plugin_count: int = 0
    skipped_records: int = 0
    cache_info: CacheInfo = field(default_factory=CacheInfo)
    freshness: Freshness = field(default_factory=Freshness)

    def to_dict(self) -> dict[str, Any]:
        return {
            'lastUpdated': self.last_updated,
            'dataSources': list(self.data_sources),
            'processingTime': self.processing_time_ms,
            'marketplaceCount': self.marketplace_count,
            'pluginCount': self.plugin_count,
            'skippedRecords': self.skipped_records,
            'cacheInfo': self.cache_info.to_dict(),
            'freshness': self.freshness.to_dict(),
        }


@dataclass(frozen=True)
class EcosystemStats:
    """
    生态统计（聚合根）
    Ecosystem Statistics (aggregate root)

    组装后不可变；刷新时由新实例整体替换。
    Immutable once assembled; a refresh replaces the whole instance.
    """
    overview: EcosystemOverview
    growth: dict[str, GrowthSeries]
    categories: list[CategoryAnalytics]
    developers: list[DeveloperAnalytics]
    quality: QualityIndicators
    metadata: EcosystemMetadata

    def to_dict(self) -> dict[str, Any]:
        return {
            'overview': self.overview.to_dict(),
            'growth': {key: series.to_dict() for key, series in self.growth.items()},
            'categories': [c.to_dict() for c in self.categories],
            'developers': [d.to_dict() for d in self.developers],
            'quality': self.quality.to_dict(),
            'metadata': self.metadata.to_dict(),
        }


@dataclass
class CacheStats:
    """
    缓存统计
    Cache Statistics

    Attributes:
        total_entries: 缓存条目数
                       Number of entries
        total_size: 估算总大小（字节）
                    Approximate total size in bytes
        hit_rate: 命中率 hits / (hits + misses)，无访问时为 0
                  Hit rate, 0 when nothing was looked up
        hits: 命中次数
              Hit count
        misses: 未命中次数
                Miss count
        oldest_entry_age: 最旧条目年龄（秒）
                          Age of the oldest entry in seconds
        newest_entry_age: 最新条目年龄（秒）
                          Age of the newest entry in seconds
    """
    total_entries: int = 0
    total_size: int = 0
    hit_rate: float = 0.0
    hits: int = 0
    misses: int = 0
    oldest_entry_age: float = 0.0
    newest_entry_age: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            'totalEntries': self.total_entries,
            'totalSize': self.total_size,
            'hitRate': self.hit_rate,
            'hits': self.hits,
            'misses': self.misses,
            'oldestEntry': int(self.oldest_entry_age * 1000),
            'newestEntry': int(self.newest_entry_age * 1000),
        }
