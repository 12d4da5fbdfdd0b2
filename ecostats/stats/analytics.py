"""
统计分析推导
Analytics Deriver

把扁平的市场/插件记录转换为概览、分类、开发者与质量分析。
Converts flat marketplace and plugin records into overview, category,
developer and quality analytics.

下载量与参与度均为估计值，见 ecostats.stats.estimators。
Download and engagement figures are estimates, see ecostats.stats.estimators.
"""

import logging
import math
import random
import re
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ecostats.models import MarketplaceRecord, PluginRecord, format_datetime
from ecostats.stats.estimators import (
    DefaultEngagementEstimator,
    EngagementEstimator,
    PluginCountEstimator,
    RegexPluginCountEstimator,
)
from ecostats.stats.models import (
    CategoryAnalytics,
    DeveloperAnalytics,
    EcosystemOverview,
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

logger = logging.getLogger(__name__)


# 固定分类表及其关键词
CATEGORY_TAXONOMY: dict[str, frozenset[str]] = {
    'Development Tools': frozenset({
        'code', 'coding', 'developer', 'dev', 'git', 'github', 'debug', 'debugging',
        'refactor', 'refactoring', 'lint', 'linter', 'ide', 'review', 'build',
        'compiler', 'backend', 'devops', 'deployment', 'docker', 'ci', 'docs',
        'documentation', 'api', 'cli',
    }),
    'AI & Machine Learning': frozenset({
        'ai', 'ml', 'llm', 'model', 'models', 'agent', 'agents', 'prompt', 'prompts',
        'neural', 'embedding', 'embeddings', 'machine', 'learning', 'rag',
    }),
    'Data Analysis': frozenset({
        'data', 'analytics', 'analysis', 'sql', 'database', 'csv', 'visualization',
        'metrics', 'dashboard', 'pandas', 'etl',
    }),
    'Productivity': frozenset({
        'productivity', 'workflow', 'workflows', 'automation', 'task', 'tasks',
        'note', 'notes', 'calendar', 'todo', 'planning',
    }),
    'Communication': frozenset({
        'slack', 'email', 'mail', 'chat', 'discord', 'message', 'messaging',
        'notification', 'notifications', 'communication', 'teams',
    }),
    'Design': frozenset({
        'design', 'ui', 'ux', 'figma', 'css', 'frontend', 'color', 'theme', 'layout',
    }),
    'Security': frozenset({
        'security', 'auth', 'authentication', 'vulnerability', 'vulnerabilities',
        'secret', 'secrets', 'encryption', 'audit', 'cve', 'sast',
    }),
    'Testing': frozenset({
        'test', 'tests', 'testing', 'qa', 'coverage', 'mock', 'mocks', 'e2e',
        'unit', 'pytest', 'jest',
    }),
}

# 未匹配任何分类的插件归入此桶，保证分类构成完整划分
OTHER_CATEGORY = 'Other'

# 关键词匹配顺序：更具体的分类优先
CLASSIFICATION_ORDER = (
    'Security',
    'Testing',
    'AI & Machine Learning',
    'Data Analysis',
    'Design',
    'Communication',
    'Productivity',
    'Development Tools',
)

RECENT_UPDATE_DAYS = 30
ABANDONED_AFTER_DAYS = 180
HIGH_QUALITY_THRESHOLD = 80
MAX_DEVELOPERS = 15
TOP_PLUGIN_COUNT = 5
POPULAR_TAG_COUNT = 5

SECURITY_ISSUE_PATTERN = re.compile(r'secur|vulnerab', re.IGNORECASE)
TOKEN_PATTERN = re.compile(r'[a-z0-9]+')


def percent(part: float, whole: float) -> float:
    """
    百分比，分母为 0 时返回 0
    Percentage, 0 when the denominator is 0

    Examples:
        >>> percent(30, 100)
        30.0
        >>> percent(1, 0)
        0.0
    """
    if not whole:
        return 0.0
    return round(part / whole * 100, 2)


def _tokens(*texts: str) -> set[str]:
    tokens: set[str] = set()
    for text in texts:
        tokens.update(TOKEN_PATTERN.findall((text or '').lower()))
    return tokens


def _days_since(moment: datetime | None, now: datetime) -> float | None:
    if moment is None:
        return None
    return max(0.0, (now - moment).total_seconds() / 86400)


@dataclass
class DerivedAnalytics:
    """推导结果 / Derivation result"""
    overview: EcosystemOverview
    categories: list[CategoryAnalytics] = field(default_factory=list)
    developers: list[DeveloperAnalytics] = field(default_factory=list)
    quality: QualityIndicators = field(default_factory=QualityIndicators)


class AnalyticsDeriver:
    """
    统计分析推导器
    Analytics Deriver

    Attributes:
        plugin_count_estimator: 插件数量估算策略
                                Plugin count estimation strategy
        engagement_estimator: 参与度估算策略
                              Engagement estimation strategy
        max_developers: 返回的开发者数量上限
                        Maximum number of developers returned

    Examples:
        >>> deriver = AnalyticsDeriver(rng=random.Random(7))
        >>> result = deriver.derive([], [])
        >>> result.overview.total_plugins, result.categories, result.developers
        (0, [], [])
    """

    def __init__(
        self,
        plugin_count_estimator: PluginCountEstimator | None = None,
        engagement_estimator: EngagementEstimator | None = None,
        rng: random.Random | None = None,
        max_developers: int = MAX_DEVELOPERS
    ):
        rng = rng or random.Random()
        self.plugin_count_estimator = plugin_count_estimator or RegexPluginCountEstimator(rng=rng)
        self.engagement_estimator = engagement_estimator or DefaultEngagementEstimator(rng=rng)
        self.max_developers = max_developers

    def derive(
        self,
        marketplaces: list[MarketplaceRecord],
        plugins: list[PluginRecord],
        now: datetime | None = None
    ) -> DerivedAnalytics:
        """
        推导全部分析结果
        Derive all analytics

        Args:
            marketplaces: 市场记录
                          Marketplace records
            plugins: 插件记录
                     Plugin records
            now: 当前时间（用于判断最近更新/废弃）
                 Current time, used for recency and abandonment

        Returns:
            DerivedAnalytics
        """
        now = now or datetime.now(timezone.utc)
        categories = self.derive_categories(plugins, now)
        developers = self.derive_developers(marketplaces, plugins)
        quality = self.derive_quality(plugins, now)
        overview = self.derive_overview(marketplaces, plugins, categories, now)

        logger.info(
            f"Derived analytics: {overview.total_plugins} plugins, "
            f"{len(categories)} categories, {len(developers)} developers"
        )
        return DerivedAnalytics(
            overview=overview,
            categories=categories,
            developers=developers,
            quality=quality,
        )

    # =========================================================================
    # Overview
    # =========================================================================

    def derive_overview(
        self,
        marketplaces: list[MarketplaceRecord],
        plugins: list[PluginRecord],
        categories: list[CategoryAnalytics],
        now: datetime
    ) -> EcosystemOverview:
        """
        生成概览
        Derive the overview summary

        没有插件记录时，插件总数由市场描述中提取的数量估算；仍无法提取时
        取市场 star 总数的一半。
        Without plugin records the plugin total is estimated from counts found
        in marketplace descriptions, or half the total marketplace stars.
        """
        estimator = self.engagement_estimator
        marketplace_stars = sum(m.stars for m in marketplaces)

        if plugins:
            total_plugins = len(plugins)
        else:
            extracted = sum(
                self.plugin_count_estimator.extract(m.description) or 0 for m in marketplaces
            )
            total_plugins = extracted if extracted > 0 else math.floor(marketplace_stars * 0.5)

        owners = {m.owner_login for m in marketplaces}
        authors = {p.author for p in plugins if p.author}
        scores = [estimator.plugin_quality(p) for p in plugins]

        return EcosystemOverview(
            total_plugins=total_plugins,
            total_marketplaces=len(marketplaces),
            total_developers=len(owners | authors),
            total_downloads=(
                sum(estimator.plugin_downloads(p) for p in plugins)
                + sum(estimator.marketplace_downloads(m) for m in marketplaces)
            ),
            total_stars=marketplace_stars + sum(p.stars for p in plugins),
            total_forks=sum(m.forks for m in marketplaces),
            verified_marketplaces=sum(1 for m in marketplaces if m.description and m.stars > 5),
            verified_plugins=sum(1 for p in plugins if p.validated),
            average_quality_score=round(sum(scores) / len(scores), 1) if scores else 0.0,
            total_categories=len(categories),
            marketplaces_with_manifest=sum(1 for m in marketplaces if m.has_manifest),
            last_updated=format_datetime(now),
        )

    # =========================================================================
    # Categories
    # =========================================================================

    def classify_plugin(self, plugin: PluginRecord) -> str:
        """
        将插件归入固定分类表
        Assign a plugin to the fixed taxonomy

        优先使用声明的分类名，其次匹配分类/标签/关键词，再匹配名称与描述，
        都不匹配时归入 Other。
        Declared category name first, then category/tag/keyword tokens, then
        name and description tokens, else Other.
        """
        declared = plugin.category.strip().lower()
        for name in CATEGORY_TAXONOMY:
            if declared == name.lower():
                return name

        strong = _tokens(plugin.category, *plugin.tags, *plugin.keywords)
        weak = _tokens(plugin.name, plugin.description)
        for tokens in (strong, weak):
            for name in CLASSIFICATION_ORDER:
                if tokens & CATEGORY_TAXONOMY[name]:
                    return name
        return OTHER_CATEGORY

    def derive_categories(
        self,
        plugins: list[PluginRecord],
        now: datetime
    ) -> list[CategoryAnalytics]:
        """
        按固定分类表分桶统计
        Bucket plugins by the fixed taxonomy

        每个插件恰好属于一个桶，因此各分类 plugin_count 之和等于插件总数。
        growth_rate 在各分类内独立计算，不做跨分类归一化。
        Each plugin lands in exactly one bucket, so plugin counts sum to the
        total. growth_rate is computed per bucket without renormalization.
        """
        buckets: dict[str, list[PluginRecord]] = defaultdict(list)
        for plugin in plugins:
            buckets[self.classify_plugin(plugin)].append(plugin)

        total = len(plugins)
        analytics: list[CategoryAnalytics] = []
        for name in [*CATEGORY_TAXONOMY, OTHER_CATEGORY]:
            members = buckets.get(name)
            if not members:
                continue
            analytics.append(self._category_analytics(name, members, total, now))

        analytics.sort(key=lambda c: c.plugin_count, reverse=True)
        return analytics

    def _category_analytics(
        self,
        name: str,
        members: list[PluginRecord],
        total: int,
        now: datetime
    ) -> CategoryAnalytics:
        estimator = self.engagement_estimator
        scores = [estimator.plugin_quality(p) for p in members]
        recent = sum(
            1 for p in members
            if (age := _days_since(p.updated_at, now)) is not None and age <= RECENT_UPDATE_DAYS
        )

        tag_counts: Counter[str] = Counter()
        for plugin in members:
            tag_counts.update({tag.lower() for tag in (*plugin.tags, *plugin.keywords)})

        ranked = sorted(
            members,
            key=lambda p: (estimator.plugin_quality(p) + estimator.plugin_stars(p) * 0.1, p.name),
            reverse=True,
        )
        top_plugins = [
            TopPlugin(
                id=p.id,
                name=p.name,
                stars=estimator.plugin_stars(p),
                downloads=estimator.plugin_downloads(p),
                quality_score=estimator.plugin_quality(p),
            )
            for p in ranked[:TOP_PLUGIN_COUNT]
        ]

        return CategoryAnalytics(
            category=name,
            plugin_count=len(members),
            percentage=percent(len(members), total),
            average_quality_score=round(sum(scores) / len(scores), 1),
            total_downloads=sum(estimator.plugin_downloads(p) for p in members),
            developer_count=len({p.author for p in members if p.author}),
            growth_rate=percent(recent, len(members)),
            popular_tags=[tag for tag, _ in tag_counts.most_common(POPULAR_TAG_COUNT)],
            top_plugins=top_plugins,
        )

    # =========================================================================
    # Developers
    # =========================================================================

    def derive_developers(
        self,
        marketplaces: list[MarketplaceRecord],
        plugins: list[PluginRecord]
    ) -> list[DeveloperAnalytics]:
        """
        按市场所有者汇总开发者分析
        Roll up developer analytics per marketplace owner

        插件数由描述文本估算，下载量由 star/fork 估算；按 star 总数降序，
        最多返回 max_developers 个。
        Plugin counts are estimated from description text and downloads from
        stars/forks; sorted by total stars descending, capped to
        max_developers.
        """
        by_owner: dict[str, list[MarketplaceRecord]] = defaultdict(list)
        for marketplace in marketplaces:
            by_owner[marketplace.owner_login].append(marketplace)

        plugins_by_marketplace: dict[str, list[PluginRecord]] = defaultdict(list)
        plugins_by_author: dict[str, list[PluginRecord]] = defaultdict(list)
        for plugin in plugins:
            if plugin.marketplace_id:
                plugins_by_marketplace[plugin.marketplace_id].append(plugin)
            if plugin.author:
                plugins_by_author[plugin.author.lower()].append(plugin)

        estimator = self.engagement_estimator
        developers: list[DeveloperAnalytics] = []
        for owner, owned in by_owner.items():
            stars = sum(m.stars for m in owned)
            forks = sum(m.forks for m in owned)

            linked: dict[str, PluginRecord] = {}
            for marketplace in owned:
                for plugin in plugins_by_marketplace.get(marketplace.id, []):
                    linked.setdefault(plugin.id, plugin)
            for plugin in plugins_by_author.get(owner.lower(), []):
                linked.setdefault(plugin.id, plugin)
            linked_plugins = list(linked.values())

            scores = [estimator.plugin_quality(p) for p in linked_plugins]
            first_dates = [m.created_at or m.updated_at for m in owned if m.created_at or m.updated_at]
            last_dates = [m.updated_at for m in owned if m.updated_at]

            developers.append(DeveloperAnalytics(
                developer=owner,
                marketplace_count=len(owned),
                plugin_count=sum(self.plugin_count_estimator.estimate(m) for m in owned),
                total_downloads=estimator.developer_downloads(stars, forks),
                total_stars=stars,
                total_forks=forks,
                average_quality_score=round(sum(scores) / len(scores), 1) if scores else 0.0,
                categories=sorted({self.classify_plugin(p) for p in linked_plugins}),
                first_plugin_date=format_datetime(min(first_dates)) if first_dates else '',
                last_plugin_date=format_datetime(max(last_dates)) if last_dates else '',
                verified_plugin_count=sum(1 for p in linked_plugins if p.validated),
            ))

        developers.sort(key=lambda d: d.total_stars, reverse=True)
        return developers[:self.max_developers]

    # =========================================================================
    # Quality
    # =========================================================================

    def derive_quality(self, plugins: list[PluginRecord], now: datetime) -> QualityIndicators:
        """
        质量与可信度指标
        Quality and trust indicators

        "废弃" 指 6 个月（180 天）以上未更新，阈值固定不可配置。
        "Abandoned" means no update in 180+ days; the threshold is fixed.
        """
        estimator = self.engagement_estimator
        total = len(plugins)
        verified = [p for p in plugins if p.validated]

        ages = [
            age for p in plugins
            if (age := _days_since(p.updated_at, now)) is not None
        ]
        def is_recent(plugin: PluginRecord) -> bool:
            age = _days_since(plugin.updated_at, now)
            return age is not None and age <= RECENT_UPDATE_DAYS

        # 按记录计数，id 可能在不同市场间重复
        recently_updated = sum(1 for p in plugins if is_recent(p))
        abandoned = sum(1 for age in ages if age >= ABANDONED_AFTER_DAYS)

        scores = [estimator.plugin_quality(p) for p in plugins]
        distribution = QualityDistribution(
            excellent=sum(1 for s in scores if s >= 90),
            good=sum(1 for s in scores if 80 <= s < 90),
            fair=sum(1 for s in scores if 70 <= s < 80),
            poor=sum(1 for s in scores if s < 70),
        )

        def has_security_issue(plugin: PluginRecord) -> bool:
            return any(SECURITY_ISSUE_PATTERN.search(error) for error in plugin.errors)

        badges = [
            VerificationBadge('security', sum(1 for p in verified if not has_security_issue(p))),
            VerificationBadge('quality', sum(
                1 for p in verified if estimator.plugin_quality(p) >= HIGH_QUALITY_THRESHOLD
            )),
            VerificationBadge('popularity', sum(
                1 for p in verified if estimator.plugin_stars(p) >= 10
            )),
            VerificationBadge('maintenance', sum(1 for p in verified if is_recent(p))),
        ]

        issues = [
            QualityIssue('Missing documentation',
                         sum(1 for p in plugins if not p.description.strip()), 'medium'),
            QualityIssue('No recent updates', abandoned, 'high'),
            QualityIssue('Validation errors', sum(1 for p in plugins if p.errors), 'high'),
            QualityIssue('Unverified plugins', total - len(verified), 'low'),
        ]

        security = None
        if total:
            critical = sum(1 for p in plugins if has_security_issue(p))
            security = SecurityMetrics(
                scanned_plugins=total,
                critical_issues=critical,
                security_score=round(100 - percent(critical, total), 2),
            )

        return QualityIndicators(
            verification=VerificationMetrics(
                verified_plugins=len(verified),
                verification_rate=percent(len(verified), total),
                badges=badges,
            ),
            maintenance=MaintenanceMetrics(
                recently_updated=recently_updated,
                active_maintenance_rate=percent(recently_updated, total),
                avg_update_frequency=round(sum(ages) / len(ages), 1) if ages else 0.0,
                abandoned_plugins=abandoned,
            ),
            quality_metrics=QualityScoreMetrics(
                avg_quality_score=round(sum(scores) / len(scores), 1) if scores else 0.0,
                high_quality_plugins=distribution.excellent + distribution.good,
                distribution=distribution,
                common_issues=[issue for issue in issues if issue.frequency > 0],
            ),
            security=security,
        )
