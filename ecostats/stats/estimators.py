"""
启发式估算策略
Heuristic Estimation Strategies

上游数据源不提供真实的下载量与参与度数据，这里的所有数值都是基于
代理指标（star、fork、描述文本）的估计，而非实测。公式是可调参数，
因此以可替换的策略类提供。
The upstream source has no download or engagement telemetry. Every figure
produced here is an estimate from proxy signals (stars, forks, description
text), not a measurement. The formulas are tuning parameters and are
provided as swappable strategies.
"""

import random
import re
from abc import ABC, abstractmethod

from ecostats.models import MarketplaceRecord, PluginRecord

# 匹配描述中的 "<N> plugins" / "<N> tools" / "<N> commands"
PLUGIN_COUNT_PATTERN = re.compile(r'(\d+)\s+(?:plugins?|tools?|commands?)', re.IGNORECASE)


class PluginCountEstimator(ABC):
    """
    插件数量估算策略
    Plugin count estimation strategy
    """

    @abstractmethod
    def extract(self, description: str) -> int | None:
        """
        从描述中提取插件数量，无法提取时返回 None
        Extract a plugin count from a description, None when absent
        """

    @abstractmethod
    def estimate(self, marketplace: MarketplaceRecord) -> int:
        """
        估算市场的插件数量（提取失败时使用回退估计）
        Estimate a marketplace's plugin count, with a fallback estimate
        """


class RegexPluginCountEstimator(PluginCountEstimator):
    """
    基于正则的插件数量估算
    Regex-based plugin count estimation

    描述中没有数量时，回退为 [fallback_min, fallback_max] 区间内的随机估计。
    Falls back to a random estimate in [fallback_min, fallback_max] when the
    description carries no count.

    Examples:
        >>> estimator = RegexPluginCountEstimator(rng=random.Random(1))
        >>> estimator.extract('A curated set of 42 plugins for Claude')
        42
        >>> estimator.extract('No numbers here') is None
        True
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        pattern: re.Pattern = PLUGIN_COUNT_PATTERN,
        fallback_min: int = 5,
        fallback_max: int = 54
    ):
        self.rng = rng or random.Random()
        self.pattern = pattern
        self.fallback_min = fallback_min
        self.fallback_max = fallback_max

    def extract(self, description: str) -> int | None:
        match = self.pattern.search(description or '')
        return int(match.group(1)) if match else None

    def estimate(self, marketplace: MarketplaceRecord) -> int:
        count = self.extract(marketplace.description)
        if count is not None:
            return count
        return self.rng.randint(self.fallback_min, self.fallback_max)


class EngagementEstimator(ABC):
    """
    参与度估算策略（下载量、质量评分）
    Engagement estimation strategy (downloads, quality score)
    """

    @abstractmethod
    def plugin_stars(self, plugin: PluginRecord) -> int:
        """插件 star 数（缺失时估算）"""

    @abstractmethod
    def plugin_downloads(self, plugin: PluginRecord) -> int:
        """插件下载量估计"""

    @abstractmethod
    def plugin_quality(self, plugin: PluginRecord) -> float:
        """插件质量评分 0-100（缺失时估算）"""

    @abstractmethod
    def developer_downloads(self, stars: int, forks: int) -> int:
        """开发者下载量估计"""

    @abstractmethod
    def marketplace_downloads(self, marketplace: MarketplaceRecord) -> int:
        """市场层面的下载量估计"""


class DefaultEngagementEstimator(EngagementEstimator):
    """
    默认参与度估算
    Default engagement estimation

    - 插件 star 缺失时按质量评分 × 2 估算
    - 插件下载量 = 实测值（若上游提供）或 star × download_factor
    - 开发者下载量 = (10·stars + 25·forks) × 5 + [0, 1000) 抖动
    - 市场下载量 = stars × 10

    Attributes:
        download_factor: 每个 star 对应的下载量
                         Downloads per star
        developer_jitter: 开发者下载量抖动上限
                          Upper bound of the developer download jitter
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        download_factor: int = 50,
        developer_jitter: int = 1000
    ):
        self.rng = rng or random.Random()
        self.download_factor = download_factor
        self.developer_jitter = developer_jitter

    def plugin_stars(self, plugin: PluginRecord) -> int:
        if plugin.stars > 0:
            return plugin.stars
        return int(self.plugin_quality(plugin) * 2)

    def plugin_downloads(self, plugin: PluginRecord) -> int:
        if plugin.downloads is not None:
            return plugin.downloads
        return self.plugin_stars(plugin) * self.download_factor

    def plugin_quality(self, plugin: PluginRecord) -> float:
        if plugin.quality_score is not None:
            return plugin.quality_score

        # 无评分时按清单完整度估算
        score = 50.0
        if plugin.validated:
            score += 20
        if plugin.description:
            score += 10
        if plugin.version:
            score += 5
        if plugin.tags or plugin.keywords:
            score += 5
        score -= 10 * len(plugin.errors) + 2 * len(plugin.warnings)
        return max(0.0, min(100.0, score))

    def developer_downloads(self, stars: int, forks: int) -> int:
        engagement = stars * 10 + forks * 25
        jitter = self.rng.random() * self.developer_jitter if self.developer_jitter else 0.0
        return int(engagement * 5 + jitter)

    def marketplace_downloads(self, marketplace: MarketplaceRecord) -> int:
        return marketplace.stars * 10
