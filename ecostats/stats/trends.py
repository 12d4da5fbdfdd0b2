"""
增长趋势生成器
Growth Trend Generator

为插件、市场、开发者和下载量生成按时间范围采样的增长序列。
Generates growth series for plugins, marketplaces, developers and downloads,
sampled per time range.

两种模式 Two modes:
- 合成模式：在整个窗口上套用 S 型（logistic）曲线，用于模拟数据。
  Synthetic: a logistic S-curve over the whole window, used for mock data.
- 投影模式：从上线日期到今天套用指数逼近曲线 1 - e^(-3·progress)，
  每个点带 ±10% 乘性抖动，早期增长快、后期趋缓。
  Projection: an exponential approach curve from the launch date to today
  with ±10% multiplicative jitter per point.
"""

import logging
import math
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from ecostats.models import format_datetime
from ecostats.stats.models import TIME_RANGES, GrowthSeries, TrendDataPoint

logger = logging.getLogger(__name__)

# 插件生态上线日期
ECOSYSTEM_LAUNCH_DATE = datetime(2025, 10, 10, tzinfo=timezone.utc)

# 各时间范围的天数（'all' 取上线至今的天数）
RANGE_DAYS: dict[str, int] = {
    '7d': 7,
    '30d': 30,
    '90d': 90,
    '6m': 180,
    '1y': 365,
}

# 采样间隔（天），限制长时间范围的点数
SAMPLING_INTERVAL_DAYS: dict[str, int] = {
    '7d': 1,
    '30d': 3,
    '90d': 7,
    '6m': 14,
    '1y': 30,
    'all': 30,
}

METRICS = ('plugins', 'marketplaces', 'developers', 'downloads')


def s_curve(t: float, k: float = 6.0, x0: float = 0.5) -> float:
    """Logistic 曲线 1/(1+e^(-k(t-x0)))"""
    return 1.0 / (1.0 + math.exp(-k * (t - x0)))


def exponential_approach(progress: float, rate: float = 3.0) -> float:
    """指数逼近曲线 1 - e^(-rate·progress)"""
    return 1.0 - math.exp(-rate * progress)


@dataclass
class GrowthTotals:
    """
    当前总量，作为增长曲线的终点
    Current totals, the end point of the growth curves
    """
    plugins: int = 0
    marketplaces: int = 0
    developers: int = 0
    downloads: int = 0

    def as_dict(self) -> dict[str, int]:
        return {metric: max(0, int(getattr(self, metric))) for metric in METRICS}


def build_points(dates: list[str], values: list[int]) -> list[TrendDataPoint]:
    """
    组装数据点并计算 change
    Build data points, computing change against the previous value

    Examples:
        >>> points = build_points(['d1', 'd2'], [3, 5])
        >>> points[0].change is None, points[1].change
        (True, 2)
    """
    points: list[TrendDataPoint] = []
    previous: int | None = None
    for date, value in zip(dates, values):
        change = None if previous is None else value - previous
        points.append(TrendDataPoint(date=date, value=value, change=change))
        previous = value
    return points


class TrendGenerator:
    """
    增长趋势生成器
    Trend Generator

    Attributes:
        launch_date: 生态上线日期，不会生成早于此日期的点
                     Ecosystem launch date; no point precedes it
        realistic_growth: 合成模式是否使用 S 型曲线（否则线性）
                          Whether synthetic mode uses the S-curve (else linear)

    Examples:
        >>> generator = TrendGenerator(rng=random.Random(42))
        >>> series = generator.generate_projection('7d', GrowthTotals(plugins=100))
        >>> len(series.plugins) <= 8
        True
    """

    def __init__(
        self,
        launch_date: datetime = ECOSYSTEM_LAUNCH_DATE,
        rng: random.Random | None = None,
        realistic_growth: bool = True
    ):
        if launch_date.tzinfo is None:
            launch_date = launch_date.replace(tzinfo=timezone.utc)
        self.launch_date = launch_date
        self.rng = rng or random.Random()
        self.realistic_growth = realistic_growth

    @staticmethod
    def _normalize_now(now: datetime | None) -> datetime:
        if now is None:
            return datetime.now(timezone.utc)
        if now.tzinfo is None:
            return now.replace(tzinfo=timezone.utc)
        return now

    def days_since_launch(self, now: datetime | None = None) -> int:
        """上线至今的整天数，上线前为 0"""
        now = self._normalize_now(now)
        return max(0, (now - self.launch_date).days)

    def range_days(self, time_range: str, now: datetime | None = None) -> int:
        """
        时间范围对应的天数
        Number of days covered by a time range

        Raises:
            ValueError: 未知的时间范围
                        Unknown time range
        """
        if time_range == 'all':
            return self.days_since_launch(now)
        if time_range not in RANGE_DAYS:
            raise ValueError(f"Unknown time range: {time_range!r}, expected one of {TIME_RANGES}")
        return RANGE_DAYS[time_range]

    def sample_offsets(self, time_range: str, now: datetime | None = None) -> list[int]:
        """
        采样点距今的天数，最早的在前
        Day offsets (before now) of the sample points, oldest first

        跨度被限制为上线至今的天数。
        The span is clamped to the days elapsed since launch.
        """
        span = min(self.range_days(time_range, now), self.days_since_launch(now))
        step = SAMPLING_INTERVAL_DAYS[time_range]
        return list(reversed(range(0, span + 1, step)))

    def expected_point_count(self, time_range: str, now: datetime | None = None) -> int:
        span = min(self.range_days(time_range, now), self.days_since_launch(now))
        return span // SAMPLING_INTERVAL_DAYS[time_range] + 1

    def _to_series(
        self,
        now: datetime,
        offsets: list[int],
        values: dict[str, list[int]]
    ) -> GrowthSeries:
        dates = [format_datetime(now - timedelta(days=offset)) for offset in offsets]
        return GrowthSeries(**{metric: build_points(dates, values[metric]) for metric in METRICS})

    def generate_synthetic(
        self,
        time_range: str,
        totals: GrowthTotals,
        now: datetime | None = None
    ) -> GrowthSeries:
        """
        合成模式：S 型曲线
        Synthetic mode: S-curve over the requested window

        Args:
            time_range: 时间范围
                        Time range
            totals: 窗口末端的目标总量
                    Target totals at the end of the window
            now: 当前时间
                 Current time

        Returns:
            增长序列，数值单调不减
            Growth series with monotonically non-decreasing values
        """
        now = self._normalize_now(now)
        offsets = self.sample_offsets(time_range, now)
        span = offsets[0] if offsets else 0
        targets = totals.as_dict()

        values: dict[str, list[int]] = {metric: [] for metric in METRICS}
        for offset in offsets:
            progress = (span - offset) / span if span > 0 else 1.0
            growth = s_curve(progress) if self.realistic_growth else progress
            for metric in METRICS:
                values[metric].append(math.floor(targets[metric] * growth))

        return self._to_series(now, offsets, values)

    def generate_projection(
        self,
        time_range: str,
        totals: GrowthTotals,
        now: datetime | None = None
    ) -> GrowthSeries:
        """
        投影模式：从上线日期到今天的指数逼近曲线
        Projection mode: exponential approach from launch date to today

        同一采样点的四项指标共享一个抖动系数；数值封顶于目标总量，
        并取累计最大值以保证单调不减。
        The four metrics of one point share a jitter factor; values are capped
        at the target total and carried as a running maximum so the series
        never decreases.
        """
        now = self._normalize_now(now)
        offsets = self.sample_offsets(time_range, now)
        elapsed = self.days_since_launch(now)
        targets = totals.as_dict()

        values: dict[str, list[int]] = {metric: [] for metric in METRICS}
        for offset in offsets:
            progress = (elapsed - offset) / elapsed if elapsed > 0 else 1.0
            curve = exponential_approach(progress)
            variance = 0.9 + self.rng.random() * 0.2
            for metric in METRICS:
                target = targets[metric]
                value = min(math.floor(target * curve * variance), target)
                series = values[metric]
                if series and value < series[-1]:
                    value = series[-1]
                series.append(value)

        return self._to_series(now, offsets, values)

    def generate_all_ranges(
        self,
        totals: GrowthTotals,
        now: datetime | None = None,
        synthetic: bool = False
    ) -> dict[str, GrowthSeries]:
        """为所有时间范围生成增长序列 / Growth series for every time range"""
        now = self._normalize_now(now)
        generate = self.generate_synthetic if synthetic else self.generate_projection
        growth = {time_range: generate(time_range, totals, now) for time_range in TIME_RANGES}
        logger.debug(
            f"Generated {'synthetic' if synthetic else 'projected'} growth for "
            f"{len(growth)} ranges ({self.days_since_launch(now)} days since launch)"
        )
        return growth
