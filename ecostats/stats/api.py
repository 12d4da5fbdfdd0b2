"""
生态统计 API
Ecosystem Stats API

在 StatsService 之上提供查询参数校验、JSON 响应封装与 CSV 导出。
Provides query validation, the JSON response envelope and CSV export on top
of StatsService.
"""

import csv
import io
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ecostats.exceptions import InvalidQueryError
from ecostats.models import format_datetime, parse_datetime
from ecostats.stats.models import GrowthSeries, TrendDataPoint
from ecostats.stats.service import StatsService
from ecostats.stats.trends import METRICS, build_points

logger = logging.getLogger(__name__)

VALID_PERIODS = ('7d', '30d', '90d', '1y')
VALID_AGGREGATIONS = ('daily', 'weekly', 'monthly')


def _parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == 'true'


@dataclass
class StatsQuery:
    """
    查询参数
    Query parameters

    Attributes:
        period: 增长序列的时间范围
                Time range of the growth series
        aggregation: 增长序列的聚合粒度
                     Aggregation granularity of the growth series
        force_refresh: 跳过缓存
                       Bypass the cache

    Examples:
        >>> StatsQuery.from_params({'period': '7d', 'forceRefresh': 'true'})
        StatsQuery(period='7d', aggregation='weekly', force_refresh=True)
    """
    period: str = '30d'
    aggregation: str = 'weekly'
    force_refresh: bool = False

    def validate(self) -> None:
        """
        Raises:
            InvalidQueryError: 未知的 period 或 aggregation
        """
        if self.period not in VALID_PERIODS:
            raise InvalidQueryError(
                f"Invalid period parameter: {self.period!r}, expected one of {VALID_PERIODS}",
                'period'
            )
        if self.aggregation not in VALID_AGGREGATIONS:
            raise InvalidQueryError(
                f"Invalid aggregation parameter: {self.aggregation!r}, "
                f"expected one of {VALID_AGGREGATIONS}",
                'aggregation'
            )

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "StatsQuery":
        """从请求参数创建并校验 / Build and validate from request parameters"""
        query = cls(
            period=params.get('period') or '30d',
            aggregation=params.get('aggregation') or 'weekly',
            force_refresh=_parse_flag(params.get('forceRefresh', params.get('force_refresh', False))),
        )
        query.validate()
        return query


def _bucket_key(date: str, aggregation: str) -> tuple:
    moment = parse_datetime(date)
    if aggregation == 'weekly':
        iso = moment.isocalendar()
        return (iso[0], iso[1])
    if aggregation == 'monthly':
        return (moment.year, moment.month)
    return (moment.year, moment.month, moment.day)


def aggregate_points(points: list[TrendDataPoint], aggregation: str) -> list[TrendDataPoint]:
    """
    按粒度重新分桶：每个 ISO 周/月取最后一个点，并重新计算 change
    Re-bucket a series: keep the last point of each ISO week or month and
    recompute change

    Examples:
        >>> points = build_points(
        ...     ['2025-11-03T00:00:00Z', '2025-11-05T00:00:00Z', '2025-11-12T00:00:00Z'],
        ...     [1, 4, 9],
        ... )
        >>> [(p.value, p.change) for p in aggregate_points(points, 'weekly')]
        [(4, None), (9, 5)]
    """
    buckets: dict[tuple, TrendDataPoint] = {}
    for point in points:
        buckets[_bucket_key(point.date, aggregation)] = point
    kept = list(buckets.values())
    return build_points([p.date for p in kept], [p.value for p in kept])


class EcosystemStatsAPI:
    """
    生态统计 API
    Ecosystem Stats API

    Attributes:
        service: 生态统计服务
                 Ecosystem stats service

    Examples:
        >>> service = StatsService(JsonFileLoader('missing.json'))
        >>> api = EcosystemStatsAPI(service)
        >>> response = api.get_ecosystem_stats_json({'period': '7d'})
        >>> response['success']
        True
        >>> csv_data = api.export_categories_csv()
    """

    def __init__(self, service: StatsService):
        self.service = service

    @staticmethod
    def _envelope(
        started: float,
        data: Any = None,
        error: dict[str, str] | None = None
    ) -> dict[str, Any]:
        response: dict[str, Any] = {'success': error is None}
        if data is not None:
            response['data'] = data
        if error is not None:
            response['error'] = error
        response['meta'] = {
            'timestamp': format_datetime(datetime.now(timezone.utc)),
            'requestId': uuid.uuid4().hex[:8],
            'responseTime': round((time.perf_counter() - started) * 1000, 3),
        }
        return response

    # =========================================================================
    # JSON API
    # =========================================================================

    def get_ecosystem_stats_json(
        self,
        query: StatsQuery | dict[str, Any] | None = None
    ) -> dict:
        """
        获取生态统计 JSON
        Get ecosystem statistics JSON

        Args:
            query: 查询对象或原始请求参数
                   Query object or raw request parameters

        Returns:
            {success, data, meta}；参数无效时为 {success: False, error, meta}
            {success, data, meta}, or {success: False, error, meta} for an
            invalid query
        """
        started = time.perf_counter()
        try:
            if query is None:
                query = StatsQuery()
            elif isinstance(query, dict):
                query = StatsQuery.from_params(query)
            else:
                query.validate()
        except InvalidQueryError as e:
            logger.warning(f"Rejected ecosystem stats query: {e}")
            return self._envelope(started, error={
                'code': 'INVALID_PARAMETER',
                'message': str(e),
                'parameter': e.parameter,
            })

        stats = self.service.get_ecosystem_stats(force_refresh=query.force_refresh)
        series: GrowthSeries = stats.growth[query.period]
        growth = {
            metric: [
                p.to_dict() for p in aggregate_points(getattr(series, metric), query.aggregation)
            ]
            for metric in METRICS
        }

        data = {
            'overview': stats.overview.to_dict(),
            'growth': {
                'period': query.period,
                'aggregation': query.aggregation,
                'series': growth,
            },
            'categories': [c.to_dict() for c in stats.categories],
            'developers': [d.to_dict() for d in stats.developers],
            'quality': stats.quality.to_dict(),
            'metadata': stats.metadata.to_dict(),
        }
        return self._envelope(started, data=data)

    def get_cache_stats_json(self) -> dict:
        """
        获取缓存统计 JSON
        Get cache statistics JSON
        """
        started = time.perf_counter()
        return self._envelope(started, data=self.service.get_cache_stats().to_dict())

    # =========================================================================
    # CSV Export
    # =========================================================================

    def export_categories_csv(self) -> str:
        """
        导出分类分析 CSV
        Export category analytics CSV

        Returns:
            CSV 格式的字符串
            CSV formatted string
        """
        stats = self.service.get_ecosystem_stats()

        output = io.StringIO()
        writer = csv.writer(output)

        writer.writerow([
            'category', 'plugin_count', 'percentage', 'average_quality_score',
            'total_downloads', 'developer_count', 'growth_rate', 'popular_tags'
        ])

        for category in stats.categories:
            writer.writerow([
                category.category,
                category.plugin_count,
                category.percentage,
                category.average_quality_score,
                category.total_downloads,
                category.developer_count,
                category.growth_rate,
                ';'.join(category.popular_tags)
            ])

        return output.getvalue()

    def export_developers_csv(self) -> str:
        """
        导出开发者分析 CSV
        Export developer analytics CSV
        """
        stats = self.service.get_ecosystem_stats()

        output = io.StringIO()
        writer = csv.writer(output)

        writer.writerow([
            'developer', 'marketplace_count', 'plugin_count', 'total_downloads',
            'total_stars', 'total_forks', 'average_quality_score', 'categories',
            'verified_plugin_count', 'first_plugin_date', 'last_plugin_date'
        ])

        for developer in stats.developers:
            writer.writerow([
                developer.developer,
                developer.marketplace_count,
                developer.plugin_count,
                developer.total_downloads,
                developer.total_stars,
                developer.total_forks,
                developer.average_quality_score,
                ';'.join(developer.categories),
                developer.verified_plugin_count,
                developer.first_plugin_date,
                developer.last_plugin_date
            ])

        return output.getvalue()
