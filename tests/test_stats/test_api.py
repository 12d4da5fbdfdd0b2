"""
EcosystemStatsAPI 单元测试

测试 API 层：
- 查询参数解析与校验
- JSON 响应封装（success/data/error/meta）
- 增长序列按粒度重新分桶
- CSV 导出
"""

import csv
import io
import random
from datetime import datetime, timezone

import pytest

from ecostats.exceptions import InvalidQueryError
from ecostats.loader import JsonFileLoader, RawDataLoader, RawDataset
from ecostats.stats.api import (
    VALID_AGGREGATIONS,
    VALID_PERIODS,
    EcosystemStatsAPI,
    StatsQuery,
    aggregate_points,
)
from ecostats.stats.assembler import StatsAssembler
from ecostats.stats.service import StatsService
from ecostats.stats.trends import build_points

NOW = datetime(2026, 3, 2, tzinfo=timezone.utc)


class MemoryLoader(RawDataLoader):
    def __init__(self):
        self.calls = 0

    @property
    def source_name(self) -> str:
        return 'memory'

    def load(self) -> RawDataset:
        self.calls += 1
        return RawDataset(
            marketplaces=[
                {'id': 'qa-hub', 'name': 'hub', 'owner': {'login': 'qa'}, 'stars': 20,
                 'description': '3 plugins', 'updatedAt': '2026-02-20T00:00:00Z'},
            ],
            plugins=[
                {'id': 'runner', 'name': 'Runner', 'author': 'qa', 'category': 'Testing',
                 'tags': ['testing', 'ci'], 'validated': True, 'qualityScore': 90,
                 'marketplaceId': 'qa-hub'},
                {'id': 'fixtures', 'name': 'Fixtures', 'author': 'qa', 'category': 'Testing',
                 'tags': ['testing'], 'validated': True, 'qualityScore': 70,
                 'marketplaceId': 'qa-hub'},
                {'id': 'audit', 'name': 'Audit', 'author': 'qa', 'category': 'Security',
                 'tags': ['security'], 'validated': False, 'marketplaceId': 'qa-hub'},
            ],
        )


@pytest.fixture
def loader():
    return MemoryLoader()


@pytest.fixture
def api(loader):
    service = StatsService(
        loader=loader,
        assembler=StatsAssembler(rng=random.Random(2)),
        now=lambda: NOW,
    )
    return EcosystemStatsAPI(service)


class TestStatsQuery:
    """查询参数测试"""

    def test_defaults(self):
        query = StatsQuery.from_params({})

        assert query == StatsQuery(period='30d', aggregation='weekly', force_refresh=False)

    @pytest.mark.parametrize('flag,expected', [
        ('true', True),
        ('TRUE', True),
        ('false', False),
        ('1', False),
        (True, True),
    ])
    def test_force_refresh_flag(self, flag, expected):
        assert StatsQuery.from_params({'forceRefresh': flag}).force_refresh is expected

    def test_snake_case_force_refresh(self):
        assert StatsQuery.from_params({'force_refresh': 'true'}).force_refresh is True

    @pytest.mark.parametrize('period', VALID_PERIODS)
    def test_valid_periods(self, period):
        assert StatsQuery.from_params({'period': period}).period == period

    @pytest.mark.parametrize('aggregation', VALID_AGGREGATIONS)
    def test_valid_aggregations(self, aggregation):
        assert StatsQuery.from_params({'aggregation': aggregation}).aggregation == aggregation

    def test_invalid_period(self):
        with pytest.raises(InvalidQueryError) as exc_info:
            StatsQuery.from_params({'period': '2w'})

        assert exc_info.value.parameter == 'period'

    def test_invalid_aggregation(self):
        with pytest.raises(InvalidQueryError) as exc_info:
            StatsQuery(aggregation='hourly').validate()

        assert exc_info.value.parameter == 'aggregation'


class TestAggregatePoints:
    """分桶测试"""

    def test_weekly_keeps_last_point_of_each_iso_week(self):
        points = build_points(
            ['2025-11-03T00:00:00Z', '2025-11-05T00:00:00Z', '2025-11-12T00:00:00Z'],
            [1, 4, 9],
        )

        result = aggregate_points(points, 'weekly')

        assert [(p.date, p.value, p.change) for p in result] == [
            ('2025-11-05T00:00:00Z', 4, None),
            ('2025-11-12T00:00:00Z', 9, 5),
        ]

    def test_monthly(self):
        points = build_points(
            ['2025-10-30T00:00:00Z', '2025-10-31T00:00:00Z', '2025-11-02T00:00:00Z'],
            [2, 3, 8],
        )

        result = aggregate_points(points, 'monthly')

        assert [(p.value, p.change) for p in result] == [(3, None), (8, 5)]

    def test_daily_merges_same_day_points(self):
        points = build_points(
            ['2025-11-01T00:00:00Z', '2025-11-01T12:00:00Z', '2025-11-02T00:00:00Z'],
            [1, 2, 6],
        )

        result = aggregate_points(points, 'daily')

        assert [(p.value, p.change) for p in result] == [(2, None), (6, 4)]

    def test_empty_series(self):
        assert aggregate_points([], 'weekly') == []


class TestEcosystemStatsJSON:
    """JSON 响应测试"""

    def test_success_envelope(self, api):
        response = api.get_ecosystem_stats_json()

        assert response['success'] is True
        assert 'error' not in response
        assert set(response['meta']) == {'timestamp', 'requestId', 'responseTime'}
        assert len(response['meta']['requestId']) == 8
        assert response['meta']['timestamp'].endswith('Z')
        assert response['meta']['responseTime'] >= 0

    def test_service_over_missing_file_answers(self, tmp_path):
        service = StatsService(JsonFileLoader(str(tmp_path / 'missing.json')))
        api = EcosystemStatsAPI(service)

        response = api.get_ecosystem_stats_json({'period': '7d'})

        assert response['success'] is True
        assert response['data']['metadata']['dataSources'] == ['mock-data-generator']
        assert api.export_categories_csv().startswith('category,')

    def test_data_sections(self, api):
        data = api.get_ecosystem_stats_json({'period': '7d', 'aggregation': 'daily'})['data']

        assert set(data) == {'overview', 'growth', 'categories', 'developers', 'quality', 'metadata'}
        assert data['overview']['totalPlugins'] == 3
        assert data['growth']['period'] == '7d'
        assert data['growth']['aggregation'] == 'daily'
        assert set(data['growth']['series']) == {'plugins', 'marketplaces', 'developers', 'downloads'}
        assert data['metadata']['dataSources'] == ['github-api', 'marketplace-scanner']

    def test_first_point_omits_change(self, api):
        series = api.get_ecosystem_stats_json({'period': '90d'})['data']['growth']['series']

        for points in series.values():
            assert 'change' not in points[0]
            assert all('change' in p for p in points[1:])

    def test_categories_in_response(self, api):
        categories = api.get_ecosystem_stats_json()['data']['categories']

        assert [(c['category'], c['pluginCount'], c['percentage']) for c in categories] == [
            ('Testing', 2, 66.67),
            ('Security', 1, 33.33),
        ]

    def test_cache_hit_reported_in_metadata(self, api, loader):
        api.get_ecosystem_stats_json()
        metadata = api.get_ecosystem_stats_json()['data']['metadata']

        assert loader.calls == 1
        assert metadata['cacheInfo']['hit'] is True

    def test_force_refresh_param(self, api, loader):
        api.get_ecosystem_stats_json()
        api.get_ecosystem_stats_json({'forceRefresh': 'true'})

        assert loader.calls == 2

    def test_accepts_query_object(self, api):
        response = api.get_ecosystem_stats_json(StatsQuery(period='1y', aggregation='monthly'))

        assert response['data']['growth']['period'] == '1y'

    def test_invalid_parameter_error(self, api, loader):
        response = api.get_ecosystem_stats_json({'period': 'forever'})

        assert response['success'] is False
        assert 'data' not in response
        assert response['error']['code'] == 'INVALID_PARAMETER'
        assert response['error']['parameter'] == 'period'
        assert 'forever' in response['error']['message']
        assert 'requestId' in response['meta']
        assert loader.calls == 0

    def test_invalid_query_object(self, api):
        response = api.get_ecosystem_stats_json(StatsQuery(aggregation='yearly'))

        assert response['error']['parameter'] == 'aggregation'

    def test_cache_stats_json(self, api):
        api.get_ecosystem_stats_json()
        api.get_ecosystem_stats_json()

        response = api.get_cache_stats_json()

        assert response['success'] is True
        assert response['data']['totalEntries'] == 1
        assert response['data']['hits'] == 1
        assert response['data']['misses'] == 1
        assert response['data']['hitRate'] == 0.5


class TestCSVExport:
    """CSV 导出测试"""

    def test_export_categories_csv(self, api):
        rows = list(csv.reader(io.StringIO(api.export_categories_csv())))

        assert rows[0] == [
            'category', 'plugin_count', 'percentage', 'average_quality_score',
            'total_downloads', 'developer_count', 'growth_rate', 'popular_tags'
        ]
        assert len(rows) == 3
        assert rows[1][0] == 'Testing'
        assert rows[1][1] == '2'
        assert rows[1][2] == '66.67'
        assert rows[1][3] == '80.0'
        assert rows[1][5] == '1'
        assert rows[1][7] == 'testing;ci'
        assert rows[2][0] == 'Security'

    def test_export_developers_csv(self, api):
        rows = list(csv.reader(io.StringIO(api.export_developers_csv())))

        assert rows[0][0] == 'developer'
        assert rows[0][-2:] == ['first_plugin_date', 'last_plugin_date']
        assert len(rows) == 2
        assert rows[1][0] == 'qa'
        assert rows[1][2] == '3'
        assert set(rows[1][7].split(';')) == {'Testing', 'Security'}

    def test_exports_share_the_cached_stats(self, api, loader):
        api.export_categories_csv()
        api.export_developers_csv()

        assert loader.calls == 1
