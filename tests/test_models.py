"""
原始记录模型的单元测试
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from ecostats.exceptions import RecordValidationError
from ecostats.models import (
    MarketplaceRecord,
    PluginRecord,
    format_datetime,
    parse_datetime,
    parse_records,
)
from ecostats.stats.models import CacheInfo, TrendDataPoint


class TestDatetimeHelpers:
    """时间解析与格式化测试"""

    def test_parse_z_suffix(self):
        assert parse_datetime('2025-10-10T00:00:00Z') == datetime(2025, 10, 10, tzinfo=timezone.utc)

    def test_parse_naive_is_utc(self):
        assert parse_datetime('2025-10-10').tzinfo == timezone.utc

    def test_parse_converts_offsets_to_utc(self):
        parsed = parse_datetime('2025-10-10T08:00:00+08:00')

        assert parsed == datetime(2025, 10, 10, tzinfo=timezone.utc)

    def test_parse_empty(self):
        assert parse_datetime(None) is None
        assert parse_datetime('') is None

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            parse_datetime('not a date')
        with pytest.raises(ValueError):
            parse_datetime(12345)

    def test_format_uses_z_suffix(self):
        moment = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=1)))

        assert format_datetime(moment) == '2026-01-02T02:04:05Z'


class TestMarketplaceRecord:
    """MarketplaceRecord 测试"""

    def test_from_dict_with_owner_object(self):
        """测试扫描器的标准格式"""
        record = MarketplaceRecord.from_dict({
            'id': 'acme-tools',
            'name': 'tools',
            'owner': {'login': 'acme'},
            'description': '12 plugins',
            'stars': 5,
            'forks': '2',
            'createdAt': '2025-10-12T00:00:00Z',
            'hasManifest': True,
            'topics': ['claude', None],
        })

        assert record.id == 'acme-tools'
        assert record.owner_login == 'acme'
        assert record.stars == 5
        assert record.forks == 2
        assert record.created_at.year == 2025
        assert record.updated_at is None
        assert record.has_manifest is True
        assert record.topics == ['claude']

    def test_from_dict_with_github_field_names(self):
        """测试 GitHub API 字段名"""
        record = MarketplaceRecord.from_dict({
            'name': 'kit',
            'owner': 'solo',
            'stargazers_count': 9,
            'forks_count': 1,
            'updated_at': '2026-01-01T00:00:00Z',
            'html_url': 'https://github.com/solo/kit',
        })

        assert record.id == 'solo-kit'
        assert record.stars == 9
        assert record.forks == 1
        assert record.url == 'https://github.com/solo/kit'

    def test_missing_owner_is_unknown(self):
        assert MarketplaceRecord.from_dict({'id': 'x'}).owner_login == 'unknown'

    @pytest.mark.parametrize('data', [
        42,
        None,
        {},
        {'id': 'x', 'stars': -1},
        {'id': 'x', 'stars': True},
        {'id': 'x', 'forks': float('nan')},
        {'id': 'x', 'updatedAt': 'soon'},
        {'id': 'x', 'topics': 'claude'},
        {'id': 'x', 'description': ['list']},
    ])
    def test_invalid_records(self, data):
        with pytest.raises(RecordValidationError) as exc_info:
            MarketplaceRecord.from_dict(data)

        assert exc_info.value.record_type == 'marketplace'


class TestPluginRecord:
    """PluginRecord 测试"""

    def test_from_dict(self):
        record = PluginRecord.from_dict({
            'id': 'lint',
            'name': 'Lint',
            'author': {'name': 'Ada'},
            'category': 'Development Tools',
            'tags': ['lint'],
            'isValid': True,
            'qualityScore': 77,
            'downloads': 120,
            'lastScanned': '2026-01-01T00:00:00Z',
            'marketplaceId': 'm1',
            'version': '1.2.0',
        })

        assert record.author == 'Ada'
        assert record.validated is True
        assert record.quality_score == 77.0
        assert record.downloads == 120
        assert record.updated_at == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert record.marketplace_id == 'm1'
        assert record.version == '1.2.0'

    def test_id_from_name(self):
        assert PluginRecord.from_dict({'name': 'Code Review Bot'}).id == 'code-review-bot'

    def test_optional_measurements_stay_none(self):
        record = PluginRecord.from_dict({'id': 'p'})

        assert record.quality_score is None
        assert record.downloads is None
        assert record.validated is False

    @pytest.mark.parametrize('data', [
        'plugin',
        {'description': 'no id or name'},
        {'id': 'p', 'qualityScore': 101},
        {'id': 'p', 'qualityScore': -0.5},
        {'id': 'p', 'qualityScore': '90'},
        {'id': 'p', 'downloads': -10},
        {'id': 'p', 'tags': 'a,b'},
        {'id': 'p', 'updatedAt': 'later'},
    ])
    def test_invalid_records(self, data):
        with pytest.raises(RecordValidationError):
            PluginRecord.from_dict(data)

    def test_to_dict(self):
        data = PluginRecord(id='p', name='P', tags=['x']).to_dict()

        assert data['id'] == 'p'
        assert data['tags'] == ['x']
        assert data['quality_score'] is None


class TestParseRecords:
    """批量解析测试"""

    def test_skips_and_counts_malformed(self, caplog):
        items = [{'id': 'a'}, 7, {'id': 'b', 'stars': -2}, {'id': 'c'}]

        with caplog.at_level(logging.WARNING):
            records, skipped = parse_records(items, MarketplaceRecord.from_dict, 'marketplace')

        assert [r.id for r in records] == ['a', 'c']
        assert skipped == 2
        assert 'Skipped 2 malformed marketplace record(s)' in caplog.text

    def test_no_warning_when_all_valid(self, caplog):
        with caplog.at_level(logging.WARNING):
            records, skipped = parse_records([{'id': 'p'}], PluginRecord.from_dict, 'plugin')

        assert len(records) == 1
        assert skipped == 0
        assert caplog.text == ''


class TestOutputModels:
    """输出模型序列化测试"""

    def test_trend_point_omits_missing_change(self):
        assert TrendDataPoint('2026-01-01T00:00:00Z', 4).to_dict() == {
            'date': '2026-01-01T00:00:00Z', 'value': 4
        }
        assert TrendDataPoint('2026-01-02T00:00:00Z', 6, 2).to_dict()['change'] == 2

    def test_cache_info_keys(self):
        assert CacheInfo(hit=True, ttl_ms=1000, remaining_ttl_ms=250).to_dict() == {
            'hit': True, 'ttl': 1000, 'remainingTtl': 250
        }
