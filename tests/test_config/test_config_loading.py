"""
配置加载属性测试
Property-Based Tests for Configuration Loading

测试生态统计配置段的默认值处理与校验。
Tests default handling and validation of the ecosystem statistics section.
"""

from typing import Any

import pytest
import yaml
from hypothesis import assume, given, strategies as st, settings

from ecostats.config import (
    DEFAULT_CONFIG,
    MockDataConfig,
    StatsConfig,
    _deep_merge,
    apply_defaults,
    get_config_value,
    get_stats_config,
    load_config_with_defaults,
)
from ecostats.exceptions import ConfigurationError


# ============================================================================
# Strategies for generating test data
# ============================================================================

config_key_strategy = st.from_regex(r"^[a-z][a-z0-9_]{0,20}$", fullmatch=True)

config_value_strategy = st.one_of(
    st.text(min_size=0, max_size=50, alphabet="abcdefghijklmnopqrstuvwxyz0123456789_"),
    st.integers(min_value=-1000, max_value=1000),
    st.floats(min_value=0.0, max_value=1.0, allow_nan=False, allow_infinity=False),
    st.booleans(),
)

ttl_strategy = st.integers(min_value=1, max_value=7 * 24 * 3600)

mock_count_strategy = st.integers(min_value=0, max_value=500)


# ============================================================================
# Default Configuration Values
# ============================================================================

class TestDefaultConfigurationValues:
    """
    缺失的配置项使用预定义默认值
    Missing configuration keys fall back to predefined defaults
    """

    def test_completely_empty_config_uses_all_defaults(self):
        stats_config = get_stats_config({})

        assert stats_config.data_path == 'data/generated/complete.json'
        assert stats_config.data_url == ''
        assert stats_config.cache_ttl_seconds == 21600
        assert stats_config.launch_date == '2025-10-10'
        assert stats_config.random_seed is None
        assert stats_config.single_flight is True
        assert stats_config.mock == MockDataConfig()

    def test_null_section_uses_defaults(self):
        assert get_stats_config({'ecosystem_stats': None}) == get_stats_config({})

    @given(ttl=ttl_strategy)
    @settings(max_examples=100)
    def test_ttl_override_preserves_other_defaults(self, ttl: int):
        stats_config = get_stats_config({'ecosystem_stats': {'cache_ttl_seconds': ttl}})

        assert stats_config.cache_ttl_seconds == ttl
        assert stats_config.request_timeout == 30
        assert stats_config.mock.total_plugins == 100

    @given(marketplaces=mock_count_strategy, per_marketplace=mock_count_strategy)
    @settings(max_examples=100)
    def test_partial_mock_config_fills_missing_with_defaults(
        self, marketplaces: int, per_marketplace: int
    ):
        stats_config = get_stats_config({
            'ecosystem_stats': {
                'mock': {
                    'marketplace_count': marketplaces,
                    'plugins_per_marketplace': per_marketplace,
                }
            }
        })

        assert stats_config.mock.total_plugins == marketplaces * per_marketplace
        assert stats_config.mock.developer_count == 15
        assert stats_config.mock.category_count == 8

    @given(ttl=ttl_strategy, seed=st.integers(min_value=0, max_value=2**31))
    @settings(max_examples=100)
    def test_string_values_from_env_substitution_are_coerced(self, ttl: int, seed: int):
        stats_config = get_stats_config({
            'ecosystem_stats': {
                'cache_ttl_seconds': str(ttl),
                'random_seed': str(seed),
                'single_flight': 'false',
                'mock': {'developer_count': '3', 'realistic_growth': 'no'},
            }
        })

        assert stats_config.cache_ttl_seconds == float(ttl)
        assert stats_config.random_seed == seed
        assert stats_config.single_flight is False
        assert stats_config.mock.developer_count == 3
        assert stats_config.mock.realistic_growth is False

    def test_empty_seed_string_means_unseeded(self):
        assert get_stats_config({'ecosystem_stats': {'random_seed': ''}}).random_seed is None

    def test_load_config_with_defaults_applies_defaults(self, tmp_path):
        config_file = tmp_path / 'config.yaml'
        config_file.write_text(
            yaml.safe_dump({'ecosystem_stats': {'cache_ttl_seconds': 60}, 'other': {'x': 1}}),
            encoding='utf-8'
        )

        config = load_config_with_defaults(str(config_file), env_path=str(tmp_path / '.env'))

        assert config['ecosystem_stats']['cache_ttl_seconds'] == 60
        assert config['ecosystem_stats']['launch_date'] == '2025-10-10'
        assert config['ecosystem_stats']['mock']['marketplace_count'] == 5
        assert config['other'] == {'x': 1}

    def test_apply_defaults_does_not_mutate_defaults(self):
        apply_defaults({'ecosystem_stats': {'mock': {'marketplace_count': 1}}})

        assert DEFAULT_CONFIG['ecosystem_stats']['mock']['marketplace_count'] == 5


# ============================================================================
# Validation
# ============================================================================

class TestStatsConfigValidation:
    """配置校验测试"""

    @pytest.mark.parametrize('override', [
        {'cache_ttl_seconds': 0},
        {'cache_ttl_seconds': -5},
        {'request_timeout': 0},
        {'data_path': '', 'data_url': ''},
        {'launch_date': 'someday'},
        {'launch_date': '1999-12-31'},
        {'cache_ttl_seconds': 'an hour'},
        {'single_flight': 'maybe'},
        {'random_seed': 'abc'},
        {'mock': {'marketplace_count': -1}},
        {'mock': {'category_count': 0}},
        {'mock': {'category_count': 9}},
        {'mock': {'developer_count': True}},
    ])
    def test_invalid_values_raise(self, override: dict):
        with pytest.raises(ConfigurationError):
            get_stats_config({'ecosystem_stats': override})

    def test_url_alone_is_enough(self):
        stats_config = get_stats_config({
            'ecosystem_stats': {'data_path': '', 'data_url': 'https://example.com/data.json'}
        })

        assert stats_config.data_url == 'https://example.com/data.json'

    def test_launch_datetime(self):
        launch = StatsConfig(launch_date='2025-10-10').launch_datetime

        assert (launch.year, launch.month, launch.day) == (2025, 10, 10)
        assert launch.tzinfo is not None

    @given(
        marketplaces=mock_count_strategy,
        per_marketplace=mock_count_strategy,
        developers=mock_count_strategy,
        categories=st.integers(min_value=1, max_value=8),
        quality=st.booleans(),
        growth=st.booleans(),
    )
    @settings(max_examples=100)
    def test_mock_config_dict_conversion(
        self, marketplaces, per_marketplace, developers, categories, quality, growth
    ):
        mock = MockDataConfig(
            marketplace_count=marketplaces,
            plugins_per_marketplace=per_marketplace,
            developer_count=developers,
            category_count=categories,
            realistic_quality=quality,
            realistic_growth=growth,
        )
        mock.validate()

        assert MockDataConfig.from_dict(mock.to_dict()) == mock

    def test_stats_config_to_dict_feeds_from_dict(self):
        stats_config = StatsConfig(cache_ttl_seconds=90.0, random_seed=7)

        assert StatsConfig.from_dict(stats_config.to_dict()) == stats_config


# ============================================================================
# Deep merge and lookup helpers
# ============================================================================

class TestDeepMerge:

    @given(base_value=config_value_strategy, override_value=config_value_strategy)
    @settings(max_examples=100)
    def test_deep_merge_override_takes_precedence(self, base_value: Any, override_value: Any):
        result = _deep_merge({'key': base_value}, {'key': override_value})

        assert result['key'] == override_value

    @given(key=config_key_strategy, value=config_value_strategy)
    @settings(max_examples=100)
    def test_deep_merge_preserves_base_keys_not_in_override(self, key: str, value: Any):
        assume(key != 'existing')
        base = {key: value, 'existing': 'base'}

        result = _deep_merge(base, {key: value})

        assert result['existing'] == 'base'

    def test_deep_merge_nested_dicts(self):
        result = _deep_merge(
            {'level1': {'level2': {'a': 1, 'b': 2}}},
            {'level1': {'level2': {'b': 20, 'c': 30}}}
        )

        assert result == {'level1': {'level2': {'a': 1, 'b': 20, 'c': 30}}}


class TestGetConfigValue:

    @given(key=config_key_strategy, value=config_value_strategy, default=config_value_strategy)
    @settings(max_examples=100)
    def test_get_config_value_returns_value_when_exists(self, key: str, value: Any, default: Any):
        assert get_config_value({key: value}, key, default) == value

    def test_get_config_value_nested_path(self):
        config = {'ecosystem_stats': {'mock': {'developer_count': 4}}}

        assert get_config_value(config, 'ecosystem_stats.mock.developer_count') == 4

    def test_get_config_value_partial_path_returns_default(self):
        config = {'ecosystem_stats': {'cache_ttl_seconds': 60}}

        assert get_config_value(config, 'ecosystem_stats.cache_ttl_seconds.x', 'd') == 'd'
