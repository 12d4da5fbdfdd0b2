"""
配置加载模块单元测试
Unit tests for config loading module

测试 YAML 配置文件加载和环境变量替换功能。
Tests YAML config file loading and environment variable substitution.
"""

import os

import pytest

from ecostats.config import (
    get_config_value,
    get_stats_config,
    load_config,
    load_env_file,
    replace_env_vars,
)


class TestReplaceEnvVars:
    """测试环境变量替换功能"""

    def test_replace_simple_string(self, monkeypatch):
        """测试简单字符串中的环境变量替换"""
        monkeypatch.setenv('ECOSTATS_VAR_1', 'hello')

        assert replace_env_vars('${ECOSTATS_VAR_1}') == 'hello'

    def test_replace_string_with_prefix_suffix(self, monkeypatch):
        monkeypatch.setenv('ECOSTATS_VAR_2', 'world')

        assert replace_env_vars('Hello ${ECOSTATS_VAR_2}!') == 'Hello world!'

    def test_default_value_when_unset(self, monkeypatch):
        """测试 ${VAR:default} 格式"""
        monkeypatch.delenv('ECOSTATS_UNSET_TTL', raising=False)

        assert replace_env_vars('${ECOSTATS_UNSET_TTL:21600}') == '21600'

    def test_env_value_wins_over_default(self, monkeypatch):
        monkeypatch.setenv('ECOSTATS_TTL', '60')

        assert replace_env_vars('${ECOSTATS_TTL:21600}') == '60'

    def test_empty_default(self, monkeypatch):
        monkeypatch.delenv('ECOSTATS_DATA_URL', raising=False)

        assert replace_env_vars('${ECOSTATS_DATA_URL:}') == ''

    def test_replace_nonexistent_var_returns_empty(self, monkeypatch):
        monkeypatch.delenv('ECOSTATS_NOT_SET', raising=False)

        assert replace_env_vars('${ECOSTATS_NOT_SET}') == ''

    def test_replace_in_nested_structure(self, monkeypatch):
        """测试嵌套字典和列表中的环境变量替换"""
        monkeypatch.setenv('ECOSTATS_PATH', '/data/complete.json')
        config = {
            'ecosystem_stats': {
                'data_path': '${ECOSTATS_PATH}',
                'sources': ['${ECOSTATS_PATH}', 'static'],
            }
        }

        assert replace_env_vars(config) == {
            'ecosystem_stats': {
                'data_path': '/data/complete.json',
                'sources': ['/data/complete.json', 'static'],
            }
        }

    def test_replace_preserves_non_string_types(self):
        config = {'ttl': 60, 'ratio': 0.5, 'enabled': True, 'seed': None}

        assert replace_env_vars(config) == config


class TestLoadConfig:
    """测试配置文件加载"""

    def test_load_simple_config(self, tmp_path):
        config_file = tmp_path / 'config.yaml'
        config_file.write_text('ecosystem_stats:\n  cache_ttl_seconds: 120\n', encoding='utf-8')

        config = load_config(str(config_file), env_path=str(tmp_path / 'missing.env'))

        assert config == {'ecosystem_stats': {'cache_ttl_seconds': 120}}

    def test_load_config_with_env_file(self, tmp_path, monkeypatch):
        """测试 .env 文件中的变量被替换进配置"""
        monkeypatch.delenv('ECOSTATS_FILE_TTL', raising=False)
        env_file = tmp_path / '.env'
        env_file.write_text('ECOSTATS_FILE_TTL=300\n', encoding='utf-8')
        config_file = tmp_path / 'config.yaml'
        config_file.write_text(
            'ecosystem_stats:\n  cache_ttl_seconds: "${ECOSTATS_FILE_TTL:21600}"\n',
            encoding='utf-8'
        )

        config = load_config(str(config_file), env_path=str(env_file))

        assert config['ecosystem_stats']['cache_ttl_seconds'] == '300'
        assert get_stats_config(config).cache_ttl_seconds == 300.0
        os.environ.pop('ECOSTATS_FILE_TTL', None)

    def test_load_config_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / 'nope.yaml'))

    def test_load_empty_config(self, tmp_path):
        config_file = tmp_path / 'empty.yaml'
        config_file.write_text('', encoding='utf-8')

        assert load_config(str(config_file), env_path=str(tmp_path / 'missing.env')) == {}

    def test_load_env_file_missing(self, tmp_path):
        assert load_env_file(str(tmp_path / 'missing.env')) is False


class TestGetConfigValue:
    """测试点分隔路径取值"""

    def test_get_simple_value(self):
        assert get_config_value({'a': 1}, 'a') == 1

    def test_get_missing_value_returns_default(self):
        assert get_config_value({'a': {'b': 1}}, 'a.c', 'fallback') == 'fallback'
