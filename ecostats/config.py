"""
配置加载模块
Config Loading Module

实现YAML配置文件加载、环境变量替换与生态统计配置段的解析。
Implements YAML config file loading, environment variable substitution and
parsing of the ecosystem statistics section.
"""

import os
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from ecostats.exceptions import ConfigurationError
from ecostats.models import parse_datetime


def load_env_file(env_path: str | None = None) -> bool:
    """
    加载.env文件中的环境变量。
    Load environment variables from .env file.

    Args:
        env_path: .env文件路径，默认为None（自动查找）
                  Path to .env file, defaults to None (auto-discover)

    Returns:
        是否成功加载了.env文件
        Whether .env file was successfully loaded
    """
    if env_path:
        env_file = Path(env_path)
        if env_file.exists():
            load_dotenv(env_file)
            return True
        return False

    return load_dotenv()


def replace_env_vars(value: Any) -> Any:
    """
    递归替换配置值中的环境变量占位符。
    Recursively substitute environment variable placeholders in config values.

    支持 ${VAR_NAME} 与 ${VAR_NAME:default} 两种格式，不存在且无默认值时替换为空字符串。
    Supports ${VAR_NAME} and ${VAR_NAME:default}; an unset variable without a
    default becomes the empty string.

    Examples:
        >>> os.environ['ECOSTATS_TEST_VAR'] = 'test_value'
        >>> replace_env_vars({'key': '${ECOSTATS_TEST_VAR}'})
        {'key': 'test_value'}
        >>> replace_env_vars('${ECOSTATS_MISSING_VAR:30}')
        '30'
    """
    if isinstance(value, str):
        pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

        def replacer(match: re.Match) -> str:
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ''
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replacer, value)

    elif isinstance(value, dict):
        return {k: replace_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [replace_env_vars(item) for item in value]

    return value


def load_config(config_path: str = "config.yaml", env_path: str | None = None) -> dict:
    """
    加载YAML配置文件并替换环境变量。
    Load YAML config file and substitute environment variables.

    Args:
        config_path: 配置文件路径，默认为 "config.yaml"
                     Config file path, defaults to "config.yaml"
        env_path: .env文件路径，默认为None（自动查找）
                  Path to .env file, defaults to None (auto-discover)

    Returns:
        解析并替换环境变量后的配置字典
        Parsed config dict with environment variables substituted

    Raises:
        FileNotFoundError: 配置文件不存在
                           Config file not found
        yaml.YAMLError: YAML解析错误
                        YAML parsing error
    """
    load_env_file(env_path)

    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"配置文件不存在: {config_path}")

    with open(config_file, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)

    if config is None:
        return {}

    return replace_env_vars(config)


def get_config_value(config: dict, key_path: str, default: Any = None) -> Any:
    """
    通过点分隔的路径获取配置值。
    Get config value by dot-separated path.

    Examples:
        >>> config = {'ecosystem_stats': {'cache_ttl_seconds': 60}}
        >>> get_config_value(config, 'ecosystem_stats.cache_ttl_seconds')
        60
        >>> get_config_value(config, 'ecosystem_stats.missing', 'default')
        'default'
    """
    keys = key_path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


# 默认配置值
# Default Configuration Values
DEFAULT_CONFIG: dict[str, Any] = {
    'ecosystem_stats': {
        'data_path': 'data/generated/complete.json',
        'data_url': '',
        'request_timeout': 30,
        'cache_ttl_seconds': 21600,
        'launch_date': '2025-10-10',
        'random_seed': None,
        'single_flight': True,
        'mock': {
            'marketplace_count': 5,
            'plugins_per_marketplace': 20,
            'developer_count': 15,
            'category_count': 8,
            'realistic_quality': True,
            'realistic_growth': True,
        },
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """
    深度合并两个字典，override中的值覆盖base中的值。
    Deep merge two dictionaries, values in override take precedence over base.

    Examples:
        >>> _deep_merge({'a': {'b': 1, 'c': 2}}, {'a': {'b': 10}})
        {'a': {'b': 10, 'c': 2}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def apply_defaults(config: dict) -> dict:
    """
    将默认配置应用到用户配置中，缺失的配置项使用默认值。
    Apply default configuration to user config, missing items use defaults.
    """
    return _deep_merge(DEFAULT_CONFIG, config)


def load_config_with_defaults(config_path: str = "config.yaml", env_path: str | None = None) -> dict:
    """
    加载配置文件并应用默认值。
    Load configuration file and apply defaults.
    """
    config = load_config(config_path, env_path)
    return apply_defaults(config)


# =============================================================================
# 配置段数据类
# Section dataclasses
# =============================================================================

def _as_int(value: Any, name: str) -> int:
    # 环境变量替换后的值是字符串
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def _as_float(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e


def _as_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ('true', 'yes', '1', 'on'):
        return True
    if isinstance(value, str) and value.strip().lower() in ('false', 'no', '0', 'off', ''):
        return False
    if isinstance(value, int):
        return bool(value)
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


@dataclass
class MockDataConfig:
    """
    模拟数据配置
    Mock data configuration

    Attributes:
        marketplace_count: 模拟市场数
        plugins_per_marketplace: 每个市场的模拟插件数
        developer_count: 模拟开发者数
        category_count: 使用的分类数（不超过固定分类表大小）
        realistic_quality: 质量评分是否集中在 75-95
        realistic_growth: 增长是否使用 S 型曲线
    """
    marketplace_count: int = 5
    plugins_per_marketplace: int = 20
    developer_count: int = 15
    category_count: int = 8
    realistic_quality: bool = True
    realistic_growth: bool = True

    @property
    def total_plugins(self) -> int:
        return self.marketplace_count * self.plugins_per_marketplace

    def validate(self) -> None:
        """
        验证配置参数

        Raises:
            ConfigurationError: 当参数值不在有效范围内时
        """
        if self.marketplace_count < 0:
            raise ConfigurationError(
                f"marketplace_count must be >= 0, got {self.marketplace_count}"
            )
        if self.plugins_per_marketplace < 0:
            raise ConfigurationError(
                f"plugins_per_marketplace must be >= 0, got {self.plugins_per_marketplace}"
            )
        if self.developer_count < 0:
            raise ConfigurationError(
                f"developer_count must be >= 0, got {self.developer_count}"
            )
        if self.category_count < 1:
            raise ConfigurationError(
                f"category_count must be >= 1, got {self.category_count}"
            )
        from ecostats.stats.analytics import CATEGORY_TAXONOMY
        if self.category_count > len(CATEGORY_TAXONOMY):
            raise ConfigurationError(
                f"category_count must be <= {len(CATEGORY_TAXONOMY)}, got {self.category_count}"
            )

    def to_dict(self) -> dict[str, Any]:
        """转换为字典"""
        return {
            "marketplace_count": self.marketplace_count,
            "plugins_per_marketplace": self.plugins_per_marketplace,
            "developer_count": self.developer_count,
            "category_count": self.category_count,
            "realistic_quality": self.realistic_quality,
            "realistic_growth": self.realistic_growth,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MockDataConfig":
        """从字典创建配置"""
        return cls(
            marketplace_count=_as_int(data.get("marketplace_count", 5), "marketplace_count"),
            plugins_per_marketplace=_as_int(
                data.get("plugins_per_marketplace", 20), "plugins_per_marketplace"
            ),
            developer_count=_as_int(data.get("developer_count", 15), "developer_count"),
            category_count=_as_int(data.get("category_count", 8), "category_count"),
            realistic_quality=_as_bool(data.get("realistic_quality", True), "realistic_quality"),
            realistic_growth=_as_bool(data.get("realistic_growth", True), "realistic_growth"),
        )


@dataclass
class StatsConfig:
    """
    生态统计配置
    Ecosystem statistics configuration

    Attributes:
        data_path: 原始数据 JSON 文件路径
                   Raw dataset JSON path
        data_url: 原始数据 URL，设置后优先于 data_path
                  Raw dataset URL; takes precedence over data_path when set
        request_timeout: HTTP 请求超时（秒）
                         HTTP request timeout in seconds
        cache_ttl_seconds: 缓存过期时间（秒）
                           Cache TTL in seconds
        launch_date: 生态上线日期
                     Ecosystem launch date
        random_seed: 随机种子，None 表示不固定
                     RNG seed, None for unseeded
        single_flight: 是否合并并发的重复计算
                       Whether concurrent misses share one computation
        mock: 模拟数据配置
              Mock data configuration
    """
    data_path: str = "data/generated/complete.json"
    data_url: str = ""
    request_timeout: float = 30
    cache_ttl_seconds: float = 21600
    launch_date: str = "2025-10-10"
    random_seed: int | None = None
    single_flight: bool = True
    mock: MockDataConfig = field(default_factory=MockDataConfig)

    @property
    def launch_datetime(self) -> datetime:
        """
        上线日期的 UTC datetime

        Raises:
            ConfigurationError: 日期格式无效
        """
        try:
            launch = parse_datetime(self.launch_date)
        except ValueError as e:
            raise ConfigurationError(f"launch_date is not a valid date: {self.launch_date!r}") from e
        if launch is None:
            raise ConfigurationError("launch_date must not be empty")
        return launch

    def validate(self) -> None:
        """
        验证配置参数

        Raises:
            ConfigurationError: 当参数值不在有效范围内时
        """
        if self.cache_ttl_seconds <= 0:
            raise ConfigurationError(
                f"cache_ttl_seconds must be > 0, got {self.cache_ttl_seconds}"
            )
        if self.request_timeout <= 0:
            raise ConfigurationError(
                f"request_timeout must be > 0, got {self.request_timeout}"
            )
        if not self.data_path and not self.data_url:
            raise ConfigurationError("either data_path or data_url must be set")
        if self.launch_datetime.year < 2000:
            raise ConfigurationError(f"launch_date looks wrong: {self.launch_date!r}")
        self.mock.validate()

    def to_dict(self) -> dict[str, Any]:
        """转换为字典"""
        return {
            "data_path": self.data_path,
            "data_url": self.data_url,
            "request_timeout": self.request_timeout,
            "cache_ttl_seconds": self.cache_ttl_seconds,
            "launch_date": self.launch_date,
            "random_seed": self.random_seed,
            "single_flight": self.single_flight,
            "mock": self.mock.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StatsConfig":
        """从字典创建配置"""
        seed = data.get("random_seed")
        if seed in ("", None):
            seed = None
        else:
            seed = _as_int(seed, "random_seed")

        return cls(
            data_path=str(data.get("data_path") or ""),
            data_url=str(data.get("data_url") or ""),
            request_timeout=_as_float(data.get("request_timeout", 30), "request_timeout"),
            cache_ttl_seconds=_as_float(data.get("cache_ttl_seconds", 21600), "cache_ttl_seconds"),
            launch_date=str(data.get("launch_date") or "2025-10-10"),
            random_seed=seed,
            single_flight=_as_bool(data.get("single_flight", True), "single_flight"),
            mock=MockDataConfig.from_dict(data.get("mock") or {}),
        )


def get_stats_config(config: dict) -> StatsConfig:
    """
    获取生态统计配置，自动应用默认值并校验。
    Get the ecosystem statistics configuration with defaults applied and validated.

    Raises:
        ConfigurationError: 配置值无效
                            Invalid configuration value

    Examples:
        >>> get_stats_config({'ecosystem_stats': {'cache_ttl_seconds': 60}}).cache_ttl_seconds
        60.0
    """
    user_config = config.get('ecosystem_stats') or {}
    default_config = DEFAULT_CONFIG['ecosystem_stats']
    stats_config = StatsConfig.from_dict(_deep_merge(default_config, user_config))
    stats_config.validate()
    return stats_config
