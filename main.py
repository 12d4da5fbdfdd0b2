#!/usr/bin/env python3
"""
插件生态统计 - 命令行入口
Plugin Ecosystem Stats - Command Line Entry Point

加载原始市场/插件数据，输出聚合后的生态统计 JSON；数据不可用时输出模拟数据。
Loads the raw marketplace/plugin dataset and prints the aggregated ecosystem
statistics as JSON, falling back to mock data when the dataset is unavailable.

使用方法 Usage:
    # 使用默认配置（config.yaml 不存在时使用内置默认值）
    python main.py

    # 指定数据文件与时间范围
    python main.py --data data/generated/complete.json --period 7d --aggregation daily

    # 输出缓存统计
    python main.py --cache-stats
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# 确保项目根目录在Python路径中
project_root = Path(__file__).resolve().parent
sys.path.insert(0, str(project_root))

from ecostats.config import apply_defaults, load_config, load_env_file
from ecostats.exceptions import EcostatsError
from ecostats.loader import HttpJsonLoader, JsonFileLoader, RawDataLoader
from ecostats.stats.api import VALID_AGGREGATIONS, VALID_PERIODS, EcosystemStatsAPI
from ecostats.stats.service import StatsService


# 配置日志格式
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

DEFAULT_CONFIG_PATH = 'config.yaml'


def setup_logging(verbose: bool = False) -> None:
    """
    配置日志系统
    Setup logging system

    Args:
        verbose: 是否启用详细日志（DEBUG级别）
                 Whether to enable verbose logging (DEBUG level)
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # 降低第三方库的日志级别
    # Reduce log level for third-party libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    解析命令行参数
    Parse command line arguments

    Returns:
        解析后的参数命名空间
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description='插件生态统计 - 聚合插件市场数据并输出统计结果',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例 Examples:
  # 输出最近 30 天、按周聚合的生态统计
  python main.py

  # 从 URL 获取数据并强制刷新
  python main.py --url https://example.com/complete.json --force-refresh

  # 把结果写入文件
  python main.py --period 90d --output stats.json
        """
    )

    config_group = parser.add_argument_group('配置选项 Config Options')
    config_group.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help='配置文件路径 (默认: config.yaml，不存在时使用内置默认值) / Config file path'
    )
    config_group.add_argument(
        '--env',
        type=str,
        default=None,
        help='.env文件路径 (默认: 自动查找) / .env file path (default: auto-discover)'
    )

    source_group = parser.add_argument_group('数据源选项 Data Source Options')
    source_group.add_argument(
        '--data', '-d',
        type=str,
        default=None,
        help='原始数据 JSON 文件路径（覆盖配置） / Raw dataset JSON path (overrides config)'
    )
    source_group.add_argument(
        '--url',
        type=str,
        default=None,
        help='原始数据 URL（覆盖配置） / Raw dataset URL (overrides config)'
    )

    query_group = parser.add_argument_group('查询选项 Query Options')
    query_group.add_argument(
        '--period', '-p',
        choices=VALID_PERIODS,
        default='30d',
        help='增长趋势时间范围 (默认: 30d) / Growth period (default: 30d)'
    )
    query_group.add_argument(
        '--aggregation', '-a',
        choices=VALID_AGGREGATIONS,
        default='weekly',
        help='增长趋势聚合粒度 (默认: weekly) / Growth aggregation (default: weekly)'
    )
    query_group.add_argument(
        '--force-refresh',
        action='store_true',
        help='跳过缓存重新计算 / Bypass the cache and recompute'
    )
    query_group.add_argument(
        '--cache-stats',
        action='store_true',
        help='输出缓存统计而非生态统计 / Print cache statistics instead'
    )

    general_group = parser.add_argument_group('通用选项 General Options')
    general_group.add_argument(
        '--output', '-o',
        type=str,
        default=None,
        help='输出文件路径 (默认: 标准输出) / Output file (default: stdout)'
    )
    general_group.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='启用详细日志输出 / Enable verbose logging'
    )

    return parser.parse_args(argv)


def build_loader(args: argparse.Namespace, config: dict) -> RawDataLoader | None:
    """命令行指定的数据源，未指定时返回 None 使用配置"""
    if args.url:
        timeout = config.get('ecosystem_stats', {}).get('request_timeout', 30)
        return HttpJsonLoader(args.url, timeout=float(timeout))
    if args.data:
        return JsonFileLoader(args.data)
    return None


def load_cli_config(args: argparse.Namespace, logger: logging.Logger) -> dict:
    """
    加载配置文件并应用默认值

    Raises:
        FileNotFoundError: 显式指定的配置文件不存在
    """
    config_path = args.config or DEFAULT_CONFIG_PATH
    if args.config is None and not Path(config_path).exists():
        load_env_file(args.env)
        logger.info(f"未找到 {config_path}，使用内置默认配置")
        return apply_defaults({})

    config = load_config(config_path, args.env)
    logger.info(f"已加载配置文件: {config_path}")
    return apply_defaults(config)


def write_output(payload: dict, output: str | None) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if output:
        Path(output).write_text(text + '\n', encoding='utf-8')
    else:
        print(text)


def main(argv: list[str] | None = None) -> int:
    """
    主函数
    Main function

    Returns:
        退出码：0表示成功，非0表示失败
        Exit code: 0 for success, non-zero for failure
    """
    args = parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        config = load_cli_config(args, logger)
        service = StatsService.from_config(config, loader=build_loader(args, config))
    except FileNotFoundError as e:
        logger.error(str(e))
        print(f"错误: {e}", file=sys.stderr)
        return 1
    except EcostatsError as e:
        logger.error(f"配置无效: {e}")
        print(f"错误: 配置无效: {e}", file=sys.stderr)
        return 1

    api = EcosystemStatsAPI(service)
    try:
        response = api.get_ecosystem_stats_json({
            'period': args.period,
            'aggregation': args.aggregation,
            'forceRefresh': args.force_refresh,
        })
        if args.cache_stats:
            response = api.get_cache_stats_json()
        write_output(response, args.output)
    except OSError as e:
        logger.error(f"写入输出失败: {e}")
        return 1
    finally:
        service.close()

    return 0 if response.get('success') else 1


if __name__ == '__main__':
    sys.exit(main())
