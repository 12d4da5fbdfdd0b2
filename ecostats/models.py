"""
原始数据模型
Raw Record Models

定义由外部数据扫描器产出的市场/插件原始记录，以及宽松的解析逻辑。
Defines the marketplace and plugin records produced by the external data
scanner, together with lenient parsing.

格式错误的单条记录会抛出 RecordValidationError，由 parse_records 跳过并计数。
A malformed record raises RecordValidationError; parse_records skips and
counts it instead of aborting the whole aggregation.
"""

import logging
import math
import re
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, TypeVar

from ecostats.exceptions import RecordValidationError

logger = logging.getLogger(__name__)

T = TypeVar('T')


def parse_datetime(value: Any) -> datetime | None:
    """
    解析 ISO-8601 时间字符串为 UTC 时间
    Parse an ISO-8601 timestamp into an aware UTC datetime

    Args:
        value: 字符串、datetime 或 None
               String, datetime or None

    Returns:
        UTC datetime，空值返回 None
        Aware UTC datetime, or None for empty values

    Raises:
        ValueError: 无法解析的时间字符串
                    Unparseable timestamp string

    Examples:
        >>> parse_datetime('2025-10-10T00:00:00Z').year
        2025
        >>> parse_datetime('') is None
        True
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_datetime(dt: datetime) -> str:
    """格式化为带 Z 后缀的 ISO-8601 字符串 / Render as ISO-8601 with a Z suffix"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def _slugify(text: str) -> str:
    return re.sub(r'[^a-z0-9]+', '-', text.lower()).strip('-')


def _coerce_count(value: Any, field_name: str, record_type: str) -> int:
    """把计数字段转换为非负整数，None 视为 0"""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise RecordValidationError(
            f"{record_type}.{field_name} must be a number, got bool", record_type
        )
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    if isinstance(value, (int, float)) and math.isfinite(value) and value >= 0:
        return int(value)
    raise RecordValidationError(
        f"{record_type}.{field_name} must be a non-negative number, got {value!r}",
        record_type
    )


def _coerce_str_list(value: Any, field_name: str, record_type: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise RecordValidationError(
            f"{record_type}.{field_name} must be a list, got {type(value).__name__}",
            record_type
        )
    return [str(item) for item in value if item is not None]


def _coerce_datetime(value: Any, field_name: str, record_type: str) -> datetime | None:
    try:
        return parse_datetime(value)
    except (TypeError, ValueError) as e:
        raise RecordValidationError(
            f"{record_type}.{field_name} is not a valid timestamp: {e}", record_type
        ) from e


@dataclass
class MarketplaceRecord:
    """
    市场记录
    Marketplace Record

    代码托管平台上的一个插件市场仓库。
    One plugin-marketplace repository on the code-hosting platform.

    Attributes:
        id: 市场 ID
            Marketplace ID
        name: 仓库名称
              Repository name
        description: 自由文本描述，可能包含插件数量（如 "42 plugins"）
                     Free-text description, may embed a plugin count
        owner_login: 仓库所有者登录名
                     Repository owner login
        stars: Star 数
               Star count
        forks: Fork 数
               Fork count
        created_at: 仓库创建时间
                    Repository creation time
        updated_at: 仓库最后更新时间
                    Repository last update time
        has_manifest: 是否包含市场清单文件
                      Whether the repository ships a marketplace manifest
        url: 仓库地址
             Repository URL
        topics: 仓库话题标签
                Repository topics
    """
    id: str
    name: str
    description: str = ''
    owner_login: str = 'unknown'
    stars: int = 0
    forks: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    has_manifest: bool = False
    url: str = ''
    topics: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "MarketplaceRecord":
        """
        从扫描器输出的字典创建记录
        Create a record from a scanner dictionary

        Raises:
            RecordValidationError: 记录结构错误
                                   Malformed record shape
        """
        if not isinstance(data, dict):
            raise RecordValidationError(
                f"marketplace record must be an object, got {type(data).__name__}",
                'marketplace'
            )

        owner = data.get('owner')
        if isinstance(owner, dict):
            owner_login = owner.get('login') or owner.get('name') or 'unknown'
        elif isinstance(owner, str) and owner:
            owner_login = owner
        else:
            owner_login = 'unknown'

        name = data.get('name') or ''
        record_id = data.get('id') or (f"{owner_login}-{name}" if name else '')
        if not record_id:
            raise RecordValidationError("marketplace record has neither id nor name", 'marketplace')

        description = data.get('description') or ''
        if not isinstance(description, str):
            raise RecordValidationError("marketplace.description must be a string", 'marketplace')

        return cls(
            id=str(record_id),
            name=str(name or record_id),
            description=description,
            owner_login=str(owner_login),
            stars=_coerce_count(
                data.get('stars', data.get('stargazers_count')), 'stars', 'marketplace'
            ),
            forks=_coerce_count(
                data.get('forks', data.get('forks_count')), 'forks', 'marketplace'
            ),
            created_at=_coerce_datetime(
                data.get('createdAt', data.get('created_at')), 'createdAt', 'marketplace'
            ),
            updated_at=_coerce_datetime(
                data.get('updatedAt', data.get('updated_at')), 'updatedAt', 'marketplace'
            ),
            has_manifest=bool(data.get('hasManifest', data.get('has_manifest', False))),
            url=str(data.get('url') or data.get('html_url') or ''),
            topics=_coerce_str_list(data.get('topics'), 'topics', 'marketplace'),
        )


@dataclass
class PluginRecord:
    """
    插件记录
    Plugin Record

    Attributes:
        id: 插件 ID
        name: 插件名称
        description: 插件描述
        author: 作者
        category: 声明的分类（可能为空或不在固定分类表中）
        tags: 标签
        keywords: 关键词
        validated: 是否通过清单校验
        quality_score: 质量评分 0-100，缺失时为 None
        stars: Star 数
        downloads: 下载量（上游通常不提供，缺失时为 None）
        updated_at: 最后更新/扫描时间
        marketplace_id: 所属市场 ID
        errors: 校验错误
        warnings: 校验警告
        version: 版本号
    """
    id: str
    name: str
    description: str = ''
    author: str = ''
    category: str = ''
    tags: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    validated: bool = False
    quality_score: float | None = None
    stars: int = 0
    downloads: int | None = None
    updated_at: datetime | None = None
    marketplace_id: str = ''
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    version: str = ''

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "PluginRecord":
        if not isinstance(data, dict):
            raise RecordValidationError(
                f"plugin record must be an object, got {type(data).__name__}", 'plugin'
            )

        name = data.get('name') or ''
        record_id = data.get('id') or (_slugify(name) if isinstance(name, str) else '')
        if not record_id:
            raise RecordValidationError("plugin record has neither id nor name", 'plugin')

        author = data.get('author') or ''
        if isinstance(author, dict):
            author = author.get('name') or author.get('login') or ''

        quality = data.get('qualityScore', data.get('quality_score'))
        if quality is not None:
            if isinstance(quality, bool) or not isinstance(quality, (int, float)) \
                    or not math.isfinite(quality) or not 0 <= quality <= 100:
                raise RecordValidationError(
                    f"plugin.qualityScore must be within [0, 100], got {quality!r}", 'plugin'
                )
            quality = float(quality)

        downloads = data.get('downloads')
        if downloads is not None:
            downloads = _coerce_count(downloads, 'downloads', 'plugin')

        description = data.get('description') or ''
        if not isinstance(description, str):
            raise RecordValidationError("plugin.description must be a string", 'plugin')

        return cls(
            id=str(record_id),
            name=str(name or record_id),
            description=description,
            author=str(author),
            category=str(data.get('category') or ''),
            tags=_coerce_str_list(data.get('tags'), 'tags', 'plugin'),
            keywords=_coerce_str_list(data.get('keywords'), 'keywords', 'plugin'),
            validated=bool(data.get('validated', data.get('isValid', False))),
            quality_score=quality,
            stars=_coerce_count(data.get('stars'), 'stars', 'plugin'),
            downloads=downloads,
            updated_at=_coerce_datetime(
                data.get('updatedAt') or data.get('lastScanned') or data.get('updated_at'),
                'updatedAt', 'plugin'
            ),
            marketplace_id=str(data.get('marketplaceId') or data.get('marketplace_id') or ''),
            errors=_coerce_str_list(data.get('errors'), 'errors', 'plugin'),
            warnings=_coerce_str_list(data.get('warnings'), 'warnings', 'plugin'),
            version=str(data.get('version') or ''),
        )


def parse_records(
    items: Iterable[Any],
    factory: Callable[[Any], T],
    record_type: str
) -> tuple[list[T], int]:
    """
    解析一批原始记录，跳过并统计格式错误的记录
    Parse a batch of raw records, skipping and counting malformed ones

    Args:
        items: 原始字典列表
               Raw dictionaries
        factory: 记录构造函数（如 MarketplaceRecord.from_dict）
                 Record constructor such as MarketplaceRecord.from_dict
        record_type: 用于日志的记录类型名称
                     Record type name used in log messages

    Returns:
        (有效记录列表, 跳过数量)
        (valid records, skipped count)

    Examples:
        >>> records, skipped = parse_records(
        ...     [{'id': 'a', 'name': 'A'}, 42], MarketplaceRecord.from_dict, 'marketplace'
        ... )
        >>> len(records), skipped
        (1, 1)
    """
    records: list[T] = []
    skipped = 0
    for index, item in enumerate(items):
        try:
            records.append(factory(item))
        except RecordValidationError as e:
            skipped += 1
            logger.debug(f"Skipping malformed {record_type} record #{index}: {e}")

    if skipped:
        logger.warning(
            f"Skipped {skipped} malformed {record_type} record(s); "
            f"aggregating the remaining {len(records)}"
        )
    return records, skipped
