"""
原始数据加载器
Raw Data Loaders

读取外部扫描器产出的 JSON 数据集 { marketplaces: [...], plugins: [...] }。
Reads the JSON dataset produced by the external scanner.

任何加载失败都抛出 DataUnavailableError，由 StatsService 降级为模拟数据。
Any load failure raises DataUnavailableError, which StatsService recovers
from by falling back to mock data.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import requests

from ecostats.exceptions import DataUnavailableError
from ecostats.models import parse_datetime

logger = logging.getLogger(__name__)


@dataclass
class RawDataset:
    """
    原始数据集
    Raw Dataset

    Attributes:
        marketplaces: 原始市场字典列表
                      Raw marketplace dictionaries
        plugins: 原始插件字典列表
                 Raw plugin dictionaries
        generated_at: 数据集生成时间（stats.lastUpdated），未知时为 None
                      Dataset generation time, None when unknown
        source: 数据来源（文件路径或 URL）
                Where the dataset came from
    """
    marketplaces: list[Any] = field(default_factory=list)
    plugins: list[Any] = field(default_factory=list)
    generated_at: datetime | None = None
    source: str = ""

    @classmethod
    def from_document(cls, document: Any, source: str = "") -> "RawDataset":
        """
        从解析后的 JSON 文档创建数据集
        Build a dataset from a parsed JSON document

        Raises:
            DataUnavailableError: 顶层结构错误
                                  Wrong top-level shape
        """
        if not isinstance(document, dict):
            raise DataUnavailableError(
                f"dataset must be a JSON object, got {type(document).__name__}", source
            )

        marketplaces = document.get('marketplaces')
        plugins = document.get('plugins', [])
        if not isinstance(marketplaces, list):
            raise DataUnavailableError("dataset has no 'marketplaces' list", source)
        if not isinstance(plugins, list):
            raise DataUnavailableError("dataset 'plugins' must be a list", source)

        generated_at = None
        stats = document.get('stats')
        if isinstance(stats, dict):
            try:
                generated_at = parse_datetime(stats.get('lastUpdated'))
            except ValueError:
                logger.warning(f"Ignoring unparseable stats.lastUpdated in {source}")

        return cls(
            marketplaces=marketplaces,
            plugins=plugins,
            generated_at=generated_at,
            source=source,
        )


class RawDataLoader(ABC):
    """
    原始数据加载器抽象基类
    Abstract base class for raw data loaders
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """数据来源描述 / Human-readable source description"""

    @abstractmethod
    def load(self) -> RawDataset:
        """
        加载原始数据集
        Load the raw dataset

        Raises:
            DataUnavailableError: 数据缺失、损坏或无法获取
                                  Data missing, corrupt or unreachable
        """


class JsonFileLoader(RawDataLoader):
    """
    从本地 JSON 文件加载
    Load from a local JSON file

    Examples:
        >>> loader = JsonFileLoader('data/generated/complete.json')
        >>> loader.source_name
        'data/generated/complete.json'
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    @property
    def source_name(self) -> str:
        return str(self.path)

    def load(self) -> RawDataset:
        if not self.path.exists():
            raise DataUnavailableError(f"数据文件不存在: {self.path}", self.source_name)

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise DataUnavailableError(
                f"Invalid JSON in {self.path}: {e}", self.source_name
            ) from e
        except OSError as e:
            raise DataUnavailableError(
                f"Failed to read {self.path}: {e}", self.source_name
            ) from e

        dataset = RawDataset.from_document(document, self.source_name)
        logger.info(
            f"Loaded {len(dataset.marketplaces)} marketplaces and "
            f"{len(dataset.plugins)} plugins from {self.path}"
        )
        return dataset


class HttpJsonLoader(RawDataLoader):
    """
    通过 HTTP 获取 JSON 数据集
    Fetch the JSON dataset over HTTP

    Attributes:
        url: 数据集 URL
             Dataset URL
        timeout: 请求超时（秒）
                 Request timeout in seconds
    """

    def __init__(self, url: str, timeout: float = 30, session: requests.Session | None = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def source_name(self) -> str:
        return self.url

    def load(self) -> RawDataset:
        try:
            response = self.session.get(
                self.url,
                headers={'Accept': 'application/json'},
                timeout=self.timeout,
            )
            response.raise_for_status()
            document = response.json()
        except requests.exceptions.Timeout as e:
            raise DataUnavailableError(
                f"Request to {self.url} timed out after {self.timeout}s", self.url
            ) from e
        except requests.exceptions.HTTPError as e:
            raise DataUnavailableError(f"HTTP error from {self.url}: {e}", self.url) from e
        except requests.exceptions.RequestException as e:
            raise DataUnavailableError(f"Request to {self.url} failed: {e}", self.url) from e
        except ValueError as e:
            raise DataUnavailableError(f"Invalid JSON from {self.url}: {e}", self.url) from e

        dataset = RawDataset.from_document(document, self.url)
        logger.info(
            f"Fetched {len(dataset.marketplaces)} marketplaces and "
            f"{len(dataset.plugins)} plugins from {self.url}"
        )
        return dataset

    def close(self) -> None:
        self.session.close()
