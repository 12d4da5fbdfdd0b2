"""
异常定义
Exception Definitions

统计子系统使用的异常类型。
Exception types used by the ecosystem statistics subsystem.
"""


class EcostatsError(Exception):
    """所有统计子系统异常的基类 / Base class for all ecostats errors"""


class DataUnavailableError(EcostatsError):
    """
    原始数据不可用
    Raw data unavailable

    原始数据文件缺失、损坏或无法获取时抛出，由服务层捕获并降级为模拟数据。
    Raised when the raw dataset is missing, corrupt or unreachable. The service
    layer catches it and falls back to synthetic data.
    """

    def __init__(self, message: str, source: str = ""):
        super().__init__(message)
        self.source = source


class RecordValidationError(EcostatsError):
    """
    单条记录格式错误
    Malformed individual record

    聚合时跳过该记录并计数，不会中断整体聚合。
    The record is skipped and counted; aggregation continues.
    """

    def __init__(self, message: str, record_type: str = "", index: int | None = None):
        super().__init__(message)
        self.record_type = record_type
        self.index = index


class InvalidQueryError(EcostatsError):
    """查询参数无效 / Invalid query parameter"""

    def __init__(self, message: str, parameter: str = ""):
        super().__init__(message)
        self.parameter = parameter


class ConfigurationError(EcostatsError):
    """配置值无效 / Invalid configuration value"""
