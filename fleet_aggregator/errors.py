"""
异常定义

所有错误都局限在单个周期或单个 Worker 内，只写日志，不影响 HTTP 接口。
"""

from typing import Optional


class AggregatorError(Exception):
    """聚合服务异常基类"""


class InventoryError(AggregatorError):
    """服务发现失败（本周期不发布，保留上一次快照）"""


class FetchError(AggregatorError):
    """单个 Worker 拉取失败（从聚合结果中剔除）"""

    def __init__(self, endpoint, cause: Optional[BaseException] = None):
        self.endpoint = endpoint
        self.cause = cause
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "unknown error"
        super().__init__(f"Failed to fetch stats from {endpoint.name} ({endpoint.address}): {detail}")


class SerializationError(AggregatorError):
    """快照序列化失败（本周期不发布）"""
