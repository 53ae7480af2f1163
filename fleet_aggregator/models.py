"""
数据模型定义

包括：
- Worker 端点 / 统计数据模型
- 聚合响应模型（对外 JSON 格式）
- 周期内累加器与已发布快照存储
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


RUNNING_PHASE = "Running"

UINT64_MAX = 2 ** 64 - 1


# =============================================================================
# 服务发现
# =============================================================================

@dataclass(frozen=True)
class Endpoint:
    """Inventory 返回的单个 Worker（每个周期重新计算，不持久化）"""
    name: str
    address: str
    phase: str = RUNNING_PHASE


def is_ready(endpoint: Endpoint) -> bool:
    """有可路由地址且处于 Running 阶段才参与采集"""
    return bool(endpoint.address) and endpoint.phase == RUNNING_PHASE


# =============================================================================
# Pydantic 模型（Worker 返回数据 / 对外响应）
# =============================================================================

class WorkerStat(BaseModel):
    """单个 Worker 的统计数据（GET /api/stats）"""
    model_config = ConfigDict(populate_by_name=True, strict=True)

    identity: str = Field(default="", alias="v")
    rate: float = Field(default=0.0, alias="rps", allow_inf_nan=False)
    total_count: int = Field(default=0, ge=0, le=UINT64_MAX, alias="t")


class AggregateResponse(BaseModel):
    """聚合快照（GET /api/aggregator/stats）

    stats 按拉取完成顺序排列，不保证跨周期稳定。
    """
    model_config = ConfigDict(populate_by_name=True)

    server_count: int = Field(alias="servers")
    stats: List[WorkerStat] = Field(default_factory=list)


# =============================================================================
# 并发共享状态
# =============================================================================

class StatAccumulator:
    """
    单个周期内的结果累加器

    每个拉取任务成功后并发追加，追加操作由锁保护。
    """

    def __init__(self):
        self._stats: List[WorkerStat] = []
        self._lock = asyncio.Lock()

    async def append(self, stat: WorkerStat):
        """追加一条成功的统计"""
        async with self._lock:
            self._stats.append(stat)

    async def collected(self) -> List[WorkerStat]:
        """返回当前已收集结果的副本"""
        async with self._lock:
            return list(self._stats)


class SnapshotStore:
    """
    已发布快照存储

    只保存最近一次成功周期的序列化结果，整体替换，从不原地修改。
    读写只在交换引用期间持锁，读者不会看到写了一半的快照。
    发布前 current() 返回空字节串。
    """

    def __init__(self):
        self._data: bytes = b""
        self._published_at: Optional[float] = None
        self._lock = threading.Lock()

    def publish(self, data: bytes):
        """替换已发布快照（单写者）"""
        published_at = time.monotonic()
        with self._lock:
            self._data = data
            self._published_at = published_at

    def current(self) -> bytes:
        """获取当前快照（可多读者并发调用）"""
        with self._lock:
            return self._data

    @property
    def published_at(self) -> Optional[float]:
        """最近一次发布的 monotonic 时间，从未发布时为 None"""
        with self._lock:
            return self._published_at
