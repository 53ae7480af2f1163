"""
聚合模块

对所有就绪 Worker 并发拉取统计数据，汇总为单个快照并序列化。
单个 Worker 失败不影响其他 Worker。
"""

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from pydantic_core import PydanticSerializationError

from .errors import FetchError, SerializationError
from .models import AggregateResponse, Endpoint, StatAccumulator, WorkerStat

logger = logging.getLogger(__name__)


FetchFn = Callable[[Endpoint], Awaitable[WorkerStat]]


async def collect_single_worker(
    endpoint: Endpoint,
    fetch: FetchFn,
    accumulator: StatAccumulator,
) -> bool:
    """
    采集单个 Worker

    Returns:
        成功返回 True；失败只记录日志并返回 False，不做重试
    """
    try:
        stat = await fetch(endpoint)
    except FetchError as e:
        logger.warning(str(e))
        return False
    except Exception as e:
        logger.error(f"Unexpected error fetching {endpoint.name} ({endpoint.address}): {e}", exc_info=True)
        return False

    await accumulator.append(stat)
    return True


async def aggregate(endpoints: Sequence[Endpoint], fetch: FetchFn) -> AggregateResponse:
    """
    聚合所有 Worker 的统计数据

    每个端点一个并发任务，不分批、不限流；等待全部任务结束后才返回。

    Args:
        endpoints: 本周期的就绪端点
        fetch: 拉取单个端点统计的协程函数

    Returns:
        聚合快照，server_count 为就绪端点数，stats 只包含成功的结果
    """
    accumulator = StatAccumulator()

    # 并发拉取所有 Worker
    results = await asyncio.gather(
        *(collect_single_worker(endpoint, fetch, accumulator) for endpoint in endpoints),
        return_exceptions=True
    )

    stats = await accumulator.collected()
    failed = sum(1 for r in results if r is not True)
    logger.debug(f"Aggregated {len(stats)}/{len(endpoints)} workers ({failed} failed)")

    return AggregateResponse(server_count=len(endpoints), stats=stats)


def serialize_snapshot(response: AggregateResponse) -> bytes:
    """
    序列化为对外 JSON 格式：{"servers":N,"stats":[{"v":..,"rps":..,"t":..}]}

    Raises:
        SerializationError: 序列化失败时抛出
    """
    try:
        return response.model_dump_json(by_alias=True).encode("utf-8")
    except (PydanticSerializationError, ValueError) as e:
        raise SerializationError(f"Error marshaling snapshot: {e}") from e
