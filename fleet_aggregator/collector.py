"""
采集循环

按固定间隔执行：服务发现 → 并发拉取 → 聚合 → 发布快照。
睡眠时间扣除本周期耗时，保证周期起点间隔稳定。
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from .aggregator import FetchFn, aggregate, serialize_snapshot
from .errors import FetchError, InventoryError, SerializationError
from .inventory import InventoryClient
from .models import AggregateResponse, Endpoint, SnapshotStore, WorkerStat

logger = logging.getLogger(__name__)


class WorkerStatFetcher:
    """
    拉取单个 Worker 的统计数据

    请求 http://{address}:{port}{path}，整个请求（含读取响应体）受 timeout 限制。
    """

    def __init__(
        self,
        port: int = 8080,
        path: str = "/api/stats",
        timeout: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.port = port
        self.path = path
        self.timeout = timeout
        self._transport = transport

    def url_for(self, endpoint: Endpoint) -> str:
        return f"http://{endpoint.address}:{self.port}{self.path}"

    async def _get(self, url: str) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response

    async def fetch(self, endpoint: Endpoint) -> WorkerStat:
        """
        拉取并解析统计数据

        Raises:
            FetchError: 连接失败、超时、非 2xx、响应体无法解析时抛出
        """
        url = self.url_for(endpoint)
        try:
            response = await asyncio.wait_for(self._get(url), timeout=self.timeout)
            return WorkerStat.model_validate_json(response.content)
        except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError, ValidationError) as e:
            raise FetchError(endpoint, e) from e

    async def __call__(self, endpoint: Endpoint) -> WorkerStat:
        return await self.fetch(endpoint)


def _snapshot_age(store: SnapshotStore) -> str:
    published_at = store.published_at
    if published_at is None:
        return "none published yet"
    return f"published {time.monotonic() - published_at:.1f}s ago"


def compute_sleep(interval: float, elapsed: float) -> float:
    """剩余睡眠时间；周期超时则为 0，不会为负"""
    return max(0.0, interval - elapsed)


async def run_cycle(
    inventory: InventoryClient,
    fetch: FetchFn,
    store: SnapshotStore,
) -> Optional[AggregateResponse]:
    """
    执行一个采集周期

    服务发现或序列化失败时不发布，保留上一次快照。

    Returns:
        已发布的聚合结果，未发布时返回 None
    """
    try:
        endpoints = await inventory.list_ready_endpoints()
    except InventoryError as e:
        logger.error(f"Inventory error, keeping previous snapshot ({_snapshot_age(store)}): {e}")
        return None

    response = await aggregate(endpoints, fetch)

    try:
        data = serialize_snapshot(response)
    except SerializationError as e:
        logger.error(f"{e}, keeping previous snapshot")
        return None

    store.publish(data)
    logger.debug(f"Published snapshot: {len(response.stats)}/{response.server_count} workers")
    return response


async def run_refresh_loop(
    inventory: InventoryClient,
    fetch: FetchFn,
    store: SnapshotStore,
    interval: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
):
    """
    运行采集循环

    没有终止状态，进程退出时随任务取消而结束。
    """
    logger.info(f"Starting refresh loop (interval={interval}s)")

    while True:
        start = clock()
        try:
            await run_cycle(inventory, fetch, store)
        except Exception as e:
            logger.error(f"Refresh cycle error: {e}", exc_info=True)

        elapsed = clock() - start
        delay = compute_sleep(interval, elapsed)
        if delay == 0:
            logger.warning(f"Refresh cycle took {elapsed:.3f}s, longer than interval {interval}s")
        else:
            logger.debug(f"Refresh cycle took {elapsed:.3f}s, sleeping {delay:.3f}s")

        await sleep(delay)
