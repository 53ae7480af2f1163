"""
单元测试：聚合逻辑

测试覆盖：
- servers 等于就绪端点数，stats 数量不超过 servers
- 失败隔离：单个 Worker 失败不影响其他 Worker
- 所有拉取并发发起（无串行等待）
- 序列化格式
"""

import asyncio
import json

import pytest

from fleet_aggregator.aggregator import aggregate, serialize_snapshot
from fleet_aggregator.errors import FetchError, SerializationError
from fleet_aggregator.models import AggregateResponse, Endpoint, WorkerStat


def endpoints(count: int):
    return [Endpoint(name=f"worker-{i}", address=f"10.0.0.{i}") for i in range(count)]


def stat_for(endpoint: Endpoint) -> WorkerStat:
    index = int(endpoint.address.rsplit(".", 1)[1])
    return WorkerStat(identity="1.0", rate=float(index), total_count=index * 10)


class TestAggregate:

    @pytest.mark.asyncio
    async def test_all_workers_succeed(self):
        async def fetch(endpoint):
            return stat_for(endpoint)

        response = await aggregate(endpoints(5), fetch)

        assert response.server_count == 5
        assert sorted(s.total_count for s in response.stats) == [0, 10, 20, 30, 40]

    @pytest.mark.asyncio
    async def test_failed_workers_are_excluded_not_placeholders(self):
        async def fetch(endpoint):
            if endpoint.name in ("worker-1", "worker-3"):
                raise FetchError(endpoint, ConnectionError("refused"))
            return stat_for(endpoint)

        response = await aggregate(endpoints(5), fetch)

        assert response.server_count == 5
        assert len(response.stats) == 3
        assert sorted(s.total_count for s in response.stats) == [0, 20, 40]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_isolated(self):
        async def fetch(endpoint):
            if endpoint.name == "worker-0":
                raise KeyError("bug in fetcher")
            return stat_for(endpoint)

        response = await aggregate(endpoints(3), fetch)

        assert response.server_count == 3
        assert sorted(s.total_count for s in response.stats) == [10, 20]

    @pytest.mark.asyncio
    async def test_all_workers_fail(self):
        async def fetch(endpoint):
            raise FetchError(endpoint, TimeoutError())

        response = await aggregate(endpoints(4), fetch)

        assert response.server_count == 4
        assert response.stats == []

    @pytest.mark.asyncio
    async def test_no_endpoints(self):
        async def fetch(endpoint):
            raise AssertionError("should not be called")

        response = await aggregate([], fetch)

        assert response.server_count == 0
        assert response.stats == []

    @pytest.mark.asyncio
    async def test_fetches_run_concurrently(self):
        """所有拉取必须同时在途：每个任务都等待其他任务全部启动后才返回"""
        count = 8
        started = 0
        all_started = asyncio.Event()

        async def fetch(endpoint):
            nonlocal started
            started += 1
            if started == count:
                all_started.set()
            await asyncio.wait_for(all_started.wait(), timeout=1.0)
            return stat_for(endpoint)

        response = await aggregate(endpoints(count), fetch)

        assert len(response.stats) == count

    @pytest.mark.asyncio
    async def test_waits_for_slow_workers(self):
        async def fetch(endpoint):
            if endpoint.name == "worker-0":
                await asyncio.sleep(0.05)
            return stat_for(endpoint)

        response = await aggregate(endpoints(3), fetch)

        assert len(response.stats) == 3
        # 完成顺序：慢的 Worker 最后追加
        assert response.stats[-1].total_count == 0


class TestSerializeSnapshot:

    def test_wire_format(self):
        response = AggregateResponse(
            server_count=3,
            stats=[
                WorkerStat(identity="1.0", rate=10.5, total_count=100),
                WorkerStat(identity="1.0", rate=5.0, total_count=50),
            ],
        )

        data = serialize_snapshot(response)

        assert data == b'{"servers":3,"stats":[{"v":"1.0","rps":10.5,"t":100},{"v":"1.0","rps":5.0,"t":50}]}'

    def test_empty_snapshot(self):
        data = serialize_snapshot(AggregateResponse(server_count=0))

        assert json.loads(data) == {"servers": 0, "stats": []}

    def test_serialization_failure_is_wrapped(self, monkeypatch):
        response = AggregateResponse(server_count=0)

        def _broken(*args, **kwargs):
            raise ValueError("cannot encode")

        monkeypatch.setattr(AggregateResponse, "model_dump_json", _broken)

        with pytest.raises(SerializationError):
            serialize_snapshot(response)
