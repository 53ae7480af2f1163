"""
测试公共夹具
"""

import sys
from pathlib import Path
from typing import Callable, Dict

import pytest

# 添加项目路径到 sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fleet_aggregator.collector import WorkerStatFetcher

from fake_workers import fleet_transport


@pytest.fixture
def make_fetcher():
    """创建连接到模拟 Worker 的 Fetcher（短超时）"""
    def _make(workers: Dict[str, Callable], timeout: float = 0.2, seen=None) -> WorkerStatFetcher:
        return WorkerStatFetcher(timeout=timeout, transport=fleet_transport(workers, seen))
    return _make
