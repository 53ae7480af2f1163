"""
依赖注入模块

提供 FastAPI 依赖项。
"""

from fastapi import Request

from ..models import SnapshotStore


async def get_snapshot_store(request: Request) -> SnapshotStore:
    """获取应用持有的快照存储"""
    return request.app.state.snapshot_store
