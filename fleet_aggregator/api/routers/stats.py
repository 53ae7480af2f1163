"""
聚合统计 API

返回最近一次发布的快照。首个周期完成前返回空内容，不报错。
"""

from fastapi import APIRouter, Depends, Response

from ...models import SnapshotStore
from ..dependencies import get_snapshot_store

router = APIRouter(prefix="/api/aggregator", tags=["stats"])


@router.get("/stats")
async def get_stats(store: SnapshotStore = Depends(get_snapshot_store)):
    """获取当前聚合快照（已序列化，原样返回）"""
    return Response(
        content=store.current(),
        media_type="application/json",
        headers={"Access-Control-Allow-Origin": "*"},
    )
