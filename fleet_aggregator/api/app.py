"""
FastAPI 应用配置

配置 CORS、路由注册，并挂载快照存储。
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..models import SnapshotStore
from .routers import health, stats

logger = logging.getLogger(__name__)


def create_app(store: Optional[SnapshotStore] = None) -> FastAPI:
    """
    创建 FastAPI 应用实例

    Args:
        store: 快照存储，由采集循环写入；不传时创建空存储

    配置：
    - CORS 中间件（允许所有来源）
    - API 路由
    """
    app = FastAPI(
        title="Fleet Aggregator",
        description="Worker 统计数据聚合服务",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url=None,
        openapi_url="/api/openapi.json"
    )

    app.state.snapshot_store = store if store is not None else SnapshotStore()

    # CORS 中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # 注册路由
    app.include_router(stats.router)
    app.include_router(health.router)

    return app
