"""
存活探针

只表示进程已在接受连接，不反映采集循环状态。
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/healthz", response_class=PlainTextResponse)
async def healthz():
    return "ok"
