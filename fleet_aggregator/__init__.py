"""
Fleet Aggregator - Worker 统计聚合服务

负责：
- 每 3s 从 Inventory 发现所有就绪的 Worker
- 并发拉取每个 Worker 的 /api/stats
- 聚合为单个快照并原子替换
- 提供只读 REST API 给前端
"""

__version__ = "1.0.0"
