"""
主程序入口

启动两个并发任务：
1. 采集循环（服务发现 → 并发拉取 → 聚合 → 发布）
2. REST API 服务
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn

from . import __version__
from .config import AppConfig, apply_cli_overrides, load_config
from .collector import WorkerStatFetcher, run_refresh_loop
from .inventory import build_inventory
from .models import SnapshotStore


def setup_logging(config: AppConfig):
    """配置日志"""
    # 日志格式
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # 获取日志级别
    level = getattr(logging, config.logging.level.upper(), logging.INFO)

    # 配置根日志
    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # 如果配置了文件日志
    if config.logging.file:
        log_path = Path(config.logging.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(log_format))
        logging.getLogger().addHandler(file_handler)

    # 降低第三方库日志级别
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("kubernetes").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


async def run_api_server(config: AppConfig, store: SnapshotStore):
    """运行 API 服务器"""
    from .api.app import create_app

    app = create_app(store)

    server_config = uvicorn.Config(
        app=app,
        host=config.api.host,
        port=config.api.port,
        log_level="info",
        access_log=False  # 我们用自己的日志
    )
    server = uvicorn.Server(server_config)
    await server.serve()


async def main(config: AppConfig):
    """主函数：启动所有任务"""
    logger = logging.getLogger(__name__)

    # 设置日志
    setup_logging(config)
    logger.info("=" * 60)
    logger.info(f"Fleet Aggregator v{__version__}")
    logger.info("=" * 60)
    logger.info(f"Config loaded: API={config.api.host}:{config.api.port}")
    logger.info(
        f"Inventory: kind={config.inventory.kind} "
        f"namespace={config.inventory.namespace} selector={config.inventory.selector!r}"
    )

    store = SnapshotStore()
    inventory = build_inventory(config.inventory)
    fetcher = WorkerStatFetcher(
        port=config.collector.worker_port,
        path=config.collector.stats_path,
        timeout=config.collector.timeout,
    )

    logger.info("Starting concurrent tasks...")

    try:
        await asyncio.gather(
            run_refresh_loop(inventory, fetcher, store, config.collector.interval),
            run_api_server(config, store)
        )
    except asyncio.CancelledError:
        logger.info("Tasks cancelled, shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="fleet-aggregator", description="Worker 统计数据聚合服务")
    parser.add_argument("--config", default=None, help="配置文件路径（默认 $FLEET_AGGREGATOR_CONFIG 或 config.yaml）")
    parser.add_argument("--address", default=None, help="监听地址，如 localhost:8080")
    parser.add_argument("--selector", default=None, help="Pod label selector")
    parser.add_argument("--sleep", type=float, default=None, help="两次聚合之间的间隔（秒）")
    return parser.parse_args(argv)


def cli(argv: Optional[List[str]] = None):
    """命令行入口"""
    args = parse_args(argv)
    try:
        config = apply_cli_overrides(
            load_config(args.config),
            address=args.address,
            selector=args.selector,
            sleep=args.sleep,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        print("\nShutdown requested, exiting...")
        sys.exit(0)


if __name__ == "__main__":
    cli()
