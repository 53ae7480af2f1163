"""
Fleet Aggregator 主程序入口

使用方式:
    python -m fleet_aggregator --selector app=worker
"""

from fleet_aggregator.main import cli


if __name__ == "__main__":
    cli()
