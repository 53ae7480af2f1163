"""
配置加载模块

从 config.yaml 加载配置，支持 Pydantic 验证、环境变量覆盖和命令行参数覆盖。

优先级（高 → 低）：命令行参数 > 环境变量 > YAML 文件 > 默认值
"""

import os
from pathlib import Path
from typing import List, Literal, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


ENV_PREFIX = "FLEET_AGGREGATOR_"
CONFIG_PATH_ENV = "FLEET_AGGREGATOR_CONFIG"
DEFAULT_CONFIG_PATH = "config.yaml"


def split_listen(listen: str) -> Tuple[str, int]:
    """
    解析 host:port 监听地址

    ":8080" 视为监听所有地址；IPv6 需要方括号，如 "[::1]:8080"。

    Raises:
        ValueError: 地址格式不合法时抛出
    """
    host, sep, port = listen.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address {listen!r}, expected host:port")
    port_num = int(port)
    if not 0 < port_num < 65536:
        raise ValueError(f"invalid port in listen address {listen!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise ValueError(f"IPv6 listen address must be bracketed: {listen!r}")
    return host or "0.0.0.0", port_num


class APIConfig(BaseModel):
    """API 服务配置"""
    listen: str = "localhost:8080"

    @field_validator("listen")
    @classmethod
    def _check_listen(cls, value: str) -> str:
        split_listen(value)
        return value

    @property
    def host(self) -> str:
        """获取监听主机"""
        return split_listen(self.listen)[0]

    @property
    def port(self) -> int:
        """获取监听端口"""
        return split_listen(self.listen)[1]


class StaticEndpointConfig(BaseModel):
    """静态 Worker 配置（inventory.kind = static 时使用）"""
    name: str
    address: str
    phase: str = "Running"


class InventoryConfig(BaseModel):
    """服务发现配置"""
    kind: Literal["kubernetes", "static"] = "kubernetes"
    selector: str = ""
    namespace: str = "default"
    endpoints: List[StaticEndpointConfig] = Field(default_factory=list)
    request_timeout: float = Field(default=5.0, gt=0)


class CollectorConfig(BaseModel):
    """采集配置"""
    interval: float = Field(default=3.0, gt=0)
    timeout: float = Field(default=2.0, gt=0)
    worker_port: int = 8080
    stats_path: str = "/api/stats"


class LoggingConfig(BaseModel):
    """日志配置"""
    level: str = "INFO"
    file: Optional[str] = None


class AppConfig(BaseSettings):
    """应用配置（完整配置）"""
    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        extra="ignore",
    )

    api: APIConfig = Field(default_factory=APIConfig)
    inventory: InventoryConfig = Field(default_factory=InventoryConfig)
    collector: CollectorConfig = Field(default_factory=CollectorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # 环境变量覆盖 YAML（YAML 内容通过 init 参数传入）
        return (env_settings, init_settings)


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    加载配置文件

    优先级：
    1. 参数指定的路径
    2. 环境变量 FLEET_AGGREGATOR_CONFIG
    3. 默认路径 config.yaml

    文件不存在时只使用环境变量和默认值。
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)

    config_file = Path(config_path)

    raw_config = None
    if config_file.exists():
        with open(config_file, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)

    return AppConfig(**(raw_config or {}))


def apply_cli_overrides(
    config: AppConfig,
    address: Optional[str] = None,
    selector: Optional[str] = None,
    sleep: Optional[float] = None,
) -> AppConfig:
    """用命令行参数覆盖配置，返回新的配置实例"""
    update = {}
    if address is not None:
        update["api"] = APIConfig(listen=address)
    if selector is not None:
        update["inventory"] = config.inventory.model_copy(update={"selector": selector})
    if sleep is not None:
        if sleep <= 0:
            raise ValueError(f"sleep must be positive, got {sleep}")
        update["collector"] = config.collector.model_copy(update={"interval": sleep})
    if not update:
        return config
    return config.model_copy(update=update)
