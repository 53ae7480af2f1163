"""
服务发现模块

每个采集周期调用一次，返回当前所有 Worker 端点。
支持 Kubernetes（按 label selector 列出 Pod）和静态配置两种方式。
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from kubernetes import client as k8s_client, config as k8s_config

from .config import InventoryConfig
from .errors import InventoryError
from .models import Endpoint, is_ready

logger = logging.getLogger(__name__)


class InventoryClient(ABC):
    """服务发现接口"""

    @abstractmethod
    async def list_endpoints(self) -> List[Endpoint]:
        """
        列出所有端点（未过滤）

        Raises:
            InventoryError: 服务发现失败时抛出
        """

    async def list_ready_endpoints(self) -> List[Endpoint]:
        """
        列出就绪端点

        未就绪的端点（无地址或非 Running）直接丢弃，不计数、不报错。
        """
        endpoints = await self.list_endpoints()
        ready = [endpoint for endpoint in endpoints if is_ready(endpoint)]
        if len(ready) != len(endpoints):
            logger.debug(f"Skipped {len(endpoints) - len(ready)} endpoints that are not ready")
        return ready


class StaticInventory(InventoryClient):
    """静态端点列表（非 Kubernetes 部署 / 测试用）"""

    def __init__(self, endpoints: Iterable[Endpoint]):
        self._endpoints = list(endpoints)

    async def list_endpoints(self) -> List[Endpoint]:
        return list(self._endpoints)


class KubernetesInventory(InventoryClient):
    """
    Kubernetes Pod 发现

    优先使用 in-cluster 配置，失败时回退到本地 kubeconfig。
    CoreV1Api 首次使用时创建，之后复用。
    """

    def __init__(
        self,
        selector: str = "",
        namespace: str = "default",
        request_timeout: float = 5.0,
        api=None,
    ):
        self.selector = selector
        self.namespace = namespace
        self.request_timeout = request_timeout
        self._api = api

    def _get_api(self):
        if self._api is None:
            try:
                k8s_config.load_incluster_config()
            except k8s_config.ConfigException:
                k8s_config.load_kube_config()
            self._api = k8s_client.CoreV1Api()
        return self._api

    def _list_pods(self):
        api = self._get_api()
        kwargs = {"label_selector": self.selector} if self.selector else {}
        # 超时保证 API Server 无响应时周期仍能结束
        return api.list_namespaced_pod(self.namespace, _request_timeout=self.request_timeout, **kwargs)

    async def list_endpoints(self) -> List[Endpoint]:
        try:
            pods = await asyncio.to_thread(self._list_pods)
        except Exception as e:
            raise InventoryError(
                f"Error listing pods in namespace {self.namespace!r} "
                f"(selector={self.selector!r}): {e}"
            ) from e

        return [pod_to_endpoint(pod) for pod in pods.items]


def pod_to_endpoint(pod) -> Endpoint:
    """将 V1Pod 转换为 Endpoint（status 缺失时视为未就绪）"""
    status = pod.status
    return Endpoint(
        name=pod.metadata.name if pod.metadata else "",
        address=(status.pod_ip if status else None) or "",
        phase=(status.phase if status else None) or "",
    )


def build_inventory(config: InventoryConfig, api: Optional[object] = None) -> InventoryClient:
    """根据配置创建服务发现客户端"""
    if config.kind == "static":
        return StaticInventory(
            Endpoint(name=e.name, address=e.address, phase=e.phase)
            for e in config.endpoints
        )
    return KubernetesInventory(
        selector=config.selector,
        namespace=config.namespace,
        request_timeout=config.request_timeout,
        api=api,
    )
