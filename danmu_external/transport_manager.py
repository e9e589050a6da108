"""
HTTP Transport 管理器
为豆瓣、搜索接口和各个弹幕源提供共享的连接池，避免每次请求都重新建立连接。
"""
import asyncio
import logging
from typing import Dict, Optional

import httpx

from .config_manager import ConfigManager

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)


class TransportManager:
    """
    管理共享的 HTTP transport 实例。

    - 懒加载：按需创建 transport，创建过程由异步锁保护
    - 代理支持：为不同代理 URL 维护独立的 transport
    - 生命周期管理：仅在应用关闭时清理
    - 测试时可以传入固定的 transport (如 httpx.MockTransport)，此时忽略代理配置
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config_manager = config_manager
        self._fixed_transport = transport
        self._shared_transport: Optional[httpx.AsyncHTTPTransport] = None
        self._proxy_transports: Dict[str, httpx.AsyncHTTPTransport] = {}
        self._lock = asyncio.Lock()

    async def _get_proxy_url(self) -> Optional[str]:
        if self.config_manager is None:
            return None
        proxy_url = await self.config_manager.get("proxyUrl", "")
        if not proxy_url or not await self.config_manager.get_bool("proxyEnabled"):
            return None
        return proxy_url

    async def get_transport(self) -> httpx.AsyncBaseTransport:
        """获取当前配置下应使用的 transport (无代理或指定代理)，支持并发调用。"""
        if self._fixed_transport is not None:
            return self._fixed_transport

        proxy_url = await self._get_proxy_url()
        async with self._lock:
            if proxy_url:
                if proxy_url not in self._proxy_transports:
                    self._proxy_transports[proxy_url] = httpx.AsyncHTTPTransport(
                        proxy=proxy_url,
                        retries=2,
                        limits=httpx.Limits(max_keepalive_connections=10, max_connections=50, keepalive_expiry=15.0),
                    )
                    logger.debug(f"Created proxy transport for {proxy_url}")
                return self._proxy_transports[proxy_url]

            if self._shared_transport is None:
                self._shared_transport = httpx.AsyncHTTPTransport(
                    retries=2,
                    limits=httpx.Limits(max_keepalive_connections=50, max_connections=100, keepalive_expiry=30.0),
                )
                logger.debug(f"Created shared transport (id={id(self._shared_transport)})")
            return self._shared_transport

    async def create_client(self, timeout: float = 20.0, headers: Optional[Dict[str, str]] = None) -> httpx.AsyncClient:
        """
        创建一个使用共享 transport 的 httpx.AsyncClient。
        客户端关闭时不会关闭共享的 transport。
        """
        transport = await self.get_transport()
        client_headers = {"User-Agent": DEFAULT_USER_AGENT}
        client_headers.update(headers or {})
        return httpx.AsyncClient(
            transport=_NonClosingTransport(transport),
            timeout=timeout,
            headers=client_headers,
            follow_redirects=True,
        )

    async def close_all(self):
        """
        关闭所有管理的 transport。

        仅在应用关闭时调用，避免在业务逻辑中调用导致全局失效。
        """
        logger.info("Closing all managed transports...")
        transports = list(self._proxy_transports.values())
        if self._shared_transport:
            transports.append(self._shared_transport)

        results = await asyncio.gather(*(t.aclose() for t in transports), return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.warning(f"Error closing transport: {result}")

        self._shared_transport = None
        self._proxy_transports.clear()
        logger.info("All transports closed successfully.")


class _NonClosingTransport(httpx.AsyncBaseTransport):
    """包装共享 transport，使 AsyncClient.aclose() 不会关闭底层连接池。"""

    def __init__(self, transport: httpx.AsyncBaseTransport):
        self._transport = transport

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self._transport.handle_async_request(request)

    async def aclose(self) -> None:
        pass
