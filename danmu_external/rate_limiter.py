"""
速率限制请求器

豆瓣等对爬取敏感的站点需要控制请求频率，防止被封IP：
每个源站的两次请求之间至少间隔 min_interval 秒，并在发出请求前再追加一段随机延时。
这是整个服务中唯一跨请求共享的可变状态，由应用启动时创建的单个实例持有。
"""
import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, Dict, Optional, Tuple
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)

# 用户代理池 - 防止被封IP
USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36',
    'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36',
]


def random_user_agent(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(USER_AGENTS)


class RateLimitedFetcher:
    """按源站 (host) 串行化请求时间戳的请求器。"""

    def __init__(
        self,
        min_interval: float = 1.0,
        default_jitter: Tuple[float, float] = (0.3, 1.5),
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self.default_jitter = default_jitter
        self._rng = rng or random.Random()
        self._clock = clock
        self._sleep = sleep
        self._last_call: Dict[str, float] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @staticmethod
    def origin_of(url: str) -> str:
        return urlparse(url).netloc.lower()

    def _lock_for(self, origin: str) -> asyncio.Lock:
        lock = self._locks.get(origin)
        if lock is None:
            lock = self._locks[origin] = asyncio.Lock()
        return lock

    async def wait_for_slot(self, origin: str, jitter: Optional[Tuple[float, float]] = None) -> float:
        """
        等待直到可以向 origin 发起下一次请求，返回实际等待的总秒数。
        只有时间戳的读写在锁内进行，随机延时和请求本身不占用锁。
        """
        waited = 0.0
        async with self._lock_for(origin):
            last = self._last_call.get(origin)
            if last is not None:
                elapsed = self._clock() - last
                if elapsed < self.min_interval:
                    delay = self.min_interval - elapsed
                    logger.debug(f"请求 {origin} 过于频繁，等待 {delay:.2f} 秒")
                    await self._sleep(delay)
                    waited += delay
            self._last_call[origin] = self._clock()

        low, high = jitter or self.default_jitter
        if high > 0:
            delay = self._rng.uniform(low, high)
            await self._sleep(delay)
            waited += delay
        return waited

    async def fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        jitter: Optional[Tuple[float, float]] = None,
        referer: Optional[str] = None,
        **kwargs,
    ) -> httpx.Response:
        """
        限速后发起 GET 请求。
        未显式指定 User-Agent 时从代理池中随机选择一个，并随机附带 Referer。
        """
        await self.wait_for_slot(self.origin_of(url), jitter)

        headers = dict(kwargs.pop("headers", None) or {})
        headers.setdefault("User-Agent", random_user_agent(self._rng))
        if referer and "Referer" not in headers and self._rng.random() > 0.5:
            headers["Referer"] = referer
        return await client.get(url, headers=headers, **kwargs)

