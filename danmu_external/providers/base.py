import logging
import random
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..config import DensityConfig
from ..config_manager import ConfigManager
from ..danmaku_filter import apply_blacklist_filter
from ..density import DensityController, bound_comments
from ..exceptions import upstream_errors
from ..log_manager import PROVIDER_RESPONSES_LOGGER
from ..models import CommentEntry, ProviderTier
from ..transport_manager import TransportManager

# 用于记录弹幕源原始响应的专用 logger
responses_logger = logging.getLogger(PROVIDER_RESPONSES_LOGGER)


class BaseDanmuProvider(ABC):
    """
    所有弹幕源的抽象基类。
    fetch_comments() 失败时抛出 UpstreamError，由 ProviderChain 负责吸收。
    """

    # 每个子类都必须覆盖这些类属性
    tier: ProviderTier
    default_timeout: float = 15.0

    def __init__(
        self,
        transport_manager: TransportManager,
        config_manager: Optional[ConfigManager] = None,
        name: Optional[str] = None,
        base_timeout: Optional[float] = None,
        platform_timeouts: Optional[Dict[str, float]] = None,
        density: Optional[DensityConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.transport_manager = transport_manager
        self.config_manager = config_manager
        self.name = name or self.__class__.__name__
        self.base_timeout = base_timeout if base_timeout is not None else self.default_timeout
        self.platform_timeouts = dict(platform_timeouts or {})
        self.density = density or DensityConfig()
        self._rng = rng
        self.logger = logging.getLogger(self.__class__.__name__)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"

    def timeout_for(self, url: str) -> float:
        """
        源站较慢的平台 (爱奇艺、优酷、芒果TV) 使用更长的超时，
        但不会低于该弹幕源自身的基础超时。
        """
        for domain, timeout in self.platform_timeouts.items():
            if domain in url:
                return max(self.base_timeout, timeout)
        return self.base_timeout

    async def is_configured(self) -> bool:
        return True

    async def _should_log_responses(self) -> bool:
        """动态检查是否应记录原始响应，确保配置实时生效。"""
        if self.config_manager is None:
            return False
        return await self.config_manager.get_bool("providerLogResponses")

    async def _get(self, url: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None, timeout: Optional[float] = None) -> httpx.Response:
        timeout = timeout if timeout is not None else self.base_timeout
        with upstream_errors(self.name, url):
            async with await self.transport_manager.create_client(timeout=timeout, headers=headers) as client:
                response = await client.get(url, params=params)
                if await self._should_log_responses():
                    responses_logger.debug(
                        f"{self.name} Response ({response.request.url}): "
                        f"status={response.status_code}, text={response.text[:2000]}"
                    )
                response.raise_for_status()
                return response

    def _new_controller(self) -> DensityController:
        return DensityController(
            segment_duration=self.density.segment_duration,
            max_per_segment=self.density.max_per_segment,
            replace_probability=self.density.replace_probability,
            strategy=self.density.strategy,
            rng=self._rng,
        )

    async def _bound(self, comments: Iterable[CommentEntry]) -> List[CommentEntry]:
        """分段限流并采样到总量上限，返回按时间排序的结果。"""
        return await bound_comments(
            comments,
            controller=self._new_controller(),
            max_total=self.density.max_total,
            yield_every=self.density.yield_every,
            rng=self._rng,
        )

    async def _apply_user_blacklist(self, comments: List[CommentEntry]) -> List[CommentEntry]:
        if self.config_manager is None or not comments:
            return comments
        patterns_text = await self.config_manager.get("danmuBlacklistRegex", "")
        return apply_blacklist_filter(comments, patterns_text) if patterns_text else comments

    @abstractmethod
    async def fetch_comments(self, url: str) -> List[CommentEntry]:
        """获取指定平台播放页的弹幕。"""
        raise NotImplementedError
