"""
弹幕源分级降级链

对每个平台链接，按顺序尝试：自建API -> XML弹幕源 -> JSON弹幕源。
某一级返回的弹幕数达到阈值时立即采用，不再尝试后续弹幕源；
否则保留目前最好的结果继续尝试，全部尝试完后返回最好的结果（可能为空）。
"""
import asyncio
import logging
from typing import List, Optional, Sequence

from .exceptions import UpstreamError
from .models import CommentEntry, PlatformLink, ProviderResult, ProviderTier
from .providers import BaseDanmuProvider

logger = logging.getLogger(__name__)

MIN_THRESHOLD = 100


class ProviderChain:
    def __init__(self, providers: Sequence[BaseDanmuProvider], min_threshold: int = MIN_THRESHOLD):
        self.providers = list(providers)
        self.min_threshold = min_threshold

    async def _try_provider(self, provider: BaseDanmuProvider, link: PlatformLink) -> List[CommentEntry]:
        """单个弹幕源的任何失败都视为 0 条弹幕。"""
        try:
            return await provider.fetch_comments(link.url)
        except UpstreamError as e:
            logger.warning(f"[{link.platform}] 弹幕源 {provider.name} 获取失败: {e}")
        except Exception as e:
            logger.error(f"[{link.platform}] 弹幕源 {provider.name} 发生未知错误: {e}", exc_info=True)
        return []

    def _result(self, link: PlatformLink, provider: Optional[BaseDanmuProvider], comments: List[CommentEntry]) -> ProviderResult:
        return ProviderResult(
            platform=link.platform,
            url=link.url,
            comments=comments,
            providerTier=provider.tier if provider else ProviderTier.NONE,
            providerName=provider.name if provider else None,
        )

    async def run(self, link: PlatformLink) -> ProviderResult:
        best: Optional[ProviderResult] = None
        # 自建API未达阈值的结果只作为后备，任何第三方弹幕源的非空结果都优先于它
        reserve: Optional[ProviderResult] = None
        markup_found = False

        for provider in self.providers:
            if provider.tier == ProviderTier.JSON and markup_found:
                continue
            if not await provider.is_configured():
                logger.debug(f"[{link.platform}] 弹幕源 {provider.name} 未配置，跳过")
                continue

            comments = await self._try_provider(provider, link)
            count = len(comments)
            result = self._result(link, provider, comments)

            if count >= self.min_threshold:
                logger.info(f"[{link.platform}] {provider.name} 返回 {count} 条（达到{self.min_threshold}条阈值），使用该结果")
                return result
            if count == 0:
                continue

            if provider.tier == ProviderTier.MARKUP:
                markup_found = True
            logger.info(f"[{link.platform}] {provider.name} 返回 {count} 条（少于{self.min_threshold}条阈值），继续尝试下一个弹幕源")
            if provider.tier == ProviderTier.CUSTOM:
                reserve = result
            elif best is None or count > best.count:
                best = result

        final = best or reserve
        if final is None:
            logger.info(f"[{link.platform}] 所有弹幕源都没有返回弹幕")
            return self._result(link, None, [])
        logger.info(f"[{link.platform}] 返回最佳结果: {final.providerName} 的 {final.count} 条弹幕")
        return final

    async def run_all(self, links: Sequence[PlatformLink]) -> List[ProviderResult]:
        """并发获取所有平台的弹幕，单个平台失败不影响其他平台。"""
        outcomes = await asyncio.gather(*(self.run(link) for link in links), return_exceptions=True)
        results = []
        for link, outcome in zip(links, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"[{link.platform}] 获取弹幕失败: {outcome}", exc_info=outcome)
                results.append(self._result(link, None, []))
            else:
                results.append(outcome)
        return results
