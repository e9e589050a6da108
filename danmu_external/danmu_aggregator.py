import logging
import time
from enum import Enum
from typing import Callable, List, Optional

from .exceptions import DanmuValidationError
from .merger import merge_results
from .models import AggregateResponse, DanmuQuery
from .provider_chain import ProviderChain
from .resolver import PlatformUrlResolver

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    RESOLVING = "resolving"
    FETCHING = "fetching"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"


StateListener = Callable[[PipelineState], None]


class _PipelineRun:
    """单次聚合请求的状态记录。"""

    def __init__(self, listener: Optional[StateListener] = None):
        self.state: Optional[PipelineState] = None
        self.history: List[PipelineState] = []
        self._listener = listener

    def transition(self, state: PipelineState):
        logger.debug(f"弹幕聚合状态: {self.state.value if self.state else '-'} -> {state.value}")
        self.state = state
        self.history.append(state)
        if self._listener is not None:
            self._listener(state)


class DanmuAggregator:
    """
    外部弹幕聚合流程: 解析平台链接 -> 各平台并发获取弹幕 -> 合并去重。

    单个平台或弹幕源的失败不会让整个流程失败；只有缺少必需参数，
    或发生未预期的异常时才会进入 FAILED 状态。
    """

    def __init__(self, resolver: PlatformUrlResolver, chain: ProviderChain):
        self.resolver = resolver
        self.chain = chain

    @staticmethod
    def validate(query: DanmuQuery):
        if not query.mediaId and not query.title:
            raise DanmuValidationError("Missing required parameters: mediaId (douban_id) or title")

    async def aggregate(self, query: DanmuQuery, listener: Optional[StateListener] = None) -> AggregateResponse:
        run = _PipelineRun(listener)
        try:
            self.validate(query)
        except DanmuValidationError:
            run.transition(PipelineState.FAILED)
            raise

        start = time.monotonic()
        logger.info(
            f"开始获取外部弹幕: media_id={query.mediaId}, title='{query.title}', "
            f"year={query.year}, episode={query.episode}"
        )
        try:
            run.transition(PipelineState.RESOLVING)
            links = await self.resolver.resolve(query)
            if not links:
                run.transition(PipelineState.DONE)
                return AggregateResponse(
                    message=f'未找到"{query.title or query.mediaId}"的视频平台链接，无法获取弹幕数据'
                )

            run.transition(PipelineState.FETCHING)
            results = await self.chain.run_all(links)

            run.transition(PipelineState.MERGING)
            danmu, platforms = await merge_results(results)
        except Exception:
            run.transition(PipelineState.FAILED)
            raise

        run.transition(PipelineState.DONE)
        logger.info(
            f"外部弹幕获取完成: {len(platforms)}/{len(links)} 个平台有弹幕, "
            f"共 {len(danmu)} 条, 耗时 {time.monotonic() - start:.2f} 秒"
        )
        return AggregateResponse(danmu=danmu, platforms=platforms, total=len(danmu))
