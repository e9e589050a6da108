import logging
from typing import List, Optional

from .exceptions import UpstreamError
from .models import DanmuQuery, PlatformLink
from .sources import DoubanPageSource, TitleSearchSource

logger = logging.getLogger(__name__)


class PlatformUrlResolver:
    """
    根据豆瓣ID或标题解析各视频平台的播放链接。

    主路径：抓取豆瓣详情页；主路径没有结果且提供了标题时，使用资源站标题搜索作为备用。
    任一路径失败都只会让该路径返回空列表，resolve() 本身不会抛出异常。
    """

    def __init__(self, primary: DoubanPageSource, fallback: Optional[TitleSearchSource] = None):
        self.primary = primary
        self.fallback = fallback

    async def _resolve_primary(self, query: DanmuQuery) -> List[PlatformLink]:
        try:
            return await self.primary.find_links(query.mediaId, query.episode)
        except UpstreamError as e:
            logger.warning(f"豆瓣页面解析失败 (media_id={query.mediaId}): {e}")
        except Exception as e:
            logger.error(f"提取豆瓣平台链接时发生未知错误 (media_id={query.mediaId}): {e}", exc_info=True)
        return []

    async def _resolve_fallback(self, query: DanmuQuery) -> List[PlatformLink]:
        try:
            return await self.fallback.find_links(query.title, query.episode)
        except UpstreamError as e:
            logger.warning(f"资源站搜索失败 (title='{query.title}'): {e}")
        except Exception as e:
            logger.error(f"资源站搜索时发生未知错误 (title='{query.title}'): {e}", exc_info=True)
        return []

    async def resolve(self, query: DanmuQuery) -> List[PlatformLink]:
        links: List[PlatformLink] = []
        if query.mediaId:
            links = await self._resolve_primary(query)

        if not links and query.title and self.fallback is not None:
            logger.info(f"豆瓣未找到链接，使用资源站搜索备用方案: '{query.title}'")
            links = await self._resolve_fallback(query)

        logger.info(f"解析完成: 共 {len(links)} 个平台链接 {[link.platform for link in links]}")
        return links
