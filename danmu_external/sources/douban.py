import logging
from typing import List, Optional, Sequence, Tuple

from ..config_manager import ConfigManager
from ..exceptions import upstream_errors
from ..extractors import PlatformLinkExtractor, default_extractors
from ..log_manager import PROVIDER_RESPONSES_LOGGER
from ..models import PlatformLink
from ..rate_limiter import RateLimitedFetcher
from ..transport_manager import TransportManager

logger = logging.getLogger(__name__)
# 用于记录豆瓣原始响应的专用 logger
responses_logger = logging.getLogger(PROVIDER_RESPONSES_LOGGER)

DOUBAN_PAGE_HEADERS = {
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'zh-CN,zh;q=0.9,en;q=0.8',
    'DNT': '1',
    'Upgrade-Insecure-Requests': '1',
    'Cache-Control': 'max-age=0',
}
DOUBAN_REFERER = 'https://www.douban.com/'


class DoubanPageSource:
    """从豆瓣影视详情页的"在哪儿看"区域提取各平台播放链接。"""

    def __init__(
        self,
        transport_manager: TransportManager,
        fetcher: RateLimitedFetcher,
        config_manager: Optional[ConfigManager] = None,
        extractors: Optional[Sequence[PlatformLinkExtractor]] = None,
        base_url: str = "https://movie.douban.com",
        timeout: float = 10.0,
        jitter: Tuple[float, float] = (0.3, 1.0),
    ):
        self.transport_manager = transport_manager
        self.fetcher = fetcher
        self.config_manager = config_manager
        self.extractors = list(extractors) if extractors is not None else default_extractors()
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.jitter = jitter
        self.logger = logging.getLogger(self.__class__.__name__)

    def page_url(self, media_id: str) -> str:
        return f"{self.base_url}/subject/{media_id}/"

    async def _should_log_responses(self) -> bool:
        if self.config_manager is None:
            return False
        return await self.config_manager.get_bool("providerLogResponses")

    async def fetch_page(self, media_id: str) -> str:
        """经过限速器获取详情页HTML；失败时抛出 UpstreamError。"""
        url = self.page_url(media_id)
        with upstream_errors("douban", url):
            async with await self.transport_manager.create_client(timeout=self.timeout) as client:
                response = await self.fetcher.fetch(
                    client, url, jitter=self.jitter, referer=DOUBAN_REFERER, headers=DOUBAN_PAGE_HEADERS,
                )
                if await self._should_log_responses():
                    responses_logger.debug(
                        f"Douban Detail Page Response for ID '{media_id}':\n"
                        f"Status: {response.status_code}\nBody:\n{response.text[:1000]}...\n"
                        "----------------------------------------"
                    )
                response.raise_for_status()
                return response.text

    def extract_links(self, html: str, episode: Optional[str] = None) -> List[PlatformLink]:
        links: List[PlatformLink] = []
        for extractor in self.extractors:
            links.extend(extractor.extract(html, episode))
        return links

    async def find_links(self, media_id: str, episode: Optional[str] = None) -> List[PlatformLink]:
        self.logger.info(f"豆瓣: 正在提取平台链接 media_id={media_id}, 集数: {episode or '未指定'}")
        html = await self.fetch_page(media_id)
        self.logger.debug(f"豆瓣页面HTML长度: {len(html)}")
        links = self.extract_links(html, episode)
        self.logger.info(f"豆瓣: 共提取到 {len(links)} 个平台链接")
        return links
