from typing import List
from urllib.parse import urlparse

from ..danmaku_parser import parse_markup_payload
from ..models import CommentEntry, ProviderTier
from .base import BaseDanmuProvider


class MarkupDanmuProvider(BaseDanmuProvider):
    """
    返回 XML 弹幕 (<d p="...">文本</d>) 的第三方弹幕源。
    每个 base_url 对应一个实例，按配置顺序依次尝试。
    """
    tier = ProviderTier.MARKUP
    default_timeout = 15.0

    def __init__(self, base_url: str, *args, **kwargs):
        kwargs.setdefault("name", urlparse(base_url).netloc or base_url)
        super().__init__(*args, **kwargs)
        self.base_url = base_url.rstrip('/')

    async def fetch_comments(self, url: str) -> List[CommentEntry]:
        timeout = self.timeout_for(url)
        self.logger.info(f"正在请求 {self.name} (超时 {timeout:.0f} 秒): {url}")
        response = await self._get(f"{self.base_url}/", params={"url": url}, timeout=timeout)
        payload = response.text
        self.logger.debug(f"{self.name} 原始响应长度: {len(payload)}")

        # 解析是逐条产出的，超大响应不会先整体展开
        comments = await self._bound(parse_markup_payload(payload))
        comments = await self._apply_user_blacklist(comments)
        if comments:
            self.logger.info(
                f"{self.name} 处理完成: {len(comments)} 条优质弹幕, "
                f"时间范围 {comments[0].time:.1f}s - {comments[-1].time:.1f}s"
            )
        else:
            self.logger.info(f"{self.name} 未返回有效弹幕")
        return comments
