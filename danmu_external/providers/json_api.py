from typing import List

from ..danmaku_parser import parse_json_rows
from ..exceptions import UpstreamParseError
from ..models import CommentEntry, ProviderTier
from .base import BaseDanmuProvider

JSON_API_HEADERS = {
    'Accept': 'application/json, text/plain, */*',
    'Accept-Language': 'zh-CN,zh;q=0.9,en;q=0.8',
    'Referer': 'https://danmu.icu/',
}


class JsonDanmuProvider(BaseDanmuProvider):
    """
    返回 {"danmuku": [[时间, 位置, 颜色, "", 文本, "", "", 字号], ...]} 的弹幕源。
    只在所有 XML 弹幕源都没有结果时使用。
    """
    tier = ProviderTier.JSON
    default_timeout = 20.0

    def __init__(self, api_url: str, *args, **kwargs):
        kwargs.setdefault("name", "danmu.icu")
        super().__init__(*args, **kwargs)
        self.api_url = api_url

    async def fetch_comments(self, url: str) -> List[CommentEntry]:
        timeout = self.timeout_for(url)
        self.logger.info(f"正在请求 {self.name} (超时 {timeout:.0f} 秒): {url}")
        response = await self._get(self.api_url, params={"url": url}, headers=JSON_API_HEADERS, timeout=timeout)
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamParseError(f"{self.name} 返回了无效的JSON: {e}", source=self.name, url=url) from e

        rows = data.get('danmuku') if isinstance(data, dict) else None
        if not isinstance(rows, list):
            return []

        comments = await self._bound(parse_json_rows(rows))
        comments = await self._apply_user_blacklist(comments)
        self.logger.info(f"{self.name} 返回 {len(rows)} 条原始弹幕，过滤后 {len(comments)} 条")
        return comments
