from typing import Any, List, Optional, Tuple
from urllib.parse import quote

from ..danmaku_parser import parse_packed_comment
from ..exceptions import UpstreamParseError
from ..models import CommentEntry, ProviderTier
from .base import BaseDanmuProvider


class CustomDanmuProvider(BaseDanmuProvider):
    """
    用户自建的弹幕API (danmu_api)。
    地址和 Token 都在运行时配置中，未同时配置时不参与弹幕获取。
    """
    tier = ProviderTier.CUSTOM
    default_timeout = 20.0

    async def _get_endpoint(self) -> Tuple[Optional[str], Optional[str]]:
        if self.config_manager is None:
            return None, None
        endpoint = str(await self.config_manager.get("danmuApiEndpoint", "") or "").strip()
        token = str(await self.config_manager.get("danmuApiToken", "") or "").strip()
        return endpoint or None, token or None

    async def is_configured(self) -> bool:
        endpoint, token = await self._get_endpoint()
        return bool(endpoint and token)

    @staticmethod
    def build_url(endpoint: str, token: str, video_url: str) -> str:
        return f"{endpoint.rstrip('/')}/{token}/api/v2/comment?url={quote(video_url, safe='')}"

    @staticmethod
    def extract_items(data: Any) -> List[Any]:
        """兼容 {success: true, comments: [...]} 和 {code: 0, data: [...]} 两种响应格式。"""
        if not isinstance(data, dict):
            raise UpstreamParseError("自建弹幕API返回的不是JSON对象", source="custom")
        if data.get('success') is True and isinstance(data.get('comments'), list):
            return data['comments']
        if data.get('code') == 0 and isinstance(data.get('data'), list):
            return data['data']
        raise UpstreamParseError(f"自建弹幕API返回了未知格式: {list(data.keys())}", source="custom")

    async def fetch_comments(self, url: str) -> List[CommentEntry]:
        endpoint, token = await self._get_endpoint()
        if not endpoint or not token:
            return []

        api_url = self.build_url(endpoint, token, url)
        self.logger.info(f"正在请求自建弹幕API: {endpoint}")
        response = await self._get(api_url, timeout=self.timeout_for(url))
        try:
            items = self.extract_items(response.json())
        except ValueError as e:
            raise UpstreamParseError(f"自建弹幕API返回了无效的JSON: {e}", source=self.name, url=api_url) from e

        parsed = (parse_packed_comment(item) for item in items)
        comments = await self._bound(entry for entry in parsed if entry is not None)
        comments = await self._apply_user_blacklist(comments)
        self.logger.info(f"自建弹幕API返回 {len(items)} 条，过滤后 {len(comments)} 条")
        return comments
