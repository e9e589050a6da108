"""
影视资源站搜索接口 (苹果CMS vod 协议)

豆瓣页面没有播放链接时的备用来源：按标题搜索，选出最合适的条目，
再从它的播放列表中取出对应集数的平台链接。
"""
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from opencc import OpenCC

from ..config_manager import ConfigManager
from ..exceptions import upstream_errors
from ..log_manager import PROVIDER_RESPONSES_LOGGER
from ..models import PlatformLink, parse_episode_number
from ..transport_manager import TransportManager

logger = logging.getLogger(__name__)
responses_logger = logging.getLogger(PROVIDER_RESPONSES_LOGGER)

DEFAULT_TITLE_DENYLIST = ("解说", "预告", "花絮", "动态漫", "之精彩")

# 按顺序检查，先命中的生效
_PLATFORM_MARKERS = (
    ("bilibili.com", "bilibili"),
    ("qq.com", "tencent"),
    ("iqiyi.com", "iqiyi"),
    ("youku.com", "youku"),
    ("mgtv.com", "mgtv"),
)

_cc_t2s = OpenCC('t2s')


def title_variants(title: str) -> List[str]:
    """
    生成搜索用的标题变体，去重且保持顺序。

    >>> title_variants("哪吒·魔童闹海")
    ['哪吒·魔童闹海', '哪吒魔童闹海', '哪吒 魔童闹海', '哪吒-魔童闹海']
    """
    variants = [
        title,
        title.replace('·', ''),
        title.replace('·', ' '),
        title.replace('·', '-'),
    ]
    simplified = _cc_t2s.convert(title)
    if simplified != title:
        variants.append(simplified)
    return list(dict.fromkeys(v for v in variants if v.strip()))


def detect_platform(url: str) -> str:
    for marker, platform in _PLATFORM_MARKERS:
        if marker in url:
            return f"{platform}_caiji"
    return "unknown"


def pick_episode_url(vod_play_url: str, episode: Optional[str] = None) -> Optional[str]:
    """
    从 "标签$URL#标签$URL" 格式的播放列表中选出指定集数的URL。
    支持的标签格式: "20"、"第20集"、"E20"、"EP20"；找不到时使用第一集。
    """
    items = [item for item in vod_play_url.split('#') if item]
    if not items:
        return None

    episode_num = parse_episode_number(episode)
    if episode_num is not None:
        labels = {str(episode_num), f"第{episode_num}集", f"E{episode_num}", f"EP{episode_num}"}
        for item in items:
            label, sep, url = item.partition('$')
            if sep and label in labels:
                return url or None
        logger.info(f"播放列表中未找到第{episode_num}集的链接，使用第一集")

    _, sep, url = items[0].partition('$')
    return url if sep and url else None


class TitleSearchSource:
    def __init__(
        self,
        transport_manager: TransportManager,
        config_manager: Optional[ConfigManager] = None,
        base_url: str = "https://www.caiji.cyou",
        timeout: float = 10.0,
        denylist: Sequence[str] = DEFAULT_TITLE_DENYLIST,
    ):
        self.transport_manager = transport_manager
        self.config_manager = config_manager
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._denylist_re = re.compile('|'.join(re.escape(word) for word in denylist)) if denylist else None
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/api.php/provide/vod/"

    async def _should_log_responses(self) -> bool:
        if self.config_manager is None:
            return False
        return await self.config_manager.get_bool("providerLogResponses")

    async def _get_json(self, params: Dict[str, str]) -> Dict[str, Any]:
        with upstream_errors("caiji", self.api_url):
            async with await self.transport_manager.create_client(timeout=self.timeout) as client:
                response = await client.get(self.api_url, params=params)
                if await self._should_log_responses():
                    responses_logger.debug(f"Caiji Response ({params}): status={response.status_code}, text={response.text[:1000]}")
                response.raise_for_status()
                data = response.json()
        return data if isinstance(data, dict) else {}

    def is_unwanted(self, name: str) -> bool:
        return bool(self._denylist_re and self._denylist_re.search(name))

    def choose_candidate(self, candidates: List[Dict[str, Any]], search_title: str, original_title: str) -> Optional[Dict[str, Any]]:
        """标题完全一致的条目优先，否则取第一个不在黑名单中的条目。"""
        fallback = None
        for candidate in candidates:
            name = str(candidate.get('vod_name') or '')
            if name in (search_title, original_title):
                self.logger.info(f"找到完全匹配: '{name}'")
                return candidate
            if self.is_unwanted(name):
                self.logger.debug(f"跳过不合适内容: '{name}'")
                continue
            if fallback is None:
                fallback = candidate
        return fallback

    async def search(self, title: str) -> Optional[Dict[str, Any]]:
        variants = title_variants(title)
        self.logger.info(f"资源站搜索标题变体: {', '.join(variants)}")
        for variant in variants:
            data = await self._get_json({"wd": variant})
            candidates = [c for c in (data.get('list') or []) if isinstance(c, dict)]
            if not candidates:
                self.logger.info(f"搜索 '{variant}' 未找到内容")
                continue
            self.logger.info(f"搜索 '{variant}' 找到 {len(candidates)} 个结果")
            selected = self.choose_candidate(candidates, variant, title)
            if selected is not None:
                return selected
        return None

    async def find_links(self, title: str, episode: Optional[str] = None) -> List[PlatformLink]:
        selected = await self.search(title)
        if selected is None or selected.get('vod_id') is None:
            self.logger.info(f"资源站: 所有标题变体都未找到 '{title}' 的匹配内容")
            return []

        self.logger.info(f"资源站: 使用搜索结果 '{selected.get('vod_name')}' (vod_id={selected['vod_id']})")
        detail = await self._get_json({"ac": "detail", "ids": str(selected['vod_id'])})
        items = detail.get('list') or []
        if not items or not isinstance(items[0], dict):
            return []

        target_url = pick_episode_url(str(items[0].get('vod_play_url') or ''), episode)
        if not target_url:
            return []

        platform = detect_platform(target_url)
        if target_url.endswith('.htm'):
            target_url = target_url + 'l'
        self.logger.info(f"资源站: 识别平台 {platform}, URL: {target_url}")
        return [PlatformLink(platform=platform, url=target_url)]
