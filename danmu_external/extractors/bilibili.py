import re
from typing import Optional, Tuple

from .base import PlatformLinkExtractor

_PART_RE = re.compile(r'[?&]p=(\d+)')


class BilibiliLinkExtractor(PlatformLinkExtractor):
    """
    B站链接分两种：页面中直接出现的视频链接 (bilibili)，
    以及豆瓣跳转列表中的链接 (bilibili_douban)。只有后者按集数选择。
    """
    platform = "bilibili"
    domain_pattern = r"bilibili\.com"
    mobile_hosts = (("m.bilibili.com", "www.bilibili.com"),)
    redirect_platform = "bilibili_douban"
    direct_link_pattern = r"""https://www\.bilibili\.com/video/[^"'\s]+"""

    def parse_episode(self, url: str) -> Tuple[Optional[int], Optional[str]]:
        match = _PART_RE.search(url)
        if not match:
            return None, None
        return int(match.group(1)), f"p{match.group(1)}"
