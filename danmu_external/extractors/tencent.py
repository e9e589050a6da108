import re
from typing import Optional, Tuple

from .base import PlatformLinkExtractor

_COVER_VID_RE = re.compile(r'/x/cover/[^/]+/([^/.]+)')
_PAGE_VID_RE = re.compile(r'/x/page/([^/.]+)')


class TencentLinkExtractor(PlatformLinkExtractor):
    platform = "tencent"
    domain_pattern = r"v\.qq\.com"
    mobile_hosts = (("m.v.qq.com", "v.qq.com"),)
    direct_link_pattern = r"""https://v\.qq\.com/x/cover/[^"'\s]+"""
    direct_platform = "tencent_direct"

    def parse_episode(self, url: str) -> Tuple[Optional[int], Optional[str]]:
        # 腾讯的 vid 是随机字符串，无法直接得出集数
        match = _COVER_VID_RE.search(url) or _PAGE_VID_RE.search(url)
        return None, match.group(1) if match else None
