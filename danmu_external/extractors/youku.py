import re
from typing import Optional, Tuple

from .base import PlatformLinkExtractor

_VID_RE = re.compile(r'id_([^.]+)')
_MOBILE_VIDEO_RE = re.compile(r'https://m\.youku\.com/alipay_video/id_([^.]+)\.html')


class YoukuLinkExtractor(PlatformLinkExtractor):
    platform = "youku"
    domain_pattern = r"youku\.com"

    def parse_episode(self, url: str) -> Tuple[Optional[int], Optional[str]]:
        match = _VID_RE.search(url)
        return None, match.group(1) if match else None

    def normalize(self, url: str) -> str:
        url = super().normalize(url)
        # 支付宝小程序的移动版播放页
        return _MOBILE_VIDEO_RE.sub(r'https://v.youku.com/v_show/id_\1.html', url)
