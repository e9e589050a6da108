import re
from typing import Optional, Tuple

from .base import PlatformLinkExtractor

_VID_RE = re.compile(r'/b/\d+/(?:p/)?(\d+)')


class MgtvLinkExtractor(PlatformLinkExtractor):
    platform = "mgtv"
    domain_pattern = r"mgtv\.com"
    mobile_hosts = (("m.mgtv.com", "www.mgtv.com"),)

    def parse_episode(self, url: str) -> Tuple[Optional[int], Optional[str]]:
        match = _VID_RE.search(url)
        return None, match.group(1) if match else None
