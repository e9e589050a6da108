import re
from typing import Optional, Tuple

from .base import PlatformLinkExtractor

_TVID_RE = re.compile(r'/([vw]_[a-z0-9]+)')


class IqiyiLinkExtractor(PlatformLinkExtractor):
    platform = "iqiyi"
    domain_pattern = r"iqiyi\.com"
    mobile_hosts = (("m.iqiyi.com", "www.iqiyi.com"),)

    def parse_episode(self, url: str) -> Tuple[Optional[int], Optional[str]]:
        match = _TVID_RE.search(url)
        return None, match.group(1) if match else None
