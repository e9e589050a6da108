from typing import List

from .base import PlatformLinkExtractor, select_episode_link
from .bilibili import BilibiliLinkExtractor
from .iqiyi import IqiyiLinkExtractor
from .mgtv import MgtvLinkExtractor
from .tencent import TencentLinkExtractor
from .youku import YoukuLinkExtractor

EXTRACTOR_CLASSES = (
    TencentLinkExtractor,
    IqiyiLinkExtractor,
    YoukuLinkExtractor,
    BilibiliLinkExtractor,
    MgtvLinkExtractor,
)


def default_extractors(include_direct_links: bool = True) -> List[PlatformLinkExtractor]:
    return [cls(include_direct_links=include_direct_links) for cls in EXTRACTOR_CLASSES]


__all__ = [
    "PlatformLinkExtractor",
    "select_episode_link",
    "default_extractors",
    "TencentLinkExtractor",
    "IqiyiLinkExtractor",
    "YoukuLinkExtractor",
    "BilibiliLinkExtractor",
    "MgtvLinkExtractor",
]
