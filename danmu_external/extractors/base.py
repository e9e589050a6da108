import logging
import re
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar
from urllib.parse import unquote

from ..models import PlatformLink, parse_episode_number

T = TypeVar("T")

# 豆瓣跳转链接中经过 URL 编码的目标地址
_ENCODED_URL_RE = re.compile(r'https?%3A%2F%2F[^"&]*')


def select_episode_link(
    candidates: Sequence[T],
    episode: Optional[str],
    episode_of: Callable[[T], Optional[int]] = lambda _: None,
) -> Optional[T]:
    """
    从同一平台的多个候选链接中选出与请求集数最匹配的一个。

    1. 未指定集数、集数无效或只有一个候选时，使用第一个
    2. URL 中能直接读出集数 (如B站 p 参数) 且与请求一致时，精确匹配
    3. 否则假设候选顺序就是集数顺序，使用第 episode-1 个
    4. 请求集数超出候选数量时，使用最后一个（通常是最新一集）
    """
    if not candidates:
        return None

    episode_num = parse_episode_number(episode)
    if episode_num is None or len(candidates) == 1:
        return candidates[0]

    for candidate in candidates:
        if episode_of(candidate) == episode_num:
            return candidate

    if episode_num <= len(candidates):
        return candidates[episode_num - 1]
    return candidates[-1]


class PlatformLinkExtractor(ABC):
    """
    从豆瓣详情页中提取某个视频平台播放链接的抽象基类。
    子类声明平台名和域名，并实现从 URL 中读取分集信息的方法。
    """

    # 每个子类都必须覆盖这些类属性
    platform: str
    domain_pattern: str

    # 移动版域名 -> PC版域名 (弹幕源只识别PC版链接)
    mobile_hosts: Tuple[Tuple[str, str], ...] = ()

    # 跳转链接上报的平台名，默认与 platform 相同
    redirect_platform: Optional[str] = None

    # 页面中直接出现的(未经跳转的)播放链接
    direct_link_pattern: Optional[str] = None
    direct_platform: Optional[str] = None

    def __init__(self, include_direct_links: bool = True):
        self.include_direct_links = include_direct_links
        self.logger = logging.getLogger(self.__class__.__name__)
        self._redirect_re = re.compile(r'play_link:\s*"[^"]*' + self.domain_pattern + r'[^"]*"')

    @abstractmethod
    def parse_episode(self, url: str) -> Tuple[Optional[int], Optional[str]]:
        """从解码后的URL中读取 (集数, 分集标识)，读不到的部分为 None。"""
        raise NotImplementedError

    def find_redirect_entries(self, html: str) -> List[str]:
        return self._redirect_re.findall(html)

    @staticmethod
    def decode_redirect(entry: str) -> Optional[str]:
        match = _ENCODED_URL_RE.search(entry)
        if not match:
            return None
        return unquote(match.group(0))

    def normalize(self, url: str) -> str:
        """去除查询参数 (来源追踪) 并把移动版域名替换为PC版。"""
        url = url.split('?')[0]
        for mobile_host, desktop_host in self.mobile_hosts:
            if mobile_host in url:
                url = url.replace(mobile_host, desktop_host)
        return url

    def build_link(self, url: str, platform: Optional[str] = None) -> PlatformLink:
        episode_number, episode_code = self.parse_episode(url)
        return PlatformLink(
            platform=platform or self.platform,
            url=self.normalize(url),
            episodeCode=episode_code,
            episodeNumber=episode_number,
        )

    def extract_redirect_link(self, html: str, episode: Optional[str] = None) -> Optional[PlatformLink]:
        entries = self.find_redirect_entries(html)
        if not entries:
            return None

        decoded = [url for url in (self.decode_redirect(entry) for entry in entries) if url]
        if not decoded:
            return None
        self.logger.info(f"找到 {len(decoded)} 个{self.platform}跳转链接")

        selected = select_episode_link(decoded, episode, lambda url: self.parse_episode(url)[0])
        link = self.build_link(selected, self.redirect_platform)
        self.logger.debug(f"{self.platform} 第{episode or '?'}集 -> {link.url}")
        return link

    def extract_direct_links(self, html: str) -> List[PlatformLink]:
        """页面中直接出现的播放链接，只取第一个。"""
        if not self.direct_link_pattern:
            return []
        match = re.search(self.direct_link_pattern, html)
        if not match:
            return []
        self.logger.info(f"找到{self.platform}直接链接: {match.group(0)}")
        return [self.build_link(match.group(0), self.direct_platform or self.platform)]

    def extract(self, html: str, episode: Optional[str] = None) -> List[PlatformLink]:
        links: List[PlatformLink] = []
        redirect_link = self.extract_redirect_link(html, episode)
        if redirect_link:
            links.append(redirect_link)
        if self.include_direct_links:
            links.extend(self.extract_direct_links(html))
        return links
