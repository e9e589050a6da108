from typing import List
from urllib.parse import quote

from danmu_external.models import CommentEntry


def make_entries(count: int, start: float = 0.0, step: float = 1.0, prefix: str = "弹幕") -> List[CommentEntry]:
    return [CommentEntry(text=f"{prefix}{i}", time=start + i * step) for i in range(count)]


def markup_payload(rows) -> str:
    """rows: (时间, 模式, 颜色, 文本)"""
    fragments = "".join(f'<d p="{t},{mode},25,{color},1700000000,0,abc,0">{text}</d>' for t, mode, color, text in rows)
    return f'<?xml version="1.0" encoding="UTF-8"?><i><chatserver>chat.bilibili.com</chatserver>{fragments}</i>'


def douban_play_link(url: str) -> str:
    """豆瓣"在哪儿看"列表里的一项，目标地址经过 URL 编码。"""
    return f'play_link: "https://www.douban.com/link2/?url={quote(url, safe="")}&subtype=9&type=online-video",'
