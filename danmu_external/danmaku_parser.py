import html
import logging
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .danmaku_color import DEFAULT_HEX_COLOR, color_from_p_parts, to_hex_color
from .danmaku_filter import is_quality_comment
from .models import CommentEntry, DanmuMode

logger = logging.getLogger(__name__)

# 弹幕片段: <d p="时间,模式,字号,颜色,...">内容</d>
# 被截断的片段（没有闭合标签）不会被匹配，因此截断前的所有完整片段都能正常解析
_FRAGMENT_RE = re.compile(r'<d\s+p="([^"]*)"[^>]*>([^<]*)</d>')

# XML 1.0 规范之外的控制字符
_INVALID_XML_CHAR_RE = re.compile(
    r"[^\x09\x0A\x0D\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]"
)


def clean_xml_string(xml_string: str) -> str:
    """移除XML字符串中的无效控制字符（如退格符）。"""
    return _INVALID_XML_CHAR_RE.sub('', xml_string)


def map_source_mode(raw_mode: Any) -> DanmuMode:
    """弹幕源模式代码映射: 4=顶部, 5=底部, 其余均为滚动。"""
    try:
        code = int(float(raw_mode))
    except (TypeError, ValueError, OverflowError):
        return DanmuMode.SCROLL
    if code == 4:
        return DanmuMode.TOP
    if code == 5:
        return DanmuMode.BOTTOM
    return DanmuMode.SCROLL


def iter_markup_fragments(payload: str) -> Iterator[Tuple[str, str]]:
    """逐个产出 (p属性, 原始文本)。"""
    for match in _FRAGMENT_RE.finditer(payload):
        yield match.group(1), match.group(2)


def parse_markup_fragment(p_attr: str, raw_text: str) -> Optional[CommentEntry]:
    """
    将单个弹幕片段解析为 CommentEntry。
    片段格式错误或未通过质量过滤时返回 None，不会抛出异常。
    """
    if not p_attr or not raw_text:
        return None
    text = html.unescape(clean_xml_string(raw_text)).strip()

    parts = p_attr.split(',')
    try:
        time_sec = float(parts[0])
    except ValueError:
        return None

    if not is_quality_comment(text, time_sec):
        return None

    mode = map_source_mode(parts[1]) if len(parts) > 1 else DanmuMode.SCROLL
    return CommentEntry(text=text, time=time_sec, color=color_from_p_parts(parts), mode=mode)


def parse_markup_payload(payload: str) -> Iterator[CommentEntry]:
    """解析完整的XML弹幕响应，跳过格式错误或低质量的片段。"""
    for p_attr, raw_text in iter_markup_fragments(payload):
        try:
            entry = parse_markup_fragment(p_attr, raw_text)
        except Exception as e:
            # 单个片段的意外错误不能中断整个响应的解析
            logger.debug(f"跳过无法解析的弹幕片段 p='{p_attr}': {e}")
            continue
        if entry is not None:
            yield entry


def parse_packed_comment(item: Dict[str, Any]) -> Optional[CommentEntry]:
    """
    解析自建弹幕API (danmu_api / 弹弹play) 的单条弹幕。

    支持两种格式：
    - {"p": "时间,模式,颜色[,来源]", "m": "内容"}
    - {"text": "内容", "time": 12.3, "color": "#FFFFFF", "mode": 0}
    """
    if not isinstance(item, dict):
        return None

    p_attr = item.get('p')
    try:
        if isinstance(p_attr, str) and p_attr:
            parts = p_attr.split(',')
            text = str(item.get('m') or item.get('text') or '').strip()
            time_sec = float(parts[0]) if parts[0] else 0.0
            mode = map_source_mode(parts[1]) if len(parts) > 1 else DanmuMode.SCROLL
            color = to_hex_color(parts[2]) if len(parts) > 2 else DEFAULT_HEX_COLOR
        else:
            text = str(item.get('text') or item.get('m') or '').strip()
            time_sec = float(item.get('time') or item.get('t') or 0)
            raw_mode = item.get('mode') or 0
            mode = DanmuMode(raw_mode) if raw_mode in (0, 1, 2) else DanmuMode.SCROLL
            color = to_hex_color(item.get('color') or DEFAULT_HEX_COLOR)
    except (TypeError, ValueError) as e:
        logger.debug(f"跳过格式错误的自建API弹幕 {item!r}: {e}")
        return None

    if not is_quality_comment(text, time_sec):
        return None
    return CommentEntry(text=text, time=time_sec, color=color, mode=mode)


def parse_json_row(row: Any) -> Optional[CommentEntry]:
    """
    解析JSON弹幕API的单行数据。
    格式: [时间, 位置, 颜色, "", 文本, "", "", "字号"]，位置为 top / bottom / right(滚动)。
    """
    if not isinstance(row, (list, tuple)) or len(row) < 5:
        return None
    try:
        time_sec = float(row[0] or 0)
    except (TypeError, ValueError):
        return None

    text = str(row[4] or '').strip()
    if not is_quality_comment(text, time_sec):
        return None

    position = row[1]
    if position == 'top':
        mode = DanmuMode.TOP
    elif position == 'bottom':
        mode = DanmuMode.BOTTOM
    else:
        mode = DanmuMode.SCROLL
    return CommentEntry(text=text, time=time_sec, color=to_hex_color(row[2] or DEFAULT_HEX_COLOR), mode=mode)


def parse_json_rows(rows: List[Any]) -> List[CommentEntry]:
    entries = [entry for entry in (parse_json_row(row) for row in rows) if entry is not None]
    entries.sort(key=lambda c: c.time)
    return entries
