"""
弹幕过滤模块
提供弹幕质量过滤和用户黑名单过滤功能
"""

import logging
import math
import re
from typing import List, Optional, Sequence

from .models import MAX_DANMU_TIME, CommentEntry

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 2
MAX_TEXT_LENGTH = 50

# 刷屏、占位和平台宣传类弹幕，包含即丢弃
BOILERPLATE_PHRASES = ('弹幕正在赶来', '视频不错', '666', '官方弹幕库', '哔哩哔哩')

# 不含任何中文、字母或数字的弹幕视为纯符号
_PURE_SYMBOL_RE = re.compile(r'^[^\u4e00-\u9fa5a-zA-Z0-9]+$')
_PURE_DIGIT_RE = re.compile(r'^\d+$')


def is_valid_time(time_sec: float) -> bool:
    return math.isfinite(time_sec) and 0 <= time_sec <= MAX_DANMU_TIME


def is_quality_text(text: Optional[str], phrases: Sequence[str] = BOILERPLATE_PHRASES) -> bool:
    """
    判断弹幕文本是否值得保留。

    拒绝以下内容：空白、过短(<2)或过长(>50)、纯符号、纯数字、包含刷屏短语。
    调用方应传入已经 strip() 过的文本。
    """
    if not text:
        return False
    if len(text) < MIN_TEXT_LENGTH or len(text) > MAX_TEXT_LENGTH:
        return False
    if _PURE_SYMBOL_RE.match(text) or _PURE_DIGIT_RE.match(text):
        return False
    return not any(phrase in text for phrase in phrases)


def is_quality_comment(text: Optional[str], time_sec: float) -> bool:
    return is_valid_time(time_sec) and is_quality_text(text)


def compile_blacklist(patterns_text: str) -> List[re.Pattern]:
    """
    编译黑名单正则表达式。

    支持两种格式：
    1. 单行格式：用 | 分隔的正则表达式（如：广告|推广|666）
    2. 多行格式：每行一个正则表达式，以 # 开头的行为注释
    """
    if not patterns_text or not patterns_text.strip():
        return []

    patterns_text = patterns_text.strip()
    if '\n' not in patterns_text:
        try:
            return [re.compile(patterns_text, re.IGNORECASE)]
        except re.error as e:
            logger.error(f"编译黑名单正则表达式失败: {e}")
            return []

    patterns = []
    for line in parse_blacklist_patterns(patterns_text):
        try:
            patterns.append(re.compile(line, re.IGNORECASE))
        except re.error as e:
            logger.warning(f"无效的黑名单正则表达式 '{line}': {e}")
    logger.debug(f"使用多行黑名单规则: {len(patterns)} 条")
    return patterns


def apply_blacklist_filter(comments: List[CommentEntry], patterns_text: str) -> List[CommentEntry]:
    """
    应用用户配置的黑名单正则表达式过滤弹幕。

    Examples:
        >>> comments = [
        ...     CommentEntry(text='这是一条正常弹幕', time=10.5),
        ...     CommentEntry(text='广告：点击领取', time=20.0),
        ... ]
        >>> len(apply_blacklist_filter(comments, "广告|领取"))
        1
    """
    patterns = compile_blacklist(patterns_text)
    if not patterns:
        return comments

    filtered_comments = []
    blocked_count = 0
    for comment in comments:
        if any(pattern.search(comment.text) for pattern in patterns):
            blocked_count += 1
            continue
        filtered_comments.append(comment)

    if blocked_count > 0:
        logger.info(f"黑名单过滤完成: 拦截 {blocked_count} 条弹幕，保留 {len(filtered_comments)} 条")
    return filtered_comments


def parse_blacklist_patterns(patterns_text: str) -> List[str]:
    """解析黑名单文本，返回去除注释和空行后的正则表达式列表。"""
    if not patterns_text:
        return []

    patterns = []
    for line in patterns_text.strip().split('\n'):
        line = line.strip()
        if line and not line.startswith('#'):
            patterns.append(line)
    return patterns
