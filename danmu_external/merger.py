"""
多平台弹幕合并与去重

同一部剧在不同平台上往往有大量重复弹幕（搬运、同步），合并时以
(时间保留两位小数, 去空白小写文本, 颜色) 为键，按时间稳定排序后保留第一次出现的条目。
"""
import asyncio
import logging
import math
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from .models import CommentEntry, PlatformInfo, ProviderResult

logger = logging.getLogger(__name__)

DEDUP_BATCH_SIZE = 100
# 每处理多少个批次让出一次事件循环
YIELD_EVERY_BATCHES = 5

DedupKey = Tuple[float, str, str]


def _round_half_up(value: float, digits: int = 2) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def dedup_key(entry: CommentEntry) -> DedupKey:
    return (_round_half_up(entry.time), entry.text.strip().lower(), entry.color or "default")


def deduplicate(entries: Iterable[CommentEntry], seen: Optional[Set[DedupKey]] = None) -> List[CommentEntry]:
    """
    保留每个键第一次出现的条目，不改变顺序。
    传入 seen 时可以跨多个批次共享已见过的键。
    """
    seen = set() if seen is None else seen
    unique = []
    for entry in entries:
        key = dedup_key(entry)
        if key in seen:
            continue
        seen.add(key)
        unique.append(entry)
    return unique


def summarize_platforms(results: Sequence[ProviderResult]) -> List[PlatformInfo]:
    """只列出实际贡献了弹幕的平台。"""
    return [
        PlatformInfo(platform=result.platform, url=result.url, count=result.count)
        for result in results
        if result.count > 0
    ]


async def merge_results(
    results: Sequence[ProviderResult],
    batch_size: int = DEDUP_BATCH_SIZE,
) -> Tuple[List[CommentEntry], List[PlatformInfo]]:
    """
    合并所有平台的弹幕。

    返回 (按时间升序且已去重的弹幕, 有弹幕的平台列表)。
    """
    combined: List[CommentEntry] = []
    for result in results:
        combined.extend(result.comments)
    # sorted 是稳定排序，时间相同的条目保持平台顺序
    combined = sorted(combined, key=lambda c: c.time)

    seen: Set[DedupKey] = set()
    unique: List[CommentEntry] = []
    for batch_index, start in enumerate(range(0, len(combined), batch_size), start=1):
        unique.extend(deduplicate(combined[start:start + batch_size], seen))
        if batch_index % YIELD_EVERY_BATCHES == 0:
            await asyncio.sleep(0)

    platforms = summarize_platforms(results)
    if combined:
        logger.info(
            f"合并完成: {len(platforms)} 个平台, 原始 {len(combined)} 条, "
            f"去重后 {len(unique)} 条 (移除 {len(combined) - len(unique)} 条重复)"
        )
    return unique, platforms
