"""
弹幕密度控制与采样

超大弹幕量会导致内存占用和序列化开销过高，因此按固定时长分段：
- 每段最多保留 max_per_segment 条
- 段满之后，新弹幕按 approximate（10% 概率随机覆盖）或 reservoir（均匀蓄水池）策略替换
- 汇总后若总量仍超过上限，再做一次保留首尾的采样
"""
import asyncio
import logging
import math
import random
from typing import AsyncIterable, Dict, Iterable, List, Optional, Union

from .models import CommentEntry

logger = logging.getLogger(__name__)

SEGMENT_DURATION = 300
MAX_DANMU_PER_SEGMENT = 500
REPLACE_PROBABILITY = 0.1
MAX_TOTAL_DANMU = 20000
# 每处理这么多条弹幕让出一次事件循环
YIELD_EVERY = 200

STRATEGY_APPROXIMATE = "approximate"
STRATEGY_RESERVOIR = "reservoir"
VALID_STRATEGIES = {STRATEGY_APPROXIMATE, STRATEGY_RESERVOIR}


class DensityController:
    """按时间分段限制弹幕数量。"""

    def __init__(
        self,
        segment_duration: int = SEGMENT_DURATION,
        max_per_segment: int = MAX_DANMU_PER_SEGMENT,
        replace_probability: float = REPLACE_PROBABILITY,
        strategy: str = STRATEGY_APPROXIMATE,
        rng: Optional[random.Random] = None,
    ):
        if strategy not in VALID_STRATEGIES:
            raise ValueError(f"未知的密度控制策略: {strategy}")
        self.segment_duration = segment_duration
        self.max_per_segment = max_per_segment
        self.replace_probability = replace_probability
        self.strategy = strategy
        self._rng = rng or random.Random()
        self._segments: Dict[int, List[CommentEntry]] = {}
        # 每段见过的弹幕总数，蓄水池算法需要
        self._seen: Dict[int, int] = {}
        self.accepted = 0
        self.replaced = 0
        self.dropped = 0

    @property
    def segment_count(self) -> int:
        return len(self._segments)

    def segment_sizes(self) -> Dict[int, int]:
        return {index: len(segment) for index, segment in self._segments.items()}

    def add(self, entry: CommentEntry) -> bool:
        """加入一条弹幕；返回它是否被保留（追加或替换）。"""
        index = int(entry.time // self.segment_duration)
        segment = self._segments.setdefault(index, [])
        seen = self._seen.get(index, 0) + 1
        self._seen[index] = seen

        if len(segment) < self.max_per_segment:
            segment.append(entry)
            self.accepted += 1
            return True

        if self.strategy == STRATEGY_RESERVOIR:
            slot = self._rng.randrange(seen)
            if slot < self.max_per_segment:
                segment[slot] = entry
                self.replaced += 1
                return True
        elif self._rng.random() < self.replace_probability:
            segment[self._rng.randrange(len(segment))] = entry
            self.replaced += 1
            return True

        self.dropped += 1
        return False

    def collect(self) -> List[CommentEntry]:
        """按段序号输出，段内按时间稳定排序。"""
        result: List[CommentEntry] = []
        for index in sorted(self._segments):
            result.extend(sorted(self._segments[index], key=lambda c: c.time))
        return result


def sample_to_cap(entries: List[CommentEntry], cap: int = MAX_TOTAL_DANMU, rng: Optional[random.Random] = None) -> List[CommentEntry]:
    """
    将按时间排序的弹幕采样到不超过 cap 条。

    首条和末条无条件保留；其余按 cap/total 的概率随机采样，并按步长均匀补充，
    最后截断到 cap 条（截断时仍保证末条在内）。
    """
    total = len(entries)
    if total <= cap:
        return entries
    if cap <= 0:
        return []
    if cap == 1:
        return [entries[0]]

    rng = rng or random.Random()
    sample_rate = cap / total
    stride = math.ceil(total / cap)
    last_index = total - 1

    selected = [
        entry for index, entry in enumerate(entries)
        if index == 0 or index == last_index or rng.random() < sample_rate or index % stride == 0
    ]
    if len(selected) > cap:
        selected = selected[:cap - 1] + [entries[last_index]]

    logger.info(f"弹幕数量过多 ({total})，已智能采样至 {len(selected)} 条")
    return selected


async def bound_comments(
    entries: Union[Iterable[CommentEntry], AsyncIterable[CommentEntry]],
    controller: Optional[DensityController] = None,
    max_total: int = MAX_TOTAL_DANMU,
    yield_every: int = YIELD_EVERY,
    rng: Optional[random.Random] = None,
) -> List[CommentEntry]:
    """
    对弹幕流做分段限流和总量采样。
    同步解析循环中会定期 await，以免单个平台的大响应长时间占用事件循环。
    """
    controller = controller or DensityController(rng=rng)
    processed = 0

    if hasattr(entries, "__aiter__"):
        async for entry in entries:
            controller.add(entry)
            processed += 1
            if processed % yield_every == 0:
                await asyncio.sleep(0)
    else:
        for entry in entries:
            controller.add(entry)
            processed += 1
            if processed % yield_every == 0:
                await asyncio.sleep(0)
                if processed % 5000 == 0:
                    logger.debug(f"已处理 {processed} 条弹幕，分段数: {controller.segment_count}")

    collected = controller.collect()
    sizes = controller.segment_sizes()
    logger.debug(
        f"密度控制完成: 输入 {processed} 条, 保留 {len(collected)} 条, "
        f"替换 {controller.replaced} 次, 丢弃 {controller.dropped} 条, "
        f"分段 {len(sizes)} 个 (最大 {max(sizes.values(), default=0)} 条)"
    )
    return sample_to_cap(collected, max_total, rng=rng)
