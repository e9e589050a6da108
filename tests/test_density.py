import asyncio
import random

import pytest

from danmu_external.density import DensityController, bound_comments, sample_to_cap
from danmu_external.models import CommentEntry

from tests.helpers import make_entries


def test_bucket_never_exceeds_cap(rng):
    controller = DensityController(max_per_segment=500, rng=rng)
    for entry in make_entries(2000, step=0.1):
        controller.add(entry)

    sizes = controller.segment_sizes()
    assert sizes == {0: 500}
    assert controller.accepted == 500
    assert controller.replaced + controller.dropped == 1500


def test_entries_are_partitioned_by_segment(rng):
    controller = DensityController(segment_duration=300, rng=rng)
    for t in (10, 299.9, 300, 650):
        controller.add(CommentEntry(text=f"时间{t}", time=t))
    assert controller.segment_sizes() == {0: 2, 1: 1, 2: 1}


def test_collect_orders_segments_and_sorts_within(rng):
    controller = DensityController(rng=rng)
    for t in (400, 20, 350, 5):
        controller.add(CommentEntry(text=f"时间{t}", time=t))
    assert [c.time for c in controller.collect()] == [5, 20, 350, 400]


def test_approximate_strategy_replacement_rate():
    controller = DensityController(max_per_segment=10, replace_probability=0.1, rng=random.Random(7))
    for entry in make_entries(10010, step=0.01):
        controller.add(entry)
    assert len(controller.collect()) == 10
    # 10000 次替换机会，期望约 1000 次
    assert 800 < controller.replaced < 1200


def test_reservoir_strategy_keeps_bucket_full():
    controller = DensityController(max_per_segment=50, strategy="reservoir", rng=random.Random(3))
    entries = make_entries(5000, step=0.05)
    for entry in entries:
        controller.add(entry)
    kept = controller.collect()
    assert len(kept) == 50
    # 均匀抽样时，保留的条目应该分布在整个段内而不是集中在前面
    assert max(c.time for c in kept) > 125


def test_unknown_strategy_is_rejected():
    with pytest.raises(ValueError):
        DensityController(strategy="whatever")


def test_sample_to_cap_noop_under_cap():
    entries = make_entries(10)
    assert sample_to_cap(entries, cap=10) is entries


@pytest.mark.parametrize("total, cap", [(25000, 20000), (1001, 1000), (100, 3), (50, 2)])
def test_sample_to_cap_bounds_and_keeps_endpoints(total, cap):
    entries = make_entries(total, step=0.1)
    sampled = sample_to_cap(entries, cap=cap, rng=random.Random(11))

    assert len(sampled) <= cap
    assert sampled[0] is entries[0]
    assert sampled[-1] is entries[-1]
    assert [c.time for c in sampled] == sorted(c.time for c in sampled)


def test_bound_comments_applies_segments_and_total_cap(rng):
    entries = make_entries(3000, step=1.0)

    result = asyncio.run(bound_comments(iter(entries), controller=DensityController(max_per_segment=100, rng=rng), max_total=500, rng=rng))

    assert len(result) <= 500
    assert [c.time for c in result] == sorted(c.time for c in result)


def test_bound_comments_yields_to_event_loop():
    ticks = []

    async def ticker():
        for _ in range(5):
            ticks.append(len(ticks))
            await asyncio.sleep(0)

    async def main():
        task = asyncio.create_task(ticker())
        result = await bound_comments(make_entries(1000), yield_every=100)
        ticks_during = len(ticks)
        await task
        return result, ticks_during

    result, ticks_during = asyncio.run(main())
    assert len(result) == 1000
    # 处理过程中其他协程得到了运行机会
    assert ticks_during == 5
