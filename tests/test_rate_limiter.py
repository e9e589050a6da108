import asyncio
import random

import httpx

from danmu_external.rate_limiter import USER_AGENTS, RateLimitedFetcher


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, delay):
        self.sleeps.append(delay)
        self.now += delay


def make_fetcher(clock, jitter=(0.0, 0.0), rng=None):
    return RateLimitedFetcher(min_interval=1.0, default_jitter=jitter, rng=rng or random.Random(5), clock=clock, sleep=clock.sleep)


def test_first_call_does_not_wait():
    clock = FakeClock()
    fetcher = make_fetcher(clock)
    assert asyncio.run(fetcher.wait_for_slot("movie.douban.com")) == 0
    assert clock.sleeps == []


def test_second_call_waits_for_remaining_interval():
    clock = FakeClock()
    fetcher = make_fetcher(clock)

    async def scenario():
        await fetcher.wait_for_slot("movie.douban.com")
        clock.now += 0.25
        return await fetcher.wait_for_slot("movie.douban.com")

    waited = asyncio.run(scenario())
    assert abs(waited - 0.75) < 1e-9


def test_origins_are_independent():
    clock = FakeClock()
    fetcher = make_fetcher(clock)

    async def scenario():
        await fetcher.wait_for_slot("movie.douban.com")
        return await fetcher.wait_for_slot("www.caiji.cyou")

    assert asyncio.run(scenario()) == 0


def test_concurrent_calls_are_spaced():
    clock = FakeClock()
    fetcher = make_fetcher(clock)

    async def scenario():
        await asyncio.gather(*(fetcher.wait_for_slot("movie.douban.com") for _ in range(3)))

    asyncio.run(scenario())
    assert clock.sleeps == [1.0, 1.0]


def test_jitter_is_within_window():
    clock = FakeClock()
    fetcher = make_fetcher(clock, jitter=(0.3, 1.0))
    waited = asyncio.run(fetcher.wait_for_slot("movie.douban.com"))
    assert 0.3 <= waited <= 1.0


def test_fetch_sets_user_agent_and_optional_referer():
    clock = FakeClock()
    seen = []

    def handler(request):
        seen.append(request.headers)
        return httpx.Response(200, text="ok")

    fetcher = make_fetcher(clock)

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            for _ in range(20):
                await fetcher.fetch(client, "https://movie.douban.com/subject/1/", referer="https://www.douban.com/")

    asyncio.run(scenario())

    assert all(headers["User-Agent"] in USER_AGENTS for headers in seen)
    with_referer = [h for h in seen if h.get("Referer") == "https://www.douban.com/"]
    assert 0 < len(with_referer) < 20
    # 20 次请求之间至少间隔了 19 次最小间隔
    assert sum(clock.sleeps) >= 19.0


def test_origin_of():
    assert RateLimitedFetcher.origin_of("https://Movie.Douban.com/subject/1/") == "movie.douban.com"
