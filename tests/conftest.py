import random
from typing import Callable

import httpx
import pytest

from danmu_external.config_manager import ConfigManager
from danmu_external.rate_limiter import RateLimitedFetcher
from danmu_external.transport_manager import TransportManager


async def _no_sleep(_delay: float):
    return None


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def config_manager() -> ConfigManager:
    return ConfigManager()


@pytest.fixture
def make_transport_manager() -> Callable[[Callable[[httpx.Request], httpx.Response]], TransportManager]:
    def factory(handler, config_manager=None):
        return TransportManager(config_manager, transport=httpx.MockTransport(handler))
    return factory


@pytest.fixture
def fetcher(rng) -> RateLimitedFetcher:
    return RateLimitedFetcher(min_interval=1.0, default_jitter=(0.0, 0.0), rng=rng, sleep=_no_sleep)
