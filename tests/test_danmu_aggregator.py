import asyncio

import pytest

from danmu_external.danmu_aggregator import DanmuAggregator, PipelineState
from danmu_external.exceptions import DanmuValidationError
from danmu_external.models import DanmuQuery, PlatformLink, ProviderResult, ProviderTier

from tests.helpers import make_entries

LINK = PlatformLink(platform="tencent", url="https://v.qq.com/x/cover/mzc001/v001.html")


class StubResolver:
    def __init__(self, links):
        self.links = links
        self.queries = []

    async def resolve(self, query):
        self.queries.append(query)
        return self.links


class StubChain:
    def __init__(self, comments=None, error=None):
        self.comments = comments or []
        self.error = error

    async def run_all(self, links):
        if self.error is not None:
            raise self.error
        return [
            ProviderResult(platform=link.platform, url=link.url, comments=self.comments, providerTier=ProviderTier.MARKUP)
            for link in links
        ]


def run_aggregate(aggregator, query):
    states = []
    result = asyncio.run(aggregator.aggregate(query, listener=states.append))
    return result, states


def test_successful_run_walks_every_state():
    aggregator = DanmuAggregator(StubResolver([LINK]), StubChain(make_entries(5)))
    result, states = run_aggregate(aggregator, DanmuQuery(mediaId="123"))

    assert states == [PipelineState.RESOLVING, PipelineState.FETCHING, PipelineState.MERGING, PipelineState.DONE]
    assert result.total == 5
    assert [p.platform for p in result.platforms] == ["tencent"]


def test_no_links_finishes_after_resolving():
    aggregator = DanmuAggregator(StubResolver([]), StubChain())
    result, states = run_aggregate(aggregator, DanmuQuery(title="庆余年"))

    assert states == [PipelineState.RESOLVING, PipelineState.DONE]
    assert result.danmu == []
    assert "庆余年" in result.message


def test_validation_error_fails_before_resolving():
    resolver = StubResolver([LINK])
    aggregator = DanmuAggregator(resolver, StubChain())
    states = []

    with pytest.raises(DanmuValidationError):
        asyncio.run(aggregator.aggregate(DanmuQuery(episode="1"), listener=states.append))

    assert states == [PipelineState.FAILED]
    assert resolver.queries == []


def test_chain_error_marks_run_failed():
    aggregator = DanmuAggregator(StubResolver([LINK]), StubChain(error=RuntimeError("boom")))
    states = []

    with pytest.raises(RuntimeError):
        asyncio.run(aggregator.aggregate(DanmuQuery(mediaId="123"), listener=states.append))

    assert states == [PipelineState.RESOLVING, PipelineState.FETCHING, PipelineState.FAILED]


def test_concurrent_runs_keep_separate_histories():
    aggregator = DanmuAggregator(StubResolver([LINK]), StubChain(make_entries(3)))
    first, second = [], []

    async def scenario():
        await asyncio.gather(
            aggregator.aggregate(DanmuQuery(mediaId="1"), listener=first.append),
            aggregator.aggregate(DanmuQuery(mediaId="2"), listener=second.append),
        )

    asyncio.run(scenario())
    expected = [PipelineState.RESOLVING, PipelineState.FETCHING, PipelineState.MERGING, PipelineState.DONE]
    assert first == expected
    assert second == expected
