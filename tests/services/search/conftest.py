import pytest

from resender.models.search.dto import SearchRequest
from resender.services.search.scroll_search_client import ScrollSearchClient
from resender.stats import MemoryClient, Statsd

SEARCH_URL = "http://search.example.com:9200/logs-*/_search"


@pytest.fixture()
def memory_stats() -> Statsd:
    return Statsd(MemoryClient())


@pytest.fixture()
def search_client(memory_stats: Statsd) -> ScrollSearchClient:
    return ScrollSearchClient(
        base_url=SEARCH_URL, timeout=1, retries=1, backoff=0.1, stats=memory_stats
    )


@pytest.fixture()
def search_request() -> SearchRequest:
    return SearchRequest(
        url=SEARCH_URL,
        query={"size": 2, "query": {"match_all": {}}},
        headers={"X-Opaque-Id": "test"},
        timeout=5,
        keep_alive="2m",
    )
