import pytest

from resender.config import ConfigStats
from resender.stats import MemoryClient, NoopStats, Statsd, get_stats, reset_stats, setup_stats


@pytest.fixture
def memory_client() -> MemoryClient:
    return MemoryClient()


def test_memory_client_gauge(memory_client: MemoryClient) -> None:
    memory_client.gauge("test.metric", 100)
    memory = memory_client.get_memory()
    assert "test.metric" in memory
    assert len(memory["test.metric"]) == 1
    assert memory["test.metric"][0]["value"] == 100


def test_memory_client_timing(memory_client: MemoryClient) -> None:
    memory_client.timing("test.timing", 500)
    memory = memory_client.get_memory()
    assert memory["test.timing"] == [500]


def test_memory_client_incr(memory_client: MemoryClient) -> None:
    memory_client.incr("test.counter")
    assert memory_client.get_memory() == {"test.counter": 1}


def test_memory_client_decr(memory_client: MemoryClient) -> None:
    memory_client.decr("test.counter")
    assert memory_client.get_memory() == {"test.counter": -1}


def test_statsd_should_prefix_keys(memory_client: MemoryClient) -> None:
    stats = Statsd(memory_client, prefix="resender")

    stats.inc("replay.dispatch.ok")
    with stats.timer("search.fetch_all"):
        pass

    memory = memory_client.get_memory()
    assert memory["resender.replay.dispatch.ok"] == 1
    assert len(memory["resender.search.fetch_all"]) == 1


def test_setup_stats_should_use_memory_client_without_host() -> None:
    setup_stats(ConfigStats(enabled=True, host=None, port=None, module_name="resender"))

    stats = get_stats()
    assert isinstance(stats, Statsd)
    assert isinstance(stats.client, MemoryClient)

    reset_stats()
    assert isinstance(get_stats(), NoopStats)


def test_setup_stats_should_keep_noop_when_disabled() -> None:
    setup_stats(ConfigStats(enabled=False))

    assert isinstance(get_stats(), NoopStats)
