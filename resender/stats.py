from contextlib import contextmanager
from datetime import timedelta
import time
from typing import Any, Generator

import statsd
from statsd.client.timer import Timer

from resender.config import ConfigStats


class Stats:
    def timing(self, key: str, value: int) -> None:
        raise NotImplementedError

    def inc(self, key: str, count: int = 1, rate: int = 1) -> None:
        raise NotImplementedError

    def dec(self, key: str, count: int = 1, rate: int = 1) -> None:
        raise NotImplementedError

    def gauge(self, key: str, value: int, delta: bool = False) -> None:
        raise NotImplementedError

    def timer(self, key: str) -> Timer:
        raise NotImplementedError


class NoopStats(Stats):
    def timing(self, key: str, value: int) -> None:
        """Empty method due to NoopStats implementation"""
        pass

    def inc(self, key: str, count: int = 1, rate: int = 1) -> None:
        """Empty method due to NoopStats implementation"""
        pass

    def dec(self, key: str, count: int = 1, rate: int = 1) -> None:
        """Empty method due to NoopStats implementation"""
        pass

    def gauge(self, key: str, value: int, delta: bool = False) -> None:
        """Empty method due to NoopStats implementation"""
        pass

    def timer(self, key: str) -> Timer:
        @contextmanager
        def noop_context_manager() -> Generator[Any, Any, Any]:
            yield

        return noop_context_manager()


class MemoryClient:
    def __init__(self) -> None:
        self.memory: dict[str, Any] = {}

    def timer(self, stat: str, rate: int = 1) -> Timer:
        return Timer(self, stat, rate)

    def timing(self, stat: str, delta: timedelta | float, rate: int = 1) -> None:
        """Record a timing stat. | Warning: Own implementation, not from statsd. | rate unused"""
        if isinstance(delta, timedelta):
            delta = delta.total_seconds() * 1000.0
        if stat not in self.memory:
            self.memory[stat] = []
        self.memory[stat].append(delta)

    def incr(self, stat: str, count: int = 1, rate: int = 1) -> None:
        """Increment a stat by `count`. | Warning: Own implementation, not from statsd. | rate unused"""
        if stat not in self.memory:
            self.memory[stat] = 0
        self.memory[stat] += count

    def decr(self, stat: str, count: int = 1, rate: int = 1) -> None:
        """Decrement a stat by `count`. | Warning: Own implementation, not from statsd."""
        self.incr(stat, -count, rate)

    def gauge(self, stat: str, value: int, rate: int = 1, delta: bool = False) -> None:
        """Set a gauge value. | Warning: Own implementation, not from statsd. | rate and delta unused"""
        if stat not in self.memory:
            self.memory[stat] = []
        snapshot = {"value": value, "timestamp": time.time()}
        self.memory[stat].append(snapshot)

    def get_memory(self) -> dict[str, Any]:
        return self.memory


class Statsd(Stats):
    def __init__(self, client: statsd.StatsClient | MemoryClient, prefix: str | None = None):
        self.client = client
        self.prefix = prefix

    def timing(self, key: str, value: int) -> None:
        self.client.timing(self.__key(key), value)

    def inc(self, key: str, count: int = 1, rate: int = 1) -> None:
        self.client.incr(self.__key(key), count, rate)

    def dec(self, key: str, count: int = 1, rate: int = 1) -> None:
        self.client.decr(self.__key(key), count, rate)

    def gauge(self, key: str, value: int, delta: bool = False) -> None:
        self.client.gauge(self.__key(key), value, delta=delta)

    def timer(self, key: str) -> Timer:
        return self.client.timer(self.__key(key))

    def __key(self, key: str) -> str:
        return f"{self.prefix}.{key}" if self.prefix else key


_STATS: Stats = NoopStats()


def setup_stats(config: ConfigStats) -> None:
    if config.enabled is False:
        return
    in_memory = config.host is None or config.host == ""
    client = (
        MemoryClient()
        if in_memory
        else statsd.StatsClient(config.host, config.port or 8125)
    )
    global _STATS
    _STATS = Statsd(client, prefix=config.module_name)


def reset_stats() -> None:
    global _STATS
    _STATS = NoopStats()


def get_stats() -> Stats:
    global _STATS
    return _STATS
