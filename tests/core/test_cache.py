# tests/core/test_cache.py
"""Tests for the in-process cache provider."""

import threading

import pytest

from detailstore.core.cache import MemoryCacheProvider, SystemClock
from tests.fixtures.clock import MockClock


class TestRemember:
    def test_miss_runs_producer_and_stores_value(self) -> None:
        provider = MemoryCacheProvider(MockClock())

        assert provider.remember("k", 300, lambda: ("id", "detail")) == ("id", "detail")
        assert provider.remember("k", 300, lambda: ("other",)) == ("id", "detail")

    def test_value_expires_after_ttl(self) -> None:
        clock = MockClock()
        provider = MemoryCacheProvider(clock)
        provider.remember("k", 300, lambda: "first")

        clock.advance(299.9)
        assert provider.remember("k", 300, lambda: "second") == "first"

        clock.advance(0.1)
        assert provider.remember("k", 300, lambda: "second") == "second"

    def test_keys_are_independent(self) -> None:
        provider = MemoryCacheProvider(MockClock())

        provider.remember("a", 300, lambda: 1)

        assert provider.remember("b", 300, lambda: 2) == 2

    def test_producer_exception_caches_nothing(self) -> None:
        provider = MemoryCacheProvider(MockClock())

        def failing() -> str:
            raise ConnectionError("database unavailable")

        with pytest.raises(ConnectionError):
            provider.remember("k", 300, failing)

        assert provider.remember("k", 300, lambda: "recovered") == "recovered"

    @pytest.mark.parametrize("ttl", [0, -1])
    def test_non_positive_ttl_rejected(self, ttl: float) -> None:
        provider = MemoryCacheProvider(MockClock())

        with pytest.raises(ValueError, match="ttl_seconds must be positive"):
            provider.remember("k", ttl, lambda: 1)

    def test_concurrent_misses_run_producer_once(self) -> None:
        provider = MemoryCacheProvider(MockClock())
        release = threading.Event()
        calls = 0
        calls_lock = threading.Lock()

        def slow_producer() -> tuple[str, ...]:
            nonlocal calls
            with calls_lock:
                calls += 1
            release.wait(timeout=5)
            return ("id", "detail")

        results: list[tuple[str, ...]] = []
        results_lock = threading.Lock()

        def worker() -> None:
            value = provider.remember("schema.test_models", 300, slow_producer)
            with results_lock:
                results.append(value)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        release.set()
        for thread in threads:
            thread.join(timeout=10)

        assert calls == 1
        assert results == [("id", "detail")] * 8


class TestTestIsolationHelpers:
    def test_forget_drops_one_key(self) -> None:
        provider = MemoryCacheProvider(MockClock())
        provider.remember("a", 300, lambda: 1)
        provider.remember("b", 300, lambda: 2)

        provider.forget("a")

        assert provider.remember("a", 300, lambda: 10) == 10
        assert provider.remember("b", 300, lambda: 20) == 2

    def test_flush_drops_everything(self) -> None:
        provider = MemoryCacheProvider(MockClock())
        provider.remember("a", 300, lambda: 1)

        provider.flush()

        assert provider.remember("a", 300, lambda: 10) == 10


class TestSystemClock:
    def test_never_goes_backwards(self) -> None:
        clock = SystemClock()

        first = clock.monotonic()

        assert clock.monotonic() >= first

    def test_default_provider_caches_on_system_time(self) -> None:
        provider = MemoryCacheProvider()

        assert provider.remember("a", 300, lambda: 1) == 1
        assert provider.remember("a", 300, lambda: 2) == 1
