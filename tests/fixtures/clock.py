# tests/fixtures/clock.py
"""Steppable clock for cache expiry tests."""


class MockClock:
    """Clock that only moves when told to.

    Example:
        clock = MockClock()
        cache = MemoryCacheProvider(clock=clock)

        cache.remember("k", 300, produce)  # Stored at t=0
        clock.advance(301)
        cache.remember("k", 300, produce)  # Expired, produce() runs again
    """

    def __init__(self, start: float = 0.0) -> None:
        self._current = start

    def monotonic(self) -> float:
        return self._current

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += seconds
