"""Shared test doubles."""

import itertools


class FakeGenerator:
    """Yields the given tokens in order, then ``w<n>_x`` forever."""

    def __init__(self, *tokens: str) -> None:
        fallback = (f"w{n}_x" for n in itertools.count(1))
        self._tokens = itertools.chain(tokens, fallback)

    def next(self) -> str:
        return next(self._tokens)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
