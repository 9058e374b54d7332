"""Shared fixtures for core unit tests"""

import pytest

from blockgen.core.cache import ObjectCache


class Ticker:
    """Monotonic-style float clock for ObjectCache TTLs."""

    def __init__(self):
        self.t = 1000.0

    def __call__(self) -> float:
        return self.t


@pytest.fixture(name="ticker")
def ticker_fixture():
    return Ticker()


@pytest.fixture(name="cache")
def cache_fixture(ticker):
    return ObjectCache(clock=ticker)
