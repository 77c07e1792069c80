"""Pytest configuration and fixtures."""

import numpy as np
import pytest

from headsup.game.cards import Hand


def pytest_addoption(parser):
    parser.addoption(
        "--runslow", action="store_true", default=False,
        help="run slow tests (full pre-flop enumeration, large Monte Carlo runs)",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--runslow"):
        return
    skip_slow = pytest.mark.skip(reason="need --runslow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def rng():
    """Seeded generator so sampling tests are reproducible."""
    return np.random.default_rng(20240601)


@pytest.fixture
def aces():
    return Hand.from_string("AsAh")


@pytest.fixture
def kings():
    return Hand.from_string("KsKh")
