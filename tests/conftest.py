"""Shared fixtures for the wifiswitch tests."""

import random

import pytest

from wifiswitch_mock.const import CONF_PUSH_INTERVAL
from wifiswitch_mock.dispatcher import CommandDispatcher
from wifiswitch_mock.server import create_app
from wifiswitch_mock.state import DeviceStateStore

# Long enough that no push lands in the middle of a request/reply test
QUIET_PUSH_INTERVAL = 60.0
FAST_PUSH_INTERVAL = 0.05


@pytest.fixture
def store():
    return DeviceStateStore()


@pytest.fixture
def dispatcher(store):
    return CommandDispatcher(store)


@pytest.fixture
def make_app(store):
    """Build an app sharing the test's store"""

    def _make_app(push_interval=QUIET_PUSH_INTERVAL, **kwargs):
        return create_app(
            {CONF_PUSH_INTERVAL: push_interval},
            store=store,
            rng=random.Random(1234),
            **kwargs,
        )

    return _make_app
