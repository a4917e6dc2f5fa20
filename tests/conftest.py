"""Fixtures for testing the cast receiver core."""

import logging
from collections.abc import AsyncGenerator

import pytest

from cast_receiver import ReceiverApp
from cast_receiver.models.config import ReceiverConfig
from tests.common import FakeChannel, FakePlayer


@pytest.fixture(name="caplog")
def caplog_fixture(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    """Set log level to debug for tests using the caplog fixture."""
    caplog.set_level(logging.DEBUG)
    return caplog


@pytest.fixture
def player() -> FakePlayer:
    """Return a fake player."""
    return FakePlayer()


@pytest.fixture
def channel() -> FakeChannel:
    """Return a fake session channel."""
    return FakeChannel()


@pytest.fixture
async def app(player: FakePlayer, channel: FakeChannel) -> AsyncGenerator[ReceiverApp, None]:
    """Return a started receiver app.

    :param player: The fake player.
    :param channel: The fake session channel.
    """
    receiver = ReceiverApp(player, channel, ReceiverConfig())
    await receiver.start()
    try:
        yield receiver
    finally:
        await receiver.stop()
