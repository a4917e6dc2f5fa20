"""Tests for the message batcher."""

import asyncio

from cast_receiver.helpers.batching import MessageBatcher
from cast_receiver.models.message import OutgoingMessage, SendOptions
from cast_receiver.models.player import Volume
from tests.common import FakeChannel


def volume_msg(level: int) -> OutgoingMessage:
    """Return an unsolicited onVolumeChanged message."""
    return OutgoingMessage.on_volume_changed(None, Volume(level=level), unsolicited=True)


OPTIONS = SendOptions(coalesce_key="onVolumeChanged", delay_ms=50)


async def test_send_immediately() -> None:
    """Test that messages without options are delivered as one batch."""
    channel = FakeChannel()
    batcher = MessageBatcher(channel)
    await batcher.send([volume_msg(1), OutgoingMessage.autoplay_up_next(1, None)])
    assert channel.sent_names() == ["onVolumeChanged", "autoplayUpNext"]
    assert len(channel.sent) == 1
    await batcher.send([])
    assert len(channel.sent) == 1


async def test_debounce() -> None:
    """Test that only the last batch for a coalesce key is delivered."""
    channel = FakeChannel()
    batcher = MessageBatcher(channel)
    for level in (1, 2, 3):
        await batcher.send([volume_msg(level)], OPTIONS)
    assert channel.sent == []

    await asyncio.sleep(0.15)
    assert len(channel.sent) == 1
    assert channel.sent[0][0].payload["volume"] == "3"


async def test_immediate_send_drops_pending() -> None:
    """Test that an immediate message replaces a pending one of the same type."""
    channel = FakeChannel()
    batcher = MessageBatcher(channel)
    await batcher.send([volume_msg(1)], OPTIONS)
    await batcher.send([volume_msg(2)])
    await asyncio.sleep(0.15)
    assert [x.payload["volume"] for x in channel.sent_messages()] == ["2"]


async def test_close_drops_pending() -> None:
    """Test that closing drops messages waiting for their timer."""
    channel = FakeChannel()
    batcher = MessageBatcher(channel)
    await batcher.send([volume_msg(1)], OPTIONS)
    await batcher.close()
    await asyncio.sleep(0.15)
    assert channel.sent == []


async def test_close_cancels_delivery_in_progress() -> None:
    """Test that closing cancels a delayed delivery blocked in the channel."""
    channel = FakeChannel()
    channel.hold = asyncio.Event()
    batcher = MessageBatcher(channel)
    await batcher.send([volume_msg(1)], SendOptions(coalesce_key="onVolumeChanged", delay_ms=0))
    await asyncio.wait_for(channel.waiting.wait(), 1)

    await asyncio.wait_for(batcher.close(), 1)
    channel.hold.set()
    await asyncio.sleep(0.05)
    assert channel.sent == []


async def test_deliveries_are_serialized() -> None:
    """Test that a delayed delivery waits for an immediate one in progress."""

    class SlowChannel(FakeChannel):
        """Channel that takes a while to send."""

        async def send_message(self, messages, options=None):  # type: ignore[no-untyped-def]
            await asyncio.sleep(0.1)
            await super().send_message(messages, options)

    channel = SlowChannel()
    batcher = MessageBatcher(channel)
    await batcher.send([volume_msg(1)], SendOptions(coalesce_key="onVolumeChanged", delay_ms=0))
    # the timer fires while this delivery holds the lock
    await batcher.send([OutgoingMessage.autoplay_up_next(1, "zzz")])
    await asyncio.sleep(0.25)
    assert channel.sent_names() == ["autoplayUpNext", "onVolumeChanged"]
