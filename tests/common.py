"""Test doubles and helpers shared by the tests."""

import asyncio
from collections.abc import Sequence
from typing import Any

import orjson

from cast_receiver import ReceiverApp
from cast_receiver.models.enums import SessionEventType
from cast_receiver.models.message import IncomingMessage, OutgoingMessage, SendOptions
from cast_receiver.models.player import Player, Volume
from cast_receiver.models.playlist import Video
from cast_receiver.models.session import PairingCodeRequestService, SessionChannel


class FakePlayer(Player):
    """Player that records the commands it receives."""

    def __init__(self) -> None:
        """Initialize."""
        super().__init__()
        self.calls: list[tuple[Any, ...]] = []
        self.volume = Volume(level=50)
        self.position_ms = 0
        self.duration_ms = 0
        self.reset_count = 0
        # while set, do_play blocks until the event is set
        self.hold: asyncio.Event | None = None
        self.waiting = asyncio.Event()

    async def reset(self) -> None:
        """Count resets."""
        self.reset_count += 1
        await super().reset()

    async def do_play(self, video: Video, position_ms: int) -> bool:
        """Record PLAY."""
        if self.hold is not None:
            self.waiting.set()
            await self.hold.wait()
        self.calls.append(("play", video.id, position_ms))
        self.position_ms = position_ms
        self.duration_ms = 300000
        return True

    async def do_pause(self) -> bool:
        """Record PAUSE."""
        self.calls.append(("pause",))
        return True

    async def do_resume(self) -> bool:
        """Record RESUME."""
        self.calls.append(("resume",))
        return True

    async def do_stop(self) -> bool:
        """Record STOP."""
        self.calls.append(("stop",))
        self.position_ms = 0
        return True

    async def do_seek(self, position_ms: int) -> bool:
        """Record SEEK."""
        self.calls.append(("seek", position_ms))
        self.position_ms = position_ms
        return True

    async def do_set_volume(self, volume: Volume) -> bool:
        """Record VOLUME_SET."""
        self.calls.append(("set_volume", volume.level, volume.muted))
        self.volume = volume
        return True

    async def do_get_volume(self) -> Volume:
        """Return the volume."""
        return self.volume

    async def do_get_position(self) -> int:
        """Return the position."""
        return self.position_ms

    async def do_get_duration(self) -> int:
        """Return the duration."""
        return self.duration_ms


class FakePairingCodeRequestService(PairingCodeRequestService):
    """Pairing code service that does nothing."""

    def __init__(self) -> None:
        """Initialize."""
        super().__init__()
        self.running = False

    def start(self) -> None:
        """Start."""
        self.running = True

    def stop(self) -> None:
        """Stop."""
        self.running = False


class FakeChannel(SessionChannel):
    """Session channel that records what gets sent through it."""

    def __init__(self, fail_begin: bool = False, fail_end: bool = False) -> None:
        """Initialize."""
        super().__init__()
        self.fail_begin = fail_begin
        self.fail_end = fail_end
        # while set, send_message blocks until the event is set
        self.hold: asyncio.Event | None = None
        self.waiting = asyncio.Event()
        self.begin_count = 0
        self.end_count = 0
        self.pairing_codes: list[str] = []
        self.sent: list[list[OutgoingMessage]] = []
        self._pairing_code_request_service = FakePairingCodeRequestService()

    @property
    def pairing_code_request_service(self) -> FakePairingCodeRequestService:
        """Return the pairing code request service."""
        return self._pairing_code_request_service

    async def begin(self) -> None:
        """Open the session."""
        if self.fail_begin:
            msg = "Unable to open session"
            raise ConnectionError(msg)
        self.begin_count += 1

    async def end(self) -> None:
        """Close the session."""
        self.end_count += 1
        if self.fail_end:
            msg = "Connection reset while closing session"
            raise ConnectionError(msg)

    async def register_pairing_code(self, code: str) -> None:
        """Record the pairing code."""
        self.pairing_codes.append(code)

    async def send_message(
        self, messages: Sequence[OutgoingMessage], options: SendOptions | None = None
    ) -> None:
        """Record the batch."""
        if self.hold is not None:
            self.waiting.set()
            await self.hold.wait()
        self.sent.append(list(messages))

    def receive(self, batch: Any) -> None:
        """Simulate an incoming delivery."""
        self.signal_event(SessionEventType.MESSAGES, batch)

    def sent_messages(self) -> list[OutgoingMessage]:
        """Return all sent messages, flattened."""
        return [msg for batch in self.sent for msg in batch]

    def sent_names(self) -> list[str]:
        """Return the names of all sent messages, flattened."""
        return [msg.name.value for msg in self.sent_messages()]


def sender_payload(
    sender_id: str, autoplay: bool = True, name: str | None = None
) -> dict[str, Any]:
    """Return a remoteConnected/remoteDisconnected payload."""
    capabilities = "atp,que,mus" if autoplay else "que,mus"
    device = {
        "app": "android-phone-19.01.35",
        "brand": "Google",
        "model": "Pixel 8",
        "os": "Android",
        "capabilities": capabilities,
        "deviceType": "REMOTE_CONTROL",
    }
    return {
        "id": sender_id,
        "name": name or f"Phone {sender_id}",
        "app": "android-phone-19.01.35",
        "device": orjson.dumps(device).decode(),
        "user": "someone",
    }


def connect_msg(sender_id: str, aid: int | None = 1, autoplay: bool = True) -> IncomingMessage:
    """Return a remoteConnected message."""
    return IncomingMessage("remoteConnected", sender_payload(sender_id, autoplay), aid)


def disconnect_msg(sender_id: str, aid: int | None = 1) -> IncomingMessage:
    """Return a remoteDisconnected message."""
    return IncomingMessage("remoteDisconnected", sender_payload(sender_id), aid)


async def dispatch(app: ReceiverApp, channel: FakeChannel, *messages: Any) -> None:
    """Deliver messages as a single batch and wait until they are handled."""
    channel.receive(list(messages))
    await app.join()
