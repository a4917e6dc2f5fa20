"""Tests for the models."""

import orjson
import pytest

from cast_receiver.models.config import ReceiverConfig
from cast_receiver.models.enums import AutoplayMode, PlayerStatus
from cast_receiver.models.errors import InvalidDataError
from cast_receiver.models.message import (
    IncomingMessage,
    OutgoingMessage,
    iter_incoming,
    to_incoming_message,
)
from cast_receiver.models.player import PlayerState, Volume
from cast_receiver.models.playlist import Playlist, PlaylistRequestHandler, PlaylistState, Video
from cast_receiver.models.sender import Sender, SenderDevice


class FixedAutoplayHandler(PlaylistRequestHandler):
    """Always suggests the same video."""

    def __init__(self, video_id: str = "auto") -> None:
        """Initialize."""
        self.video_id = video_id
        self.requests = 0

    async def get_autoplay_video(self, current: Video, playlist: PlaylistState) -> Video | None:
        """Return the fixed video."""
        self.requests += 1
        return Video(self.video_id)


class FailingAutoplayHandler(PlaylistRequestHandler):
    """Fails to resolve anything."""

    async def get_autoplay_video(self, current: Video, playlist: PlaylistState) -> Video | None:
        """Raise."""
        msg = "catalog unavailable"
        raise ConnectionError(msg)


def test_sender_parse() -> None:
    """Test parsing a sender from a remoteConnected payload."""
    device = {
        "brand": "Apple",
        "model": "iPhone",
        "os": "iOS",
        "deviceType": "REMOTE_CONTROL",
        "capabilities": "que,atp",
    }
    sender = Sender.parse(
        {
            "id": "abc",
            "name": "My iPhone",
            "app": "ios-phone",
            "device": orjson.dumps(device).decode(),
            "clientName": "ios",
            "theme": "cl",
            "capabilities": "mus",
        }
    )
    assert sender.id == "abc"
    assert sender.name == "My iPhone"
    assert sender.device == SenderDevice(
        brand="Apple", model="iPhone", os="iOS", device_type="REMOTE_CONTROL"
    )
    assert sender.capabilities == frozenset({"que", "atp", "mus"})
    assert sender.supports_autoplay()


def test_sender_parse_fallbacks() -> None:
    """Test sender name fallbacks and a device passed as mapping."""
    sender = Sender.parse({"id": "abc", "device": {"model": "Pixel"}})
    assert sender.name == "Pixel"
    assert not sender.supports_autoplay()
    assert Sender.parse({"id": "abc", "clientName": "tv"}).name == "tv"
    assert Sender.parse({"id": "abc"}).name == "abc"


@pytest.mark.parametrize(
    "payload",
    [
        None,
        "abc",
        {},
        {"id": 12},
        {"id": "abc", "device": "{not json"},
        {"id": "abc", "device": "[1, 2]"},
        {"id": "abc", "capabilities": 5},
        {"id": "abc", "device": '{"capabilities": 5}'},
        {"id": "abc", "device": {"capabilities": {"atp": True}}},
    ],
)
def test_sender_parse_invalid(payload: object) -> None:
    """Test that malformed sender data raises InvalidDataError."""
    with pytest.raises(InvalidDataError):
        Sender.parse(payload)


def test_incoming_message_from_wire() -> None:
    """Test the envelope of incoming messages."""
    msg = IncomingMessage.from_json(b'{"AID": 3, "name": "getVolume", "payload": {}}')
    assert msg.aid == 3
    assert msg.name == "getVolume"
    msg = to_incoming_message({"name": "loungeStatus"})
    assert msg.aid is None
    assert msg.payload == {}
    with pytest.raises(TypeError):
        to_incoming_message(42)  # type: ignore[arg-type]


def test_iter_incoming() -> None:
    """Test flattening of incoming deliveries."""
    single = {"name": "a"}
    assert list(iter_incoming(single)) == [single]
    nested = [{"name": "a"}, [{"name": "b"}, ({"name": "c"},)], {"name": "d"}]
    assert [x["name"] for x in iter_incoming(nested)] == ["a", "b", "c", "d"]
    assert list(iter_incoming([])) == []


def test_outgoing_message_to_wire() -> None:
    """Test the envelope and payloads of outgoing messages."""
    state = PlayerState(
        status=PlayerStatus.PAUSED,
        position_ms=61500,
        volume=Volume(level=20),
        playlist_id="PL1",
        current_video_id="aaa",
        current_index=2,
        duration_ms=180000,
    )
    msg = OutgoingMessage.now_playing(4, state)
    assert orjson.loads(msg.to_json()) == {
        "AID": 4,
        "name": "nowPlaying",
        "payload": {
            "videoId": "aaa",
            "currentTime": "61.5",
            "duration": "180",
            "state": "2",
            "loadedTime": "0",
            "listId": "PL1",
            "currentIndex": "2",
        },
    }
    msg = OutgoingMessage.on_state_change(None, state)
    assert msg.to_dict()["AID"] is None
    assert msg.payload["seekableEndTime"] == "180"
    msg = OutgoingMessage.on_autoplay_mode_changed(1, AutoplayMode.UNSUPPORTED)
    assert msg.payload == {"autoplayMode": "UNSUPPORTED"}
    idle = PlayerState(status=PlayerStatus.STOPPED, position_ms=0, volume=Volume(level=20))
    assert OutgoingMessage.now_playing(1, idle).payload == {}


async def test_playlist_set_and_update() -> None:
    """Test updating the playlist from sender messages."""
    playlist = Playlist()
    await playlist.update_by_message(
        IncomingMessage(
            "setPlaylist",
            {"videoIds": "aaa,bbb,ccc", "videoId": "bbb", "currentIndex": "1", "listId": "PL1"},
        )
    )
    assert playlist.id == "PL1"
    assert playlist.current == Video("bbb", 1, "PL1")
    assert playlist.has_previous
    assert playlist.has_next

    # current video moved
    await playlist.update_by_message(
        IncomingMessage("updatePlaylist", {"videoIds": "bbb,ccc"})
    )
    assert playlist.current == Video("bbb", 0, "PL1")
    assert not playlist.has_previous

    # current video removed
    await playlist.update_by_message(IncomingMessage("updatePlaylist", {"videoIds": "ccc"}))
    assert playlist.current is None
    assert not playlist.has_next

    await playlist.update_by_message(IncomingMessage("updatePlaylist", {"videoIds": ""}))
    assert playlist.id is None


async def test_playlist_set_single_video() -> None:
    """Test setPlaylist with a video id only."""
    playlist = Playlist()
    await playlist.update_by_message(IncomingMessage("setPlaylist", {"videoId": "aaa"}))
    assert playlist.current == Video("aaa", 0, None)
    assert await playlist.next() is None
    assert await playlist.previous() is None


async def test_playlist_navigation_and_autoplay() -> None:
    """Test next/previous and the autoplay video."""
    handler = FixedAutoplayHandler()
    playlist = Playlist(handler)
    await playlist.update_by_message(
        IncomingMessage("setPlaylist", {"videoIds": "aaa,bbb", "videoId": "aaa"})
    )
    # autoplay not enabled yet
    assert (await playlist.next()) == Video("bbb", 1, None)
    assert playlist.autoplay is None
    assert not playlist.has_next

    await playlist.set_autoplay_mode(AutoplayMode.ENABLED)
    assert playlist.autoplay == Video("auto")
    assert playlist.has_next
    assert (await playlist.next()) == Video("auto", 2, None)
    assert playlist.get_state().video_ids == ("aaa", "bbb", "auto")

    assert (await playlist.previous()) == Video("bbb", 1, None)
    assert playlist.autoplay is None

    await playlist.set_autoplay_mode(AutoplayMode.DISABLED)
    assert playlist.autoplay_mode == AutoplayMode.DISABLED
    playlist.reset()
    assert playlist.current is None
    assert playlist.autoplay_mode == AutoplayMode.DISABLED


async def test_playlist_autoplay_failure() -> None:
    """Test that a failing request handler leaves no autoplay video."""
    playlist = Playlist(FailingAutoplayHandler())
    await playlist.set_autoplay_mode(AutoplayMode.ENABLED)
    await playlist.update_by_message(IncomingMessage("setPlaylist", {"videoId": "aaa"}))
    assert playlist.autoplay is None
    assert not playlist.has_next


def test_config() -> None:
    """Test the receiver config."""
    config = ReceiverConfig.from_dict({"screen_name": "Living room", "volume_debounce_ms": 100})
    assert config.screen_name == "Living room"
    assert config.volume_debounce_ms == 100
    assert config.enable_autoplay_on_connect
    assert config.operation_timeout is None
    with pytest.raises(ValueError, match="volume_debounce_ms"):
        ReceiverConfig(volume_debounce_ms=-1)
    with pytest.raises(ValueError, match="operation_timeout"):
        ReceiverConfig(operation_timeout=0)
