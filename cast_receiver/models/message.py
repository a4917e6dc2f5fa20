"""Message envelopes exchanged with senders over the session channel.

Both directions share the same envelope: ``{"AID": int | null, "name": str, "payload": {...}}``.
The AID (sequence id) of an incoming message is echoed back on the messages sent
in direct response to it; unsolicited messages carry no AID.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mashumaro import field_options
from mashumaro.config import BaseConfig
from mashumaro.mixins.orjson import DataClassORJSONMixin

from .enums import AutoplayMode, OutgoingMessageType

if TYPE_CHECKING:
    from .player import NavInfo, PlayerState, Volume


def _bool_str(value: bool) -> str:
    return "true" if value else "false"


def _seconds_str(value_ms: int) -> str:
    return f"{value_ms / 1000:.3f}".rstrip("0").rstrip(".")


@dataclass
class IncomingMessage(DataClassORJSONMixin):
    """Message received from a sender."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    aid: int | None = field(default=None, metadata=field_options(alias="AID"))

    class Config(BaseConfig):
        """Mashumaro config."""

        serialize_by_alias = True


@dataclass
class OutgoingMessage(DataClassORJSONMixin):
    """Message sent to the connected senders."""

    name: OutgoingMessageType
    payload: dict[str, Any] = field(default_factory=dict)
    aid: int | None = field(default=None, metadata=field_options(alias="AID"))

    class Config(BaseConfig):
        """Mashumaro config."""

        serialize_by_alias = True

    @classmethod
    def now_playing(cls, aid: int | None, state: PlayerState) -> OutgoingMessage:
        """Create a nowPlaying message (empty payload when nothing is loaded)."""
        payload: dict[str, Any] = {}
        if state.current_video_id is not None:
            payload = {
                "videoId": state.current_video_id,
                "currentTime": _seconds_str(state.position_ms),
                "duration": _seconds_str(state.duration_ms),
                "state": str(int(state.status)),
                "loadedTime": "0",
            }
            if state.playlist_id is not None:
                payload["listId"] = state.playlist_id
            if state.current_index is not None:
                payload["currentIndex"] = str(state.current_index)
        return cls(OutgoingMessageType.NOW_PLAYING, payload, aid)

    @classmethod
    def on_state_change(cls, aid: int | None, state: PlayerState) -> OutgoingMessage:
        """Create an onStateChange message."""
        payload = {
            "currentTime": _seconds_str(state.position_ms),
            "duration": _seconds_str(state.duration_ms),
            "state": str(int(state.status)),
            "loadedTime": "0",
            "seekableStartTime": "0",
            "seekableEndTime": _seconds_str(state.duration_ms),
        }
        return cls(OutgoingMessageType.ON_STATE_CHANGE, payload, aid)

    @classmethod
    def on_volume_changed(
        cls, aid: int | None, volume: Volume, unsolicited: bool = False
    ) -> OutgoingMessage:
        """Create an onVolumeChanged message."""
        payload = {
            "volume": str(volume.level),
            "muted": _bool_str(volume.muted),
            "unsolicited": _bool_str(unsolicited),
        }
        return cls(OutgoingMessageType.ON_VOLUME_CHANGED, payload, aid)

    @classmethod
    def on_has_previous_next_changed(cls, aid: int | None, nav_info: NavInfo) -> OutgoingMessage:
        """Create an onHasPreviousNextChanged message."""
        payload = {
            "hasPrevious": _bool_str(nav_info.has_previous),
            "hasNext": _bool_str(nav_info.has_next),
        }
        return cls(OutgoingMessageType.ON_HAS_PREVIOUS_NEXT_CHANGED, payload, aid)

    @classmethod
    def on_autoplay_mode_changed(cls, aid: int | None, mode: AutoplayMode) -> OutgoingMessage:
        """Create an onAutoplayModeChanged message."""
        payload = {"autoplayMode": AutoplayMode(mode).value}
        return cls(OutgoingMessageType.ON_AUTOPLAY_MODE_CHANGED, payload, aid)

    @classmethod
    def autoplay_up_next(cls, aid: int | None, video_id: str | None) -> OutgoingMessage:
        """Create an autoplayUpNext message (empty payload when there is no autoplay video)."""
        payload = {"videoId": video_id} if video_id else {}
        return cls(OutgoingMessageType.AUTOPLAY_UP_NEXT, payload, aid)


@dataclass(frozen=True)
class SendOptions:
    """Options to delay and coalesce the delivery of outgoing messages.

    Messages sent with the same coalesce_key within delay_ms replace each other,
    only the most recent ones get delivered.
    """

    coalesce_key: str
    delay_ms: int


type IncomingBatch = (
    IncomingMessage | Mapping[str, Any] | Sequence[IncomingMessage | Mapping[str, Any]]
)


def iter_incoming(batch: Any) -> Iterator[IncomingMessage | Mapping[str, Any] | Any]:
    """Iterate over the elements of an incoming delivery, in order.

    A delivery is either a single message or a (possibly nested) sequence of
    messages. Elements are yielded as-is so that conversion errors of a single
    element can be handled without affecting the others.
    """
    pending: deque[Any] = deque([batch])
    while pending:
        item = pending.popleft()
        if isinstance(item, list | tuple):
            pending.extendleft(reversed(item))
            continue
        yield item


def to_incoming_message(item: IncomingMessage | Mapping[str, Any]) -> IncomingMessage:
    """Return the element of an incoming delivery as IncomingMessage."""
    if isinstance(item, IncomingMessage):
        return item
    if isinstance(item, Mapping):
        return IncomingMessage.from_dict(dict(item))
    msg = f"Unsupported message type: {type(item).__name__}"
    raise TypeError(msg)
