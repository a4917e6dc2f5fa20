"""Turn player state transitions into the minimal set of outgoing messages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from cast_receiver.constants import COALESCE_KEY_VOLUME
from cast_receiver.models.enums import OutgoingMessageType
from cast_receiver.models.message import OutgoingMessage, SendOptions

if TYPE_CHECKING:
    from cast_receiver.models.player import NavInfo, PlayerState


@dataclass(frozen=True)
class StateChanges:
    """Which aspects of the player state changed between two snapshots."""

    now_playing: bool = True
    status: bool = True
    position: bool = True
    volume: bool = True
    autoplay: bool = True

    @property
    def any(self) -> bool:
        """Return True if anything changed."""
        return self.now_playing or self.status or self.position or self.volume or self.autoplay


def get_state_changes(current: PlayerState, previous: PlayerState | None) -> StateChanges:
    """Compare two snapshots field by field, no previous snapshot means everything changed."""
    if previous is None:
        return StateChanges()
    return StateChanges(
        now_playing=(
            previous.playlist_id != current.playlist_id
            or previous.current_video_id != current.current_video_id
            or previous.current_index != current.current_index
        ),
        status=previous.status != current.status,
        position=previous.position_ms != current.position_ms,
        volume=previous.volume != current.volume,
        autoplay=previous.autoplay_video_id != current.autoplay_video_id,
    )


def get_state_messages(
    aid: int | None,
    current: PlayerState,
    previous: PlayerState | None,
    nav_info: NavInfo,
) -> list[OutgoingMessage]:
    """Return the messages that notify senders of a state transition."""
    changes = get_state_changes(current, previous)
    messages: list[OutgoingMessage] = []
    if changes.now_playing:
        messages.append(OutgoingMessage.now_playing(aid, current))
        messages.append(OutgoingMessage.on_has_previous_next_changed(aid, nav_info))
    if changes.status or changes.position:
        messages.append(OutgoingMessage.on_state_change(aid, current))
    if changes.volume:
        messages.append(OutgoingMessage.on_volume_changed(aid, current.volume, unsolicited=True))
    if changes.autoplay:
        messages.append(OutgoingMessage.autoplay_up_next(aid, current.autoplay_video_id))
    return messages


def get_send_options(
    aid: int | None, messages: list[OutgoingMessage], delay_ms: int
) -> SendOptions | None:
    """Return coalescing options for messages that only report player-side volume drift.

    Volume changes solicited by a sender (aid present) are delivered right away.
    """
    if (
        aid is None
        and messages
        and all(x.name == OutgoingMessageType.ON_VOLUME_CHANGED for x in messages)
    ):
        return SendOptions(coalesce_key=COALESCE_KEY_VOLUME, delay_ms=delay_ms)
    return None
