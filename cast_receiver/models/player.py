"""
Base class/model for the Player (facade) driven by the receiver app.

Implementations wrap an actual playback engine and only need to provide the
`do_*` methods. State bookkeeping, queue navigation and state change events are
handled here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from mashumaro import DataClassDictMixin

from cast_receiver.constants import LOGGER_NAME, VERBOSE_LOG_LEVEL
from cast_receiver.helpers.events import EventSource

from .enums import AutoplayMode, PlayerEventType, PlayerStatus
from .playlist import Playlist, Video


@dataclass(frozen=True)
class Volume(DataClassDictMixin):
    """Volume level (0-100) and mute state."""

    level: int
    muted: bool = False


@dataclass(frozen=True)
class NavInfo:
    """Whether the queue allows navigating back and forth."""

    has_next: bool
    has_previous: bool


@dataclass(frozen=True)
class PlayerState:
    """Immutable snapshot of the player state, compared between two points in time."""

    status: PlayerStatus
    position_ms: int
    volume: Volume
    playlist_id: str | None = None
    current_video_id: str | None = None
    current_index: int | None = None
    autoplay_video_id: str | None = None
    # informational only, not taken into account when diffing states
    duration_ms: int = 0


@dataclass(frozen=True)
class PlayerStateEvent:
    """Payload of the player STATE event."""

    aid: int | None
    current: PlayerState
    previous: PlayerState | None


class Player(EventSource[PlayerEventType], ABC):
    """
    Base representation of a Player controlled by connected senders.

    Player implementations should inherit from this base model.
    """

    def __init__(self, queue: Playlist | None = None, logger: logging.Logger | None = None) -> None:
        """Initialize."""
        super().__init__()
        self.queue = queue or Playlist()
        self.logger = logger or logging.getLogger(LOGGER_NAME).getChild("player")
        self._status = PlayerStatus.STOPPED
        self._last_state: PlayerState | None = None

    def set_logger(self, logger: logging.Logger) -> None:
        """Set the logger (also used by the queue)."""
        self.logger = logger
        self.queue.set_logger(logger.getChild("playlist"))

    @property
    def status(self) -> PlayerStatus:
        """Return the current playback status."""
        return self._status

    @property
    def autoplay_mode(self) -> AutoplayMode:
        """Return the current autoplay mode."""
        return self.queue.autoplay_mode

    async def play(self, video: Video, position_ms: int = 0, aid: int | None = None) -> bool:
        """Play the given video, starting at position_ms."""
        self.logger.debug("Play %s at %s ms (AID: %s)", video.id, position_ms, aid)
        if not await self.do_play(video, position_ms):
            self.logger.warning("Player failed to play %s", video.id)
            return False
        self._status = PlayerStatus.PLAYING
        await self.notify_external_state_change(aid)
        return True

    async def pause(self, aid: int | None = None) -> bool:
        """Pause playback."""
        if self._status != PlayerStatus.PLAYING:
            self.logger.debug("Pause ignored, player is not playing (status: %s)", self._status)
            return False
        if not await self.do_pause():
            return False
        self._status = PlayerStatus.PAUSED
        await self.notify_external_state_change(aid)
        return True

    async def resume(self, aid: int | None = None) -> bool:
        """Resume paused playback."""
        if self._status != PlayerStatus.PAUSED:
            self.logger.debug("Resume ignored, player is not paused (status: %s)", self._status)
            return False
        if not await self.do_resume():
            return False
        self._status = PlayerStatus.PLAYING
        await self.notify_external_state_change(aid)
        return True

    async def stop(self, aid: int | None = None) -> bool:
        """Stop playback."""
        if not await self.do_stop():
            return False
        self._status = PlayerStatus.STOPPED
        await self.notify_external_state_change(aid)
        return True

    async def seek(self, position_ms: int, aid: int | None = None) -> bool:
        """Seek to the given position."""
        if self._status not in (PlayerStatus.PLAYING, PlayerStatus.PAUSED):
            self.logger.debug("Seek ignored, nothing is playing (status: %s)", self._status)
            return False
        if not await self.do_seek(position_ms):
            return False
        await self.notify_external_state_change(aid)
        return True

    async def next(self, aid: int | None = None) -> bool:
        """Play the next video in the queue."""
        video = await self.queue.next()
        if video is None:
            self.logger.debug("No next video in queue")
            return False
        return await self.play(video, 0, aid)

    async def previous(self, aid: int | None = None) -> bool:
        """Play the previous video in the queue."""
        video = await self.queue.previous()
        if video is None:
            self.logger.debug("No previous video in queue")
            return False
        return await self.play(video, 0, aid)

    async def get_volume(self) -> Volume:
        """Return the current volume."""
        return await self.do_get_volume()

    async def set_volume(self, volume: Volume, aid: int | None = None) -> bool:
        """Set the volume."""
        if not await self.do_set_volume(volume):
            return False
        await self.notify_external_state_change(aid)
        return True

    def get_nav_info(self) -> NavInfo:
        """Return navigation info derived from the queue position."""
        return NavInfo(has_next=self.queue.has_next, has_previous=self.queue.has_previous)

    async def get_state(self) -> PlayerState:
        """Return a snapshot of the current player state."""
        playlist = self.queue.get_state()
        return PlayerState(
            status=self._status,
            position_ms=await self.do_get_position(),
            volume=await self.do_get_volume(),
            playlist_id=playlist.id,
            current_video_id=playlist.current.id if playlist.current else None,
            current_index=playlist.current.index if playlist.current else None,
            autoplay_video_id=playlist.autoplay.id if playlist.autoplay else None,
            duration_ms=await self.do_get_duration(),
        )

    async def reset(self) -> None:
        """Stop playback and clear the queue and any transient state."""
        if self._status != PlayerStatus.STOPPED:
            await self.stop()
        self.queue.reset()
        self._last_state = None

    async def notify_external_state_change(self, aid: int | None = None) -> None:
        """Signal a state change, also to be called by implementations on player-side changes.

        :param aid: Sequence id of the message that caused the change, if any.
        """
        current = await self.get_state()
        previous = self._last_state
        self._last_state = current
        self.logger.log(VERBOSE_LOG_LEVEL, "Player state: %s", current)
        self.signal_event(PlayerEventType.STATE, PlayerStateEvent(aid, current, previous))

    @abstractmethod
    async def do_play(self, video: Video, position_ms: int) -> bool:
        """Handle PLAY command on the actual player."""

    @abstractmethod
    async def do_pause(self) -> bool:
        """Handle PAUSE command on the actual player."""

    @abstractmethod
    async def do_resume(self) -> bool:
        """Handle RESUME command on the actual player."""

    @abstractmethod
    async def do_stop(self) -> bool:
        """Handle STOP command on the actual player."""

    @abstractmethod
    async def do_seek(self, position_ms: int) -> bool:
        """Handle SEEK command on the actual player."""

    @abstractmethod
    async def do_set_volume(self, volume: Volume) -> bool:
        """Handle VOLUME_SET command on the actual player."""

    @abstractmethod
    async def do_get_volume(self) -> Volume:
        """Return the volume of the actual player."""

    @abstractmethod
    async def do_get_position(self) -> int:
        """Return the playback position (ms) of the actual player."""

    @abstractmethod
    async def do_get_duration(self) -> int:
        """Return the duration (ms) of the media loaded in the actual player."""
