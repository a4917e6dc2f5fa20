"""Playlist (queue) model behind the player, updated by sender messages."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cast_receiver.constants import LOGGER_NAME
from cast_receiver.helpers.util import get_query_value, split_csv, try_parse_int

from .enums import AutoplayMode, IncomingMessageName

if TYPE_CHECKING:
    from .message import IncomingMessage


@dataclass(frozen=True)
class Video:
    """A video in the playlist, with its position in that playlist."""

    id: str
    index: int | None = None
    playlist_id: str | None = None


@dataclass(frozen=True)
class PlaylistState:
    """Immutable snapshot of the playlist."""

    id: str | None
    video_ids: tuple[str, ...]
    current: Video | None
    autoplay: Video | None
    autoplay_mode: AutoplayMode


class PlaylistRequestHandler(ABC):
    """Resolves the video to autoplay once the end of the playlist is reached.

    Fetching from a remote catalog is left to implementations.
    """

    @abstractmethod
    async def get_autoplay_video(self, current: Video, playlist: PlaylistState) -> Video | None:
        """Return the video to play after the last item of the playlist, if any."""


class NoAutoplayRequestHandler(PlaylistRequestHandler):
    """Request handler that never provides an autoplay video."""

    async def get_autoplay_video(self, current: Video, playlist: PlaylistState) -> Video | None:
        """Return nothing."""
        return None


class Playlist:
    """Queue of videos as set by senders through setPlaylist/updatePlaylist."""

    def __init__(
        self,
        request_handler: PlaylistRequestHandler | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize."""
        self.request_handler = request_handler or NoAutoplayRequestHandler()
        self.logger = logger or logging.getLogger(LOGGER_NAME).getChild("playlist")
        self._id: str | None = None
        self._video_ids: list[str] = []
        self._current_index: int | None = None
        self._autoplay: Video | None = None
        self._autoplay_mode = AutoplayMode.UNSUPPORTED

    def set_logger(self, logger: logging.Logger) -> None:
        """Set the logger."""
        self.logger = logger

    def set_request_handler(self, request_handler: PlaylistRequestHandler) -> None:
        """Set the handler used to resolve autoplay videos."""
        self.request_handler = request_handler

    @property
    def id(self) -> str | None:
        """Return the playlist (list) id."""
        return self._id

    @property
    def autoplay_mode(self) -> AutoplayMode:
        """Return the current autoplay mode."""
        return self._autoplay_mode

    @property
    def current(self) -> Video | None:
        """Return the current video."""
        if self._current_index is None:
            return None
        return Video(self._video_ids[self._current_index], self._current_index, self._id)

    @property
    def autoplay(self) -> Video | None:
        """Return the video that will be autoplayed after the last one."""
        return self._autoplay

    @property
    def has_previous(self) -> bool:
        """Return whether there is a video before the current one."""
        return self._current_index is not None and self._current_index > 0

    @property
    def has_next(self) -> bool:
        """Return whether there is a video after the current one (autoplay included)."""
        if self._current_index is None:
            return False
        if self._current_index < len(self._video_ids) - 1:
            return True
        return self._autoplay_mode == AutoplayMode.ENABLED and self._autoplay is not None

    def get_state(self) -> PlaylistState:
        """Return a snapshot of the playlist."""
        return PlaylistState(
            id=self._id,
            video_ids=tuple(self._video_ids),
            current=self.current,
            autoplay=self._autoplay,
            autoplay_mode=self._autoplay_mode,
        )

    async def set_autoplay_mode(self, mode: AutoplayMode) -> None:
        """Set the autoplay mode and refresh the autoplay video accordingly."""
        self._autoplay_mode = AutoplayMode(mode)
        await self.refresh_autoplay()

    async def update_by_message(self, message: IncomingMessage) -> None:
        """Update the playlist from a setPlaylist or updatePlaylist message."""
        payload = message.payload
        video_ids = split_csv(payload.get("videoIds"))
        if list_id := get_query_value(payload, "listId"):
            self._id = list_id

        if message.name == IncomingMessageName.SET_PLAYLIST:
            video_id = get_query_value(payload, "videoId")
            if not video_ids and video_id:
                video_ids = [video_id]
            self._video_ids = video_ids
            self._current_index = self._resolve_index(
                video_id, try_parse_int(payload.get("currentIndex"), None)
            )
        elif message.name == IncomingMessageName.UPDATE_PLAYLIST:
            current = self.current
            self._video_ids = video_ids
            if current is not None and current.id in video_ids:
                self._current_index = self._resolve_index(current.id, current.index)
            else:
                self._current_index = None
        else:
            self.logger.warning("Ignoring unexpected playlist message: %s", message.name)
            return

        if not self._video_ids:
            self._id = None
        self.logger.debug(
            "Playlist updated: %s videos, current index: %s",
            len(self._video_ids),
            self._current_index,
        )
        await self.refresh_autoplay()

    async def next(self) -> Video | None:
        """Move to the next video (possibly the autoplay one) and return it."""
        if self._current_index is None:
            return None
        if self._current_index < len(self._video_ids) - 1:
            self._current_index += 1
        elif self._autoplay_mode == AutoplayMode.ENABLED and self._autoplay is not None:
            self._video_ids.append(self._autoplay.id)
            self._current_index = len(self._video_ids) - 1
        else:
            return None
        await self.refresh_autoplay()
        return self.current

    async def previous(self) -> Video | None:
        """Move to the previous video and return it."""
        if not self.has_previous:
            return None
        assert self._current_index is not None
        self._current_index -= 1
        await self.refresh_autoplay()
        return self.current

    async def refresh_autoplay(self) -> None:
        """Resolve the autoplay video when the last video of the playlist is current."""
        current = self.current
        if (
            self._autoplay_mode != AutoplayMode.ENABLED
            or current is None
            or current.index != len(self._video_ids) - 1
        ):
            self._autoplay = None
            return
        try:
            self._autoplay = await self.request_handler.get_autoplay_video(
                current, self.get_state()
            )
        except Exception as err:
            self.logger.warning(
                "Unable to resolve autoplay video for %s: %s",
                current.id,
                str(err),
                exc_info=err if self.logger.isEnabledFor(logging.DEBUG) else None,
            )
            self._autoplay = None

    def reset(self) -> None:
        """Clear the playlist (the autoplay mode is kept)."""
        self._id = None
        self._video_ids = []
        self._current_index = None
        self._autoplay = None

    def _resolve_index(self, video_id: str | None, index: int | None) -> int | None:
        if not self._video_ids:
            return None
        if index is not None and 0 <= index < len(self._video_ids):
            if video_id is None or self._video_ids[index] == video_id:
                return index
        if video_id is not None and video_id in self._video_ids:
            return self._video_ids.index(video_id)
        return 0
