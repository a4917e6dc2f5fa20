"""Enums used throughout the cast receiver core."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class AppState(StrEnum):
    """Lifecycle state of the receiver app."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class AutoplayMode(StrEnum):
    """Device-wide autoplay mode as reported to senders."""

    ENABLED = "ENABLED"
    DISABLED = "DISABLED"
    UNSUPPORTED = "UNSUPPORTED"


class PlayerStatus(IntEnum):
    """Playback status, values match the state codes used on the wire."""

    IDLE = -1
    STOPPED = 0
    PLAYING = 1
    PAUSED = 2
    LOADING = 3


class IncomingMessageName(StrEnum):
    """Names of the inbound messages the receiver knows how to handle."""

    REMOTE_CONNECTED = "remoteConnected"
    REMOTE_DISCONNECTED = "remoteDisconnected"
    GET_NOW_PLAYING = "getNowPlaying"
    LOUNGE_STATUS = "loungeStatus"
    SET_PLAYLIST = "setPlaylist"
    UPDATE_PLAYLIST = "updatePlaylist"
    NEXT = "next"
    PREVIOUS = "previous"
    PAUSE = "pause"
    STOP_VIDEO = "stopVideo"
    PLAY = "play"
    SEEK_TO = "seekTo"
    GET_VOLUME = "getVolume"
    SET_VOLUME = "setVolume"
    SET_AUTOPLAY_MODE = "setAutoplayMode"


class OutgoingMessageType(StrEnum):
    """Names of the outbound messages sent to connected senders."""

    NOW_PLAYING = "nowPlaying"
    ON_STATE_CHANGE = "onStateChange"
    ON_VOLUME_CHANGED = "onVolumeChanged"
    ON_HAS_PREVIOUS_NEXT_CHANGED = "onHasPreviousNextChanged"
    ON_AUTOPLAY_MODE_CHANGED = "onAutoplayModeChanged"
    AUTOPLAY_UP_NEXT = "autoplayUpNext"


class EventType(StrEnum):
    """Events emitted by the receiver app."""

    SENDER_CONNECT = "sender_connect"
    SENDER_DISCONNECT = "sender_disconnect"
    ERROR = "error"
    TERMINATE = "terminate"


class PlayerEventType(StrEnum):
    """Events emitted by a player."""

    STATE = "state"


class SessionEventType(StrEnum):
    """Events emitted by a session channel."""

    MESSAGES = "messages"
    TERMINATE = "terminate"


class PairingCodeEventType(StrEnum):
    """Events emitted by a pairing code request service."""

    REQUEST = "request"
    RESPONSE = "response"
    ERROR = "error"
