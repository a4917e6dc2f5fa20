"""Configuration of the receiver app."""

from __future__ import annotations

from dataclasses import dataclass

from mashumaro import DataClassDictMixin

from cast_receiver.constants import (
    DEFAULT_BRAND,
    DEFAULT_MODEL,
    DEFAULT_SCREEN_APP,
    DEFAULT_SCREEN_NAME,
    DEFAULT_VOLUME_DEBOUNCE_MS,
)


@dataclass
class ReceiverConfig(DataClassDictMixin):
    """Options for a receiver app instance."""

    screen_name: str = DEFAULT_SCREEN_NAME
    screen_app: str = DEFAULT_SCREEN_APP
    brand: str = DEFAULT_BRAND
    model: str = DEFAULT_MODEL
    # autoplay mode applied when the first (autoplay capable) sender connects
    enable_autoplay_on_connect: bool = True
    # debounce window for coalesced player-side volume notifications
    volume_debounce_ms: int = DEFAULT_VOLUME_DEBOUNCE_MS
    # bound (in seconds) for a single message batch or state event, None to wait forever
    operation_timeout: float | None = None

    def __post_init__(self) -> None:
        """Validate values."""
        if self.volume_debounce_ms < 0:
            msg = "volume_debounce_ms must not be negative"
            raise ValueError(msg)
        if self.operation_timeout is not None and self.operation_timeout <= 0:
            msg = "operation_timeout must be a positive number of seconds"
            raise ValueError(msg)
