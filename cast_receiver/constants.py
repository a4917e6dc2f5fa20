"""All constants for the cast receiver core."""

from __future__ import annotations

from typing import Final

LOGGER_NAME: Final[str] = "cast_receiver"

# log level for very chatty debug output (message payloads, state dumps)
VERBOSE_LOG_LEVEL: Final[int] = 5

APP_NAME: Final[str] = "YouTube Cast Receiver App"

# config defaults
DEFAULT_SCREEN_NAME: Final[str] = "YouTube on Python"
DEFAULT_SCREEN_APP: Final[str] = "ytcr"
DEFAULT_BRAND: Final[str] = "Generic"
DEFAULT_MODEL: Final[str] = "SmartTV"
DEFAULT_VOLUME_DEBOUNCE_MS: Final[int] = 200

# launch data
LAUNCH_PAIRING_CODE: Final[str] = "pairingCode"

# sender capability tags
CAPABILITY_AUTOPLAY: Final[str] = "atp"

# coalescing key for player-side volume drift
COALESCE_KEY_VOLUME: Final[str] = "onVolumeChanged"
