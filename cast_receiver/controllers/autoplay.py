"""Negotiation of the device-wide autoplay mode among connected senders.

Autoplay is only offered when every connected sender supports it. When a
sender without autoplay capability joins, the mode is forced to UNSUPPORTED and
the mode it replaced is remembered, so it can be restored once the last
incapable sender has left.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cast_receiver.constants import LOGGER_NAME
from cast_receiver.models.enums import AutoplayMode

if TYPE_CHECKING:
    from cast_receiver.models.sender import Sender

    from .senders import SenderRegistry


class AutoplayNegotiator:
    """Decides the autoplay mode on roster changes and sender requests."""

    def __init__(
        self, enable_on_connect: bool = True, logger: logging.Logger | None = None
    ) -> None:
        """Initialize."""
        self.logger = logger or logging.getLogger(LOGGER_NAME).getChild("autoplay")
        self._mode_on_connect = AutoplayMode.DISABLED
        self._mode_before_override: AutoplayMode | None = None
        self.enable_on_connect(enable_on_connect)

    def enable_on_connect(self, value: bool) -> None:
        """Set whether autoplay is enabled when the first sender connects."""
        self._mode_on_connect = AutoplayMode.ENABLED if value else AutoplayMode.DISABLED

    def reset(self) -> None:
        """Forget the remembered mode, e.g. when all senders are dropped at once."""
        self._mode_before_override = None

    def on_connect(
        self, senders: SenderRegistry, new_sender: Sender, current_mode: AutoplayMode
    ) -> AutoplayMode:
        """Return the mode to apply for a newly connected sender.

        :param senders: The senders connected before new_sender.
        :param new_sender: The sender that connected.
        :param current_mode: The autoplay mode currently in force.
        """
        if len(senders) == 0:
            self._mode_before_override = None
            if not new_sender.supports_autoplay():
                self.logger.info(
                    "Sender does not have autoplay capability. Autoplay support disabled."
                )
                return AutoplayMode.UNSUPPORTED
            self.logger.info(
                "Sender has autoplay capability. Setting autoplay mode to %s",
                self._mode_on_connect,
            )
            return self._mode_on_connect

        if not new_sender.supports_autoplay() or senders.any_lacks_autoplay():
            self.logger.info(
                "One or more senders do not support autoplay. Autoplay support disabled."
            )
            if current_mode != AutoplayMode.UNSUPPORTED:
                self._mode_before_override = current_mode
            return AutoplayMode.UNSUPPORTED

        # all senders capable: stick to current mode
        self._mode_before_override = None
        if current_mode == AutoplayMode.UNSUPPORTED:
            return self._mode_on_connect
        return current_mode

    def on_disconnect(
        self, senders: SenderRegistry, current_mode: AutoplayMode
    ) -> AutoplayMode | None:
        """Return the mode to apply after a sender left, None if it stays unchanged.

        :param senders: The senders still connected.
        :param current_mode: The autoplay mode currently in force.
        """
        if len(senders) == 0:
            self._mode_before_override = None
            return None
        if current_mode != AutoplayMode.UNSUPPORTED or not senders.all_support_autoplay():
            return None
        mode = self._mode_before_override or self._mode_on_connect
        self._mode_before_override = None
        self.logger.info(
            "All connected senders support autoplay. Restoring autoplay mode %s", mode
        )
        return mode

    def on_request(
        self, senders: SenderRegistry, requested: AutoplayMode, current_mode: AutoplayMode
    ) -> AutoplayMode:
        """Return the mode to apply when a sender requests a mode.

        :param senders: The connected senders.
        :param requested: The requested mode.
        :param current_mode: The autoplay mode currently in force.
        """
        if senders.any_lacks_autoplay():
            if requested != AutoplayMode.UNSUPPORTED:
                # applied once the conflict is gone
                self._mode_before_override = requested
            self.logger.debug(
                "Autoplay mode %s requested while unsupported by a connected sender", requested
            )
            return AutoplayMode.UNSUPPORTED
        if requested == AutoplayMode.UNSUPPORTED and len(senders) > 0:
            self.logger.warning(
                "Ignoring request for autoplay mode %s: all senders support autoplay", requested
            )
            return current_mode
        return requested
