"""
Interfaces of the session channel and pairing code service.

The session channel is the transport towards the senders: it exposes the
receiver on the network, registers pairing codes and delivers messages in both
directions. Implementations emit `SessionEventType.MESSAGES` with the incoming
delivery (a single message or a sequence of messages) as data and
`SessionEventType.TERMINATE` with the error when the session can not continue.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

from cast_receiver.helpers.events import EventSource

from .config import ReceiverConfig
from .enums import PairingCodeEventType, SessionEventType

if TYPE_CHECKING:
    from .message import OutgoingMessage, SendOptions


class PairingCodeRequestService(EventSource[PairingCodeEventType], ABC):
    """
    Service that periodically obtains a code for manual ("link with TV code") pairing.

    Emits REQUEST when a code is requested, RESPONSE with the code as data and
    ERROR with the exception as data.
    """

    @abstractmethod
    def start(self) -> None:
        """Start requesting pairing codes."""

    @abstractmethod
    def stop(self) -> None:
        """Stop requesting pairing codes."""


class SessionChannel(EventSource[SessionEventType], ABC):
    """Base representation of the session channel used by the receiver app."""

    def __init__(self) -> None:
        """Initialize."""
        super().__init__()
        self.config = ReceiverConfig()

    def set_config(self, config: ReceiverConfig) -> None:
        """Set the receiver options.

        Implementations announce the screen name, screen app, brand and model
        from these options when pairing with senders.
        """
        self.config = config

    @property
    @abstractmethod
    def pairing_code_request_service(self) -> PairingCodeRequestService:
        """Return the pairing code request service bound to this session."""

    @abstractmethod
    async def begin(self) -> None:
        """Open the session.

        :raises Exception: When the session could not be opened.
        """

    @abstractmethod
    async def end(self) -> None:
        """Close the session."""

    @abstractmethod
    async def register_pairing_code(self, code: str) -> None:
        """Register a pairing code received through the launch handshake."""

    @abstractmethod
    async def send_message(
        self,
        messages: Sequence[OutgoingMessage],
        options: SendOptions | None = None,
    ) -> None:
        """Deliver a batch of messages to the connected senders.

        :param messages: The messages to deliver, in order.
        :param options: Coalescing options. The receiver app coalesces messages
            itself and never passes options, they are part of the interface for
            channels used standalone.
        """
