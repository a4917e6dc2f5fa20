"""Registry of the senders currently connected to the receiver."""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cast_receiver.models.sender import Sender


class SenderRegistry:
    """Ordered collection of connected senders, unique by id."""

    def __init__(self) -> None:
        """Initialize."""
        self._senders: dict[str, Sender] = {}

    def __len__(self) -> int:
        """Return the number of connected senders."""
        return len(self._senders)

    def __iter__(self) -> Iterator[Sender]:
        """Iterate over the connected senders in order of connection."""
        return iter(list(self._senders.values()))

    def __contains__(self, sender_id: object) -> bool:
        """Return whether a sender with the given id is connected."""
        return sender_id in self._senders

    def add(self, sender: Sender) -> bool:
        """Add a sender, returns False if a sender with the same id is already present."""
        if sender.id in self._senders:
            return False
        self._senders[sender.id] = sender
        return True

    def remove(self, sender_id: str) -> Sender | None:
        """Remove and return the sender with the given id."""
        return self._senders.pop(sender_id, None)

    def clear(self) -> list[Sender]:
        """Remove all senders and return them."""
        senders = list(self._senders.values())
        self._senders.clear()
        return senders

    def all(self) -> list[Sender]:
        """Return a snapshot of the connected senders."""
        return list(self._senders.values())

    def all_support_autoplay(self) -> bool:
        """Return True if every connected sender has autoplay capability (and there is one)."""
        return bool(self._senders) and all(x.supports_autoplay() for x in self._senders.values())

    def any_lacks_autoplay(self) -> bool:
        """Return True if at least one connected sender lacks autoplay capability."""
        return any(not x.supports_autoplay() for x in self._senders.values())
