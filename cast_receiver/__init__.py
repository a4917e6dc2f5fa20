"""Cast receiver protocol engine: lifecycle, sender roster and player state sync."""

from cast_receiver.app import ReceiverApp

__all__ = ["ReceiverApp"]
