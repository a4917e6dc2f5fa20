"""Custom errors and exceptions for the cast receiver core."""

from __future__ import annotations

from typing import Any, Literal


class CastReceiverError(Exception):
    """Custom Exception for all errors."""

    error_code = 0


class AppError(CastReceiverError):
    """Error raised when the receiver app fails to start, launch or run."""

    error_code = 1


class InvalidDataError(CastReceiverError):
    """Error raised when received data is malformed."""

    error_code = 2

    def __init__(self, message: str, data: Any = None) -> None:
        """Initialize."""
        super().__init__(message)
        self.data = data


class IncompleteAPIDataError(InvalidDataError):
    """Error raised when received data lacks required fields."""

    error_code = 3

    def __init__(self, message: str, missing: list[str]) -> None:
        """Initialize."""
        super().__init__(f"{message} (missing: {', '.join(missing)})")
        self.missing = missing


class SenderConnectionError(CastReceiverError):
    """Error raised when a sender could not be (un)registered."""

    error_code = 4

    def __init__(self, message: str, action: Literal["connect", "disconnect"]) -> None:
        """Initialize."""
        super().__init__(message)
        self.action = action


class MessageHandlingError(CastReceiverError):
    """Error raised when handling of an incoming message failed."""

    error_code = 5

    def __init__(self, message: str, message_name: str) -> None:
        """Initialize."""
        super().__init__(message)
        self.message_name = message_name
