"""Model for a connected sender (remote control app)."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import orjson
from mashumaro import DataClassDictMixin

from cast_receiver.constants import CAPABILITY_AUTOPLAY
from cast_receiver.helpers.util import split_csv

from .errors import InvalidDataError


@dataclass(frozen=True)
class SenderDevice(DataClassDictMixin):
    """Device details reported by a sender."""

    brand: str | None = None
    model: str | None = None
    os: str | None = None
    device_type: str | None = None

    @classmethod
    def parse(cls, raw: Any) -> SenderDevice:
        """Parse device info, which senders send as a json string."""
        if isinstance(raw, str | bytes):
            try:
                raw = orjson.loads(raw)
            except orjson.JSONDecodeError as err:
                msg = "Invalid sender device info"
                raise InvalidDataError(msg, raw) from err
        if not isinstance(raw, Mapping):
            msg = "Invalid sender device info"
            raise InvalidDataError(msg, raw)
        return cls(
            brand=raw.get("brand"),
            model=raw.get("model"),
            os=raw.get("os"),
            device_type=raw.get("deviceType") or raw.get("type"),
        )


@dataclass(frozen=True)
class Sender(DataClassDictMixin):
    """A sender connected to the receiver."""

    id: str
    name: str
    app: str | None = None
    device: SenderDevice | None = None
    user: str | None = None
    user_avatar_uri: str | None = None
    client_name: str | None = None
    theme: str | None = None
    capabilities: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def parse(cls, payload: Any) -> Sender:
        """Parse a sender from an (untrusted) remoteConnected/remoteDisconnected payload.

        :param payload: The message payload.
        :raises InvalidDataError: If the payload can not be parsed.
        """
        if not isinstance(payload, Mapping):
            msg = "Sender data is not a mapping"
            raise InvalidDataError(msg, payload)
        sender_id = payload.get("id")
        if not sender_id or not isinstance(sender_id, str):
            msg = "Sender data has no valid id"
            raise InvalidDataError(msg, payload)

        device: SenderDevice | None = None
        capabilities: list[str] = []
        if raw_device := payload.get("device"):
            device = SenderDevice.parse(raw_device)
            if isinstance(raw_device, str | bytes):
                raw_device = orjson.loads(raw_device)
            capabilities += _parse_capabilities(raw_device.get("capabilities"), payload)
        capabilities += _parse_capabilities(payload.get("capabilities"), payload)

        name = payload.get("name") or payload.get("clientName")
        if not name and device and device.model:
            name = device.model
        return cls(
            id=sender_id,
            name=str(name or sender_id),
            app=payload.get("app"),
            device=device,
            user=payload.get("user"),
            user_avatar_uri=payload.get("userAvatarUri"),
            client_name=payload.get("clientName"),
            theme=payload.get("theme"),
            capabilities=frozenset(capabilities),
        )

    def supports_autoplay(self) -> bool:
        """Return whether the sender has autoplay capability."""
        return CAPABILITY_AUTOPLAY in self.capabilities


def _parse_capabilities(value: Any, payload: Any) -> list[str]:
    try:
        return split_csv(value)
    except TypeError as err:
        msg = "Invalid sender capabilities"
        raise InvalidDataError(msg, payload) from err
