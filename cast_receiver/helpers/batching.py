"""Delivery of outgoing messages, with optional per-key debouncing."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cast_receiver.constants import LOGGER_NAME, VERBOSE_LOG_LEVEL

if TYPE_CHECKING:
    from cast_receiver.models.message import OutgoingMessage, SendOptions
    from cast_receiver.models.session import SessionChannel


@dataclass
class PendingSend:
    """Messages waiting for their debounce timer."""

    messages: list[OutgoingMessage]
    handle: asyncio.TimerHandle


class MessageBatcher:
    """Sends message batches through the session channel.

    Batches sent with SendOptions are held back for the given delay; a newer batch
    with the same coalesce key replaces the pending one and restarts the timer.
    All deliveries (immediate and delayed) are serialized by a single lock.
    """

    def __init__(self, channel: SessionChannel, logger: logging.Logger | None = None) -> None:
        """Initialize."""
        self._channel = channel
        self.logger = logger or logging.getLogger(LOGGER_NAME).getChild("batching")
        self._lock = asyncio.Lock()
        self._pending: dict[str, PendingSend] = {}
        self._delivery_tasks: set[asyncio.Task[None]] = set()

    async def send(
        self, messages: Sequence[OutgoingMessage], options: SendOptions | None = None
    ) -> None:
        """Send messages now, or after the debounce delay when options are given."""
        if not messages:
            return
        if options is not None:
            self._schedule(list(messages), options)
            return
        # pending messages of the same type would only deliver stale values after these
        for msg in messages:
            self.cancel_pending(msg.name)
        await self._deliver(list(messages))

    def cancel_pending(self, coalesce_key: str | None = None) -> None:
        """Drop pending messages for the given key, or all of them."""
        keys = list(self._pending) if coalesce_key is None else [coalesce_key]
        for key in keys:
            if pending := self._pending.pop(key, None):
                pending.handle.cancel()
                self.logger.log(VERBOSE_LOG_LEVEL, "Dropped pending '%s' messages", key)

    async def close(self) -> None:
        """Drop pending messages and cancel delayed deliveries in progress."""
        self.cancel_pending()
        tasks = list(self._delivery_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _schedule(self, messages: list[OutgoingMessage], options: SendOptions) -> None:
        key = options.coalesce_key
        if existing := self._pending.pop(key, None):
            existing.handle.cancel()
            self.logger.log(VERBOSE_LOG_LEVEL, "Replacing pending '%s' messages", key)
        handle = asyncio.get_running_loop().call_later(
            options.delay_ms / 1000, self._on_timer, key
        )
        self._pending[key] = PendingSend(messages, handle)

    def _on_timer(self, coalesce_key: str) -> None:
        if (pending := self._pending.pop(coalesce_key, None)) is None:
            return
        task = asyncio.get_running_loop().create_task(self._deliver(pending.messages))
        self._delivery_tasks.add(task)
        task.add_done_callback(self._on_delivery_done)

    def _on_delivery_done(self, task: asyncio.Task[None]) -> None:
        self._delivery_tasks.discard(task)
        if not task.cancelled() and (err := task.exception()):
            self.logger.warning(
                "Error while sending delayed messages: %s",
                str(err),
                exc_info=err if self.logger.isEnabledFor(logging.DEBUG) else None,
            )

    async def _deliver(self, messages: list[OutgoingMessage]) -> None:
        async with self._lock:
            self.logger.log(
                VERBOSE_LOG_LEVEL, "Sending messages: %s", [msg.name.value for msg in messages]
            )
            await self._channel.send_message(messages)
