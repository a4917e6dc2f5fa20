"""Typed publish/subscribe helper shared by the app, players and session channels."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Generic, TypeVar

from cast_receiver.constants import LOGGER_NAME, VERBOSE_LOG_LEVEL

LOGGER = logging.getLogger(LOGGER_NAME).getChild("events")

_E = TypeVar("_E", bound=StrEnum)


@dataclass(frozen=True)
class Event(Generic[_E]):
    """Event as delivered to subscribers."""

    event: _E
    data: Any = None


EventCallBackType = (
    Callable[[Event[Any]], None] | Callable[[Event[Any]], Coroutine[Any, Any, None]]
)
EventSubscriptionType = tuple[EventCallBackType, tuple[StrEnum, ...] | None]


class EventSource(Generic[_E]):
    """Base for objects that emit a fixed, enumerated set of events."""

    def __init__(self) -> None:
        """Initialize."""
        self._subscribers: list[EventSubscriptionType] = []
        self._callback_tasks: set[asyncio.Task[None]] = set()

    def subscribe(
        self,
        cb_func: EventCallBackType,
        event_filter: _E | tuple[_E, ...] | None = None,
    ) -> Callable[[], None]:
        """Add callback to event listeners.

        Returns function to remove the listener.
            :param cb_func: callback function or coroutine
            :param event_filter: Optionally only listen for these events
        """
        if isinstance(event_filter, StrEnum):
            event_filter = (event_filter,)
        listener: EventSubscriptionType = (cb_func, event_filter)
        self._subscribers.append(listener)

        def remove_listener() -> None:
            if listener in self._subscribers:
                self._subscribers.remove(listener)

        return remove_listener

    def signal_event(self, event: _E, data: Any = None) -> None:
        """Signal event to subscribers.

        Regular callbacks are invoked in subscription order before this returns,
        coroutine callbacks are scheduled as tasks on the running loop.
        """
        LOGGER.log(VERBOSE_LOG_LEVEL, "%s: %s", type(self).__name__, event.value)
        event_obj: Event[_E] = Event(event=event, data=data)
        for cb_func, event_filter in list(self._subscribers):
            if not (event_filter is None or event in event_filter):
                continue
            if asyncio.iscoroutinefunction(cb_func):
                task = asyncio.get_running_loop().create_task(cb_func(event_obj))
                self._callback_tasks.add(task)
                task.add_done_callback(self._on_callback_task_done)
                continue
            try:
                cb_func(event_obj)
            except Exception as err:
                LOGGER.exception(
                    "Error in %s event listener %s", event.value, cb_func, exc_info=err
                )

    def _on_callback_task_done(self, task: asyncio.Task[None]) -> None:
        self._callback_tasks.discard(task)
        if not task.cancelled() and (err := task.exception()):
            LOGGER.warning("Exception in event listener task: %s", err, exc_info=err)
