"""Main receiver app: lifecycle, sender roster, message dispatch and state sync."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from contextlib import suppress
from functools import partial
from typing import TYPE_CHECKING, Any, Literal, Self
from uuid import uuid4

from cast_receiver.constants import APP_NAME, LAUNCH_PAIRING_CODE, LOGGER_NAME, VERBOSE_LOG_LEVEL
from cast_receiver.controllers.autoplay import AutoplayNegotiator
from cast_receiver.controllers.senders import SenderRegistry
from cast_receiver.helpers.batching import MessageBatcher
from cast_receiver.helpers.events import Event, EventSource
from cast_receiver.helpers.state_diff import get_send_options, get_state_messages
from cast_receiver.helpers.util import (
    get_query_value,
    parse_launch_data,
    seconds_to_ms,
    try_parse_bool,
    try_parse_int,
)
from cast_receiver.models.config import ReceiverConfig
from cast_receiver.models.enums import (
    AppState,
    AutoplayMode,
    EventType,
    IncomingMessageName,
    PlayerEventType,
    SessionEventType,
)
from cast_receiver.models.errors import (
    AppError,
    IncompleteAPIDataError,
    InvalidDataError,
    MessageHandlingError,
    SenderConnectionError,
)
from cast_receiver.models.message import (
    IncomingBatch,
    IncomingMessage,
    OutgoingMessage,
    iter_incoming,
    to_incoming_message,
)
from cast_receiver.models.player import Volume
from cast_receiver.models.sender import Sender

if TYPE_CHECKING:
    from types import TracebackType

    from cast_receiver.models.player import Player, PlayerStateEvent
    from cast_receiver.models.playlist import PlaylistRequestHandler, Video
    from cast_receiver.models.session import PairingCodeRequestService, SessionChannel

MessageHandlerType = Callable[[IncomingMessage, list[OutgoingMessage]], Awaitable[None]]
JobType = Callable[[], Coroutine[Any, Any, None]]

LOGGER = logging.getLogger(LOGGER_NAME)


class ReceiverApp(EventSource[EventType]):
    """
    Receiver app that senders pair with and control.

    Readies the session, handles incoming messages (responding to them as
    necessary), keeps track of connected senders, negotiates the autoplay mode
    and posts player state updates.
    """

    def __init__(
        self,
        player: Player,
        session: SessionChannel,
        config: ReceiverConfig | None = None,
        playlist_request_handler: PlaylistRequestHandler | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the receiver app.

        :param player: The player controlled by connected senders.
        :param session: The session channel messages are exchanged through.
        :param config: Receiver options, defaults apply when omitted.
        :param playlist_request_handler: Resolves autoplay videos for the player's queue.
        :param logger: Logger to use, defaults to the package logger.
        """
        super().__init__()
        self.name = APP_NAME
        self.config = config or ReceiverConfig()
        self.logger = logger or LOGGER
        # stable process id, returned by every successful launch
        self.pid = str(uuid4())
        self._state = AppState.STOPPED
        self._session = session
        self._session.set_config(self.config)
        self._player = player
        self._player.set_logger(self.logger.getChild("player"))
        if playlist_request_handler is not None:
            self._player.queue.set_request_handler(playlist_request_handler)
        self._senders = SenderRegistry()
        self._autoplay = AutoplayNegotiator(
            self.config.enable_autoplay_on_connect, self.logger.getChild("autoplay")
        )
        self._batcher = MessageBatcher(session, self.logger.getChild("batching"))
        self._jobs: asyncio.Queue[JobType] | None = None
        self._worker_task: asyncio.Task[None] | None = None
        self._stop_tasks: set[asyncio.Task[None]] = set()
        self._player_unsub_callbacks: list[Callable[[], None]] = []
        self._session_unsub_callbacks: list[Callable[[], None]] = []
        self._message_handlers: dict[str, MessageHandlerType] = {
            IncomingMessageName.REMOTE_CONNECTED: self._handle_remote_connected,
            IncomingMessageName.REMOTE_DISCONNECTED: self._handle_remote_disconnected,
            IncomingMessageName.GET_NOW_PLAYING: self._handle_get_now_playing,
            IncomingMessageName.LOUNGE_STATUS: self._handle_lounge_status,
            IncomingMessageName.SET_PLAYLIST: self._handle_playlist_update,
            IncomingMessageName.UPDATE_PLAYLIST: self._handle_playlist_update,
            IncomingMessageName.NEXT: self._handle_next,
            IncomingMessageName.PREVIOUS: self._handle_previous,
            IncomingMessageName.PAUSE: self._handle_pause,
            IncomingMessageName.STOP_VIDEO: self._handle_stop_video,
            IncomingMessageName.PLAY: self._handle_play,
            IncomingMessageName.SEEK_TO: self._handle_seek_to,
            IncomingMessageName.GET_VOLUME: self._handle_get_volume,
            IncomingMessageName.SET_VOLUME: self._handle_set_volume,
            IncomingMessageName.SET_AUTOPLAY_MODE: self._handle_set_autoplay_mode,
        }

    @property
    def state(self) -> AppState:
        """Return the lifecycle state."""
        return self._state

    @property
    def connected_senders(self) -> list[Sender]:
        """Return a snapshot of the connected senders."""
        return self._senders.all()

    @property
    def autoplay_mode(self) -> AutoplayMode:
        """Return the autoplay mode currently in force."""
        return self._player.autoplay_mode

    def enable_autoplay_on_connect(self, value: bool) -> None:
        """Set whether autoplay gets enabled when the first capable sender connects."""
        self._autoplay.enable_on_connect(value)

    def get_pairing_code_request_service(self) -> PairingCodeRequestService:
        """Return the service that obtains codes for manual pairing."""
        return self._session.pairing_code_request_service

    async def start(self) -> None:
        """Start the receiver app, a no-op unless stopped.

        :raises AppError: When the session could not be opened.
        """
        if self._state != AppState.STOPPED:
            return
        self.logger.debug("Starting %s as '%s'...", self.name, self.config.screen_name)
        self._state = AppState.STARTING
        self._player_unsub_callbacks.append(
            self._player.subscribe(self._on_player_state, PlayerEventType.STATE)
        )
        self._session_unsub_callbacks.extend(
            (
                self._session.subscribe(self._on_session_messages, SessionEventType.MESSAGES),
                self._session.subscribe(self._on_session_terminate, SessionEventType.TERMINATE),
            )
        )
        self._start_worker()
        try:
            await self._session.begin()
        except Exception as err:
            self._unsubscribe_player()
            self._unsubscribe_session()
            await self._stop_worker()
            self._state = AppState.STOPPED
            msg = f"Failed to start {self.name}"
            raise AppError(msg) from err
        self._state = AppState.RUNNING
        self.logger.info("%s started (pid: %s)", self.name, self.pid)

    async def stop(self, error: BaseException | None = None) -> None:
        """Stop the receiver app.

        A no-op when not running, unless an error is given: stopping with an error
        always performs the full cleanup and emits TERMINATE afterwards.
        """
        if self._state != AppState.RUNNING and error is None:
            return
        self.logger.debug("Stopping %s...", self.name)
        self._state = AppState.STOPPING

        senders = self._senders.clear()
        self._autoplay.reset()
        self._unsubscribe_player()
        self._batcher.cancel_pending()
        await self._stop_worker()
        await self._batcher.close()
        try:
            await self._player.reset()
        except Exception as err:
            self.logger.warning("Ignoring error while resetting player: %s", str(err))

        self._unsubscribe_session()
        try:
            await self._session.end()
        except Exception as err:
            self.logger.warning(
                "Ignoring error while stopping %s: %s",
                self.name,
                str(err),
                exc_info=err if self.logger.isEnabledFor(logging.DEBUG) else None,
            )

        self._state = AppState.STOPPED
        self.logger.info("%s stopped", self.name)
        for sender in senders:
            self.signal_event(EventType.SENDER_DISCONNECT, sender)
        if error is not None:
            self.signal_event(EventType.TERMINATE, error)

    async def launch(self, launch_data: str) -> str:
        """Handle the launch handshake and return the process id.

        :param launch_data: Query-string encoded launch data holding the pairing code.
        :raises AppError: When the launch data has no pairing code.
        """
        code = get_query_value(parse_launch_data(launch_data), LAUNCH_PAIRING_CODE)
        if code:
            self.logger.info("Connecting sender through launch handshake...")
            await self._session.register_pairing_code(code)
            return self.pid
        msg = f"Failed to launch {self.name}"
        raise AppError(msg) from IncompleteAPIDataError(
            "Invalid launch data", [LAUNCH_PAIRING_CODE]
        )

    async def join(self) -> None:
        """Wait until all queued message batches and player state events are handled."""
        if self._jobs is not None:
            await self._jobs.join()

    def _start_worker(self) -> None:
        self._jobs = asyncio.Queue()
        self._worker_task = asyncio.get_running_loop().create_task(self._process_jobs())

    async def _stop_worker(self) -> None:
        worker, jobs = self._worker_task, self._jobs
        self._worker_task = None
        self._jobs = None
        if worker is not None and not worker.done():
            worker.cancel()
            if worker is not asyncio.current_task():
                with suppress(asyncio.CancelledError):
                    await worker
        if jobs is not None:
            # release anyone waiting in join()
            while not jobs.empty():
                jobs.get_nowait()
                jobs.task_done()

    def _enqueue(self, job: JobType) -> None:
        if self._jobs is None:
            self.logger.debug("Not running, dropping %s", job)
            return
        self._jobs.put_nowait(job)

    async def _process_jobs(self) -> None:
        """Handle queued jobs one at a time, each job runs to completion before the next."""
        assert self._jobs is not None
        jobs = self._jobs
        while True:
            job = await jobs.get()
            try:
                async with asyncio.timeout(self.config.operation_timeout):
                    await job()
            except TimeoutError:
                self.logger.warning(
                    "Operation did not complete within %s seconds", self.config.operation_timeout
                )
            except Exception as err:
                self.logger.exception("Unexpected error while processing job", exc_info=err)
            finally:
                jobs.task_done()

    def _unsubscribe_player(self) -> None:
        for unsub in self._player_unsub_callbacks:
            unsub()
        self._player_unsub_callbacks.clear()

    def _unsubscribe_session(self) -> None:
        for unsub in self._session_unsub_callbacks:
            unsub()
        self._session_unsub_callbacks.clear()

    def _on_session_messages(self, event: Event[SessionEventType]) -> None:
        self._enqueue(partial(self._handle_incoming, event.data))

    def _on_session_terminate(self, event: Event[SessionEventType]) -> None:
        error = event.data or AppError("Session terminated")
        self.logger.error("Session terminated: %s", str(error))
        task = asyncio.get_running_loop().create_task(self.stop(error))
        self._stop_tasks.add(task)
        task.add_done_callback(self._stop_tasks.discard)

    def _on_player_state(self, event: Event[PlayerEventType]) -> None:
        self._enqueue(partial(self._handle_player_state, event.data))

    async def _handle_incoming(self, batch: IncomingBatch) -> None:
        """Handle a delivery of incoming messages and send the responses as one batch."""
        outbox: list[OutgoingMessage] = []
        for item in iter_incoming(batch):
            try:
                message = to_incoming_message(item)
            except Exception as err:
                self.logger.warning("Ignoring invalid incoming message %s: %s", item, str(err))
                continue
            try:
                await self._handle_message(message, outbox)
            except MessageHandlingError as err:
                self.logger.exception("(AID: %s) %s", message.aid, err)
                self.signal_event(EventType.ERROR, err)
        if outbox:
            await self._batcher.send(outbox)

    async def _handle_message(
        self, message: IncomingMessage, outbox: list[OutgoingMessage]
    ) -> None:
        self.logger.debug("(AID: %s) Incoming message: '%s'", message.aid, message.name)
        handler = self._message_handlers.get(message.name)
        if handler is None:
            self.logger.debug("(AID: %s) Not handled: '%s'", message.aid, message.name)
            return
        try:
            await handler(message, outbox)
        except Exception as err:
            msg = f"Failed to handle '{message.name}' message"
            raise MessageHandlingError(msg, message.name) from err

    async def _handle_remote_connected(
        self, message: IncomingMessage, outbox: list[OutgoingMessage]
    ) -> None:
        try:
            sender = self._parse_sender(message, "connect")
        except SenderConnectionError as err:
            self._report_sender_error(err)
            return
        if sender.id in self._senders:
            self.logger.debug("Sender already connected: %s", sender.name)
            return

        self.logger.info("Sender connected: %s", sender.name)
        self.logger.debug("Connected sender info: %s", sender)
        mode = self._autoplay.on_connect(self._senders, sender, self._player.autoplay_mode)
        await self._apply_autoplay_mode(message.aid, mode, outbox)

        player_state = await self._player.get_state()
        outbox.append(OutgoingMessage.now_playing(message.aid, player_state))
        outbox.append(OutgoingMessage.on_state_change(message.aid, player_state))

        self._senders.add(sender)
        self.signal_event(EventType.SENDER_CONNECT, sender)

    async def _handle_remote_disconnected(
        self, message: IncomingMessage, outbox: list[OutgoingMessage]
    ) -> None:
        try:
            sender = self._parse_sender(message, "disconnect")
        except SenderConnectionError as err:
            self._report_sender_error(err)
            return
        registered = self._senders.remove(sender.id)
        if registered is None:
            self.logger.warning(
                "Anomaly detected while unregistering disconnected sender: unable to find "
                "target among connected senders. Target: %s, connected senders: %s",
                sender,
                self._senders.all(),
            )
            return

        mode = self._autoplay.on_disconnect(self._senders, self._player.autoplay_mode)
        if len(self._senders) == 0:
            await self._player.reset()
        elif mode is not None:
            await self._apply_autoplay_mode(message.aid, mode, outbox)

        self.logger.info("Sender disconnected: %s", registered.name)
        self.logger.debug("Disconnected sender info: %s", registered)
        self.signal_event(EventType.SENDER_DISCONNECT, registered)

    async def _handle_get_now_playing(
        self, message: IncomingMessage, outbox: list[OutgoingMessage]
    ) -> None:
        outbox.append(OutgoingMessage.now_playing(message.aid, await self._player.get_state()))

    async def _handle_lounge_status(
        self, message: IncomingMessage, outbox: list[OutgoingMessage]
    ) -> None:
        nav_info = self._player.get_nav_info()
        outbox.append(OutgoingMessage.on_has_previous_next_changed(message.aid, nav_info))
        outbox.append(
            OutgoingMessage.on_autoplay_mode_changed(message.aid, self._player.autoplay_mode)
        )

    async def _handle_playlist_update(
        self, message: IncomingMessage, outbox: list[OutgoingMessage]
    ) -> None:
        self.logger.log(
            VERBOSE_LOG_LEVEL, "'%s' message payload: %s", message.name, message.payload
        )
        queue = self._player.queue
        before = queue.get_state()
        nav_before = self._player.get_nav_info()
        await queue.update_by_message(message)
        after = queue.get_state()
        nav_after = self._player.get_nav_info()

        autoplay_after = after.autoplay.id if after.autoplay else None
        if (before.autoplay.id if before.autoplay else None) != autoplay_after:
            outbox.append(OutgoingMessage.autoplay_up_next(message.aid, autoplay_after))

        if message.name == IncomingMessageName.SET_PLAYLIST and _video_key(
            before.current
        ) != _video_key(after.current):
            await self._player.stop(message.aid)
            if after.current is not None:
                start_ms = seconds_to_ms(try_parse_int(message.payload.get("currentTime"), 0))
                await self._player.play(after.current, start_ms, message.aid)
        elif message.name == IncomingMessageName.UPDATE_PLAYLIST and after.current is None:
            await self._player.stop(message.aid)
        else:
            outbox.append(OutgoingMessage.now_playing(message.aid, await self._player.get_state()))
            if nav_before != nav_after:
                outbox.append(OutgoingMessage.on_has_previous_next_changed(message.aid, nav_after))

    async def _handle_next(self, message: IncomingMessage, outbox: list[OutgoingMessage]) -> None:
        await self._player.next(message.aid)

    async def _handle_previous(
        self, message: IncomingMessage, outbox: list[OutgoingMessage]
    ) -> None:
        await self._player.previous(message.aid)

    async def _handle_pause(self, message: IncomingMessage, outbox: list[OutgoingMessage]) -> None:
        await self._player.pause(message.aid)

    async def _handle_stop_video(
        self, message: IncomingMessage, outbox: list[OutgoingMessage]
    ) -> None:
        await self._player.stop(message.aid)

    async def _handle_play(self, message: IncomingMessage, outbox: list[OutgoingMessage]) -> None:
        await self._player.resume(message.aid)

    async def _handle_seek_to(
        self, message: IncomingMessage, outbox: list[OutgoingMessage]
    ) -> None:
        await self._player.seek(seconds_to_ms(message.payload.get("newTime")), message.aid)

    async def _handle_get_volume(
        self, message: IncomingMessage, outbox: list[OutgoingMessage]
    ) -> None:
        volume = await self._player.get_volume()
        outbox.append(OutgoingMessage.on_volume_changed(message.aid, volume, unsolicited=False))

    async def _handle_set_volume(
        self, message: IncomingMessage, outbox: list[OutgoingMessage]
    ) -> None:
        level = try_parse_int(message.payload.get("volume"), None)
        if level is None:
            self.logger.warning("Ignoring setVolume without valid volume: %s", message.payload)
            return
        current = await self._player.get_volume()
        muted = current.muted
        if "muted" in message.payload:
            muted = try_parse_bool(message.payload["muted"])
        volume = Volume(level=max(0, min(100, level)), muted=muted)
        if volume == current:
            # equal requests are not acknowledged
            self.logger.debug("Volume unchanged (%s), ignoring setVolume", current)
            return
        await self._player.set_volume(volume, message.aid)

    async def _handle_set_autoplay_mode(
        self, message: IncomingMessage, outbox: list[OutgoingMessage]
    ) -> None:
        raw_mode = str(message.payload.get("autoplayMode", "")).upper()
        try:
            requested = AutoplayMode(raw_mode)
        except ValueError:
            self.logger.warning("Ignoring invalid autoplay mode: %s", raw_mode)
            return
        mode = self._autoplay.on_request(self._senders, requested, self._player.autoplay_mode)
        await self._apply_autoplay_mode(message.aid, mode, outbox)

    async def _apply_autoplay_mode(
        self, aid: int | None, mode: AutoplayMode, outbox: list[OutgoingMessage]
    ) -> None:
        """Set the autoplay mode on the queue and add the resulting notifications."""
        before = self._player.queue.get_state()
        await self._player.queue.set_autoplay_mode(mode)
        after = self._player.queue.get_state()
        outbox.append(OutgoingMessage.on_autoplay_mode_changed(aid, mode))
        autoplay_after = after.autoplay.id if after.autoplay else None
        if (before.autoplay.id if before.autoplay else None) != autoplay_after:
            outbox.append(OutgoingMessage.autoplay_up_next(aid, autoplay_after))

    async def _handle_player_state(self, state_event: PlayerStateEvent) -> None:
        if len(self._senders) == 0:
            self.logger.debug("Ignoring player state event because there is no connected sender.")
            return
        self.logger.log(
            VERBOSE_LOG_LEVEL,
            "Player state changed from: %s to: %s",
            state_event.previous,
            state_event.current,
        )
        messages = get_state_messages(
            state_event.aid,
            state_event.current,
            state_event.previous,
            self._player.get_nav_info(),
        )
        if not messages:
            return
        options = get_send_options(state_event.aid, messages, self.config.volume_debounce_ms)
        await self._batcher.send(messages, options)

    def _parse_sender(
        self, message: IncomingMessage, action: Literal["connect", "disconnect"]
    ) -> Sender:
        """Parse the sender of a remoteConnected or remoteDisconnected message.

        :raises SenderConnectionError: When the payload holds no valid sender.
        """
        try:
            return Sender.parse(message.payload)
        except InvalidDataError as err:
            msg = (
                "Failed to register connected sender"
                if action == "connect"
                else "Failed to unregister disconnected sender"
            )
            raise SenderConnectionError(msg, action) from err

    def _report_sender_error(self, error: SenderConnectionError) -> None:
        self.logger.error("%s: %s", error, error.__cause__)
        self.signal_event(EventType.ERROR, error)

    async def __aenter__(self) -> Self:
        """Return Context manager."""
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool | None:
        """Exit context manager."""
        await self.stop()
        return None


def _video_key(video: Video | None) -> tuple[str, int | None] | None:
    """Return what identifies the current video: its id and position in the playlist."""
    if video is None:
        return None
    return (video.id, video.index)
