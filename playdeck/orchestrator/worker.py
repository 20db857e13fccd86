"""Sole consumer of the command channel."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
import time

from playdeck.core import commands as cmd
from playdeck.errors import PlaydeckError, describe_error
from playdeck.logging import get_logger
from playdeck.orchestrator import events as worker_events
from playdeck.orchestrator.channel import CommandChannel
from playdeck.orchestrator.handlers import CommandHandler
from playdeck.state import SharedState

# A failure of any of these leaves no playback result to close the poll cycle.
_PLAYBACK_REFRESH_COMMANDS = (cmd.GetCurrentPlayback, cmd.Seek, cmd.NextTrack)


class Worker:
    """Execute queued commands one at a time, in the order they were sent.

    The loading flag is raised when a command is taken off the channel and
    lowered once its result (or failure) is recorded. Failures never stop the
    loop; they are reported through ``SharedState.handle_error``.
    """

    def __init__(
        self,
        state: SharedState,
        channel: CommandChannel,
        handlers: Mapping[type[cmd.Command], CommandHandler],
    ) -> None:
        self._state = state
        self._channel = channel
        self._handlers = dict(handlers)
        self._logger = get_logger(__name__)
        self._executing: cmd.Command | None = None
        self.started: asyncio.Event = asyncio.Event()
        self.stopped: asyncio.Event = asyncio.Event()
        self.processed = 0

    @property
    def executing(self) -> cmd.Command | None:
        return self._executing

    async def run(self) -> None:
        """Process commands until the channel is closed and drained."""

        self.started.set()
        try:
            while True:
                command = await self._channel.receive()
                if command is None:
                    break
                await self.execute(command)
        finally:
            self.stopped.set()

    def request_stop(self) -> None:
        self._channel.close()

    async def drain(self) -> int:
        """Execute everything already queued, including follow-ups, then return."""

        count = 0
        while True:
            command = self._channel.try_receive()
            if command is None:
                return count
            await self.execute(command)
            count += 1

    async def execute(self, command: cmd.Command) -> bool:
        """Run ``command`` to completion; returns ``False`` when it failed."""

        handler = self._handlers.get(type(command))
        self._executing = command
        self._state.set_loading(True)
        start = time.perf_counter()
        worker_events.emit_dispatch_event(
            self._logger,
            command=command.name,
            status="started",
            queued=len(self._channel),
        )
        try:
            if handler is None:
                self._record_failure(
                    command, start, f"no handler registered for {command.name}", "missing_handler"
                )
                return False
            try:
                await handler(command)
            except PlaydeckError as exc:
                self._record_failure(command, start, exc, "failed")
                return False
            except Exception as exc:
                self._logger.exception("Unexpected error while executing %s", command.name)
                self._record_failure(command, start, exc, "crashed")
                return False
            worker_events.emit_commit_event(
                self._logger,
                command=command.name,
                status="succeeded",
                duration_ms=int((time.perf_counter() - start) * 1000),
            )
            return True
        finally:
            self.processed += 1
            self._executing = None
            self._state.set_loading(False)

    def _record_failure(
        self,
        command: cmd.Command,
        start: float,
        error: BaseException | str,
        status: str,
    ) -> None:
        message = describe_error(error)
        if isinstance(command, _PLAYBACK_REFRESH_COMMANDS):
            self._state.finish_playback_refresh()
        self._state.handle_error(error)
        worker_events.emit_commit_event(
            self._logger,
            command=command.name,
            status=status,
            duration_ms=int((time.perf_counter() - start) * 1000),
            error=message,
        )


__all__ = ["Worker"]
