"""Interactive input/render loop fed by key presses and ticks."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass
import threading
from typing import Any, Protocol

from playdeck.logging import get_logger
from playdeck.orchestrator.timer import PlaybackTimer
from playdeck.state import SharedState, StateSnapshot
from playdeck.ui import actions
from playdeck.ui.keys import KeyHandler, normalize_key

logger = get_logger(__name__)

_KEY_POLL_SECONDS = 0.1


@dataclass(slots=True, frozen=True)
class KeyEvent:
    key: str


@dataclass(slots=True, frozen=True)
class TickEvent:
    pass


Event = KeyEvent | TickEvent


class KeyReader(Protocol):
    def inkey(self, timeout: float | None = None) -> Any: ...


class Screen(Protocol):
    @property
    def size(self) -> tuple[int, int]: ...

    def draw(self, lines: Sequence[str]) -> None: ...


class EventSource:
    """Merge key presses read in a thread with timer ticks into one queue."""

    def __init__(self, reader: KeyReader, *, tick_interval: float) -> None:
        self._reader = reader
        self._tick_interval = tick_interval
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._stop = threading.Event()
        self._tasks: list[asyncio.Task[None]] = []

    async def __aenter__(self) -> EventSource:
        loop = asyncio.get_running_loop()
        self._tasks = [
            asyncio.create_task(asyncio.to_thread(self._read_keys, loop)),
            asyncio.create_task(self._tick()),
        ]
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self._stop.set()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

    async def next(self) -> Event:
        return await self._queue.get()

    def _read_keys(self, loop: asyncio.AbstractEventLoop) -> None:
        while not self._stop.is_set():
            key = self._reader.inkey(timeout=_KEY_POLL_SECONDS)
            if not key:
                continue
            name = normalize_key(key)
            if name is not None:
                loop.call_soon_threadsafe(self._queue.put_nowait, KeyEvent(name))

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            self._queue.put_nowait(TickEvent())


async def run_interactive(
    state: SharedState,
    *,
    timer: PlaybackTimer,
    keys: KeyHandler,
    events: EventSource,
    screen: Screen,
    render: Callable[[StateSnapshot, int, int], list[str]],
) -> None:
    """Run until the user quits; returns normally so the worker can be stopped."""

    actions.first_render(state)

    def draw() -> None:
        width, height = screen.size
        screen.draw(render(state.snapshot(), width, height))

    draw()
    async with events:
        while True:
            event = await events.next()
            if isinstance(event, TickEvent):
                timer.tick()
            elif not keys.handle(event.key):
                logger.info("Leaving interactive mode")
                return
            draw()


__all__ = ["Event", "EventSource", "KeyEvent", "TickEvent", "run_interactive"]
