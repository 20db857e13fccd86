from __future__ import annotations

import asyncio
import threading

import pytest

from playdeck.config import KeyBindings
from playdeck.orchestrator.timer import PlaybackTimer
from playdeck.ui.keys import KeyHandler
from playdeck.ui.loop import EventSource, KeyEvent, run_interactive

from tests.helpers import build_stack, drain_names, make_behavior


class _ScriptedReader:
    def __init__(self, keys: list[str]) -> None:
        self._keys = list(keys)
        self._lock = threading.Lock()

    def inkey(self, timeout: float | None = None) -> str:
        with self._lock:
            if self._keys:
                return self._keys.pop(0)
        threading.Event().wait(timeout or 0)
        return ""


class _RecordingScreen:
    def __init__(self) -> None:
        self.frames: list[list[str]] = []

    @property
    def size(self) -> tuple[int, int]:
        return 60, 12

    def draw(self, lines) -> None:
        self.frames.append(list(lines))


@pytest.mark.asyncio
async def test_event_source_yields_keys_and_ticks() -> None:
    source = EventSource(_ScriptedReader(["x", "\r"]), tick_interval=0.01)
    keys: list[str] = []
    ticks = 0

    async with source:
        while len(keys) < 2 or not ticks:
            event = await asyncio.wait_for(source.next(), timeout=2)
            if isinstance(event, KeyEvent):
                keys.append(event.key)
            else:
                ticks += 1

    assert keys == ["x", "enter"]


@pytest.mark.asyncio
async def test_interactive_loop_renders_until_quit() -> None:
    state, channel, _worker, _remote = build_stack()
    behavior = make_behavior()
    screen = _RecordingScreen()
    rendered = []

    def _render(snapshot, width, height):
        rendered.append((width, height))
        return [snapshot.route.id.value]

    await asyncio.wait_for(
        run_interactive(
            state,
            timer=PlaybackTimer(state, behavior=behavior),
            keys=KeyHandler(state, behavior=behavior, bindings=KeyBindings()),
            events=EventSource(_ScriptedReader(["?", "q", "q"]), tick_interval=0.05),
            screen=screen,
            render=_render,
        ),
        timeout=5,
    )

    assert drain_names(channel)[:3] == ["GetPlaylists", "GetUser", "GetCurrentPlayback"]
    assert ["dialog"] in screen.frames
    assert screen.frames[-1] == ["home"]
    assert rendered[0] == (60, 12)
