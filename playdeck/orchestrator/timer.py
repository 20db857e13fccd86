"""Tick driven playback polling and progress smoothing."""

from __future__ import annotations

from collections.abc import Callable
import time

from playdeck.config import BehaviorConfig
from playdeck.core import commands as cmd
from playdeck.logging import get_logger
from playdeck.orchestrator import events as worker_events
from playdeck.state import SharedState


def _coerce_interval(value: float | int | str | None, default: float) -> float:
    if value is None:
        return default
    try:
        resolved = float(value)
    except (TypeError, ValueError):
        return default
    if resolved < 0:
        return 0.0
    return resolved


class PlaybackTimer:
    """Turn render ticks into playback refresh commands.

    Each :meth:`tick` advances the locally displayed position. A remote refresh
    is dispatched only when the poll interval has elapsed since the previous
    result and no refresh is already in flight. A pending seek takes the place
    of a plain refresh.
    """

    def __init__(
        self,
        state: SharedState,
        *,
        behavior: BehaviorConfig,
        poll_interval_seconds: float | int | str | None = None,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        configured = behavior.playback_poll_interval_ms / 1000.0
        self._state = state
        self._poll_interval = _coerce_interval(
            poll_interval_seconds if poll_interval_seconds is not None else configured,
            configured,
        )
        self._tick_interval = max(0.001, behavior.tick_rate_ms / 1000.0)
        self._wall_clock = wall_clock
        self._logger = get_logger(__name__)

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @property
    def tick_interval(self) -> float:
        return self._tick_interval

    def tick(self) -> cmd.Command | None:
        """Run one tick, returning the refresh command dispatched, if any."""

        self._state.update_on_tick()
        if self._state.claim_token_refresh(self._wall_clock()):
            self._state.dispatch(cmd.RefreshAuthentication())
            worker_events.emit_timer_event(
                self._logger, status="dispatched", command="RefreshAuthentication"
            )

        if not self._state.claim_playback_refresh(self._poll_interval):
            return None
        command = self._refresh_command()
        self._state.dispatch(command)
        worker_events.emit_timer_event(
            self._logger,
            status="dispatched",
            command=command.name,
            reason="seek" if isinstance(command, (cmd.Seek, cmd.NextTrack)) else "poll",
        )
        return command

    def _refresh_command(self) -> cmd.Command:
        seek_ms = self._state.seek_ms
        playback = self._state.playback
        if seek_ms is None or playback is None or playback.item is None:
            return cmd.GetCurrentPlayback()
        if seek_ms < playback.duration_ms:
            return cmd.Seek(position_ms=seek_ms)
        return cmd.NextTrack()


__all__ = ["PlaybackTimer"]
