"""Structured logging helpers for worker and timer components."""

from __future__ import annotations

from typing import Any

from playdeck.logging_events import log_event


def emit_dispatch_event(
    logger: Any,
    *,
    command: str,
    status: str,
    queued: int | None = None,
) -> None:
    payload: dict[str, Any] = {
        "command": command,
        "status": status,
    }
    if queued is not None:
        payload["queued"] = queued
    _emit_event(logger, "worker.dispatch", payload)


def emit_commit_event(
    logger: Any,
    *,
    command: str,
    status: str,
    duration_ms: int,
    error: str | None = None,
) -> None:
    payload: dict[str, Any] = {
        "command": command,
        "status": status,
        "duration_ms": duration_ms,
    }
    if error:
        payload["error"] = error
    _emit_event(logger, "worker.commit", payload)


def emit_follow_up_event(logger: Any, *, command: str, follow_up: str) -> None:
    _emit_event(
        logger,
        "worker.follow_up",
        {"command": command, "follow_up": follow_up, "status": "queued"},
    )


def emit_timer_event(
    logger: Any,
    *,
    status: str,
    command: str | None = None,
    reason: str | None = None,
) -> None:
    payload: dict[str, Any] = {"status": status}
    if command:
        payload["command"] = command
    if reason:
        payload["reason"] = reason
    _emit_event(logger, "worker.timer_tick", payload)


def _emit_event(logger: Any, event: str, payload: dict[str, Any]) -> None:
    log_event(logger, event, **payload)
