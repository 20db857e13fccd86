"""Entry point wiring configuration, the worker and the chosen front end."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
import os

from blessed import Terminal

from playdeck.cli import BatchCommands, BatchRunner, build_parser
from playdeck.config import AppConfig, load_config, load_runtime_env, override_runtime_env
from playdeck.core.remote import RemoteClient
from playdeck.core.spotify_client import SpotifyClient
from playdeck.errors import InvalidInputError, PlaydeckError, RemoteCallError
from playdeck.logging import configure_logging, get_logger
from playdeck.orchestrator.channel import CommandChannel
from playdeck.orchestrator.handlers import HandlerDeps, build_handlers
from playdeck.orchestrator.timer import PlaybackTimer
from playdeck.orchestrator.worker import Worker
from playdeck.state import SharedState, StateSnapshot
from playdeck.ui.keys import KeyHandler
from playdeck.ui.loop import EventSource, run_interactive
from playdeck.ui.render import TerminalScreen, render

logger = get_logger(__name__)


@dataclass(slots=True)
class Session:
    state: SharedState
    channel: CommandChannel
    worker: Worker
    timer: PlaybackTimer


def build_session(config: AppConfig, remote: RemoteClient) -> Session:
    channel = CommandChannel()
    behavior = config.behavior
    state = SharedState(
        channel,
        device_id=config.device_id,
        large_search_limit=behavior.large_search_limit,
        small_search_limit=behavior.small_search_limit,
    )
    handlers = build_handlers(HandlerDeps(remote=remote, state=state, behavior=behavior))
    worker = Worker(state, channel, handlers)
    timer = PlaybackTimer(state, behavior=behavior)
    return Session(state=state, channel=channel, worker=worker, timer=timer)


async def run_terminal(session: Session, config: AppConfig) -> None:
    """Run the worker and the UI loop; whichever finishes first ends both."""

    terminal = Terminal()
    keys = KeyHandler(session.state, behavior=config.behavior, bindings=config.keys)

    def draw(snapshot: StateSnapshot, width: int, height: int) -> list[str]:
        return render(snapshot, config.behavior, bindings=config.keys, width=width, height=height)

    worker_task = asyncio.create_task(session.worker.run(), name="worker")
    with terminal.fullscreen(), terminal.cbreak(), terminal.hidden_cursor():
        ui_task = asyncio.create_task(
            run_interactive(
                session.state,
                timer=session.timer,
                keys=keys,
                events=EventSource(terminal, tick_interval=session.timer.tick_interval),
                screen=TerminalScreen(terminal),
                render=draw,
            ),
            name="ui",
        )
        done, pending = await asyncio.wait(
            {worker_task, ui_task}, return_when=asyncio.FIRST_COMPLETED
        )
        session.worker.request_stop()
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
    for task in done:
        task.result()


async def run_batch(session: Session, config: AppConfig, args: argparse.Namespace) -> None:
    runner = BatchRunner(session.state, session.worker)
    await BatchCommands(runner, config.behavior).dispatch(args)


def _cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config:
        override_runtime_env(
            load_runtime_env(base_env={**os.environ, "PLAYDECK_CONFIG_FILE": args.config})
        )
    config = load_config()
    batch = args.subcommand is not None
    configure_logging(config.logging.level, config.logging.log_file, stream=batch)

    if not config.spotify.is_complete:
        parser.error(
            "Spotify credentials are missing; set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET"
        )
    remote = SpotifyClient(config.spotify, config.external)
    try:
        expires_at = asyncio.run(remote.authenticate())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except RemoteCallError as exc:
        logger.error("Spotify auth failed: %s", exc.message)
        print(f"Spotify auth failed: {exc.message}")
        return 1
    session = build_session(config, remote)
    session.state.set_token_expiry(expires_at)

    try:
        if batch:
            asyncio.run(run_batch(session, config, args))
        else:
            asyncio.run(run_terminal(session, config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except PlaydeckError as exc:
        logger.error("%s", exc.message)
        print(f"Error: {exc.message}")
        return 1
    except InvalidInputError as exc:
        print(f"Error: {exc}")
        return 2
    return 0


def main() -> None:
    raise SystemExit(_cli())


if __name__ == "__main__":  # pragma: no cover
    main()
