"""Non-interactive command line mode.

Every subcommand is turned into one or more commands that run through the
same worker logic as the terminal UI. Each command, including the follow-ups
it enqueues, finishes before the next one starts.
"""

from __future__ import annotations

import argparse
from collections.abc import Callable, Sequence
import random
import re
from typing import Any

from playdeck.config import BehaviorConfig
from playdeck.core import commands as cmd
from playdeck.core.models import (
    Album,
    Artist,
    Device,
    Episode,
    PlaybackSnapshot,
    Playlist,
    Show,
    Track,
)
from playdeck.errors import CommandFailedError, InvalidInputError
from playdeck.logging import get_logger
from playdeck.orchestrator.worker import Worker
from playdeck.state import Collection, Resource, SharedState
from playdeck.ui import actions
from playdeck.ui.render import playback_flags, playing_icon
from playdeck.utils.time import format_progress

logger = get_logger(__name__)

DEFAULT_STATUS_FORMAT = "%f %s %t - %a"
_PLACEHOLDER = re.compile(r"%([a-z])")

SEARCH_TYPES = ("track", "artist", "album", "playlist", "show")

_DEFAULT_ITEM_FORMATS = {
    "track": "%t - %a (%u)",
    "artist": "%a (%u)",
    "album": "%b - %a (%u)",
    "playlist": "%p (%u)",
    "show": "%h (%u)",
    "device": "%v%% %d",
}


def _item_fields(item: Any) -> dict[str, str | None]:
    if isinstance(item, Track):
        return {
            "t": item.name,
            "a": item.artist_names,
            "b": item.album.name if item.album is not None else None,
            "u": item.uri,
        }
    if isinstance(item, Episode):
        return {
            "t": item.name,
            "h": item.show.name if item.show is not None else None,
            "a": item.show.publisher if item.show is not None else None,
            "u": item.uri,
        }
    if isinstance(item, Album):
        return {
            "b": item.name,
            "a": ", ".join(artist.name for artist in item.artists),
            "u": item.uri,
        }
    if isinstance(item, Artist):
        return {"a": item.name, "u": item.uri}
    if isinstance(item, Playlist):
        return {"p": item.name, "u": item.uri}
    if isinstance(item, Show):
        return {"h": item.name, "a": item.publisher, "u": item.uri}
    if isinstance(item, Device):
        volume = str(item.volume_percent) if item.volume_percent is not None else None
        return {"d": item.name, "v": volume}
    return {}


def format_output(
    fmt: str,
    *,
    item: Any = None,
    playback: PlaybackSnapshot | None = None,
    progress_ms: int | None = None,
    liked: bool = False,
    behavior: BehaviorConfig | None = None,
) -> str:
    """Expand ``%x`` placeholders; placeholders with no value become ``None``."""

    fields: dict[str, str | None] = {}
    if playback is not None:
        fields.update(_item_fields(playback.item))
        if playback.device is not None:
            fields.update(_item_fields(playback.device))
        if playback.item is not None:
            position = progress_ms if progress_ms is not None else playback.progress_ms
            fields["r"] = format_progress(position, playback.duration_ms)
        if behavior is not None:
            fields["f"] = playback_flags(playback, liked=liked, behavior=behavior)
            fields["s"] = playing_icon(playback, behavior)
    if item is not None:
        fields.update(_item_fields(item))

    def substitute(match: re.Match[str]) -> str:
        value = fields.get(match.group(1))
        return "None" if value is None else value

    return _PLACEHOLDER.sub(substitute, fmt.replace("%%", "\0")).replace("\0", "%")


class BatchRunner:
    """Run commands one after another, waiting for each and its follow-ups."""

    def __init__(self, state: SharedState, worker: Worker) -> None:
        self._state = state
        self._worker = worker

    @property
    def state(self) -> SharedState:
        return self._state

    async def run(self, command: cmd.Command | None = None) -> None:
        if command is not None:
            self._state.dispatch(command)
        await self._worker.drain()
        error = self._state.api_error
        if error:
            logger.warning("Batch command failed: %s", error)
            raise CommandFailedError(error)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="playdeck", description="Terminal client for Spotify playback"
    )
    parser.add_argument("--config", help="Path to the configuration file")
    subcommands = parser.add_subparsers(dest="subcommand")

    playback = subcommands.add_parser("playback", help="Control or inspect playback")
    playback.add_argument("--toggle", action="store_true", help="Pause or resume playback")
    playback.add_argument("--status", action="store_true", help="Print the current status")
    playback.add_argument("--next", action="count", default=0, help="Skip forward")
    playback.add_argument("--previous", action="count", default=0, help="Skip backward")
    playback.add_argument("--volume", type=int, help="Set the volume (0-100)")
    playback.add_argument("--seek", help="Seek to S seconds, or by +S / -S seconds")
    like = playback.add_mutually_exclusive_group()
    like.add_argument("--like", action="store_true", help="Save the current track")
    like.add_argument("--dislike", action="store_true", help="Remove the current track")
    playback.add_argument("--shuffle", action="store_true", help="Toggle shuffle")
    playback.add_argument("--repeat", action="store_true", help="Cycle the repeat mode")
    playback.add_argument("--transfer", metavar="DEVICE", help="Move playback to DEVICE")
    playback.add_argument("--format", default=DEFAULT_STATUS_FORMAT, help="Status format")

    play = subcommands.add_parser("play", help="Start playing something")
    target = play.add_mutually_exclusive_group(required=True)
    target.add_argument("--uri", help="Play a track, episode or context URI")
    target.add_argument("--name", help="Search by name and play the first result")
    play.add_argument("--queue", action="store_true", help="Queue --uri instead of playing it")
    play.add_argument("--random", action="store_true", help="Pick a random search result")
    _add_type_flags(play)

    listing = subcommands.add_parser("list", help="List devices, playlists or liked songs")
    kind = listing.add_mutually_exclusive_group(required=True)
    kind.add_argument("--devices", action="store_true")
    kind.add_argument("--playlists", action="store_true")
    kind.add_argument("--liked", action="store_true")
    listing.add_argument("--limit", type=int, default=50)
    listing.add_argument("--format")

    search = subcommands.add_parser("search", help="Search the catalogue")
    search.add_argument("query")
    _add_type_flags(search)
    search.add_argument("--limit", type=int, default=10)
    search.add_argument("--format")
    return parser


def _add_type_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    for search_type in SEARCH_TYPES:
        group.add_argument(
            f"--{search_type}",
            dest="type",
            action="store_const",
            const=search_type,
        )
    parser.set_defaults(type="track")


def parse_seek(value: str, *, progress_ms: int, duration_ms: int) -> int:
    """Resolve ``S``, ``+S`` or ``-S`` seconds into an absolute position."""

    text = value.strip()
    try:
        seconds = int(text)
    except ValueError as exc:
        raise InvalidInputError(f"invalid seek value: {value!r}") from exc
    if text[0] in "+-":
        position = progress_ms + seconds * 1000
    else:
        position = seconds * 1000
    return min(max(0, position), duration_ms)


def _results_of_type(state: SharedState, search_type: str) -> tuple[Any, ...]:
    results = state.search_results
    if results is None:
        return ()
    page = {
        "track": results.tracks,
        "artist": results.artists,
        "album": results.albums,
        "playlist": results.playlists,
        "show": results.shows,
    }[search_type]
    return page.items


class BatchCommands:
    """Implement each subcommand on top of :class:`BatchRunner`."""

    def __init__(
        self,
        runner: BatchRunner,
        behavior: BehaviorConfig,
        *,
        out: Callable[[str], None] = print,
        choose: Callable[[Sequence[Any]], Any] = random.choice,
    ) -> None:
        self._runner = runner
        self._state = runner.state
        self._behavior = behavior
        self._out = out
        self._choose = choose

    async def dispatch(self, args: argparse.Namespace) -> None:
        handler = {
            "playback": self.playback,
            "play": self.play,
            "list": self.list_items,
            "search": self.search,
        }[args.subcommand]
        await handler(args)

    async def _refresh(self) -> PlaybackSnapshot | None:
        await self._runner.run(cmd.GetCurrentPlayback())
        return self._state.playback

    async def playback(self, args: argparse.Namespace) -> None:
        state = self._state
        await self._refresh()
        if args.transfer:
            await self._runner.run(cmd.GetDevices())
            device = next(
                (d for d in state.devices if args.transfer in (d.id, d.name)),
                None,
            )
            if device is None:
                raise CommandFailedError(f"no device named {args.transfer!r}")
            await self._runner.run(cmd.TransferPlayback(device_id=device.id))
        if args.toggle:
            actions.toggle_playback(state)
            await self._runner.run()
        for _ in range(args.next):
            await self._runner.run(cmd.NextTrack())
        for _ in range(args.previous):
            await self._runner.run(cmd.PreviousTrack())
        if args.volume is not None:
            volume = min(100, max(0, args.volume))
            await self._runner.run(cmd.ChangeVolume(volume_percent=volume))
        if args.seek is not None:
            playback = state.playback
            if playback is None or playback.item is None:
                raise CommandFailedError("nothing is playing")
            position = parse_seek(
                args.seek,
                progress_ms=playback.progress_ms,
                duration_ms=playback.duration_ms,
            )
            await self._runner.run(cmd.Seek(position_ms=position))
        if args.shuffle:
            await self._runner.run(cmd.ToggleShuffle())
        if args.repeat and state.playback is not None:
            await self._runner.run(cmd.CycleRepeat(current=state.playback.repeat_state))
        if args.like or args.dislike:
            await self._set_liked(liked=args.like)
        if args.status or not _has_playback_action(args):
            playback = await self._refresh()
            if playback is None:
                raise CommandFailedError("no active playback")
            item = playback.item
            liked = state.snapshot().is_liked(item)
            self._out(
                format_output(args.format, playback=playback, liked=liked, behavior=self._behavior)
            )

    async def _set_liked(self, *, liked: bool) -> None:
        playback = self._state.playback
        item = playback.item if playback is not None else None
        if not isinstance(item, Track):
            raise CommandFailedError("the current item is not a track")
        if self._state.contains(Collection.LIKED_TRACKS, item.id) != liked:
            await self._runner.run(cmd.ToggleSaveTrack(track_id=item.id))

    async def play(self, args: argparse.Namespace) -> None:
        if args.uri:
            uri = args.uri
            if args.queue:
                await self._runner.run(cmd.AddToQueue(uri=uri))
            else:
                await self._runner.run(_start_command(uri))
            return
        await self._runner.run(cmd.Search(term=args.name))
        items = _results_of_type(self._state, args.type)
        if not items:
            raise CommandFailedError(f"no {args.type} found for {args.name!r}")
        item = self._choose(items) if args.random else items[0]
        await self._runner.run(_start_command(item.uri))

    async def list_items(self, args: argparse.Namespace) -> None:
        limit = max(1, args.limit)
        if args.devices:
            await self._runner.run(cmd.GetDevices())
            items: Sequence[Any] = self._state.devices
            fmt = args.format or _DEFAULT_ITEM_FORMATS["device"]
        elif args.playlists:
            await self._runner.run(cmd.GetPlaylists())
            items = self._state.playlists.items
            fmt = args.format or _DEFAULT_ITEM_FORMATS["playlist"]
        else:
            await self._runner.run(cmd.GetSavedTracks(offset=0))
            page = self._state.current_page(Resource.SAVED_TRACKS)
            items = page.items if page is not None else ()
            fmt = args.format or _DEFAULT_ITEM_FORMATS["track"]
        for item in items[:limit]:
            self._out(format_output(fmt, item=item))

    async def search(self, args: argparse.Namespace) -> None:
        limit = min(50, max(1, args.limit))
        await self._runner.run(cmd.UpdateSearchLimits(large=limit, small=limit))
        await self._runner.run(cmd.Search(term=args.query))
        fmt = args.format or _DEFAULT_ITEM_FORMATS[args.type]
        for item in _results_of_type(self._state, args.type)[:limit]:
            self._out(format_output(fmt, item=item))


def _has_playback_action(args: argparse.Namespace) -> bool:
    return bool(
        args.toggle
        or args.next
        or args.previous
        or args.volume is not None
        or args.seek is not None
        or args.like
        or args.dislike
        or args.shuffle
        or args.repeat
        or args.transfer
    )


def _start_command(uri: str) -> cmd.StartPlayback:
    if uri.startswith(("spotify:track:", "spotify:episode:")):
        return cmd.StartPlayback(uris=(uri,))
    return cmd.StartPlayback(context_uri=uri)


__all__ = [
    "BatchCommands",
    "BatchRunner",
    "DEFAULT_STATUS_FORMAT",
    "build_parser",
    "format_output",
    "parse_seek",
]
