"""Turn a state snapshot into screen lines and draw them with blessed."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from blessed import Terminal

from playdeck.config import BehaviorConfig, KeyBindings
from playdeck.core.models import (
    Album,
    Artist,
    Device,
    Episode,
    PlaybackSnapshot,
    Playlist,
    RepeatState,
    Show,
    Track,
)
from playdeck.core.navigation import FocusRegion, ViewId
from playdeck.state import Resource, StateSnapshot
from playdeck.ui.actions import LIBRARY_ENTRIES
from playdeck.utils.time import format_duration_ms, format_progress

_VIEW_RESOURCES = {
    ViewId.ALBUM_LIST: Resource.SAVED_ALBUMS,
    ViewId.ARTISTS: Resource.FOLLOWED_ARTISTS,
    ViewId.PODCASTS: Resource.SAVED_SHOWS,
    ViewId.PODCAST_EPISODES: Resource.SHOW_EPISODES,
}

_TITLES = {
    ViewId.ALBUM_LIST: "Albums",
    ViewId.ALBUM_TRACKS: "Album",
    ViewId.ARTIST: "Artist",
    ViewId.ARTISTS: "Artists",
    ViewId.PODCASTS: "Podcasts",
    ViewId.PODCAST_EPISODES: "Episodes",
    ViewId.SEARCH: "Search",
    ViewId.SELECTED_DEVICE: "Devices",
}


def playback_flags(
    playback: PlaybackSnapshot | None, *, liked: bool, behavior: BehaviorConfig
) -> str:
    """Return the shuffle, repeat and liked icons for the play bar."""

    if playback is None:
        return ""
    flags = []
    if playback.shuffle_state:
        flags.append(behavior.shuffle_icon)
    if playback.repeat_state is RepeatState.TRACK:
        flags.append(behavior.repeat_track_icon)
    elif playback.repeat_state is RepeatState.CONTEXT:
        flags.append(behavior.repeat_context_icon)
    if liked:
        flags.append(behavior.liked_icon)
    return "".join(flags)


def playing_icon(playback: PlaybackSnapshot | None, behavior: BehaviorConfig) -> str:
    if playback is not None and playback.is_playing:
        return behavior.playing_icon
    return behavior.paused_icon


def describe_item(item: Any) -> str:
    """One line label for any listable model."""

    if isinstance(item, Track):
        return f"{item.name} - {item.artist_names}  {format_duration_ms(item.duration_ms)}"
    if isinstance(item, Episode):
        released = f"  {item.release_date}" if item.release_date else ""
        return f"{item.name}  {format_duration_ms(item.duration_ms)}{released}"
    if isinstance(item, Album):
        artists = ", ".join(artist.name for artist in item.artists)
        return f"{item.name} - {artists}" if artists else item.name
    if isinstance(item, (Artist, Playlist)):
        return item.name
    if isinstance(item, Show):
        return f"{item.name} - {item.publisher}" if item.publisher else item.name
    if isinstance(item, Device):
        active = " (active)" if item.is_active else ""
        return f"{item.name} [{item.type}]{active}"
    if isinstance(item, tuple) and item:
        return str(item[0])
    return str(item)


def _list_lines(items: Sequence[Any], selected: int | None, *, focused: bool = True) -> list[str]:
    if not items:
        return ["  (empty)"]
    lines = []
    for index, item in enumerate(items):
        marker = ">" if focused and index == selected else " "
        lines.append(f"{marker} {describe_item(item)}")
    return lines


def _play_bar(snapshot: StateSnapshot, behavior: BehaviorConfig) -> list[str]:
    playback = snapshot.playback
    if playback is None or playback.item is None:
        return ["No playback"]
    item = playback.item
    if isinstance(item, Track):
        title = f"{item.name} - {item.artist_names}"
    else:
        title = f"{item.name} - {item.show.name}" if item.show is not None else item.name
    progress = snapshot.seek_ms if snapshot.seek_ms is not None else snapshot.song_progress_ms
    device = playback.device
    volume = (
        f"  {device.name} {device.volume_percent}%"
        if device is not None and device.volume_percent is not None
        else ""
    )
    flags = playback_flags(playback, liked=snapshot.is_liked(item), behavior=behavior)
    return [
        f"{playing_icon(playback, behavior)} {title} {flags}".rstrip(),
        f"{format_progress(progress, playback.duration_ms)}{volume}",
    ]


def _home(snapshot: StateSnapshot) -> list[str]:
    focus = snapshot.route.active_block
    library_focused = focus is not FocusRegion.MY_PLAYLISTS
    lines = ["Library"]
    lines.extend(
        _list_lines(LIBRARY_ENTRIES, snapshot.selected_item_index, focused=library_focused)
    )
    lines.append("")
    lines.append("Playlists")
    lines.extend(
        _list_lines(
            snapshot.playlists,
            snapshot.selected_playlist_index,
            focused=not library_focused,
        )
    )
    return lines


def _body(snapshot: StateSnapshot, bindings: KeyBindings | None) -> list[str]:
    route = snapshot.route
    view = route.id
    selected = snapshot.selected_item_index
    if view is ViewId.ERROR:
        back_key = bindings.key_for("back") if bindings is not None else "q"
        return ["Error", "", snapshot.api_error, "", f"Press {back_key} to go back"]
    if view is ViewId.HOME:
        return _home(snapshot)
    if view is ViewId.DIALOG and route.active_block is FocusRegion.HELP_MENU:
        table = bindings.bindings if bindings is not None else {}
        return ["Help", ""] + [f"  {key:<10} {action}" for action, key in table.items()]
    if view is ViewId.SELECTED_DEVICE:
        return [_TITLES[view]] + _list_lines(snapshot.devices, snapshot.selected_device_index)
    if view is ViewId.ITEM_TABLE:
        page = snapshot.pages.get(snapshot.item_table_source)
        return _page_lines("Songs", page, selected)
    if view is ViewId.ALBUM_TRACKS:
        return _page_lines(_TITLES[view], snapshot.album_tracks, selected)
    if view is ViewId.ARTIST:
        detail = snapshot.artist_detail
        if detail is None:
            return [_TITLES[view], "  (loading)"]
        items = detail.top_tracks + detail.albums.items
        return [detail.artist.name] + _list_lines(items, selected)
    if view is ViewId.SEARCH:
        return _search(snapshot)
    resource = _VIEW_RESOURCES.get(view)
    if resource is not None:
        return _page_lines(_TITLES[view], snapshot.pages.get(resource), selected)
    return []


def _page_lines(title: str, page: Any, selected: int) -> list[str]:
    if page is None:
        return [title, "  (loading)"]
    header = f"{title} ({page.offset + 1}-{page.offset + len(page.items)} of {page.total})"
    return [header] + _list_lines(page.items, selected)


def _search(snapshot: StateSnapshot) -> list[str]:
    focus = snapshot.route.active_block
    cursor = "_" if focus is FocusRegion.INPUT else ""
    lines = [f"Search: {snapshot.input_text}{cursor}", ""]
    results = snapshot.search_results
    if results is None:
        return lines
    items = (
        results.tracks.items
        + results.artists.items
        + results.albums.items
        + results.playlists.items
        + results.shows.items
    )
    lines.extend(
        _list_lines(
            items,
            snapshot.selected_item_index,
            focused=focus is FocusRegion.SEARCH_RESULT_BLOCK,
        )
    )
    return lines


def _visible(body: list[str], room: int) -> list[str]:
    """Cut ``body`` to ``room`` lines, scrolling so the selected row stays on screen."""

    if len(body) <= room:
        return body
    selected = next((index for index, line in enumerate(body) if line.startswith(">")), 0)
    if selected < room:
        return body[:room]
    if room < 2:
        return [body[selected]][:room]
    return [body[0]] + body[selected - room + 2 : selected + 1]


def render(
    snapshot: StateSnapshot,
    behavior: BehaviorConfig,
    *,
    bindings: KeyBindings | None = None,
    width: int = 80,
    height: int = 24,
) -> list[str]:
    """Lay out ``snapshot`` as at most ``height`` lines of ``width`` characters."""

    user = (snapshot.user.display_name or snapshot.user.id) if snapshot.user else ""
    loading = " ..." if snapshot.is_loading else ""
    header = f"playdeck {user}".rstrip() + loading
    footer = _play_bar(snapshot, behavior)
    room = max(0, height - len(footer) - 2)
    body = _visible(_body(snapshot, bindings), room)
    body.extend([""] * (room - len(body)))
    lines = [header, ""] + body + footer
    return [line[:width] for line in lines[:height]]


class TerminalScreen:
    """Full screen writer around a blessed :class:`~blessed.Terminal`."""

    def __init__(self, terminal: Terminal | None = None) -> None:
        self.terminal = terminal or Terminal()

    @property
    def size(self) -> tuple[int, int]:
        return self.terminal.width, self.terminal.height

    def draw(self, lines: Sequence[str]) -> None:
        term = self.terminal
        output = [term.home + term.clear]
        for row, line in enumerate(lines):
            output.append(term.move_xy(0, row) + line)
        print("".join(output), end="", flush=True)


__all__ = [
    "TerminalScreen",
    "describe_item",
    "playback_flags",
    "playing_icon",
    "render",
]
