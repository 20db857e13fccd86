"""User actions: read shared state, mutate navigation, dispatch commands.

None of these functions wait for a command's result. Acting on an item that
is no longer present (for example after a list was refreshed) does nothing.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from playdeck.core import commands as cmd
from playdeck.core.models import Album, Artist, Episode, Playlist, Show, Track
from playdeck.core.navigation import FocusRegion, ViewId
from playdeck.core.pages import Page
from playdeck.state import Collection, Resource, SharedState

PREVIOUS_TRACK_RESTART_THRESHOLD_MS = 3_000


def first_render(state: SharedState) -> None:
    state.dispatch(cmd.GetPlaylists())
    state.dispatch(cmd.GetUser())
    state.dispatch(cmd.GetCurrentPlayback())


# playback


def toggle_playback(state: SharedState) -> None:
    playback = state.playback
    if playback is not None and playback.is_playing:
        state.dispatch(cmd.PausePlayback())
    else:
        state.dispatch(cmd.ResumePlayback())


def _seek_base(state: SharedState) -> int:
    pending = state.seek_ms
    return pending if pending is not None else state.song_progress_ms


def seek_forwards(state: SharedState, seek_milliseconds: int) -> int | None:
    """Move the pending seek position forward; applied on the next poll."""

    playback = state.playback
    if playback is None or playback.item is None:
        return None
    position = min(_seek_base(state) + seek_milliseconds, playback.duration_ms)
    state.set_seek_ms(position)
    return position


def seek_backwards(state: SharedState, seek_milliseconds: int) -> int | None:
    playback = state.playback
    if playback is None or playback.item is None:
        return None
    position = max(0, _seek_base(state) - seek_milliseconds)
    state.set_seek_ms(position)
    return position


def _change_volume(state: SharedState, delta: int) -> int | None:
    playback = state.playback
    if playback is None or playback.device is None:
        return None
    current = playback.device.volume_percent
    if current is None:
        return None
    target = min(100, max(0, current + delta))
    if target == current:
        return None
    state.dispatch(cmd.ChangeVolume(volume_percent=target))
    return target


def increase_volume(state: SharedState, increment: int) -> int | None:
    return _change_volume(state, increment)


def decrease_volume(state: SharedState, increment: int) -> int | None:
    return _change_volume(state, -increment)


def previous_track(state: SharedState) -> None:
    if state.song_progress_ms >= PREVIOUS_TRACK_RESTART_THRESHOLD_MS:
        state.dispatch(cmd.Seek(position_ms=0))
    else:
        state.dispatch(cmd.PreviousTrack())


def next_track(state: SharedState) -> None:
    state.dispatch(cmd.NextTrack())


def toggle_shuffle(state: SharedState) -> None:
    if state.playback is None:
        return
    state.dispatch(cmd.ToggleShuffle())


def cycle_repeat(state: SharedState) -> None:
    playback = state.playback
    if playback is None:
        return
    state.dispatch(cmd.CycleRepeat(current=playback.repeat_state))


def toggle_like_current(state: SharedState) -> None:
    playback = state.playback
    item = playback.item if playback is not None else None
    if isinstance(item, Track):
        state.dispatch(cmd.ToggleSaveTrack(track_id=item.id))
    elif isinstance(item, Episode) and item.show is not None:
        if state.contains(Collection.SAVED_SHOWS, item.show.id):
            state.dispatch(cmd.UnsaveShow(show_id=item.show.id))
        else:
            state.dispatch(cmd.SaveShow(show_id=item.show.id))


# devices


def open_devices(state: SharedState) -> None:
    state.dispatch(cmd.GetDevices())


def transfer_to_selected_device(state: SharedState) -> None:
    device = state.selected_device()
    if device is None:
        return
    state.dispatch(cmd.TransferPlayback(device_id=device.id))
    state.pop_route()


# pagination


def _next_offset(page: Page[Any]) -> int:
    return page.next_offset


_FETCHERS: dict[Resource, Callable[[Page[Any], str | None], cmd.Command | None]] = {
    Resource.SAVED_TRACKS: lambda page, _owner: cmd.GetSavedTracks(offset=_next_offset(page)),
    Resource.SAVED_ALBUMS: lambda page, _owner: cmd.GetSavedAlbums(offset=_next_offset(page)),
    Resource.SAVED_SHOWS: lambda page, _owner: cmd.GetSavedShows(offset=_next_offset(page)),
    Resource.FOLLOWED_ARTISTS: lambda page, _owner: (
        cmd.GetFollowedArtists(after=page.next_cursor) if page.next_cursor else None
    ),
    Resource.SHOW_EPISODES: lambda page, owner: (
        cmd.GetShowEpisodes(show_id=owner, offset=_next_offset(page)) if owner else None
    ),
    Resource.PLAYLIST_ITEMS: lambda page, owner: (
        cmd.GetPlaylistItems(playlist_id=owner, offset=_next_offset(page)) if owner else None
    ),
}


def next_page(state: SharedState, resource: Resource) -> cmd.Command | None:
    """Show the next page: from cache when visited before, otherwise fetch it.

    Returns the fetch command when one was dispatched.
    """

    if state.advance_page(resource) is not None:
        return None
    current = state.current_page(resource)
    if current is None or not current.has_more:
        return None
    command = _FETCHERS[resource](current, state.page_owner(resource))
    if command is not None:
        state.dispatch(command)
    return command


def previous_page(state: SharedState, resource: Resource) -> None:
    state.retreat_page(resource)


def next_saved_tracks_page(state: SharedState) -> cmd.Command | None:
    return next_page(state, Resource.SAVED_TRACKS)


def previous_saved_tracks_page(state: SharedState) -> None:
    previous_page(state, Resource.SAVED_TRACKS)


def next_saved_albums_page(state: SharedState) -> cmd.Command | None:
    return next_page(state, Resource.SAVED_ALBUMS)


def previous_saved_albums_page(state: SharedState) -> None:
    previous_page(state, Resource.SAVED_ALBUMS)


def next_saved_shows_page(state: SharedState) -> cmd.Command | None:
    return next_page(state, Resource.SAVED_SHOWS)


def previous_saved_shows_page(state: SharedState) -> None:
    previous_page(state, Resource.SAVED_SHOWS)


def next_followed_artists_page(state: SharedState) -> cmd.Command | None:
    return next_page(state, Resource.FOLLOWED_ARTISTS)


def previous_followed_artists_page(state: SharedState) -> None:
    previous_page(state, Resource.FOLLOWED_ARTISTS)


def next_show_episodes_page(state: SharedState) -> cmd.Command | None:
    return next_page(state, Resource.SHOW_EPISODES)


def previous_show_episodes_page(state: SharedState) -> None:
    previous_page(state, Resource.SHOW_EPISODES)


# library views


def open_saved_tracks(state: SharedState) -> None:
    state.push_route(ViewId.ITEM_TABLE, FocusRegion.ITEM_TABLE)
    state.set_item_table_source(Resource.SAVED_TRACKS)
    if state.cached_page_count(Resource.SAVED_TRACKS) == 0:
        state.dispatch(cmd.GetSavedTracks(offset=0))


def open_saved_albums(state: SharedState) -> None:
    state.push_route(ViewId.ALBUM_LIST, FocusRegion.ALBUM_LIST)
    if state.cached_page_count(Resource.SAVED_ALBUMS) == 0:
        state.dispatch(cmd.GetSavedAlbums(offset=0))


def open_followed_artists(state: SharedState) -> None:
    state.push_route(ViewId.ARTISTS, FocusRegion.ARTISTS)
    if state.cached_page_count(Resource.FOLLOWED_ARTISTS) == 0:
        state.dispatch(cmd.GetFollowedArtists(after=None))


def open_saved_shows(state: SharedState) -> None:
    state.push_route(ViewId.PODCASTS, FocusRegion.PODCASTS)
    if state.cached_page_count(Resource.SAVED_SHOWS) == 0:
        state.dispatch(cmd.GetSavedShows(offset=0))


def open_playlist(state: SharedState) -> None:
    playlist = state.selected_playlist()
    if playlist is None:
        return
    state.push_route(ViewId.ITEM_TABLE, FocusRegion.ITEM_TABLE)
    state.set_item_table_source(Resource.PLAYLIST_ITEMS)
    state.dispatch(cmd.GetPlaylistItems(playlist_id=playlist.id, offset=0))


def open_search_input(state: SharedState) -> None:
    state.set_input_text("")
    if not state.push_route(ViewId.SEARCH, FocusRegion.INPUT):
        state.set_active_and_hovered(FocusRegion.INPUT, FocusRegion.INPUT)


def search(state: SharedState, term: str) -> bool:
    query = term.strip()
    if not query:
        return False
    if not state.push_route(ViewId.SEARCH, FocusRegion.SEARCH_RESULT_BLOCK):
        state.set_active_and_hovered(FocusRegion.SEARCH_RESULT_BLOCK, FocusRegion.SEARCH_RESULT_BLOCK)
    state.dispatch(cmd.Search(term=query))
    return True


def back(state: SharedState) -> bool:
    """Leave the current view; ``False`` means there was nothing left to leave."""

    with state.locked():
        popped = state.pop_route()
        if popped is None:
            return False
        if popped.id is ViewId.ERROR:
            state.clear_error()
    return True


# selection


LIBRARY_ENTRIES: tuple[tuple[str, Callable[[SharedState], None]], ...] = (
    ("Liked Songs", open_saved_tracks),
    ("Albums", open_saved_albums),
    ("Artists", open_followed_artists),
    ("Podcasts", open_saved_shows),
)


def toggle_home_panel(state: SharedState) -> None:
    """Switch focus on the home view between the library menu and playlists."""

    route = state.current_route()
    if route.id is not ViewId.HOME:
        return
    if route.active_block is FocusRegion.MY_PLAYLISTS:
        state.set_active_and_hovered(FocusRegion.LIBRARY, FocusRegion.LIBRARY)
    else:
        state.set_active_and_hovered(FocusRegion.MY_PLAYLISTS, FocusRegion.MY_PLAYLISTS)
        if state.selected_playlist_index is None and state.playlists.items:
            state.select_playlist(0)


def _items_in_view(state: SharedState) -> tuple[Any, ...]:
    route = state.current_route()
    if route.active_block is FocusRegion.SELECT_DEVICE:
        return state.devices
    if route.active_block is FocusRegion.MY_PLAYLISTS:
        return state.playlists.items
    if route.id is ViewId.HOME:
        return LIBRARY_ENTRIES
    if route.id is ViewId.ALBUM_TRACKS:
        album_tracks = state.album_tracks
        return album_tracks.items if album_tracks is not None else ()
    if route.id is ViewId.ARTIST:
        detail = state.artist_detail
        return detail.top_tracks + detail.albums.items if detail is not None else ()
    if route.id is ViewId.SEARCH:
        results = state.search_results
        if results is None:
            return ()
        return (
            results.tracks.items
            + results.artists.items
            + results.albums.items
            + results.playlists.items
            + results.shows.items
        )
    resource = resource_in_view(state)
    if resource is None:
        return ()
    page = state.current_page(resource)
    return page.items if page is not None else ()


_RESOURCE_BY_VIEW: dict[ViewId, Resource] = {
    ViewId.ALBUM_LIST: Resource.SAVED_ALBUMS,
    ViewId.ARTISTS: Resource.FOLLOWED_ARTISTS,
    ViewId.PODCASTS: Resource.SAVED_SHOWS,
    ViewId.PODCAST_EPISODES: Resource.SHOW_EPISODES,
}


def resource_in_view(state: SharedState) -> Resource | None:
    """Return the paginated collection shown by the current view, if any."""

    route = state.current_route()
    if route.id is ViewId.ITEM_TABLE:
        return state.item_table_source
    return _RESOURCE_BY_VIEW.get(route.id)


def move_selection(state: SharedState, delta: int) -> None:
    route = state.current_route()
    items = _items_in_view(state)
    if not items:
        return
    if route.active_block is FocusRegion.SELECT_DEVICE:
        current = state.selected_device_index or 0
        state.select_device(min(len(items) - 1, max(0, current + delta)))
        return
    if route.active_block is FocusRegion.MY_PLAYLISTS:
        current = state.selected_playlist_index or 0
        state.select_playlist(min(len(items) - 1, max(0, current + delta)))
        return
    state.select_item(min(len(items) - 1, max(0, state.selected_item_index + delta)))


def activate_selection(state: SharedState) -> None:
    """Act on the highlighted entry of the focused list."""

    route = state.current_route()
    if route.active_block is FocusRegion.SELECT_DEVICE:
        transfer_to_selected_device(state)
        return
    if route.active_block is FocusRegion.MY_PLAYLISTS:
        open_playlist(state)
        return
    items = _items_in_view(state)
    index = state.selected_item_index
    if not 0 <= index < len(items):
        return
    item = items[index]
    if route.id is ViewId.HOME:
        _label, open_view = item
        open_view(state)
    elif isinstance(item, (Track, Episode)):
        uris = tuple(entry.uri for entry in items if isinstance(entry, (Track, Episode)))
        state.dispatch(cmd.StartPlayback(uris=uris, offset=uris.index(item.uri)))
    elif isinstance(item, Album):
        state.dispatch(cmd.GetAlbumTracks(album_id=item.id))
    elif isinstance(item, Artist):
        state.dispatch(cmd.GetArtist(artist_id=item.id))
    elif isinstance(item, Show):
        state.push_route(ViewId.PODCAST_EPISODES, FocusRegion.EPISODE_TABLE)
        state.dispatch(cmd.GetShowEpisodes(show_id=item.id, offset=0))
    elif isinstance(item, Playlist):
        state.dispatch(cmd.StartPlayback(context_uri=item.uri))


__all__ = [
    "LIBRARY_ENTRIES",
    "PREVIOUS_TRACK_RESTART_THRESHOLD_MS",
    "activate_selection",
    "back",
    "cycle_repeat",
    "decrease_volume",
    "first_render",
    "increase_volume",
    "move_selection",
    "next_page",
    "next_followed_artists_page",
    "next_saved_albums_page",
    "next_saved_shows_page",
    "next_saved_tracks_page",
    "next_show_episodes_page",
    "next_track",
    "open_devices",
    "open_followed_artists",
    "open_playlist",
    "open_saved_albums",
    "open_saved_shows",
    "open_saved_tracks",
    "open_search_input",
    "previous_page",
    "previous_followed_artists_page",
    "previous_saved_albums_page",
    "previous_saved_shows_page",
    "previous_saved_tracks_page",
    "previous_show_episodes_page",
    "previous_track",
    "resource_in_view",
    "search",
    "seek_backwards",
    "seek_forwards",
    "toggle_home_panel",
    "toggle_like_current",
    "toggle_playback",
    "toggle_shuffle",
    "transfer_to_selected_device",
]
