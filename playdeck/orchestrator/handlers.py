"""Command handlers executed by the worker, one per command kind."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from playdeck.config import BehaviorConfig
from playdeck.core import commands as cmd
from playdeck.core.models import Episode, Track
from playdeck.core.pages import Page
from playdeck.core.remote import RemoteClient
from playdeck.logging import get_logger
from playdeck.orchestrator import events as worker_events
from playdeck.state import Collection, Resource, SharedState

logger = get_logger(__name__)

CommandHandler = Callable[[Any], Awaitable[None]]


@dataclass(slots=True)
class HandlerDeps:
    """Bundle the collaborators every command handler needs."""

    remote: RemoteClient
    state: SharedState
    behavior: BehaviorConfig
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    @property
    def page_limit(self) -> int:
        return self.behavior.library_page_limit


def _follow_up(deps: HandlerDeps, source: cmd.Command, follow_up: cmd.Command) -> None:
    worker_events.emit_follow_up_event(logger, command=source.name, follow_up=follow_up.name)
    deps.state.dispatch(follow_up)


def _unique(ids: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(item_id for item_id in ids if item_id))


def _check_tracks(deps: HandlerDeps, source: cmd.Command, tracks: Iterable[Any]) -> None:
    ids = _unique(item.id for item in tracks if isinstance(item, Track))
    if ids:
        _follow_up(deps, source, cmd.SavedTracksContains(track_ids=ids))


# playback


async def handle_get_current_playback(command: cmd.Command, deps: HandlerDeps) -> None:
    snapshot = await deps.remote.current_playback()
    deps.state.set_playback(snapshot)
    item = snapshot.item if snapshot is not None else None
    if isinstance(item, Track):
        _follow_up(deps, command, cmd.SavedTracksContains(track_ids=(item.id,)))
    elif isinstance(item, Episode) and item.show is not None:
        _follow_up(deps, command, cmd.SavedShowsContains(show_ids=(item.show.id,)))


async def handle_start_playback(command: cmd.StartPlayback, deps: HandlerDeps) -> None:
    await deps.remote.start_playback(
        device_id=deps.state.active_device_id,
        context_uri=command.context_uri,
        uris=command.uris or None,
        offset=command.offset,
    )
    deps.state.reset_progress()
    _follow_up(deps, command, cmd.GetCurrentPlayback())


async def handle_add_to_queue(command: cmd.AddToQueue, deps: HandlerDeps) -> None:
    await deps.remote.add_to_queue(command.uri, device_id=deps.state.active_device_id)


async def handle_pause(command: cmd.PausePlayback, deps: HandlerDeps) -> None:
    await deps.remote.pause(device_id=deps.state.active_device_id)
    deps.state.update_playback(is_playing=False)
    _follow_up(deps, command, cmd.GetCurrentPlayback())


async def handle_resume(command: cmd.ResumePlayback, deps: HandlerDeps) -> None:
    await deps.remote.resume(device_id=deps.state.active_device_id)
    deps.state.update_playback(is_playing=True)
    _follow_up(deps, command, cmd.GetCurrentPlayback())


async def handle_next_track(command: cmd.NextTrack, deps: HandlerDeps) -> None:
    await deps.remote.next_track(device_id=deps.state.active_device_id)
    _follow_up(deps, command, cmd.GetCurrentPlayback())


async def handle_previous_track(command: cmd.PreviousTrack, deps: HandlerDeps) -> None:
    await deps.remote.previous_track(device_id=deps.state.active_device_id)
    _follow_up(deps, command, cmd.GetCurrentPlayback())


async def handle_seek(command: cmd.Seek, deps: HandlerDeps) -> None:
    await deps.remote.seek(command.position_ms, device_id=deps.state.active_device_id)
    # The service reports the old position for a moment after seeking.
    await deps.sleep(deps.behavior.seek_settle_ms / 1000.0)
    await handle_get_current_playback(command, deps)


async def handle_change_volume(command: cmd.ChangeVolume, deps: HandlerDeps) -> None:
    await deps.remote.set_volume(command.volume_percent, device_id=deps.state.active_device_id)
    deps.state.set_volume(command.volume_percent)


async def handle_toggle_shuffle(command: cmd.ToggleShuffle, deps: HandlerDeps) -> None:
    playback = deps.state.playback
    target = not (playback.shuffle_state if playback is not None else False)
    await deps.remote.set_shuffle(target, device_id=deps.state.active_device_id)
    deps.state.set_shuffle(target)


async def handle_cycle_repeat(command: cmd.CycleRepeat, deps: HandlerDeps) -> None:
    target = command.current.next()
    await deps.remote.set_repeat(target, device_id=deps.state.active_device_id)
    deps.state.set_repeat(target)


async def handle_transfer_playback(command: cmd.TransferPlayback, deps: HandlerDeps) -> None:
    await deps.remote.transfer_playback(command.device_id)
    deps.state.set_active_device(command.device_id)
    _follow_up(deps, command, cmd.GetCurrentPlayback())


# library


async def handle_get_user(command: cmd.GetUser, deps: HandlerDeps) -> None:
    deps.state.set_user(await deps.remote.current_user())


async def handle_get_playlists(command: cmd.GetPlaylists, deps: HandlerDeps) -> None:
    page = await deps.remote.playlists(offset=command.offset, limit=deps.page_limit)
    deps.state.set_playlists(page)


async def handle_get_devices(command: cmd.GetDevices, deps: HandlerDeps) -> None:
    deps.state.set_devices(await deps.remote.devices())


async def handle_get_saved_tracks(command: cmd.GetSavedTracks, deps: HandlerDeps) -> None:
    page = await deps.remote.saved_tracks(offset=command.offset, limit=deps.page_limit)
    deps.state.append_page(Resource.SAVED_TRACKS, page)
    # Every track in this collection is liked by definition.
    ids = [track.id for track in page.items]
    deps.state.update_membership(Collection.LIKED_TRACKS, ids, [True] * len(ids))


async def handle_get_saved_albums(command: cmd.GetSavedAlbums, deps: HandlerDeps) -> None:
    page = await deps.remote.saved_albums(offset=command.offset, limit=deps.page_limit)
    if not page.items:
        return
    deps.state.append_page(Resource.SAVED_ALBUMS, page)
    ids = [album.id for album in page.items]
    deps.state.update_membership(Collection.SAVED_ALBUMS, ids, [True] * len(ids))


async def handle_get_saved_shows(command: cmd.GetSavedShows, deps: HandlerDeps) -> None:
    page = await deps.remote.saved_shows(offset=command.offset, limit=deps.page_limit)
    if not page.items:
        return
    deps.state.append_page(Resource.SAVED_SHOWS, page)
    ids = [show.id for show in page.items]
    deps.state.update_membership(Collection.SAVED_SHOWS, ids, [True] * len(ids))


async def handle_get_followed_artists(
    command: cmd.GetFollowedArtists, deps: HandlerDeps
) -> None:
    page = await deps.remote.followed_artists(after=command.after, limit=deps.page_limit)
    if not page.items:
        return
    deps.state.append_page(Resource.FOLLOWED_ARTISTS, page)
    ids = [artist.id for artist in page.items]
    deps.state.update_membership(Collection.FOLLOWED_ARTISTS, ids, [True] * len(ids))


def _store_owned_page(
    deps: HandlerDeps, resource: Resource, owner: str, offset: int, page: Page[Any]
) -> bool:
    """Cache ``page`` unless another owner's listing replaced it while in flight."""

    state = deps.state
    with state.locked():
        if offset == 0:
            state.reset_pages(resource, owner=owner)
        elif state.page_owner(resource) != owner:
            logger.info("Dropping stale %s page for %s", resource.value, owner)
            return False
        state.append_page(resource, page)
    return True


async def handle_get_show_episodes(command: cmd.GetShowEpisodes, deps: HandlerDeps) -> None:
    page = await deps.remote.show_episodes(
        command.show_id, offset=command.offset, limit=deps.page_limit
    )
    _store_owned_page(deps, Resource.SHOW_EPISODES, command.show_id, command.offset, page)


async def handle_get_playlist_items(command: cmd.GetPlaylistItems, deps: HandlerDeps) -> None:
    page = await deps.remote.playlist_items(
        command.playlist_id, offset=command.offset, limit=deps.page_limit
    )
    if _store_owned_page(
        deps, Resource.PLAYLIST_ITEMS, command.playlist_id, command.offset, page
    ):
        _check_tracks(deps, command, page.items)


async def handle_get_album_tracks(command: cmd.GetAlbumTracks, deps: HandlerDeps) -> None:
    page = await deps.remote.album_tracks(command.album_id)
    deps.state.set_album_tracks(page)
    _check_tracks(deps, command, page.items)


async def handle_get_artist(command: cmd.GetArtist, deps: HandlerDeps) -> None:
    user = deps.state.user
    detail = await deps.remote.artist(
        command.artist_id, country=user.country if user is not None and user.country else None
    )
    deps.state.set_artist_detail(detail)
    _follow_up(deps, command, cmd.FollowedArtistsContains(artist_ids=(command.artist_id,)))
    album_ids = _unique(album.id for album in detail.albums.items)
    if album_ids:
        _follow_up(deps, command, cmd.SavedAlbumsContains(album_ids=album_ids))
    _check_tracks(deps, command, detail.top_tracks)


async def handle_search(command: cmd.Search, deps: HandlerDeps) -> None:
    large, small = deps.state.search_limits
    results = await deps.remote.search(command.term, large_limit=large, small_limit=small)
    deps.state.set_search_results(results)
    _check_tracks(deps, command, results.tracks.items)
    album_ids = _unique(album.id for album in results.albums.items)
    if album_ids:
        _follow_up(deps, command, cmd.SavedAlbumsContains(album_ids=album_ids))
    artist_ids = _unique(artist.id for artist in results.artists.items)
    if artist_ids:
        _follow_up(deps, command, cmd.FollowedArtistsContains(artist_ids=artist_ids))


async def handle_update_search_limits(
    command: cmd.UpdateSearchLimits, deps: HandlerDeps
) -> None:
    deps.state.set_search_limits(command.large, command.small)


# membership


async def handle_toggle_save_track(command: cmd.ToggleSaveTrack, deps: HandlerDeps) -> None:
    flags = await deps.remote.saved_tracks_contains([command.track_id])
    if flags and flags[0]:
        await deps.remote.remove_saved_tracks([command.track_id])
        deps.state.remove_member(Collection.LIKED_TRACKS, command.track_id)
    else:
        await deps.remote.save_tracks([command.track_id])
        deps.state.add_member(Collection.LIKED_TRACKS, command.track_id)


async def handle_saved_tracks_contains(
    command: cmd.SavedTracksContains, deps: HandlerDeps
) -> None:
    flags = await deps.remote.saved_tracks_contains(command.track_ids)
    deps.state.update_membership(Collection.LIKED_TRACKS, command.track_ids, flags)


async def handle_saved_albums_contains(
    command: cmd.SavedAlbumsContains, deps: HandlerDeps
) -> None:
    flags = await deps.remote.saved_albums_contains(command.album_ids)
    deps.state.update_membership(Collection.SAVED_ALBUMS, command.album_ids, flags)


async def handle_saved_shows_contains(
    command: cmd.SavedShowsContains, deps: HandlerDeps
) -> None:
    flags = await deps.remote.saved_shows_contains(command.show_ids)
    deps.state.update_membership(Collection.SAVED_SHOWS, command.show_ids, flags)


async def handle_followed_artists_contains(
    command: cmd.FollowedArtistsContains, deps: HandlerDeps
) -> None:
    flags = await deps.remote.following_artists(command.artist_ids)
    deps.state.update_membership(Collection.FOLLOWED_ARTISTS, command.artist_ids, flags)


async def handle_save_album(command: cmd.SaveAlbum, deps: HandlerDeps) -> None:
    await deps.remote.save_albums([command.album_id])
    deps.state.add_member(Collection.SAVED_ALBUMS, command.album_id)


async def handle_unsave_album(command: cmd.UnsaveAlbum, deps: HandlerDeps) -> None:
    await deps.remote.remove_saved_albums([command.album_id])
    deps.state.remove_member(Collection.SAVED_ALBUMS, command.album_id)


async def handle_follow_artist(command: cmd.FollowArtist, deps: HandlerDeps) -> None:
    await deps.remote.follow_artists([command.artist_id])
    deps.state.add_member(Collection.FOLLOWED_ARTISTS, command.artist_id)


async def handle_unfollow_artist(command: cmd.UnfollowArtist, deps: HandlerDeps) -> None:
    await deps.remote.unfollow_artists([command.artist_id])
    deps.state.remove_member(Collection.FOLLOWED_ARTISTS, command.artist_id)


async def handle_save_show(command: cmd.SaveShow, deps: HandlerDeps) -> None:
    await deps.remote.save_shows([command.show_id])
    deps.state.add_member(Collection.SAVED_SHOWS, command.show_id)


async def handle_unsave_show(command: cmd.UnsaveShow, deps: HandlerDeps) -> None:
    await deps.remote.remove_saved_shows([command.show_id])
    deps.state.remove_member(Collection.SAVED_SHOWS, command.show_id)


async def handle_refresh_authentication(
    command: cmd.RefreshAuthentication, deps: HandlerDeps
) -> None:
    deps.state.set_token_expiry(await deps.remote.refresh_authentication())


_HANDLERS: Mapping[type[cmd.Command], Callable[[Any, HandlerDeps], Awaitable[None]]] = {
    cmd.GetCurrentPlayback: handle_get_current_playback,
    cmd.StartPlayback: handle_start_playback,
    cmd.AddToQueue: handle_add_to_queue,
    cmd.PausePlayback: handle_pause,
    cmd.ResumePlayback: handle_resume,
    cmd.NextTrack: handle_next_track,
    cmd.PreviousTrack: handle_previous_track,
    cmd.Seek: handle_seek,
    cmd.ChangeVolume: handle_change_volume,
    cmd.ToggleShuffle: handle_toggle_shuffle,
    cmd.CycleRepeat: handle_cycle_repeat,
    cmd.TransferPlayback: handle_transfer_playback,
    cmd.GetUser: handle_get_user,
    cmd.GetPlaylists: handle_get_playlists,
    cmd.GetDevices: handle_get_devices,
    cmd.GetSavedTracks: handle_get_saved_tracks,
    cmd.GetSavedAlbums: handle_get_saved_albums,
    cmd.GetSavedShows: handle_get_saved_shows,
    cmd.GetFollowedArtists: handle_get_followed_artists,
    cmd.GetShowEpisodes: handle_get_show_episodes,
    cmd.GetPlaylistItems: handle_get_playlist_items,
    cmd.GetAlbumTracks: handle_get_album_tracks,
    cmd.GetArtist: handle_get_artist,
    cmd.Search: handle_search,
    cmd.UpdateSearchLimits: handle_update_search_limits,
    cmd.ToggleSaveTrack: handle_toggle_save_track,
    cmd.SavedTracksContains: handle_saved_tracks_contains,
    cmd.SavedAlbumsContains: handle_saved_albums_contains,
    cmd.SavedShowsContains: handle_saved_shows_contains,
    cmd.FollowedArtistsContains: handle_followed_artists_contains,
    cmd.SaveAlbum: handle_save_album,
    cmd.UnsaveAlbum: handle_unsave_album,
    cmd.FollowArtist: handle_follow_artist,
    cmd.UnfollowArtist: handle_unfollow_artist,
    cmd.SaveShow: handle_save_show,
    cmd.UnsaveShow: handle_unsave_show,
    cmd.RefreshAuthentication: handle_refresh_authentication,
}


def build_handlers(deps: HandlerDeps) -> dict[type[cmd.Command], CommandHandler]:
    """Return the worker handler mapping bound to ``deps``."""

    def _bind(
        handler: Callable[[Any, HandlerDeps], Awaitable[None]],
    ) -> CommandHandler:
        async def _handler(command: cmd.Command) -> None:
            await handler(command, deps)

        return _handler

    return {command_type: _bind(handler) for command_type, handler in _HANDLERS.items()}


__all__ = ["CommandHandler", "HandlerDeps", "build_handlers"]
