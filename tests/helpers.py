"""Shared fakes and factories for the playdeck test-suite."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from playdeck.config import BehaviorConfig
from playdeck.core.models import (
    Album,
    Artist,
    ArtistDetail,
    Device,
    Episode,
    PlaybackSnapshot,
    Playlist,
    RepeatState,
    SearchResults,
    Show,
    Track,
    User,
)
from playdeck.core.pages import Page
from playdeck.errors import RemoteCallError
from playdeck.orchestrator.channel import CommandChannel
from playdeck.orchestrator.handlers import HandlerDeps, build_handlers
from playdeck.orchestrator.worker import Worker
from playdeck.state import SharedState


class ManualClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_behavior(**overrides: Any) -> BehaviorConfig:
    behavior = BehaviorConfig.from_env({})
    return replace(behavior, **overrides) if overrides else behavior


def make_track(track_id: str = "t1", *, duration_ms: int = 200_000, name: str | None = None) -> Track:
    return Track(
        id=track_id,
        name=name or f"Track {track_id}",
        uri=f"spotify:track:{track_id}",
        duration_ms=duration_ms,
        artists=(Artist(id=f"ar-{track_id}", name="Artist"),),
        album=Album(id=f"al-{track_id}", name="Album"),
    )


def make_episode(episode_id: str = "e1", *, show_id: str = "s1") -> Episode:
    return Episode(
        id=episode_id,
        name=f"Episode {episode_id}",
        uri=f"spotify:episode:{episode_id}",
        duration_ms=1_800_000,
        show=Show(id=show_id, name="Show", uri=f"spotify:show:{show_id}"),
    )


def make_device(device_id: str = "d1", *, volume: int | None = 50) -> Device:
    return Device(id=device_id, name=f"Device {device_id}", type="Computer", volume_percent=volume)


def make_playback(
    item: Any = None,
    *,
    progress_ms: int = 10_000,
    is_playing: bool = True,
    device: Device | None = None,
    **overrides: Any,
) -> PlaybackSnapshot:
    return PlaybackSnapshot(
        item=item if item is not None else make_track(),
        progress_ms=progress_ms,
        is_playing=is_playing,
        device=device if device is not None else make_device(),
        **overrides,
    )


def make_page(items: Sequence[Any], *, offset: int = 0, limit: int = 2, total: int | None = None) -> Page[Any]:
    return Page(
        items=tuple(items),
        offset=offset,
        limit=limit,
        total=total if total is not None else offset + len(items),
    )


class FakeRemote:
    """In-memory stand-in for the Spotify adapter that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.failures: dict[str, BaseException] = {}
        self.playback: PlaybackSnapshot | None = make_playback()
        self.user = User(id="user-1", display_name="Listener", country="SE")
        self.playlist_page: Page[Playlist] = make_page(
            [Playlist(id="p1", name="Mix", uri="spotify:playlist:p1")]
        )
        self.device_list: list[Device] = [make_device("d1"), make_device("d2")]
        self.pages: dict[str, list[Page[Any]]] = {}
        self.search_results = SearchResults()
        self.artist_detail: ArtistDetail | None = None
        self.saved_ids: set[str] = set()
        self.token_expiry: float | None = 2_000.0

    def _record(self, name: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((name, args, kwargs))
        failure = self.failures.get(name)
        if failure is not None:
            raise failure

    def names(self) -> list[str]:
        return [name for name, _args, _kwargs in self.calls]

    def fail(self, name: str, message: str = "boom", status: int | None = 500) -> None:
        self.failures[name] = RemoteCallError(message, status=status)

    def _next_page(self, name: str) -> Page[Any]:
        queued = self.pages.get(name) or []
        return queued.pop(0) if queued else Page()

    async def current_playback(self) -> PlaybackSnapshot | None:
        self._record("current_playback")
        return self.playback

    async def current_user(self) -> User:
        self._record("current_user")
        return self.user

    async def playlists(self, *, offset: int, limit: int) -> Page[Playlist]:
        self._record("playlists", offset=offset, limit=limit)
        return self.playlist_page

    async def devices(self) -> list[Device]:
        self._record("devices")
        return list(self.device_list)

    async def saved_tracks(self, *, offset: int, limit: int) -> Page[Track]:
        self._record("saved_tracks", offset=offset, limit=limit)
        return self._next_page("saved_tracks")

    async def saved_albums(self, *, offset: int, limit: int) -> Page[Album]:
        self._record("saved_albums", offset=offset, limit=limit)
        return self._next_page("saved_albums")

    async def saved_shows(self, *, offset: int, limit: int) -> Page[Show]:
        self._record("saved_shows", offset=offset, limit=limit)
        return self._next_page("saved_shows")

    async def followed_artists(self, *, after: str | None, limit: int) -> Page[Artist]:
        self._record("followed_artists", after=after, limit=limit)
        return self._next_page("followed_artists")

    async def show_episodes(self, show_id: str, *, offset: int, limit: int) -> Page[Episode]:
        self._record("show_episodes", show_id, offset=offset, limit=limit)
        return self._next_page("show_episodes")

    async def playlist_items(self, playlist_id: str, *, offset: int, limit: int) -> Page[Any]:
        self._record("playlist_items", playlist_id, offset=offset, limit=limit)
        return self._next_page("playlist_items")

    async def album_tracks(self, album_id: str) -> Page[Track]:
        self._record("album_tracks", album_id)
        return self._next_page("album_tracks")

    async def artist(self, artist_id: str, *, country: str | None) -> ArtistDetail:
        self._record("artist", artist_id, country=country)
        return self.artist_detail or ArtistDetail(artist=Artist(id=artist_id, name="Artist"))

    async def search(self, term: str, *, large_limit: int, small_limit: int) -> SearchResults:
        self._record("search", term, large_limit=large_limit, small_limit=small_limit)
        return self.search_results

    async def start_playback(self, **kwargs: Any) -> None:
        self._record("start_playback", **kwargs)

    async def add_to_queue(self, uri: str, *, device_id: str | None) -> None:
        self._record("add_to_queue", uri, device_id=device_id)

    async def pause(self, *, device_id: str | None) -> None:
        self._record("pause", device_id=device_id)

    async def resume(self, *, device_id: str | None) -> None:
        self._record("resume", device_id=device_id)

    async def next_track(self, *, device_id: str | None) -> None:
        self._record("next_track", device_id=device_id)

    async def previous_track(self, *, device_id: str | None) -> None:
        self._record("previous_track", device_id=device_id)

    async def seek(self, position_ms: int, *, device_id: str | None) -> None:
        self._record("seek", position_ms, device_id=device_id)

    async def set_volume(self, volume_percent: int, *, device_id: str | None) -> None:
        self._record("set_volume", volume_percent, device_id=device_id)

    async def set_shuffle(self, state: bool, *, device_id: str | None) -> None:
        self._record("set_shuffle", state, device_id=device_id)

    async def set_repeat(self, state: RepeatState, *, device_id: str | None) -> None:
        self._record("set_repeat", state, device_id=device_id)

    async def transfer_playback(self, device_id: str) -> None:
        self._record("transfer_playback", device_id)

    async def saved_tracks_contains(self, track_ids: Sequence[str]) -> list[bool]:
        self._record("saved_tracks_contains", tuple(track_ids))
        return [track_id in self.saved_ids for track_id in track_ids]

    async def save_tracks(self, track_ids: Sequence[str]) -> None:
        self._record("save_tracks", tuple(track_ids))
        self.saved_ids.update(track_ids)

    async def remove_saved_tracks(self, track_ids: Sequence[str]) -> None:
        self._record("remove_saved_tracks", tuple(track_ids))
        self.saved_ids.difference_update(track_ids)

    async def saved_albums_contains(self, album_ids: Sequence[str]) -> list[bool]:
        self._record("saved_albums_contains", tuple(album_ids))
        return [album_id in self.saved_ids for album_id in album_ids]

    async def save_albums(self, album_ids: Sequence[str]) -> None:
        self._record("save_albums", tuple(album_ids))

    async def remove_saved_albums(self, album_ids: Sequence[str]) -> None:
        self._record("remove_saved_albums", tuple(album_ids))

    async def saved_shows_contains(self, show_ids: Sequence[str]) -> list[bool]:
        self._record("saved_shows_contains", tuple(show_ids))
        return [show_id in self.saved_ids for show_id in show_ids]

    async def save_shows(self, show_ids: Sequence[str]) -> None:
        self._record("save_shows", tuple(show_ids))

    async def remove_saved_shows(self, show_ids: Sequence[str]) -> None:
        self._record("remove_saved_shows", tuple(show_ids))

    async def following_artists(self, artist_ids: Sequence[str]) -> list[bool]:
        self._record("following_artists", tuple(artist_ids))
        return [artist_id in self.saved_ids for artist_id in artist_ids]

    async def follow_artists(self, artist_ids: Sequence[str]) -> None:
        self._record("follow_artists", tuple(artist_ids))

    async def unfollow_artists(self, artist_ids: Sequence[str]) -> None:
        self._record("unfollow_artists", tuple(artist_ids))

    async def authenticate(self) -> float | None:
        self._record("authenticate")
        return self.token_expiry

    async def refresh_authentication(self) -> float | None:
        self._record("refresh_authentication")
        return self.token_expiry


async def _no_sleep(_seconds: float) -> None:
    return None


def build_stack(
    remote: FakeRemote | None = None,
    *,
    clock: ManualClock | None = None,
    behavior: BehaviorConfig | None = None,
) -> tuple[SharedState, CommandChannel, Worker, FakeRemote]:
    remote = remote or FakeRemote()
    behavior = behavior or make_behavior()
    channel = CommandChannel()
    state = SharedState(channel, clock=clock or ManualClock())
    deps = HandlerDeps(remote=remote, state=state, behavior=behavior, sleep=_no_sleep)
    worker = Worker(state, channel, build_handlers(deps))
    return state, channel, worker, remote


def drain_names(channel: CommandChannel) -> list[str]:
    names = []
    while True:
        command = channel.try_receive()
        if command is None:
            return names
        names.append(command.name)
