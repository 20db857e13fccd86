"""Shared application model read by the renderer and written by the worker."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
import contextlib
from dataclasses import dataclass, field, replace
from enum import Enum
import threading
import time
from typing import Any, Callable

from playdeck.core.commands import Command
from playdeck.core.models import (
    ArtistDetail,
    Device,
    Episode,
    PlayableItem,
    PlaybackSnapshot,
    Playlist,
    RepeatState,
    SearchResults,
    Track,
    User,
)
from playdeck.core.navigation import FocusRegion, NavigationStack, Route, ViewId
from playdeck.core.pages import Page, PagedResultCache
from playdeck.errors import ChannelClosedError, describe_error
from playdeck.logging import get_logger
from playdeck.orchestrator.channel import CommandChannel

logger = get_logger(__name__)


class Resource(str, Enum):
    """Server paginated collections cached page by page."""

    SAVED_TRACKS = "saved_tracks"
    SAVED_ALBUMS = "saved_albums"
    SAVED_SHOWS = "saved_shows"
    FOLLOWED_ARTISTS = "followed_artists"
    SHOW_EPISODES = "show_episodes"
    PLAYLIST_ITEMS = "playlist_items"


class Collection(str, Enum):
    """Membership sets mirroring the user's library."""

    LIKED_TRACKS = "liked_tracks"
    FOLLOWED_ARTISTS = "followed_artists"
    SAVED_ALBUMS = "saved_albums"
    SAVED_SHOWS = "saved_shows"


@dataclass(slots=True, frozen=True)
class StateSnapshot:
    """Read-only copy of the fields the renderer draws."""

    route: Route
    depth: int
    is_loading: bool
    api_error: str
    playback: PlaybackSnapshot | None
    song_progress_ms: int
    seek_ms: int | None
    user: User | None
    playlists: tuple[Playlist, ...]
    selected_playlist_index: int | None
    devices: tuple[Device, ...]
    selected_device_index: int | None
    pages: dict[Resource, Page[Any] | None]
    search_results: SearchResults | None
    artist_detail: ArtistDetail | None
    album_tracks: Page[Track] | None
    liked_track_ids: frozenset[str]
    input_text: str
    selected_item_index: int
    item_table_source: Resource = Resource.SAVED_TRACKS
    saved_show_ids: frozenset[str] = frozenset()

    def is_liked(self, item: PlayableItem | None) -> bool:
        if isinstance(item, Track):
            return item.id in self.liked_track_ids
        if isinstance(item, Episode) and item.show is not None:
            return item.show.id in self.saved_show_ids
        return False


@dataclass(slots=True)
class _Fields:
    is_loading: bool = False
    api_error: str = ""
    playback: PlaybackSnapshot | None = None
    song_progress_ms: int = 0
    seek_ms: int | None = None
    is_fetching_current_playback: bool = False
    last_poll_at: float = 0.0
    user: User | None = None
    playlists: Page[Playlist] = field(default_factory=Page)
    selected_playlist_index: int | None = None
    devices: tuple[Device, ...] = ()
    selected_device_index: int | None = None
    search_results: SearchResults | None = None
    artist_detail: ArtistDetail | None = None
    album_tracks: Page[Track] | None = None
    large_search_limit: int = 20
    small_search_limit: int = 4
    token_expiry: float | None = None
    token_refresh_pending: bool = False
    input_text: str = ""
    selected_item_index: int = 0
    active_device_id: str | None = None
    item_table_source: Resource = Resource.SAVED_TRACKS


class SharedState:
    """Single mutable model guarded by one lock.

    Every method takes the lock for one small read or mutation and never holds
    it across a remote call. Commands leave through :meth:`dispatch`; failures
    arrive through :meth:`handle_error`.
    """

    def __init__(
        self,
        channel: CommandChannel,
        *,
        clock: Callable[[], float] = time.monotonic,
        device_id: str | None = None,
        large_search_limit: int = 20,
        small_search_limit: int = 4,
    ) -> None:
        self._channel = channel
        self._clock = clock
        self._lock = threading.RLock()
        self._navigation = NavigationStack()
        self._caches: dict[Resource, PagedResultCache[Page[Any]]] = {
            resource: PagedResultCache() for resource in Resource
        }
        self._members: dict[Collection, set[str]] = {collection: set() for collection in Collection}
        self._page_owners: dict[Resource, str | None] = {}
        self._fields = _Fields(
            last_poll_at=clock(),
            large_search_limit=large_search_limit,
            small_search_limit=small_search_limit,
            active_device_id=device_id,
        )

    @contextlib.contextmanager
    def locked(self) -> Iterator[SharedState]:
        with self._lock:
            yield self

    # dispatch & errors

    def dispatch(self, command: Command) -> bool:
        """Queue ``command`` for the worker without waiting for its result."""

        with self._lock:
            self._fields.is_loading = True
        try:
            self._channel.send(command)
        except ChannelClosedError as exc:
            with self._lock:
                self._fields.is_loading = False
            self.handle_error(exc)
            return False
        return True

    def handle_error(self, error: BaseException | str) -> None:
        message = describe_error(error)
        logger.warning("Command failed: %s", message)
        with self._lock:
            self._push(ViewId.ERROR, FocusRegion.ERROR)
            self._fields.api_error = message

    def clear_error(self) -> None:
        with self._lock:
            self._fields.api_error = ""

    @property
    def api_error(self) -> str:
        with self._lock:
            return self._fields.api_error

    @property
    def is_loading(self) -> bool:
        with self._lock:
            return self._fields.is_loading

    def set_loading(self, value: bool) -> None:
        with self._lock:
            self._fields.is_loading = value

    # navigation

    def current_route(self) -> Route:
        with self._lock:
            return self._navigation.current()

    def navigation_depth(self) -> int:
        with self._lock:
            return len(self._navigation)

    def push_route(self, view: ViewId, active_block: FocusRegion) -> bool:
        with self._lock:
            return self._push(view, active_block)

    def pop_route(self) -> Route | None:
        with self._lock:
            popped = self._navigation.pop()
            if popped is not None:
                self._fields.selected_item_index = 0
            return popped

    def _push(self, view: ViewId, active_block: FocusRegion) -> bool:
        pushed = self._navigation.push(view, active_block)
        if pushed:
            self._fields.selected_item_index = 0
        return pushed

    def set_active_and_hovered(
        self,
        active: FocusRegion | None = None,
        hovered: FocusRegion | None = None,
    ) -> None:
        with self._lock:
            self._navigation.set_active_and_hovered(active, hovered)

    # paged caches

    def append_page(self, resource: Resource, page: Page[Any]) -> None:
        with self._lock:
            self._caches[resource].append(page)

    def reset_pages(self, resource: Resource, owner: str | None = None) -> None:
        """Drop cached pages, e.g. when a different playlist or show is opened."""

        with self._lock:
            self._caches[resource] = PagedResultCache()
            self._page_owners[resource] = owner

    def page_owner(self, resource: Resource) -> str | None:
        with self._lock:
            return self._page_owners.get(resource)

    def current_page(self, resource: Resource, at: int | None = None) -> Page[Any] | None:
        with self._lock:
            return self._caches[resource].get(at)

    def page_cursor(self, resource: Resource) -> int:
        with self._lock:
            return self._caches[resource].cursor

    def cached_page_count(self, resource: Resource) -> int:
        with self._lock:
            return len(self._caches[resource])

    def advance_page(self, resource: Resource) -> Page[Any] | None:
        with self._lock:
            page = self._caches[resource].advance()
            if page is not None:
                self._fields.selected_item_index = 0
            return page

    def retreat_page(self, resource: Resource) -> Page[Any] | None:
        with self._lock:
            before = self._caches[resource].cursor
            page = self._caches[resource].retreat()
            if self._caches[resource].cursor != before:
                self._fields.selected_item_index = 0
            return page

    # membership sets

    def contains(self, collection: Collection, item_id: str) -> bool:
        with self._lock:
            return item_id in self._members[collection]

    def members(self, collection: Collection) -> frozenset[str]:
        with self._lock:
            return frozenset(self._members[collection])

    def update_membership(
        self,
        collection: Collection,
        ids: Sequence[str],
        flags: Sequence[bool],
    ) -> None:
        with self._lock:
            target = self._members[collection]
            for item_id, flag in zip(ids, flags):
                if flag:
                    target.add(item_id)
                else:
                    target.discard(item_id)

    def add_member(self, collection: Collection, item_id: str) -> None:
        with self._lock:
            self._members[collection].add(item_id)

    def remove_member(self, collection: Collection, item_id: str) -> None:
        with self._lock:
            self._members[collection].discard(item_id)

    # playback

    @property
    def playback(self) -> PlaybackSnapshot | None:
        with self._lock:
            return self._fields.playback

    @property
    def song_progress_ms(self) -> int:
        with self._lock:
            return self._fields.song_progress_ms

    @property
    def seek_ms(self) -> int | None:
        with self._lock:
            return self._fields.seek_ms

    def set_seek_ms(self, value: int | None) -> None:
        with self._lock:
            self._fields.seek_ms = value

    @property
    def is_fetching_current_playback(self) -> bool:
        with self._lock:
            return self._fields.is_fetching_current_playback

    def set_playback(self, snapshot: PlaybackSnapshot | None) -> None:
        """Store a fresh playback report and finish the refresh cycle.

        An empty report keeps the previous snapshot on screen.
        """

        with self._lock:
            self._fields.last_poll_at = self._clock()
            self._fields.seek_ms = None
            self._fields.is_fetching_current_playback = False
            if snapshot is not None:
                self._fields.playback = snapshot
                self._fields.song_progress_ms = min(snapshot.progress_ms, snapshot.duration_ms)
                if snapshot.device is not None:
                    self._fields.active_device_id = snapshot.device.id

    def claim_playback_refresh(self, min_interval_s: float) -> bool:
        """Mark a refresh as in flight when one is due; ``False`` otherwise."""

        with self._lock:
            if self._fields.is_fetching_current_playback:
                return False
            if self._clock() - self._fields.last_poll_at < min_interval_s:
                return False
            self._fields.is_fetching_current_playback = True
            return True

    def finish_playback_refresh(self) -> None:
        with self._lock:
            self._fields.is_fetching_current_playback = False

    def update_on_tick(self) -> int:
        """Advance the displayed position by the time elapsed since the last poll."""

        with self._lock:
            snapshot = self._fields.playback
            if snapshot is None or snapshot.item is None:
                return self._fields.song_progress_ms
            elapsed_ms = 0
            if snapshot.is_playing:
                elapsed_ms = int((self._clock() - self._fields.last_poll_at) * 1000)
            progress = min(snapshot.progress_ms + max(0, elapsed_ms), snapshot.duration_ms)
            self._fields.song_progress_ms = progress
            return progress

    def reset_progress(self) -> None:
        with self._lock:
            self._fields.song_progress_ms = 0

    def update_playback(self, **changes: Any) -> None:
        """Apply confirmed changes (shuffle, repeat, play state) to the snapshot."""

        with self._lock:
            snapshot = self._fields.playback
            if snapshot is None:
                return
            self._fields.playback = replace(snapshot, **changes)

    def set_shuffle(self, state: bool) -> None:
        self.update_playback(shuffle_state=state)

    def set_repeat(self, state: RepeatState) -> None:
        self.update_playback(repeat_state=state)

    def set_volume(self, volume_percent: int) -> None:
        with self._lock:
            snapshot = self._fields.playback
            if snapshot is None or snapshot.device is None:
                return
            device = replace(snapshot.device, volume_percent=volume_percent)
            self._fields.playback = replace(snapshot, device=device)

    # devices

    @property
    def active_device_id(self) -> str | None:
        with self._lock:
            return self._fields.active_device_id

    def set_active_device(self, device_id: str) -> None:
        with self._lock:
            self._fields.active_device_id = device_id

    @property
    def devices(self) -> tuple[Device, ...]:
        with self._lock:
            return self._fields.devices

    def set_devices(self, devices: Iterable[Device]) -> None:
        with self._lock:
            self._fields.devices = tuple(devices)
            self._push(ViewId.SELECTED_DEVICE, FocusRegion.SELECT_DEVICE)
            self._fields.selected_device_index = 0 if self._fields.devices else None

    def selected_device(self) -> Device | None:
        with self._lock:
            index = self._fields.selected_device_index
            if index is None or not 0 <= index < len(self._fields.devices):
                return None
            return self._fields.devices[index]

    @property
    def selected_device_index(self) -> int | None:
        with self._lock:
            return self._fields.selected_device_index

    def select_device(self, index: int) -> None:
        with self._lock:
            if 0 <= index < len(self._fields.devices):
                self._fields.selected_device_index = index

    # library & lookups

    @property
    def user(self) -> User | None:
        with self._lock:
            return self._fields.user

    def set_user(self, user: User) -> None:
        with self._lock:
            self._fields.user = user

    @property
    def playlists(self) -> Page[Playlist]:
        with self._lock:
            return self._fields.playlists

    def set_playlists(self, page: Page[Playlist]) -> None:
        with self._lock:
            self._fields.playlists = page
            if page.items:
                self._fields.selected_playlist_index = 0

    def selected_playlist(self) -> Playlist | None:
        with self._lock:
            index = self._fields.selected_playlist_index
            items = self._fields.playlists.items
            if index is None or not 0 <= index < len(items):
                return None
            return items[index]

    @property
    def selected_playlist_index(self) -> int | None:
        with self._lock:
            return self._fields.selected_playlist_index

    def select_playlist(self, index: int) -> None:
        with self._lock:
            if 0 <= index < len(self._fields.playlists.items):
                self._fields.selected_playlist_index = index

    @property
    def search_results(self) -> SearchResults | None:
        with self._lock:
            return self._fields.search_results

    def set_search_results(self, results: SearchResults) -> None:
        with self._lock:
            self._fields.search_results = results

    @property
    def artist_detail(self) -> ArtistDetail | None:
        with self._lock:
            return self._fields.artist_detail

    def set_artist_detail(self, detail: ArtistDetail) -> None:
        with self._lock:
            self._fields.artist_detail = detail
            self._push(ViewId.ARTIST, FocusRegion.ARTIST_BLOCK)

    @property
    def album_tracks(self) -> Page[Track] | None:
        with self._lock:
            return self._fields.album_tracks

    def set_album_tracks(self, page: Page[Track]) -> None:
        with self._lock:
            self._fields.album_tracks = page
            self._push(ViewId.ALBUM_TRACKS, FocusRegion.ALBUM_TRACKS)

    @property
    def search_limits(self) -> tuple[int, int]:
        with self._lock:
            return self._fields.large_search_limit, self._fields.small_search_limit

    def set_search_limits(self, large: int, small: int) -> None:
        with self._lock:
            self._fields.large_search_limit = large
            self._fields.small_search_limit = small

    @property
    def selected_item_index(self) -> int:
        with self._lock:
            return self._fields.selected_item_index

    def select_item(self, index: int) -> None:
        with self._lock:
            self._fields.selected_item_index = max(0, index)

    @property
    def item_table_source(self) -> Resource:
        with self._lock:
            return self._fields.item_table_source

    def set_item_table_source(self, resource: Resource) -> None:
        with self._lock:
            self._fields.item_table_source = resource
            self._fields.selected_item_index = 0

    # input & auth

    @property
    def input_text(self) -> str:
        with self._lock:
            return self._fields.input_text

    def set_input_text(self, text: str) -> None:
        with self._lock:
            self._fields.input_text = text

    def set_token_expiry(self, expires_at: float | None) -> None:
        with self._lock:
            self._fields.token_expiry = expires_at
            self._fields.token_refresh_pending = False

    def claim_token_refresh(self, now: float) -> bool:
        """Return ``True`` once per expiry when the token needs refreshing."""

        with self._lock:
            expiry = self._fields.token_expiry
            if expiry is None or now <= expiry or self._fields.token_refresh_pending:
                return False
            self._fields.token_refresh_pending = True
            return True

    # rendering

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            fields = self._fields
            return StateSnapshot(
                route=self._navigation.current(),
                depth=len(self._navigation),
                is_loading=fields.is_loading,
                api_error=fields.api_error,
                playback=fields.playback,
                song_progress_ms=fields.song_progress_ms,
                seek_ms=fields.seek_ms,
                user=fields.user,
                playlists=fields.playlists.items,
                selected_playlist_index=fields.selected_playlist_index,
                devices=fields.devices,
                selected_device_index=fields.selected_device_index,
                pages={resource: cache.get() for resource, cache in self._caches.items()},
                search_results=fields.search_results,
                artist_detail=fields.artist_detail,
                album_tracks=fields.album_tracks,
                liked_track_ids=frozenset(self._members[Collection.LIKED_TRACKS]),
                input_text=fields.input_text,
                selected_item_index=fields.selected_item_index,
                item_table_source=fields.item_table_source,
                saved_show_ids=frozenset(self._members[Collection.SAVED_SHOWS]),
            )


__all__ = ["Collection", "Resource", "SharedState", "StateSnapshot"]
