"""Capability interface the worker uses to talk to the streaming service."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from playdeck.core.models import (
    Album,
    Artist,
    ArtistDetail,
    Device,
    Episode,
    PlayableItem,
    PlaybackSnapshot,
    Playlist,
    RepeatState,
    SearchResults,
    Show,
    Track,
    User,
)
from playdeck.core.pages import Page


class RemoteClient(Protocol):
    """One coroutine per command kind; failures raise ``RemoteCallError``."""

    async def current_playback(self) -> PlaybackSnapshot | None: ...

    async def current_user(self) -> User: ...

    async def playlists(self, *, offset: int, limit: int) -> Page[Playlist]: ...

    async def devices(self) -> list[Device]: ...

    async def saved_tracks(self, *, offset: int, limit: int) -> Page[Track]: ...

    async def saved_albums(self, *, offset: int, limit: int) -> Page[Album]: ...

    async def saved_shows(self, *, offset: int, limit: int) -> Page[Show]: ...

    async def followed_artists(self, *, after: str | None, limit: int) -> Page[Artist]: ...

    async def show_episodes(self, show_id: str, *, offset: int, limit: int) -> Page[Episode]: ...

    async def playlist_items(
        self, playlist_id: str, *, offset: int, limit: int
    ) -> Page[PlayableItem]: ...

    async def album_tracks(self, album_id: str) -> Page[Track]: ...

    async def artist(self, artist_id: str, *, country: str | None) -> ArtistDetail: ...

    async def search(self, term: str, *, large_limit: int, small_limit: int) -> SearchResults: ...

    async def start_playback(
        self,
        *,
        device_id: str | None,
        context_uri: str | None,
        uris: Sequence[str] | None,
        offset: int | None,
    ) -> None: ...

    async def add_to_queue(self, uri: str, *, device_id: str | None) -> None: ...

    async def pause(self, *, device_id: str | None) -> None: ...

    async def resume(self, *, device_id: str | None) -> None: ...

    async def next_track(self, *, device_id: str | None) -> None: ...

    async def previous_track(self, *, device_id: str | None) -> None: ...

    async def seek(self, position_ms: int, *, device_id: str | None) -> None: ...

    async def set_volume(self, volume_percent: int, *, device_id: str | None) -> None: ...

    async def set_shuffle(self, state: bool, *, device_id: str | None) -> None: ...

    async def set_repeat(self, state: RepeatState, *, device_id: str | None) -> None: ...

    async def transfer_playback(self, device_id: str) -> None: ...

    async def saved_tracks_contains(self, track_ids: Sequence[str]) -> list[bool]: ...

    async def save_tracks(self, track_ids: Sequence[str]) -> None: ...

    async def remove_saved_tracks(self, track_ids: Sequence[str]) -> None: ...

    async def saved_albums_contains(self, album_ids: Sequence[str]) -> list[bool]: ...

    async def save_albums(self, album_ids: Sequence[str]) -> None: ...

    async def remove_saved_albums(self, album_ids: Sequence[str]) -> None: ...

    async def saved_shows_contains(self, show_ids: Sequence[str]) -> list[bool]: ...

    async def save_shows(self, show_ids: Sequence[str]) -> None: ...

    async def remove_saved_shows(self, show_ids: Sequence[str]) -> None: ...

    async def following_artists(self, artist_ids: Sequence[str]) -> list[bool]: ...

    async def follow_artists(self, artist_ids: Sequence[str]) -> None: ...

    async def unfollow_artists(self, artist_ids: Sequence[str]) -> None: ...

    async def authenticate(self) -> float | None:
        """Obtain an access token, logging in when needed; returns its expiry."""
        ...

    async def refresh_authentication(self) -> float | None:
        """Refresh the access token, returning its expiry as a UNIX timestamp."""
        ...


__all__ = ["RemoteClient"]
