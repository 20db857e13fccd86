"""Spotify client wrapper used by playdeck."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
import threading
import time
from typing import Any, TypeVar

import requests
import spotipy
from spotipy.cache_handler import CacheFileHandler
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from playdeck.config import ExternalCallPolicy, SpotifyConfig
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
    parse_playable,
)
from playdeck.core.pages import Page
from playdeck.errors import RemoteCallError
from playdeck.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_RETRYABLE_STATUSES = frozenset({429, 502, 503})
_MAX_RETRY_AFTER_SECONDS = 30.0


def _retry_after_seconds(exc: SpotifyException) -> float | None:
    headers = getattr(exc, "headers", None) or {}
    raw = headers.get("Retry-After") if isinstance(headers, Mapping) else None
    if raw is None:
        return None
    try:
        return min(_MAX_RETRY_AFTER_SECONDS, max(0.0, float(raw)))
    except (TypeError, ValueError):
        return None


def _chunks(values: Sequence[str], size: int = 50) -> list[list[str]]:
    return [list(values[index : index + size]) for index in range(0, len(values), size)]


class SpotifyClient:
    """High level client around Spotipy with rate limiting and retries.

    Every public coroutine runs the blocking Spotipy call in a worker thread so
    the event loop stays responsive while the request is in flight.
    """

    def __init__(
        self,
        config: SpotifyConfig,
        policy: ExternalCallPolicy,
        client: spotipy.Spotify | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._rate_limit_seconds = policy.rate_limit_ms / 1000.0
        self._max_retries = max(1, policy.retry_max)
        self._backoff_base = policy.backoff_base_ms / 1000.0
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request_time = 0.0

        if client is not None:
            self._client = client
        else:
            if not config.is_complete:
                raise ValueError("Spotify configuration is incomplete")
            auth_manager = SpotifyOAuth(
                client_id=config.client_id,
                client_secret=config.client_secret,
                redirect_uri=config.redirect_uri,
                scope=config.scope,
                cache_handler=CacheFileHandler(cache_path=config.token_cache_path),
                open_browser=True,
            )
            self._client = spotipy.Spotify(
                auth_manager=auth_manager,
                requests_timeout=policy.timeout_ms / 1000.0,
                retries=0,
                status_retries=0,
            )

    def _respect_rate_limit(self) -> None:
        with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_time
            if elapsed < self._rate_limit_seconds:
                self._sleep(self._rate_limit_seconds - elapsed)
            self._last_request_time = time.monotonic()

    def _execute(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        backoff = self._backoff_base
        for attempt in range(1, self._max_retries + 1):
            self._respect_rate_limit()
            try:
                return func(*args, **kwargs)
            except SpotifyException as exc:
                status = getattr(exc, "http_status", None)
                if status not in _RETRYABLE_STATUSES or attempt == self._max_retries:
                    logger.error("Spotify API request failed", exc_info=exc)
                    message = getattr(exc, "msg", None) or str(exc)
                    raise RemoteCallError(message, status=status) from exc
                delay = _retry_after_seconds(exc) or backoff
                logger.warning("Retrying Spotify API request due to status %s", status)
                self._sleep(delay)
                backoff *= 2
            except requests.RequestException as exc:
                if attempt == self._max_retries:
                    logger.error("Spotify API request failed", exc_info=exc)
                    raise RemoteCallError(f"network error: {exc}") from exc
                logger.warning("Retrying Spotify API request due to %s", exc)
                self._sleep(backoff)
                backoff *= 2
        raise RemoteCallError("Spotify API request failed")  # pragma: no cover

    async def _call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(self._execute, func, *args, **kwargs)

    async def current_playback(self) -> PlaybackSnapshot | None:
        payload = await self._call(self._client.current_playback, additional_types="episode")
        return PlaybackSnapshot.from_payload(payload)

    async def current_user(self) -> User:
        payload = await self._call(self._client.current_user)
        return User.from_payload(payload or {})

    async def playlists(self, *, offset: int, limit: int) -> Page[Playlist]:
        payload = await self._call(
            self._client.current_user_playlists, limit=limit, offset=offset
        )
        return Page.from_payload(payload, Playlist.from_payload)

    async def devices(self) -> list[Device]:
        payload = await self._call(self._client.devices) or {}
        devices: list[Device] = []
        for raw in payload.get("devices") or []:
            device = Device.from_payload(raw)
            if device is not None:
                devices.append(device)
        return devices

    async def saved_tracks(self, *, offset: int, limit: int) -> Page[Track]:
        payload = await self._call(
            self._client.current_user_saved_tracks, limit=limit, offset=offset
        )
        return Page.from_payload(payload, Track.from_payload)

    async def saved_albums(self, *, offset: int, limit: int) -> Page[Album]:
        payload = await self._call(
            self._client.current_user_saved_albums, limit=limit, offset=offset
        )
        return Page.from_payload(payload, Album.from_payload)

    async def saved_shows(self, *, offset: int, limit: int) -> Page[Show]:
        payload = await self._call(
            self._client.current_user_saved_shows, limit=limit, offset=offset
        )
        return Page.from_payload(payload, Show.from_payload)

    async def followed_artists(self, *, after: str | None, limit: int) -> Page[Artist]:
        payload = await self._call(
            self._client.current_user_followed_artists, limit=limit, after=after
        )
        return Page.from_payload((payload or {}).get("artists"), Artist.from_payload)

    async def show_episodes(self, show_id: str, *, offset: int, limit: int) -> Page[Episode]:
        payload = await self._call(
            self._client.show_episodes, show_id, limit=limit, offset=offset
        )
        return Page.from_payload(payload, Episode.from_payload)

    async def playlist_items(
        self, playlist_id: str, *, offset: int, limit: int
    ) -> Page[PlayableItem]:
        payload = await self._call(
            self._client.playlist_items,
            playlist_id,
            limit=limit,
            offset=offset,
            additional_types=("track", "episode"),
        )
        return Page.from_payload(payload, parse_playable)

    async def album_tracks(self, album_id: str) -> Page[Track]:
        album_payload = await self._call(self._client.album, album_id) or {}
        album = Album.from_payload(album_payload)
        page = Page.from_payload(album_payload.get("tracks"), Track.from_payload)
        if album is None:
            return page
        # Album track listings omit the album object itself.
        items = tuple(
            Track(
                id=track.id,
                name=track.name,
                uri=track.uri,
                duration_ms=track.duration_ms,
                artists=track.artists,
                album=album,
            )
            for track in page.items
        )
        return Page(
            items=items,
            offset=page.offset,
            limit=page.limit,
            total=page.total,
            next_cursor=page.next_cursor,
            cursor_paged=page.cursor_paged,
        )

    async def artist(self, artist_id: str, *, country: str | None) -> ArtistDetail:
        artist_payload = await self._call(self._client.artist, artist_id) or {}
        artist = Artist.from_payload(artist_payload) or Artist(id=artist_id, name="")
        top_payload = await self._call(
            self._client.artist_top_tracks, artist_id, country=country or "US"
        ) or {}
        top_tracks = tuple(
            track
            for track in (Track.from_payload(raw) for raw in top_payload.get("tracks") or [])
            if track is not None
        )
        albums_payload = await self._call(
            self._client.artist_albums, artist_id, include_groups="album,single", limit=50
        )
        return ArtistDetail(
            artist=artist,
            top_tracks=top_tracks,
            albums=Page.from_payload(albums_payload, Album.from_payload),
        )

    async def search(self, term: str, *, large_limit: int, small_limit: int) -> SearchResults:
        tracks = await self._call(self._client.search, term, limit=large_limit, type="track")
        others = await self._call(
            self._client.search, term, limit=small_limit, type="artist,album,playlist,show"
        )
        merged: dict[str, Any] = dict(others or {})
        merged.update(tracks or {})
        return SearchResults.from_payload(merged)

    async def start_playback(
        self,
        *,
        device_id: str | None,
        context_uri: str | None,
        uris: Sequence[str] | None,
        offset: int | None,
    ) -> None:
        await self._call(
            self._client.start_playback,
            device_id=device_id,
            context_uri=context_uri,
            uris=list(uris) if uris else None,
            offset={"position": offset} if offset is not None else None,
        )

    async def add_to_queue(self, uri: str, *, device_id: str | None) -> None:
        await self._call(self._client.add_to_queue, uri, device_id=device_id)

    async def pause(self, *, device_id: str | None) -> None:
        await self._call(self._client.pause_playback, device_id=device_id)

    async def resume(self, *, device_id: str | None) -> None:
        await self._call(self._client.start_playback, device_id=device_id)

    async def next_track(self, *, device_id: str | None) -> None:
        await self._call(self._client.next_track, device_id=device_id)

    async def previous_track(self, *, device_id: str | None) -> None:
        await self._call(self._client.previous_track, device_id=device_id)

    async def seek(self, position_ms: int, *, device_id: str | None) -> None:
        await self._call(self._client.seek_track, position_ms, device_id=device_id)

    async def set_volume(self, volume_percent: int, *, device_id: str | None) -> None:
        await self._call(self._client.volume, volume_percent, device_id=device_id)

    async def set_shuffle(self, state: bool, *, device_id: str | None) -> None:
        await self._call(self._client.shuffle, state, device_id=device_id)

    async def set_repeat(self, state: RepeatState, *, device_id: str | None) -> None:
        await self._call(self._client.repeat, state.value, device_id=device_id)

    async def transfer_playback(self, device_id: str) -> None:
        await self._call(self._client.transfer_playback, device_id, force_play=True)

    async def _contains(self, func: Callable[..., Any], ids: Sequence[str]) -> list[bool]:
        flags: list[bool] = []
        for chunk in _chunks(ids):
            result = await self._call(func, chunk)
            flags.extend(bool(value) for value in result or [])
        return flags

    async def _for_chunks(self, func: Callable[..., Any], ids: Sequence[str]) -> None:
        for chunk in _chunks(ids):
            await self._call(func, chunk)

    async def saved_tracks_contains(self, track_ids: Sequence[str]) -> list[bool]:
        return await self._contains(self._client.current_user_saved_tracks_contains, track_ids)

    async def save_tracks(self, track_ids: Sequence[str]) -> None:
        await self._for_chunks(self._client.current_user_saved_tracks_add, track_ids)

    async def remove_saved_tracks(self, track_ids: Sequence[str]) -> None:
        await self._for_chunks(self._client.current_user_saved_tracks_delete, track_ids)

    async def saved_albums_contains(self, album_ids: Sequence[str]) -> list[bool]:
        return await self._contains(self._client.current_user_saved_albums_contains, album_ids)

    async def save_albums(self, album_ids: Sequence[str]) -> None:
        await self._for_chunks(self._client.current_user_saved_albums_add, album_ids)

    async def remove_saved_albums(self, album_ids: Sequence[str]) -> None:
        await self._for_chunks(self._client.current_user_saved_albums_delete, album_ids)

    async def saved_shows_contains(self, show_ids: Sequence[str]) -> list[bool]:
        return await self._contains(self._client.current_user_saved_shows_contains, show_ids)

    async def save_shows(self, show_ids: Sequence[str]) -> None:
        await self._for_chunks(self._client.current_user_saved_shows_add, show_ids)

    async def remove_saved_shows(self, show_ids: Sequence[str]) -> None:
        await self._for_chunks(self._client.current_user_saved_shows_delete, show_ids)

    async def following_artists(self, artist_ids: Sequence[str]) -> list[bool]:
        return await self._contains(self._client.current_user_following_artists, artist_ids)

    async def follow_artists(self, artist_ids: Sequence[str]) -> None:
        await self._for_chunks(self._client.user_follow_artists, artist_ids)

    async def unfollow_artists(self, artist_ids: Sequence[str]) -> None:
        await self._for_chunks(self._client.user_unfollow_artists, artist_ids)

    async def authenticate(self) -> float | None:
        """Obtain an access token before anything else talks to Spotify.

        Spotipy prompts for the OAuth login when no usable token is cached.
        """

        auth_manager = getattr(self._client, "auth_manager", None)
        if auth_manager is None:
            return None

        def _login() -> Mapping[str, Any] | None:
            auth_manager.get_access_token(as_dict=False)
            return auth_manager.cache_handler.get_cached_token()

        try:
            token = await asyncio.to_thread(_login)
        except (SpotifyOauthError, SpotifyException, requests.RequestException) as exc:
            logger.error("Spotify authentication failed", exc_info=exc)
            message = getattr(exc, "error_description", None) or str(exc)
            raise RemoteCallError(message, status=401) from exc
        if not token:
            raise RemoteCallError("authentication required", status=401)
        expires_at = token.get("expires_at")
        return float(expires_at) if expires_at is not None else None

    async def refresh_authentication(self) -> float | None:
        auth_manager = getattr(self._client, "auth_manager", None)
        if auth_manager is None:
            return None

        def _refresh() -> Mapping[str, Any] | None:
            cached = auth_manager.cache_handler.get_cached_token()
            return auth_manager.validate_token(cached)

        token = await self._call(_refresh)
        if not token:
            raise RemoteCallError("authentication required", status=401)
        expires_at = token.get("expires_at")
        return float(expires_at) if expires_at is not None else None


__all__ = ["SpotifyClient"]
