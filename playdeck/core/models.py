"""Domain models parsed from Spotify Web API payloads."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from playdeck.core.pages import Page


def _text(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    return str(value) if value is not None else ""


def _int(payload: Mapping[str, Any], key: str, default: int = 0) -> int:
    try:
        return int(payload.get(key) or default)
    except (TypeError, ValueError):
        return default


class RepeatState(str, Enum):
    OFF = "off"
    CONTEXT = "context"
    TRACK = "track"

    def next(self) -> RepeatState:
        if self is RepeatState.OFF:
            return RepeatState.CONTEXT
        if self is RepeatState.CONTEXT:
            return RepeatState.TRACK
        return RepeatState.OFF

    @classmethod
    def parse(cls, value: Any) -> RepeatState:
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.OFF


@dataclass(slots=True, frozen=True)
class Artist:
    id: str
    name: str
    uri: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Artist | None:
        if not payload.get("id"):
            return None
        return cls(id=_text(payload, "id"), name=_text(payload, "name"), uri=_text(payload, "uri"))


def _artists(payload: Mapping[str, Any]) -> tuple[Artist, ...]:
    artists: list[Artist] = []
    for raw in payload.get("artists") or []:
        if isinstance(raw, Mapping):
            artist = Artist.from_payload(raw)
            if artist is not None:
                artists.append(artist)
    return tuple(artists)


@dataclass(slots=True, frozen=True)
class Album:
    id: str
    name: str
    uri: str = ""
    artists: tuple[Artist, ...] = ()
    release_date: str = ""
    total_tracks: int = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Album | None:
        if "album" in payload and isinstance(payload["album"], Mapping):
            payload = payload["album"]
        if not payload.get("id"):
            return None
        return cls(
            id=_text(payload, "id"),
            name=_text(payload, "name"),
            uri=_text(payload, "uri"),
            artists=_artists(payload),
            release_date=_text(payload, "release_date"),
            total_tracks=_int(payload, "total_tracks"),
        )


@dataclass(slots=True, frozen=True)
class Show:
    id: str
    name: str
    uri: str = ""
    publisher: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Show | None:
        if "show" in payload and isinstance(payload["show"], Mapping):
            payload = payload["show"]
        if not payload.get("id"):
            return None
        return cls(
            id=_text(payload, "id"),
            name=_text(payload, "name"),
            uri=_text(payload, "uri"),
            publisher=_text(payload, "publisher"),
        )


@dataclass(slots=True, frozen=True)
class Track:
    id: str
    name: str
    uri: str
    duration_ms: int
    artists: tuple[Artist, ...] = ()
    album: Album | None = None

    @property
    def artist_names(self) -> str:
        return ", ".join(artist.name for artist in self.artists)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Track | None:
        if "track" in payload and isinstance(payload["track"], Mapping):
            payload = payload["track"]
        if not payload.get("id"):
            return None
        album_payload = payload.get("album")
        album = Album.from_payload(album_payload) if isinstance(album_payload, Mapping) else None
        return cls(
            id=_text(payload, "id"),
            name=_text(payload, "name"),
            uri=_text(payload, "uri"),
            duration_ms=_int(payload, "duration_ms"),
            artists=_artists(payload),
            album=album,
        )


@dataclass(slots=True, frozen=True)
class Episode:
    id: str
    name: str
    uri: str
    duration_ms: int
    show: Show | None = None
    release_date: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Episode | None:
        if not payload.get("id"):
            return None
        show_payload = payload.get("show")
        show = Show.from_payload(show_payload) if isinstance(show_payload, Mapping) else None
        return cls(
            id=_text(payload, "id"),
            name=_text(payload, "name"),
            uri=_text(payload, "uri"),
            duration_ms=_int(payload, "duration_ms"),
            show=show,
            release_date=_text(payload, "release_date"),
        )


PlayableItem = Union[Track, Episode]


def parse_playable(payload: Mapping[str, Any] | None) -> PlayableItem | None:
    """Parse a track or an episode depending on the payload's ``type``."""

    if not payload:
        return None
    if "track" in payload and isinstance(payload["track"], Mapping):
        payload = payload["track"]
    elif "episode" in payload and isinstance(payload["episode"], Mapping):
        payload = payload["episode"]
    if payload.get("type") == "episode":
        return Episode.from_payload(payload)
    return Track.from_payload(payload)


@dataclass(slots=True, frozen=True)
class Playlist:
    id: str
    name: str
    uri: str = ""
    owner: str = ""
    tracks_total: int = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Playlist | None:
        if not payload.get("id"):
            return None
        owner = payload.get("owner") or {}
        tracks = payload.get("tracks") or {}
        return cls(
            id=_text(payload, "id"),
            name=_text(payload, "name"),
            uri=_text(payload, "uri"),
            owner=_text(owner, "display_name") if isinstance(owner, Mapping) else "",
            tracks_total=_int(tracks, "total") if isinstance(tracks, Mapping) else 0,
        )


@dataclass(slots=True, frozen=True)
class Device:
    id: str
    name: str
    type: str = ""
    volume_percent: int | None = None
    is_active: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Device | None:
        if not payload.get("id"):
            return None
        volume = payload.get("volume_percent")
        return cls(
            id=_text(payload, "id"),
            name=_text(payload, "name"),
            type=_text(payload, "type"),
            volume_percent=int(volume) if volume is not None else None,
            is_active=bool(payload.get("is_active")),
        )


@dataclass(slots=True, frozen=True)
class User:
    id: str
    display_name: str = ""
    country: str = ""
    product: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> User:
        return cls(
            id=_text(payload, "id"),
            display_name=_text(payload, "display_name"),
            country=_text(payload, "country"),
            product=_text(payload, "product"),
        )


@dataclass(slots=True, frozen=True)
class PlaybackSnapshot:
    """Playback context as last reported by the service."""

    item: PlayableItem | None = None
    progress_ms: int = 0
    is_playing: bool = False
    shuffle_state: bool = False
    repeat_state: RepeatState = RepeatState.OFF
    device: Device | None = None
    context_uri: str | None = None

    @property
    def duration_ms(self) -> int:
        return self.item.duration_ms if self.item is not None else 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> PlaybackSnapshot | None:
        if not payload:
            return None
        device_payload = payload.get("device")
        context = payload.get("context") or {}
        return cls(
            item=parse_playable(payload.get("item")),
            progress_ms=_int(payload, "progress_ms"),
            is_playing=bool(payload.get("is_playing")),
            shuffle_state=bool(payload.get("shuffle_state")),
            repeat_state=RepeatState.parse(payload.get("repeat_state")),
            device=(
                Device.from_payload(device_payload)
                if isinstance(device_payload, Mapping)
                else None
            ),
            context_uri=(context.get("uri") if isinstance(context, Mapping) else None),
        )


@dataclass(slots=True, frozen=True)
class SearchResults:
    tracks: Page[Track] = field(default_factory=Page)
    artists: Page[Artist] = field(default_factory=Page)
    albums: Page[Album] = field(default_factory=Page)
    playlists: Page[Playlist] = field(default_factory=Page)
    shows: Page[Show] = field(default_factory=Page)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> SearchResults:
        return cls(
            tracks=Page.from_payload(payload.get("tracks"), Track.from_payload),
            artists=Page.from_payload(payload.get("artists"), Artist.from_payload),
            albums=Page.from_payload(payload.get("albums"), Album.from_payload),
            playlists=Page.from_payload(payload.get("playlists"), Playlist.from_payload),
            shows=Page.from_payload(payload.get("shows"), Show.from_payload),
        )


@dataclass(slots=True, frozen=True)
class ArtistDetail:
    artist: Artist
    top_tracks: tuple[Track, ...] = ()
    albums: Page[Album] = field(default_factory=Page)


__all__ = [
    "Album",
    "Artist",
    "ArtistDetail",
    "Device",
    "Episode",
    "PlayableItem",
    "PlaybackSnapshot",
    "Playlist",
    "RepeatState",
    "SearchResults",
    "Show",
    "Track",
    "User",
    "parse_playable",
]
