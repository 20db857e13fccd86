"""Commands queued for the worker, one per remote operation."""

from __future__ import annotations

from dataclasses import dataclass

from playdeck.core.models import RepeatState


@dataclass(slots=True, frozen=True)
class Command:
    """Base class of every queued request."""

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(slots=True, frozen=True)
class GetCurrentPlayback(Command):
    pass


@dataclass(slots=True, frozen=True)
class GetUser(Command):
    pass


@dataclass(slots=True, frozen=True)
class GetPlaylists(Command):
    offset: int = 0


@dataclass(slots=True, frozen=True)
class GetDevices(Command):
    pass


@dataclass(slots=True, frozen=True)
class GetSavedTracks(Command):
    offset: int = 0


@dataclass(slots=True, frozen=True)
class GetSavedAlbums(Command):
    offset: int = 0


@dataclass(slots=True, frozen=True)
class GetSavedShows(Command):
    offset: int = 0


@dataclass(slots=True, frozen=True)
class GetFollowedArtists(Command):
    after: str | None = None


@dataclass(slots=True, frozen=True)
class GetShowEpisodes(Command):
    show_id: str
    offset: int = 0


@dataclass(slots=True, frozen=True)
class GetPlaylistItems(Command):
    playlist_id: str
    offset: int = 0


@dataclass(slots=True, frozen=True)
class GetAlbumTracks(Command):
    album_id: str


@dataclass(slots=True, frozen=True)
class GetArtist(Command):
    artist_id: str


@dataclass(slots=True, frozen=True)
class Search(Command):
    term: str


@dataclass(slots=True, frozen=True)
class StartPlayback(Command):
    context_uri: str | None = None
    uris: tuple[str, ...] = ()
    offset: int | None = None


@dataclass(slots=True, frozen=True)
class AddToQueue(Command):
    uri: str


@dataclass(slots=True, frozen=True)
class PausePlayback(Command):
    pass


@dataclass(slots=True, frozen=True)
class ResumePlayback(Command):
    pass


@dataclass(slots=True, frozen=True)
class NextTrack(Command):
    pass


@dataclass(slots=True, frozen=True)
class PreviousTrack(Command):
    pass


@dataclass(slots=True, frozen=True)
class Seek(Command):
    position_ms: int


@dataclass(slots=True, frozen=True)
class ChangeVolume(Command):
    volume_percent: int


@dataclass(slots=True, frozen=True)
class ToggleShuffle(Command):
    pass


@dataclass(slots=True, frozen=True)
class CycleRepeat(Command):
    current: RepeatState


@dataclass(slots=True, frozen=True)
class TransferPlayback(Command):
    device_id: str


@dataclass(slots=True, frozen=True)
class ToggleSaveTrack(Command):
    track_id: str


@dataclass(slots=True, frozen=True)
class SavedTracksContains(Command):
    track_ids: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class SavedAlbumsContains(Command):
    album_ids: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class SavedShowsContains(Command):
    show_ids: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class FollowedArtistsContains(Command):
    artist_ids: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class SaveAlbum(Command):
    album_id: str


@dataclass(slots=True, frozen=True)
class UnsaveAlbum(Command):
    album_id: str


@dataclass(slots=True, frozen=True)
class FollowArtist(Command):
    artist_id: str


@dataclass(slots=True, frozen=True)
class UnfollowArtist(Command):
    artist_id: str


@dataclass(slots=True, frozen=True)
class SaveShow(Command):
    show_id: str


@dataclass(slots=True, frozen=True)
class UnsaveShow(Command):
    show_id: str


@dataclass(slots=True, frozen=True)
class UpdateSearchLimits(Command):
    large: int
    small: int


@dataclass(slots=True, frozen=True)
class RefreshAuthentication(Command):
    pass


__all__ = [
    "AddToQueue",
    "ChangeVolume",
    "Command",
    "CycleRepeat",
    "FollowArtist",
    "FollowedArtistsContains",
    "GetAlbumTracks",
    "GetArtist",
    "GetCurrentPlayback",
    "GetDevices",
    "GetFollowedArtists",
    "GetPlaylistItems",
    "GetPlaylists",
    "GetSavedAlbums",
    "GetSavedShows",
    "GetSavedTracks",
    "GetShowEpisodes",
    "GetUser",
    "NextTrack",
    "PausePlayback",
    "PreviousTrack",
    "RefreshAuthentication",
    "ResumePlayback",
    "SaveAlbum",
    "SaveShow",
    "SavedAlbumsContains",
    "SavedShowsContains",
    "SavedTracksContains",
    "Search",
    "Seek",
    "StartPlayback",
    "ToggleSaveTrack",
    "ToggleShuffle",
    "TransferPlayback",
    "UnfollowArtist",
    "UnsaveAlbum",
    "UnsaveShow",
    "UpdateSearchLimits",
]
