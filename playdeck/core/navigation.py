"""Route stack describing which view is shown and which panel has focus."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, replace
from enum import Enum


class ViewId(str, Enum):
    ANALYSIS = "analysis"
    ALBUM_TRACKS = "album_tracks"
    ALBUM_LIST = "album_list"
    ARTIST = "artist"
    BASIC_VIEW = "basic_view"
    ERROR = "error"
    HOME = "home"
    RECENTLY_PLAYED = "recently_played"
    SEARCH = "search"
    SELECTED_DEVICE = "selected_device"
    ITEM_TABLE = "item_table"
    MADE_FOR_YOU = "made_for_you"
    ARTISTS = "artists"
    PODCASTS = "podcasts"
    PODCAST_EPISODES = "podcast_episodes"
    RECOMMENDATIONS = "recommendations"
    DIALOG = "dialog"


class FocusRegion(str, Enum):
    ANALYSIS = "analysis"
    PLAY_BAR = "play_bar"
    ALBUM_TRACKS = "album_tracks"
    ALBUM_LIST = "album_list"
    ARTIST_BLOCK = "artist_block"
    EMPTY = "empty"
    ERROR = "error"
    HELP_MENU = "help_menu"
    HOME = "home"
    INPUT = "input"
    LIBRARY = "library"
    MY_PLAYLISTS = "my_playlists"
    PODCASTS = "podcasts"
    EPISODE_TABLE = "episode_table"
    RECENTLY_PLAYED = "recently_played"
    SEARCH_RESULT_BLOCK = "search_result_block"
    SELECT_DEVICE = "select_device"
    ITEM_TABLE = "item_table"
    MADE_FOR_YOU = "made_for_you"
    ARTISTS = "artists"
    BASIC_VIEW = "basic_view"
    DIALOG = "dialog"


@dataclass(slots=True, frozen=True)
class Route:
    id: ViewId
    active_block: FocusRegion
    hovered_block: FocusRegion


DEFAULT_ROUTE = Route(
    id=ViewId.HOME,
    active_block=FocusRegion.EMPTY,
    hovered_block=FocusRegion.LIBRARY,
)


class NavigationStack:
    """Stack of routes; the last entry is the current view.

    The stack always holds at least the root route. Popping the root is a
    no-op that returns ``None`` and pushing the view that is already on top
    leaves the stack unchanged.
    """

    __slots__ = ("_routes",)

    def __init__(self, root: Route = DEFAULT_ROUTE) -> None:
        self._routes: list[Route] = [root]

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[Route]:
        return iter(tuple(self._routes))

    def current(self) -> Route:
        return self._routes[-1]

    def push(self, view: ViewId, active_block: FocusRegion) -> bool:
        """Push a new route; returns ``False`` when ``view`` is already on top."""

        if self._routes[-1].id == view:
            return False
        self._routes.append(Route(id=view, active_block=active_block, hovered_block=active_block))
        return True

    def pop(self) -> Route | None:
        if len(self._routes) == 1:
            return None
        return self._routes.pop()

    def set_active_and_hovered(
        self,
        active: FocusRegion | None = None,
        hovered: FocusRegion | None = None,
    ) -> None:
        top = self._routes[-1]
        changes: dict[str, FocusRegion] = {}
        if active is not None:
            changes["active_block"] = active
        if hovered is not None:
            changes["hovered_block"] = hovered
        if changes:
            self._routes[-1] = replace(top, **changes)


__all__ = ["DEFAULT_ROUTE", "FocusRegion", "NavigationStack", "Route", "ViewId"]
