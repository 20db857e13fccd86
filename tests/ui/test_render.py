from __future__ import annotations

from playdeck.config import KeyBindings
from playdeck.core.models import Album, Artist, Device, Playlist, RepeatState, SearchResults, Show
from playdeck.core.navigation import FocusRegion, ViewId
from playdeck.state import Resource
from playdeck.ui.render import describe_item, playback_flags, playing_icon, render

from tests.helpers import build_stack, make_behavior, make_episode, make_page, make_playback, make_track


def _state():
    state, _channel, _worker, _remote = build_stack()
    return state


def test_playback_flags_follow_state() -> None:
    behavior = make_behavior(shuffle_icon="S", repeat_track_icon="T", liked_icon="L")

    assert playback_flags(None, liked=True, behavior=behavior) == ""
    playback = make_playback(shuffle_state=True, repeat_state=RepeatState.TRACK)
    assert playback_flags(playback, liked=True, behavior=behavior) == "STL"
    assert playback_flags(make_playback(), liked=False, behavior=behavior) == ""


def test_playing_icon() -> None:
    behavior = make_behavior(playing_icon="P", paused_icon="Z")

    assert playing_icon(make_playback(is_playing=True), behavior) == "P"
    assert playing_icon(make_playback(is_playing=False), behavior) == "Z"
    assert playing_icon(None, behavior) == "Z"


def test_describe_item() -> None:
    assert describe_item(make_track("a", duration_ms=61_000, name="Song")) == "Song - Artist  1:01"
    assert describe_item(Album(id="al", name="LP", artists=(Artist(id="a", name="Band"),))) == "LP - Band"
    assert describe_item(Show(id="s", name="Talk", publisher="Net")) == "Talk - Net"
    assert describe_item(Device(id="d", name="Den", type="Speaker", is_active=True)) == "Den [Speaker] (active)"
    assert describe_item(("Liked Songs", None)) == "Liked Songs"


def test_home_screen_lists_library_and_playlists() -> None:
    state = _state()
    state.set_playlists(make_page([Playlist(id="p1", name="Mix")]))

    lines = render(state.snapshot(), make_behavior(), width=40, height=20)

    assert lines[0] == "playdeck"
    assert "> Liked Songs" in lines
    assert "  Mix" in lines
    assert lines[-1] == "No playback"
    assert len(lines) == 20
    assert all(len(line) <= 40 for line in lines)


def test_play_bar_shows_pending_seek_and_volume() -> None:
    state = _state()
    state.set_playback(make_playback(make_track(duration_ms=200_000), progress_ms=30_000))
    state.set_seek_ms(60_000)

    lines = render(state.snapshot(), make_behavior(playing_icon="P"))

    assert lines[-2].startswith("P Track t1 - Artist")
    assert lines[-1] == "1:00/3:20  Device d1 50%"


def test_episode_play_bar_uses_show_name() -> None:
    state = _state()
    state.set_playback(make_playback(make_episode()))

    lines = render(state.snapshot(), make_behavior(playing_icon="P"))

    assert lines[-2].startswith("P Episode e1 - Show")


def test_error_view_mentions_back_key() -> None:
    state = _state()
    state.handle_error("Player command failed")

    lines = render(state.snapshot(), make_behavior(), bindings=KeyBindings.from_env({"KEY_BACK": "esc"}))

    assert "Player command failed" in lines
    assert "Press esc to go back" in lines


def test_item_table_page_header() -> None:
    state = _state()
    state.push_route(ViewId.ITEM_TABLE, FocusRegion.ITEM_TABLE)
    state.append_page(Resource.SAVED_TRACKS, make_page([make_track("a"), make_track("b")], offset=50, total=120))

    lines = render(state.snapshot(), make_behavior())

    assert lines[2] == "Songs (51-52 of 120)"
    assert lines[3].startswith("> Track a")


def test_long_list_scrolls_to_keep_the_selected_row_visible() -> None:
    state = _state()
    state.push_route(ViewId.ITEM_TABLE, FocusRegion.ITEM_TABLE)
    tracks = [make_track(f"t{index}") for index in range(30)]
    state.append_page(Resource.SAVED_TRACKS, make_page(tracks, limit=30))
    state.select_item(25)

    lines = render(state.snapshot(), make_behavior(), height=12)

    assert len(lines) == 12
    assert lines[2] == "Songs (1-30 of 30)"
    assert lines[3].startswith("  Track t18 -")
    assert lines[10].startswith("> Track t25 -")
    assert lines[11] == "No playback"


def test_search_view_shows_input_and_results() -> None:
    state = _state()
    state.push_route(ViewId.SEARCH, FocusRegion.INPUT)
    state.set_input_text("abc")
    state.set_search_results(SearchResults(tracks=make_page([make_track("x")])))

    lines = render(state.snapshot(), make_behavior())

    assert lines[2] == "Search: abc_"
    assert "  Track x - Artist  3:20" in lines


def test_help_lists_bindings() -> None:
    state = _state()
    state.push_route(ViewId.DIALOG, FocusRegion.HELP_MENU)

    lines = render(state.snapshot(), make_behavior(), bindings=KeyBindings())

    assert lines[2] == "Help"
    assert any(line.split() == ["/", "search"] for line in lines)
