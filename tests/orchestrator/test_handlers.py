from __future__ import annotations

import pytest

from playdeck.core import commands as cmd
from playdeck.core.models import Album, Artist, ArtistDetail, RepeatState, SearchResults
from playdeck.core.navigation import FocusRegion, ViewId
from playdeck.state import Collection, Resource

from tests.helpers import (
    FakeRemote,
    build_stack,
    drain_names,
    make_device,
    make_episode,
    make_page,
    make_playback,
    make_track,
)


@pytest.mark.asyncio
async def test_playback_refresh_checks_whether_the_track_is_liked() -> None:
    remote = FakeRemote()
    remote.saved_ids.add("t1")
    state, _channel, worker, remote = build_stack(remote)

    await worker.execute(cmd.GetCurrentPlayback())
    await worker.drain()

    assert remote.names() == ["current_playback", "saved_tracks_contains"]
    assert state.contains(Collection.LIKED_TRACKS, "t1")
    assert state.snapshot().is_liked(state.playback.item)


@pytest.mark.asyncio
async def test_playback_refresh_for_episode_checks_the_show() -> None:
    remote = FakeRemote()
    remote.playback = make_playback(make_episode("e1", show_id="s9"))
    state, channel, worker, remote = build_stack(remote)

    await worker.execute(cmd.GetCurrentPlayback())

    assert channel.try_receive() == cmd.SavedShowsContains(show_ids=("s9",))


@pytest.mark.asyncio
async def test_seek_waits_then_refreshes_inline() -> None:
    state, channel, worker, remote = build_stack()
    state.set_playback(make_playback())
    state.set_seek_ms(30_000)

    await worker.execute(cmd.Seek(position_ms=30_000))

    assert remote.names()[:2] == ["seek", "current_playback"]
    assert state.seek_ms is None
    assert drain_names(channel) == ["SavedTracksContains"]


@pytest.mark.asyncio
async def test_shuffle_and_repeat_update_state_after_the_remote_call() -> None:
    state, _channel, worker, remote = build_stack()
    state.set_playback(make_playback(shuffle_state=False, repeat_state=RepeatState.TRACK))

    await worker.execute(cmd.ToggleShuffle())
    await worker.execute(cmd.CycleRepeat(current=RepeatState.TRACK))

    assert state.playback.shuffle_state is True
    assert state.playback.repeat_state is RepeatState.OFF
    assert remote.calls[0][1] == (True,)
    assert remote.calls[1][1] == (RepeatState.OFF,)


@pytest.mark.asyncio
async def test_failed_shuffle_leaves_state_untouched() -> None:
    remote = FakeRemote()
    remote.fail("set_shuffle")
    state, _channel, worker, remote = build_stack(remote)
    state.set_playback(make_playback(shuffle_state=False))

    await worker.execute(cmd.ToggleShuffle())

    assert state.playback.shuffle_state is False
    assert state.current_route().id is ViewId.ERROR


@pytest.mark.asyncio
async def test_change_volume_records_new_device_volume() -> None:
    state, _channel, worker, _remote = build_stack()
    state.set_playback(make_playback(device=make_device(volume=40)))

    await worker.execute(cmd.ChangeVolume(volume_percent=50))

    assert state.playback.device.volume_percent == 50


@pytest.mark.asyncio
async def test_toggle_save_track_adds_then_removes() -> None:
    state, _channel, worker, remote = build_stack()

    await worker.execute(cmd.ToggleSaveTrack(track_id="t5"))
    assert state.contains(Collection.LIKED_TRACKS, "t5")
    assert "t5" in remote.saved_ids

    await worker.execute(cmd.ToggleSaveTrack(track_id="t5"))
    assert not state.contains(Collection.LIKED_TRACKS, "t5")
    assert "remove_saved_tracks" in remote.names()


@pytest.mark.asyncio
async def test_start_playback_resets_progress_and_refreshes() -> None:
    state, channel, worker, remote = build_stack()
    state.set_playback(make_playback(progress_ms=90_000))
    state.set_active_device("d2")

    await worker.execute(cmd.StartPlayback(uris=("spotify:track:t1",), offset=0))

    assert state.song_progress_ms == 0
    _name, _args, kwargs = remote.calls[0]
    assert kwargs["device_id"] == "d2"
    assert kwargs["uris"] == ("spotify:track:t1",)
    assert drain_names(channel) == ["GetCurrentPlayback"]


@pytest.mark.asyncio
async def test_get_devices_opens_device_picker() -> None:
    state, _channel, worker, _remote = build_stack()

    await worker.execute(cmd.GetDevices())

    route = state.current_route()
    assert route.id is ViewId.SELECTED_DEVICE
    assert route.active_block is FocusRegion.SELECT_DEVICE
    assert state.selected_device().id == "d1"


@pytest.mark.asyncio
async def test_transfer_records_active_device() -> None:
    state, channel, worker, remote = build_stack()

    await worker.execute(cmd.TransferPlayback(device_id="d2"))

    assert state.active_device_id == "d2"
    assert remote.calls[0][1] == ("d2",)
    assert drain_names(channel) == ["GetCurrentPlayback"]


@pytest.mark.asyncio
async def test_saved_tracks_page_marks_tracks_as_liked() -> None:
    remote = FakeRemote()
    remote.pages["saved_tracks"] = [make_page([make_track("a"), make_track("b")], total=4)]
    state, _channel, worker, _remote = build_stack(remote)

    await worker.execute(cmd.GetSavedTracks(offset=0))

    assert state.cached_page_count(Resource.SAVED_TRACKS) == 1
    assert state.members(Collection.LIKED_TRACKS) == frozenset({"a", "b"})


@pytest.mark.asyncio
async def test_empty_album_page_is_not_cached() -> None:
    state, _channel, worker, _remote = build_stack()

    await worker.execute(cmd.GetSavedAlbums(offset=40))

    assert state.cached_page_count(Resource.SAVED_ALBUMS) == 0


@pytest.mark.asyncio
async def test_first_episode_page_resets_the_cache_for_a_new_show() -> None:
    remote = FakeRemote()
    remote.pages["show_episodes"] = [
        make_page([make_episode("e1")]),
        make_page([make_episode("e9", show_id="s2")]),
    ]
    state, _channel, worker, _remote = build_stack(remote)

    await worker.execute(cmd.GetShowEpisodes(show_id="s1", offset=0))
    await worker.execute(cmd.GetShowEpisodes(show_id="s2", offset=0))

    assert state.cached_page_count(Resource.SHOW_EPISODES) == 1
    assert state.page_owner(Resource.SHOW_EPISODES) == "s2"
    assert state.current_page(Resource.SHOW_EPISODES).items[0].id == "e9"


@pytest.mark.asyncio
async def test_late_playlist_page_for_another_playlist_is_dropped() -> None:
    remote = FakeRemote()
    remote.pages["playlist_items"] = [
        make_page([make_track("b1")], total=1),
        make_page([make_track("a3"), make_track("a4")], offset=2, total=4),
    ]
    state, channel, worker, _remote = build_stack(remote)

    await worker.execute(cmd.GetPlaylistItems(playlist_id="B", offset=0))
    drain_names(channel)
    await worker.execute(cmd.GetPlaylistItems(playlist_id="A", offset=2))

    assert state.page_owner(Resource.PLAYLIST_ITEMS) == "B"
    assert state.cached_page_count(Resource.PLAYLIST_ITEMS) == 1
    assert [item.id for item in state.current_page(Resource.PLAYLIST_ITEMS).items] == ["b1"]
    assert drain_names(channel) == []


@pytest.mark.asyncio
async def test_album_tracks_open_the_album_view() -> None:
    remote = FakeRemote()
    remote.pages["album_tracks"] = [make_page([make_track("x")])]
    state, channel, worker, _remote = build_stack(remote)

    await worker.execute(cmd.GetAlbumTracks(album_id="al1"))

    assert state.current_route().id is ViewId.ALBUM_TRACKS
    assert state.album_tracks.items[0].id == "x"
    assert drain_names(channel) == ["SavedTracksContains"]


@pytest.mark.asyncio
async def test_artist_uses_user_country_and_queues_membership_checks() -> None:
    remote = FakeRemote()
    remote.artist_detail = ArtistDetail(
        artist=Artist(id="ar1", name="Band"),
        top_tracks=(make_track("t1"),),
        albums=make_page([Album(id="al1", name="First")]),
    )
    state, channel, worker, remote = build_stack(remote)
    await worker.execute(cmd.GetUser())

    await worker.execute(cmd.GetArtist(artist_id="ar1"))

    assert remote.calls[-1] == ("artist", ("ar1",), {"country": "SE"})
    assert state.current_route().id is ViewId.ARTIST
    assert drain_names(channel) == [
        "FollowedArtistsContains",
        "SavedAlbumsContains",
        "SavedTracksContains",
    ]


@pytest.mark.asyncio
async def test_search_uses_configured_limits() -> None:
    remote = FakeRemote()
    remote.search_results = SearchResults(tracks=make_page([make_track("t1")]))
    state, channel, worker, remote = build_stack(remote)

    await worker.execute(cmd.UpdateSearchLimits(large=10, small=3))
    await worker.execute(cmd.Search(term="hello"))

    assert remote.calls[-1] == ("search", ("hello",), {"large_limit": 10, "small_limit": 3})
    assert state.search_results.tracks.items[0].id == "t1"
    assert drain_names(channel) == ["SavedTracksContains"]


@pytest.mark.asyncio
async def test_refresh_authentication_stores_expiry() -> None:
    remote = FakeRemote()
    remote.token_expiry = 500.0
    state, _channel, worker, _remote = build_stack(remote)

    await worker.execute(cmd.RefreshAuthentication())

    assert state.claim_token_refresh(400.0) is False
    assert state.claim_token_refresh(600.0) is True
