from __future__ import annotations

import asyncio

import pytest

from playdeck.core import commands as cmd
from playdeck.core.navigation import FocusRegion, ViewId
from playdeck.orchestrator.worker import Worker
from playdeck.state import Resource, SharedState

from tests.helpers import FakeRemote, build_stack, make_page, make_track


@pytest.mark.asyncio
async def test_commands_execute_in_send_order() -> None:
    state, channel, worker, remote = build_stack()
    order: list[str] = []

    async def record(command: cmd.Command) -> None:
        order.append(command.name)

    handlers = {
        cmd.GetUser: record,
        cmd.GetPlaylists: record,
        cmd.GetDevices: record,
    }
    worker = Worker(state, channel, handlers)
    state.dispatch(cmd.GetUser())
    state.dispatch(cmd.GetPlaylists())
    state.dispatch(cmd.GetDevices())
    worker.request_stop()

    await worker.run()

    assert order == ["GetUser", "GetPlaylists", "GetDevices"]
    assert worker.processed == 3
    assert worker.stopped.is_set()


@pytest.mark.asyncio
async def test_loading_flag_is_raised_while_a_command_executes() -> None:
    state, channel, _worker, _remote = build_stack()
    observed: list[bool] = []

    async def inspect(command: cmd.Command) -> None:
        observed.append(state.is_loading)

    worker = Worker(state, channel, {cmd.GetUser: inspect})

    assert await worker.execute(cmd.GetUser()) is True
    assert observed == [True]
    assert state.is_loading is False
    assert worker.executing is None


@pytest.mark.asyncio
async def test_remote_failure_shows_error_route_and_next_command_runs() -> None:
    remote = FakeRemote()
    remote.fail("current_user", "service unavailable")
    state, _channel, worker, remote = build_stack(remote)

    state.dispatch(cmd.GetUser())
    state.dispatch(cmd.GetPlaylists())
    await worker.drain()

    route = state.current_route()
    assert route.id is ViewId.ERROR
    assert route.active_block is FocusRegion.ERROR
    assert state.api_error == "service unavailable"
    assert state.is_loading is False
    assert remote.names() == ["current_user", "playlists"]
    assert [playlist.id for playlist in state.playlists.items] == ["p1"]


@pytest.mark.asyncio
async def test_failed_page_fetch_leaves_the_cache_untouched() -> None:
    remote = FakeRemote()
    remote.fail("saved_tracks", "Request timed out", status=503)
    state, _channel, worker, remote = build_stack(remote)
    state.append_page(Resource.SAVED_TRACKS, make_page([make_track("a"), make_track("b")], total=4))

    state.dispatch(cmd.GetSavedTracks(offset=2))
    state.dispatch(cmd.GetPlaylists())
    await worker.drain()

    assert state.cached_page_count(Resource.SAVED_TRACKS) == 1
    assert state.page_cursor(Resource.SAVED_TRACKS) == 0
    assert [track.id for track in state.current_page(Resource.SAVED_TRACKS).items] == ["a", "b"]
    assert state.current_route().id is ViewId.ERROR
    assert state.api_error == "Request timed out"
    assert state.is_loading is False
    assert remote.names() == ["saved_tracks", "playlists"]
    assert [playlist.id for playlist in state.playlists.items] == ["p1"]


@pytest.mark.asyncio
async def test_unexpected_exception_is_reported_not_raised() -> None:
    state, channel, _worker, _remote = build_stack()

    async def explode(command: cmd.Command) -> None:
        raise KeyError("missing")

    worker = Worker(state, channel, {cmd.GetUser: explode})

    assert await worker.execute(cmd.GetUser()) is False
    assert state.current_route().id is ViewId.ERROR
    assert "missing" in state.api_error


@pytest.mark.asyncio
async def test_missing_handler_is_reported() -> None:
    state, channel, _worker, _remote = build_stack()
    worker = Worker(state, channel, {})

    assert await worker.execute(cmd.GetUser()) is False
    assert state.api_error == "no handler registered for GetUser"


@pytest.mark.asyncio
async def test_failed_refresh_releases_the_in_flight_flag() -> None:
    remote = FakeRemote()
    remote.fail("current_playback")
    state, _channel, worker, _remote = build_stack(remote)
    assert state.claim_playback_refresh(0)

    await worker.execute(cmd.GetCurrentPlayback())

    assert state.is_fetching_current_playback is False


@pytest.mark.asyncio
async def test_follow_ups_are_queued_not_awaited() -> None:
    state, channel, worker, remote = build_stack()

    await worker.execute(cmd.NextTrack())

    assert remote.names() == ["next_track"]
    assert channel.try_receive() == cmd.GetCurrentPlayback()


@pytest.mark.asyncio
async def test_send_after_worker_stopped_surfaces_as_error() -> None:
    state, channel, worker, _remote = build_stack()
    worker.request_stop()
    await worker.run()

    assert state.dispatch(cmd.GetUser()) is False

    assert state.current_route().id is ViewId.ERROR
    assert state.api_error == "command channel is closed"
    assert state.is_loading is False


@pytest.mark.asyncio
async def test_run_waits_for_commands_until_stopped() -> None:
    state, _channel, worker, remote = build_stack()
    task = asyncio.create_task(worker.run())
    await worker.started.wait()

    state.dispatch(cmd.GetUser())
    for _ in range(20):
        if remote.names():
            break
        await asyncio.sleep(0.01)
    worker.request_stop()
    await asyncio.wait_for(task, timeout=1)

    assert remote.names() == ["current_user"]
    assert state.user is not None
