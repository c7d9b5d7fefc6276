import random

from conftest import FAST, FakePlayer, make_session

from songguess.coordinator import PlaybackCoordinator
from songguess.machine import NO_SONGS_ERROR
from songguess.models import PlaybackState
from songguess.sessions import create_session
from songguess.store import MemoryStore
from songguess.synchronizer import LocalSynchronizer


class MissingSongStore(MemoryStore):
    async def get_document(self, path):
        if "/songs/" in path:
            return None
        return await super().get_document(path)


async def started(store, code, seed=0):
    coordinator = PlaybackCoordinator(store, code, FAST, rng=random.Random(seed))
    seen = []

    async def record(state):
        seen.append(state.playback_state)

    coordinator.add_listener(record)
    await coordinator.start()
    return coordinator, seen


def test_select_next_publishes_loading_then_selected_song(run):
    async def scenario():
        store = MemoryStore()
        code, ids = await make_session(store)
        coordinator, seen = await started(store, code)
        await coordinator.request_next_song()
        return ids, coordinator.state, seen

    ids, state, seen = run(scenario())
    assert seen == [PlaybackState.PAUSED, PlaybackState.LOADING, PlaybackState.PAUSED]
    assert state.current_song_id in ids
    assert state.played_song_ids == [state.current_song_id]
    assert state.current_song_url == f"https://www.youtube.com/watch?v={state.current_song_title}"
    assert state.seek_time == 0
    assert state.snippet_played_once is False
    assert state.error is None


def test_every_song_played_once_then_finished(run):
    async def scenario():
        store = MemoryStore()
        code, ids = await make_session(store, titles=("A", "B", "C", "D"))
        coordinator, _ = await started(store, code, seed=5)
        for _ in ids:
            await coordinator.request_next_song()
        played = list(coordinator.state.played_song_ids)
        await coordinator.request_next_song()
        return ids, played, coordinator.state

    ids, played, state = run(scenario())
    assert sorted(played) == sorted(ids)
    assert len(set(played)) == len(played)
    assert state.playback_state is PlaybackState.FINISHED
    assert state.played_song_ids == played
    assert state.current_song_title == FAST.all_played_message
    assert state.current_song_url is None


def test_empty_session_is_an_error_not_finished(run):
    async def scenario():
        store = MemoryStore()
        code = await create_session(store)
        coordinator, _ = await started(store, code)
        await coordinator.request_next_song()
        return coordinator.state

    state = run(scenario())
    assert state.playback_state is PlaybackState.ERROR
    assert state.error == NO_SONGS_ERROR


def test_missing_song_record_does_not_mark_it_played(run):
    async def scenario():
        store = MissingSongStore()
        code, _ = await make_session(store)
        coordinator, _ = await started(store, code)
        await coordinator.request_next_song()
        return coordinator.state

    state = run(scenario())
    assert state.playback_state is PlaybackState.ERROR
    assert state.error.startswith("Failed to select next song:")
    assert state.played_song_ids == []


def test_restart_resets_history_to_the_new_song(run):
    async def scenario():
        store = MemoryStore()
        code, ids = await make_session(store)
        coordinator, _ = await started(store, code)
        for _ in range(len(ids) + 1):
            await coordinator.request_next_song()
        finished = coordinator.state.playback_state
        await coordinator.request_restart_game()
        return finished, coordinator.state

    finished, state = run(scenario())
    assert finished is PlaybackState.FINISHED
    assert state.playback_state is PlaybackState.PAUSED
    assert state.played_song_ids == [state.current_song_id]


def test_reveal_and_error_recovery(run):
    async def scenario():
        store = MemoryStore()
        code, _ = await make_session(store, titles=("A", "B"))
        coordinator, _ = await started(store, code)
        assert await coordinator.request_reveal() is False
        await coordinator.request_next_song()
        assert await coordinator.request_reveal() is True
        assert await coordinator.request_reveal() is False
        revealed = coordinator.state.playback_state
        await coordinator.request_state_update({"playbackState": "error", "error": "boom"})
        await coordinator.request_next_song()
        return revealed, coordinator.state

    revealed, state = run(scenario())
    assert revealed is PlaybackState.REVEALED
    assert state.playback_state is PlaybackState.PAUSED
    assert state.error is None
    assert len(state.played_song_ids) == 2


def test_missing_game_state_is_initialized(run):
    async def scenario():
        store = MemoryStore()
        coordinator, seen = await started(store, "654321")
        return coordinator.state, seen

    state, seen = run(scenario())
    assert state.playback_state is PlaybackState.PAUSED
    assert seen == [PlaybackState.PAUSED]


def test_writes_from_one_screen_reach_the_others(run):
    async def scenario():
        store = MemoryStore()
        code, _ = await make_session(store)
        host, _ = await started(store, code)
        guest, _ = await started(store, code)
        for coordinator in (host, guest):
            LocalSynchronizer(FakePlayer(), coordinator, FAST)
        await guest.request_next_song()
        result = (host.state.current_song_id, guest.state.current_song_id)
        await host.close()
        await guest.close()
        return result

    host_song, guest_song = run(scenario())
    assert host_song is not None and host_song == guest_song
