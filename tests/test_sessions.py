import pytest

from songguess import sessions
from songguess.errors import DuplicateError, NotFoundError, SessionError, ValidationError
from songguess.models import GameState, PlaybackState
from songguess.paths import game_state_path, session_path
from songguess.store import MemoryStore


class SequenceRng:
    def __init__(self, *values):
        self._values = iter(values)

    def randint(self, _low, _high):
        return next(self._values)


def test_generated_codes_have_six_digits():
    for _ in range(100):
        code = sessions.generate_session_code()
        assert len(code) == 6 and code.isdigit() and code[0] != "0"


def test_create_session_writes_initial_game_state(run):
    async def scenario():
        store = MemoryStore()
        code = await sessions.create_session(store)
        return (await store.get_document(session_path(code))), (await store.get_document(game_state_path(code)))

    session, game = run(scenario())
    assert "createdAt" in session.data
    state = GameState.from_document(game.data)
    assert state.playback_state is PlaybackState.PAUSED
    assert state.played_song_ids == []
    assert state.current_song_url is None
    assert game.data["lastActionTimestamp"] is not None


def test_create_session_retries_on_collision(run):
    async def scenario():
        store = MemoryStore()
        await store.set_document(session_path("111111"), {"createdAt": None})
        return await sessions.create_session(store, rng=SequenceRng(111111, 222222))

    assert run(scenario()) == "222222"


def test_create_session_gives_up_after_attempts(run):
    async def scenario():
        store = MemoryStore()
        await store.set_document(session_path("111111"), {"createdAt": None})
        await sessions.create_session(store, attempts=3, rng=SequenceRng(111111, 111111, 111111))

    with pytest.raises(SessionError):
        run(scenario())


@pytest.mark.parametrize("code", ["", "12345", "1234567", "12a456", None])
def test_join_rejects_malformed_codes(run, code):
    with pytest.raises(ValidationError):
        run(sessions.join_session(MemoryStore(), code))


def test_join_unknown_session(run):
    with pytest.raises(NotFoundError):
        run(sessions.join_session(MemoryStore(), "123456"))


def test_players_are_unique_case_insensitively(run):
    async def scenario():
        store = MemoryStore()
        code = await sessions.create_session(store)
        await sessions.add_player(store, code, "  Aino ")
        with pytest.raises(DuplicateError):
            await sessions.add_player(store, code, "aINO")
        with pytest.raises(ValidationError):
            await sessions.add_player(store, code, "   ")
        await sessions.add_player(store, code, "Bertta")
        return await sessions.list_players(store, code)

    players = run(scenario())
    assert [p.name for p in players] == ["Aino", "Bertta"]
    assert all(p.score == 0 for p in players)


def test_score_is_floored_at_zero(run):
    async def scenario():
        store = MemoryStore()
        code = await sessions.create_session(store)
        player = await sessions.add_player(store, code, "Aino")
        scores = [await sessions.update_score(store, code, player.id, delta) for delta in (1, 1, -1, -1, -1)]
        with pytest.raises(NotFoundError):
            await sessions.update_score(store, code, "nobody", 1)
        return scores

    assert run(scenario()) == [1, 2, 1, 0, 0]


def test_add_song_validation_and_duplicates(run):
    async def scenario():
        store = MemoryStore()
        code = await sessions.create_session(store)
        url = "https://www.youtube.com/watch?v=abc"
        song = await sessions.add_song(store, "Song", url, code)
        with pytest.raises(DuplicateError):
            await sessions.add_song(store, "Again", url, code)
        with pytest.raises(ValidationError):
            await sessions.add_song(store, "", url, code)
        with pytest.raises(ValidationError):
            await sessions.add_song(store, "Other", "https://example.com/abc", code)
        with pytest.raises(ValidationError):
            await sessions.add_song(store, 5, "https://www.youtube.com/watch?v=num", code)
        # même URL acceptée dans une autre collection
        await sessions.add_song(store, "Song", url)
        await sessions.add_song(store, "Later", "https://www.youtube.com/watch?v=def", code)
        listed = await sessions.list_songs(store, code)
        await sessions.delete_song(store, code, song.id)
        return listed, await sessions.list_songs(store, code)

    listed, remaining = run(scenario())
    assert [s.title for s in listed] == ["Later", "Song"]
    assert [s.title for s in remaining] == ["Later"]


def test_get_game_includes_players(run):
    async def scenario():
        store = MemoryStore()
        code = await sessions.create_session(store)
        await sessions.add_player(store, code, "Aino")
        return await sessions.get_game(store, code)

    game = run(scenario())
    assert game["playbackState"] == "paused"
    assert [p["name"] for p in game["players"]] == ["Aino"]
    assert isinstance(game["lastActionTimestamp"], str)
