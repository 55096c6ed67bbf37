"""
Event handler tests through the dispatcher, with mock sockets.
Covers host checks, room-state guards, pushes per audience, the quiz-start
window and disconnect cleanup.
"""
import asyncio

import pytest

from models.room import RoomState
from routers.room_events import handle_disconnect

from conftest import connect, make_questions, open_room


async def configure_quiz(display, code):
    assert (await display.send("select-game", roomCode=code, gameType="quiz"))["success"]
    assert (await display.send("confirm-config", roomCode=code))["success"]


# ===========================================================================
# Dispatcher
# ===========================================================================

class TestDispatcher:

    @pytest.mark.asyncio
    async def test_unknown_type(self, svc):
        device = await connect(svc)
        res = await device.send("teleport")
        assert res["success"] is False
        assert res["code"] == "UNKNOWN_TYPE"

    @pytest.mark.asyncio
    async def test_ping(self, svc):
        device = await connect(svc)
        res = await device.send("ping")
        assert res["success"] and res["pong"] is True

    @pytest.mark.asyncio
    async def test_bad_payload_is_validation_error(self, svc):
        display, code, _ = await open_room(svc, names=())
        phone = await connect(svc)
        res = await phone.send("join-room", roomCode=code)
        assert res["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_handler_crash_is_server_error(self, svc, monkeypatch):
        display, code, _ = await open_room(svc, names=("A",))

        def boom(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(svc.room_store, "confirm_quiz_settings", boom)
        await display.send("select-game", roomCode=code, gameType="quiz")
        res = await display.send("confirm-config", roomCode=code)
        assert res == {"success": False, "error": "Internal server error", "code": "SERVER_ERROR"}


# ===========================================================================
# Rooms
# ===========================================================================

class TestRooms:

    @pytest.mark.asyncio
    async def test_join_unknown_room(self, svc):
        phone = await connect(svc)
        res = await phone.send("join-room", roomCode="NOPE00", playerName="Alice")
        assert res["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_join_response_and_push(self, svc):
        display, code, (alice,) = await open_room(svc, names=("Alice",))
        bob = await connect(svc)
        res = await bob.send("join-room", roomCode=code.lower(), playerName="  Bob ")
        assert res["success"]
        assert res["isHost"] is False and res["isFirstPlayer"] is False
        assert res["roomState"] == "WAITING"
        assert [p["name"] for p in res["players"]] == ["Alice", "Bob"]

        pushed = display.last("player-joined")
        assert pushed["player"]["name"] == "Bob"
        assert alice.last("player-joined")["hostPlayerId"] == alice.player_id
        assert bob.all("player-joined") == []

    @pytest.mark.asyncio
    async def test_first_player_is_host(self, svc):
        _, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        room = svc.room_store.get_room(code)
        assert room.host_player_id == alice.player_id

    @pytest.mark.asyncio
    async def test_connection_joins_one_room(self, svc):
        _, code, (alice,) = await open_room(svc, names=("Alice",))
        _, other_code, _ = await open_room(svc, names=())
        res = await alice.send("join-room", roomCode=other_code, playerName="Again")
        assert res["code"] == "INVALID_STATE"
        res = await alice.send("create-room")
        assert res["code"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_select_game_non_host(self, svc):
        _, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        res = await bob.send("select-game", roomCode=code, gameType="quiz")
        assert res["code"] == "UNAUTHORIZED"
        assert svc.room_store.get_room(code).state == RoomState.WAITING

    @pytest.mark.asyncio
    async def test_cannot_act_for_another_player(self, svc):
        _, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        res = await bob.send("select-game", roomCode=code, playerId=alice.player_id, gameType="quiz")
        assert res["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_outsider_is_rejected(self, svc):
        _, code, _ = await open_room(svc, names=("Alice",))
        stranger = await connect(svc)
        res = await stranger.send("select-game", roomCode=code, gameType="quiz")
        assert res["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_host_player_selects_game(self, svc):
        display, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        res = await alice.send("select-game", roomCode=code, playerId=alice.player_id, gameType="quiz")
        assert res["success"]
        assert svc.room_store.get_room(code).state == RoomState.CONFIG
        assert bob.last("state-changed") == {"type": "state-changed", "state": "CONFIG", "gameType": "quiz"}

    @pytest.mark.asyncio
    async def test_quiz_settings_flow(self, svc):
        display, code, (alice,) = await open_room(svc, names=("Alice",))
        res = await alice.send("update-quiz-settings", roomCode=code, settings={"category": "Space"})
        assert res["code"] == "INVALID_STATE"

        await display.send("select-game", roomCode=code, gameType="quiz")
        res = await alice.send("update-quiz-settings", roomCode=code, settings={"category": "Space"})
        assert res["settings"]["category"] == "Space"
        assert display.last("quiz-settings-updated")["settings"]["configReady"] is False

        await alice.send("confirm-config", roomCode=code)
        assert display.last("config-ready")["settings"]["configReady"] is True
        res = await alice.send("update-quiz-settings", roomCode=code, settings={"category": "Art"})
        assert res["code"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_return_to_lobby(self, svc):
        display, code, (alice, bob, cara) = await open_room(svc)
        await display.send("spy-start-game", roomCode=code)
        res = await display.send("return-to-lobby", roomCode=code)
        assert res["success"]
        room = svc.room_store.get_room(code)
        assert room.state == RoomState.WAITING
        assert room.active_game is None
        assert not svc.spy.has_game(code)
        assert alice.last("state-changed")["state"] == "WAITING"


# ===========================================================================
# Quiz
# ===========================================================================

class TestQuizEvents:

    @pytest.mark.asyncio
    async def test_start_requires_confirmed_config(self, svc, questions):
        display, code, _ = await open_room(svc, names=("Alice",))
        await display.send("select-game", roomCode=code, gameType="quiz")
        res = await display.send("quiz-start", roomCode=code)
        assert res["code"] == "INVALID_STATE"
        assert questions.calls == 0

    @pytest.mark.asyncio
    async def test_start_pushes_questions_and_state(self, svc):
        display, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        await configure_quiz(display, code)
        res = await display.send("quiz-start", roomCode=code)
        assert res["success"] and res["totalQuestions"] == 2

        started = bob.last("quiz-started")
        assert started["currentQuestion"]["questionIndex"] == 0
        assert len(started["questions"]) == 2
        assert bob.last("state-changed")["state"] == "PLAYING"
        assert svc.room_store.get_room(code).state == RoomState.PLAYING

    @pytest.mark.asyncio
    async def test_concurrent_start_rejected(self, svc, questions):
        display, code, _ = await open_room(svc, names=("Alice",))
        await configure_quiz(display, code)
        questions.gate = asyncio.Event()

        first = asyncio.create_task(display.send("quiz-start", roomCode=code))
        await asyncio.sleep(0)
        assert svc.room_store.get_room(code).start_pending is True

        second = await display.send("quiz-start", roomCode=code)
        assert second["code"] == "INVALID_STATE"

        questions.gate.set()
        result = await first
        assert result["success"]
        assert questions.calls == 1
        assert len(display.all("quiz-started")) == 1
        assert svc.room_store.get_room(code).start_pending is False

    @pytest.mark.asyncio
    async def test_room_closed_while_generating(self, svc, questions):
        display, code, (alice,) = await open_room(svc, names=("Alice",))
        await configure_quiz(display, code)
        questions.gate = asyncio.Event()

        pending = asyncio.create_task(display.send("quiz-start", roomCode=code))
        await asyncio.sleep(0)
        await handle_disconnect(svc, display.connection_id)
        questions.gate.set()

        result = await pending
        assert result["code"] == "NOT_FOUND"
        assert not svc.quiz.has_game(code)
        assert alice.all("quiz-started") == []

    @pytest.mark.asyncio
    async def test_lobby_blocked_while_generating(self, svc, questions):
        display, code, _ = await open_room(svc, names=("Alice",))
        await configure_quiz(display, code)
        questions.gate = asyncio.Event()

        pending = asyncio.create_task(display.send("quiz-start", roomCode=code))
        await asyncio.sleep(0)
        res = await display.send("return-to-lobby", roomCode=code)
        assert res["code"] == "INVALID_STATE"
        questions.gate.set()
        assert (await pending)["success"]

    @pytest.mark.asyncio
    async def test_answers_and_scores(self, svc):
        display, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        await configure_quiz(display, code)
        await display.send("quiz-start", roomCode=code)

        res = await alice.send("quiz-submit-answer", roomCode=code, answerLetter="a")
        assert res["success"] and res["isCorrect"] is True
        dup = await alice.send("quiz-submit-answer", roomCode=code, answerLetter="B")
        assert dup["success"] is False
        assert dup["code"] == "ALREADY_ACTED"
        assert dup["alreadyAnswered"] is True

        res = await bob.send("quiz-submit-answer", roomCode=code, answerIndex=2)
        assert res["isCorrect"] is False
        pushed = display.last("quiz-answer-submitted")
        assert pushed["playerId"] == bob.player_id
        assert pushed["scores"] == {alice.player_id: 1, bob.player_id: 0}

    @pytest.mark.asyncio
    async def test_display_cannot_answer(self, svc):
        display, code, _ = await open_room(svc, names=("Alice",))
        await configure_quiz(display, code)
        await display.send("quiz-start", roomCode=code)
        res = await display.send("quiz-submit-answer", roomCode=code, answerLetter="A")
        assert res["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_answer_before_start(self, svc):
        display, code, (alice,) = await open_room(svc, names=("Alice",))
        res = await alice.send("quiz-submit-answer", roomCode=code, answerLetter="A")
        assert res["code"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_next_question_and_finish(self, svc):
        display, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        await configure_quiz(display, code)
        await display.send("quiz-start", roomCode=code)
        await alice.send("quiz-submit-answer", roomCode=code, answerLetter="A")

        res = await bob.send("quiz-next-question", roomCode=code)
        assert res["code"] == "UNAUTHORIZED"

        res = await alice.send("quiz-next-question", roomCode=code)
        assert res["finished"] is False
        assert bob.last("quiz-new-question")["questionIndex"] == 1

        got = await bob.send("quiz-get-question", roomCode=code)
        assert got["question"]["question"] == "Question 2?"

        res = await alice.send("quiz-next-question", roomCode=code)
        assert res["finished"] is True
        assert bob.last("quiz-finished")["finalScores"] == {alice.player_id: 1, bob.player_id: 0}
        room = svc.room_store.get_room(code)
        assert room.state == RoomState.FINISHED
        assert room.scores[alice.player_id] == 1

        res = await alice.send("quiz-next-question", roomCode=code)
        assert res["code"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_single_question_quiz(self, svc, questions):
        questions.questions = make_questions(1)
        display, code, _ = await open_room(svc, names=("Alice",))
        await configure_quiz(display, code)
        await display.send("quiz-start", roomCode=code)
        res = await display.send("quiz-next-question", roomCode=code)
        assert res["finished"] is True


# ===========================================================================
# Spy
# ===========================================================================

class TestSpyEvents:

    @pytest.mark.asyncio
    async def test_needs_three_players(self, svc):
        display, code, _ = await open_room(svc, names=("Alice", "Bob"))
        res = await display.send("spy-start-game", roomCode=code)
        assert res["code"] == "VALIDATION_ERROR"
        assert svc.room_store.get_room(code).state == RoomState.WAITING

    @pytest.mark.asyncio
    async def test_unsupported_language(self, svc):
        display, code, _ = await open_room(svc)
        res = await display.send("spy-start-game", roomCode=code, language="xx")
        assert res["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_assignments_are_private(self, svc):
        display, code, phones = await open_room(svc)
        res = await display.send("spy-start-game", roomCode=code)
        assert res["success"]
        assert "spyId" not in str(res["gameState"])

        assert display.all("spy-assignment") == []
        assignments = [phone.last("spy-assignment") for phone in phones]
        assert all(a is not None for a in assignments)
        assert sum(a["isSpy"] for a in assignments) == 1
        for phone in phones:
            assert len(phone.all("spy-assignment")) == 1
            assert phone.last("spy-game-started")["uiText"]["start_game"] == "Start Game"

    @pytest.mark.asyncio
    async def test_spy_cannot_start_while_quiz_selected(self, svc):
        display, code, _ = await open_room(svc)
        await display.send("select-game", roomCode=code, gameType="quiz")
        res = await display.send("spy-start-game", roomCode=code)
        assert res["code"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_full_round(self, svc):
        display, code, phones = await open_room(svc)
        await display.send("select-game", roomCode=code, gameType="spy")
        await display.send("spy-start-game", roomCode=code)
        game = svc.spy.get_game(code)

        assert (await display.send("spy-begin-round", roomCode=code))["phase"] == "GAMEPLAY"
        early = await phones[0].send("spy-submit-vote", roomCode=code, votedForId=game.spy_id)
        assert early["code"] == "INVALID_STATE"

        await display.send("spy-start-voting", roomCode=code)
        for phone in phones:
            res = await phone.send("spy-submit-vote", roomCode=code, votedForId=game.spy_id)
            assert res["success"]
        assert display.last("spy-vote-update")["totalVotes"] == 3

        res = await display.send("spy-process-votes", roomCode=code)
        assert res["result"]["winner"] == "CIVILIANS"
        pushed = phones[1].last("spy-game-result")
        assert pushed["reason"] == "Spy was identified"
        spy_phone = next(p for p in phones if p.player_id == game.spy_id)
        assert pushed["spyName"] == svc.room_store.get_room(code).get_player(spy_phone.player_id).name

    @pytest.mark.asyncio
    async def test_vote_for_outsider_rejected(self, svc):
        display, code, phones = await open_room(svc)
        await display.send("spy-start-game", roomCode=code)
        await display.send("spy-start-voting", roomCode=code)
        res = await phones[0].send("spy-submit-vote", roomCode=code, votedForId="nobody")
        assert res["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_next_round(self, svc):
        display, code, phones = await open_room(svc)
        await display.send("spy-start-game", roomCode=code)
        res = await display.send("spy-next-round", roomCode=code)
        assert res["code"] == "INVALID_STATE"

        await display.send("spy-start-voting", roomCode=code)
        await display.send("spy-process-votes", roomCode=code)
        res = await display.send("spy-next-round", roomCode=code)
        assert res["gameState"]["round"] == 2
        for phone in phones:
            assert len(phone.all("spy-assignment")) == 2

    @pytest.mark.asyncio
    async def test_change_language_repushes_roles(self, svc):
        display, code, phones = await open_room(svc)
        await display.send("spy-start-game", roomCode=code)
        before = [phone.last("spy-assignment") for phone in phones]

        res = await display.send("spy-change-language", roomCode=code, language="ar")
        assert res["language"] == "ar"
        after = [phone.last("spy-assignment") for phone in phones]
        assert [a["isSpy"] for a in after] == [b["isSpy"] for b in before]
        assert phones[0].last("spy-language-changed")["uiText"]["start_game"] == "ابدأ اللعبة"

    @pytest.mark.asyncio
    async def test_timer_update_skips_sender(self, svc):
        display, code, phones = await open_room(svc)
        await display.send("spy-start-game", roomCode=code)
        res = await display.send("spy-update-timer", roomCode=code, timer=120)
        assert res["timer"] == 120
        assert phones[0].last("spy-timer") == {"type": "spy-timer", "timer": 120}
        assert display.all("spy-timer") == []


# ===========================================================================
# Host/controller relay
# ===========================================================================

class TestRelayEvents:

    @pytest.mark.asyncio
    async def test_controller_input_reaches_display_only(self, svc):
        display, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        res = await bob.send("controller-input", roomCode=code, playerId=bob.player_id, input={"button": "A"})
        assert res["success"]

        relayed = display.last("game-input")
        assert relayed["playerId"] == bob.player_id
        assert relayed["input"] == {"button": "A"}
        assert relayed["timestamp"]
        assert alice.all("game-input") == []
        assert bob.all("game-input") == []

    @pytest.mark.asyncio
    async def test_controller_input_as_someone_else(self, svc):
        display, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        res = await bob.send("controller-input", roomCode=code, playerId=alice.player_id, input="jump")
        assert res["code"] == "UNAUTHORIZED"
        assert display.all("game-input") == []

    @pytest.mark.asyncio
    async def test_controller_input_from_outsider(self, svc):
        display, code, _ = await open_room(svc, names=("Alice",))
        stranger = await connect(svc)
        res = await stranger.send("controller-input", roomCode=code, input="jump")
        assert res["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_game_state_skips_sender(self, svc):
        display, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        res = await display.send("host-game-state", roomCode=code, state={"round": 2})
        assert res["success"]
        assert alice.last("game-state-update") == {"type": "game-state-update", "state": {"round": 2}}
        assert bob.last("game-state-update")
        assert display.all("game-state-update") == []

    @pytest.mark.asyncio
    async def test_game_state_host_only(self, svc):
        display, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        res = await bob.send("host-game-state", roomCode=code, state={"round": 2})
        assert res["code"] == "UNAUTHORIZED"
        assert alice.all("game-state-update") == []

    @pytest.mark.asyncio
    async def test_start_and_end_game(self, svc):
        display, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        res = await alice.send("host-start-game", roomCode=code, playerId=alice.player_id, gameName="trivia")
        assert res["success"]
        started = bob.last("game-started")
        assert started["gameName"] == "trivia"
        assert started["gameState"]["roomCode"] == code

        scores = {alice.player_id: 5, bob.player_id: 3, "gone": 9}
        res = await display.send("host-end-game", roomCode=code, finalScores=scores)
        expected = {alice.player_id: 5, bob.player_id: 3}
        assert res["finalScores"] == expected
        assert bob.last("game-ended") == {"type": "game-ended", "finalScores": expected}
        room = svc.room_store.get_room(code)
        assert room.scores == expected
        assert room.state == RoomState.WAITING

    @pytest.mark.asyncio
    async def test_end_game_host_only(self, svc):
        display, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        res = await bob.send("host-end-game", roomCode=code, finalScores={bob.player_id: 99})
        assert res["code"] == "UNAUTHORIZED"
        assert svc.room_store.get_room(code).scores[bob.player_id] == 0

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, svc):
        display, code, _ = await open_room(svc, names=())
        phone = await connect(svc)
        res = await phone.send("join-room", roomCode=code, playerName="   ")
        assert res["code"] == "VALIDATION_ERROR"
        assert svc.room_store.get_room(code).players == []


# ===========================================================================
# Disconnects
# ===========================================================================

class TestDisconnect:

    @pytest.mark.asyncio
    async def test_display_leaving_closes_room(self, svc):
        display, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        await handle_disconnect(svc, display.connection_id)

        assert svc.room_store.get_room(code) is None
        assert alice.last("room-closed") == {"type": "room-closed", "reason": "Host disconnected"}
        assert bob.last("room-closed")
        assert svc.room_store.find_by_connection(alice.connection_id) is None

        late = await connect(svc)
        res = await late.send("join-room", roomCode=code, playerName="Late")
        assert res["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_player_leaving(self, svc):
        display, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        await handle_disconnect(svc, bob.connection_id)
        left = display.last("player-left")
        assert left["playerId"] == bob.player_id
        assert [p["name"] for p in left["players"]] == ["Alice"]
        assert bob.player_id not in svc.room_store.get_room(code).scores

    @pytest.mark.asyncio
    async def test_host_player_leaving_keeps_host_id(self, svc):
        display, code, (alice, bob) = await open_room(svc, names=("Alice", "Bob"))
        await handle_disconnect(svc, alice.connection_id)
        room = svc.room_store.get_room(code)
        assert room.host_player_id == alice.player_id
        res = await bob.send("select-game", roomCode=code, gameType="quiz")
        assert res["code"] == "UNAUTHORIZED"
        assert (await display.send("select-game", roomCode=code, gameType="quiz"))["success"]

    @pytest.mark.asyncio
    async def test_last_player_leaving_closes_room(self, svc):
        display, code, (alice,) = await open_room(svc, names=("Alice",))
        await handle_disconnect(svc, alice.connection_id)
        assert svc.room_store.get_room(code) is None
        assert display.last("room-closed")["reason"] == "All players left"

    @pytest.mark.asyncio
    async def test_unbound_connection(self, svc):
        stranger = await connect(svc)
        await handle_disconnect(svc, stranger.connection_id)
        assert not svc.broadcaster.is_connected(stranger.connection_id)

    @pytest.mark.asyncio
    async def test_spy_vote_dropped_on_leave(self, svc):
        display, code, phones = await open_room(svc, names=("A", "B", "C", "D"))
        await display.send("spy-start-game", roomCode=code)
        await display.send("spy-start-voting", roomCode=code)
        target = phones[1].player_id
        await phones[0].send("spy-submit-vote", roomCode=code, votedForId=target)
        await handle_disconnect(svc, phones[0].connection_id)
        assert svc.spy.get_game(code).votes == {}

    @pytest.mark.asyncio
    async def test_votes_for_departed_player_dropped(self, svc):
        display, code, phones = await open_room(svc, names=("A", "B", "C", "D"))
        await display.send("spy-start-game", roomCode=code)
        await display.send("spy-start-voting", roomCode=code)
        target = phones[3]
        await phones[0].send("spy-submit-vote", roomCode=code, votedForId=target.player_id)
        await phones[1].send("spy-submit-vote", roomCode=code, votedForId=target.player_id)
        await handle_disconnect(svc, target.connection_id)

        res = await display.send("spy-process-votes", roomCode=code)
        assert res["result"]["reason"] == "No votes were cast"
        assert target.player_id not in res["result"]["voteCounts"]
