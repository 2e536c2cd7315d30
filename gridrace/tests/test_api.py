"""
Tests for the API layer.

Tests:
- Intent parsing and snapshot serialization
- Health and session listing endpoints
- WebSocket flow: create, join, errors, ping
"""

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from ..api.app import create_app
from ..api.schemas import (
    GameSnapshot,
    JoinIntent,
    ProgramIntent,
    VoteDisconnectIntent,
    parse_intent,
)
from ..api.service import GameService
from ..config import Settings
from ..engine_core.programming import deal_hands, setup_decks
from ..engine_core.state import VoteOption


@pytest.fixture
def client():
    settings = Settings(register_delay=0, lobby_removal_timeout=0.05, vote_delay=0.05)
    app = create_app(service=GameService(settings=settings))
    with TestClient(app) as client:
        yield client


class TestIntentParsing:

    def test_camel_case_fields(self):
        intent = parse_intent({"type": "program", "registerIndex": 2, "cardId": "abc"})
        assert isinstance(intent, ProgramIntent)
        assert intent.register_index == 2
        assert intent.card_id == "abc"

    def test_snake_case_accepted(self):
        intent = parse_intent({"type": "join", "game_id": "ABCD", "player_name": "Bo"})
        assert isinstance(intent, JoinIntent)
        assert intent.game_id == "ABCD"

    def test_clear_register(self):
        intent = parse_intent({"type": "program", "registerIndex": 0, "cardId": None})
        assert intent.card_id is None

    def test_vote_option(self):
        intent = parse_intent({"type": "vote_disconnect", "option": "random-cards"})
        assert isinstance(intent, VoteDisconnectIntent)
        assert intent.option == VoteOption.RANDOM_CARDS

    @pytest.mark.parametrize("message", [
        {"type": "teleport"},
        {"type": "create", "playerName": ""},
        {"type": "join", "gameId": "ABCD"},
        {"registerIndex": 1},
    ])
    def test_invalid_messages(self, message):
        with pytest.raises(ValidationError):
            parse_intent(message)


class TestSnapshot:

    def test_snapshot_is_camel_case(self, factory_floor, make_state, add_player, rng):
        state = make_state(factory_floor)
        add_player(state, "a", 1, 10)
        add_player(state, "b", 3, 10, is_ai=True)
        setup_decks(state, rng)
        deal_hands(state)

        data = GameSnapshot.from_state(state).model_dump(mode="json", by_alias=True)

        assert data["hostId"] == "a"
        assert data["board"]["width"] == 12
        assert len(data["board"]["tiles"]) == 12
        player = data["players"][0]
        assert len(player["hand"]) == 9
        assert player["registers"] == [None] * 5
        assert player["robot"]["lastCheckpoint"] == 0
        assert player["robot"]["position"] == {"x": 1, "y": 10}
        assert data["players"][1]["isAi"] is True


class TestEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["activeSessions"] == 0

    def test_root(self, client):
        assert client.get("/").json()["websocket"] == "/ws"


class TestWebSocket:

    def test_create_then_join(self, client):
        with client.websocket_connect("/ws") as host:
            host.send_json({"type": "create", "playerName": "Ada"})
            ack = host.receive_json()
            assert ack["type"] == "created"
            code = ack["gameId"]

            state = host.receive_json()
            assert state["type"] == "state"
            assert state["state"]["phase"] == "lobby"
            assert state["state"]["players"][0]["name"] == "Ada"

            listing = client.get("/api/v1/sessions").json()
            assert listing["total"] == 1
            assert listing["sessions"][0]["gameId"] == code

            with client.websocket_connect("/ws") as guest:
                guest.send_json({"type": "join", "gameId": code, "playerName": "Bob"})
                joined = guest.receive_json()
                assert joined["type"] == "joined"
                assert guest.receive_json()["type"] == "state"

                update = host.receive_json()
                assert len(update["state"]["players"]) == 2

    def test_errors_are_unicast(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "create", "playerName": "Ada"})
            ws.receive_json()
            ws.receive_json()

            ws.send_json({"type": "start"})
            error = ws.receive_json()
            assert error == {"type": "error", "message": "Need at least 2 players", "kind": "precondition"}

    def test_join_unknown_game(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "join", "gameId": "NOPE", "playerName": "Bob"})
            error = ws.receive_json()
            assert error["kind"] == "not_found"
            assert "not found" in error["message"]

    def test_invalid_payloads(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("{not json")
            assert ws.receive_json()["message"] == "Invalid JSON"

            ws.send_json({"type": "teleport"})
            assert ws.receive_json()["kind"] == "invalid_message"

    def test_ping(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}
