"""Parsing of inbound socket payloads and outbound request shapes."""

from __future__ import annotations

import pytest

from turing_client.errors import MalformedEventError
from turing_client.guess import Guess, GuessResolver
from turing_client.messages import Sender
from turing_client.state import GameEndReason, Role
from turing_client.wire import (
    ErrorNotice,
    GameComplete,
    GameEnd,
    InboundName,
    MatchFound,
    NewMessage,
    OutboundName,
    WaitingForPartner,
    WatchingGame,
    event_from_wire,
    join_lobby,
    new_game,
    send_message,
)


def test_match_found_fields() -> None:
    event = event_from_wire(
        "matchFound",
        {"sessionId": "abc", "role": "tested person", "message": "Matched.", "aiPersona": "a chef"},
    )

    assert isinstance(event, MatchFound)
    assert event.session_id == "abc"
    assert event.role is Role.TESTED_PERSON
    assert event.ai_persona == "a chef"


def test_empty_persona_counts_as_absent() -> None:
    event = event_from_wire("matchFound", {"sessionId": "abc", "message": "Matched.", "aiPersona": ""})
    assert isinstance(event, MatchFound)
    assert event.ai_persona is None
    assert event.role is None


def test_notices_accept_strings_or_objects() -> None:
    assert event_from_wire("waitingForPartner", "Hold on") == WaitingForPartner(message="Hold on")
    assert event_from_wire("error", "Oops") == ErrorNotice(message="Oops")
    assert event_from_wire("error", {"message": "Oops"}) == ErrorNotice(message="Oops")
    assert event_from_wire("error", {"error": "invalid_payload"}) == ErrorNotice(message="invalid_payload")
    assert event_from_wire("gameComplete", {"message": "Done"}) == GameComplete(message="Done")
    assert event_from_wire("watchingGame", {"sessionId": "w", "message": "Queued"}) == WatchingGame(
        session_id="w", message="Queued"
    )


def test_new_message_and_game_end() -> None:
    message = event_from_wire("newMessage", {"sender": "partner", "text": "hey"})
    assert isinstance(message, NewMessage)
    assert message.message.sender is Sender.REMOTE_PEER
    assert message.session_id is None

    end = event_from_wire("gameEnd", {"reason": "readyToGuess", "result": "Decide."})
    assert end == GameEnd(reason=GameEndReason.READY_TO_GUESS, result="Decide.")
    assert event_from_wire("gameEnd", {"reason": "timeout"}) == GameEnd(reason=GameEndReason.TIMEOUT)


@pytest.mark.parametrize(
    ("name", "payload"),
    [
        ("matchFound", None),
        ("matchFound", {"sessionId": 42, "message": "x"}),
        ("matchFound", {"sessionId": "s", "role": "referee"}),
        ("newMessage", {"sender": "partner", "text": None}),
        ("gameEnd", {"reason": "forfeit"}),
        ("gameEnd", "timeout"),
        ("waitingForPartner", 17),
        ("somethingElse", {}),
    ],
)
def test_malformed_payloads_raise(name: str, payload: object) -> None:
    with pytest.raises(MalformedEventError) as info:
        event_from_wire(name, payload)
    assert info.value.to_dict()["type"] == "MalformedEventError"


def test_every_inbound_name_is_parseable() -> None:
    assert {name.value for name in InboundName} == {
        "waitingForPartner",
        "matchFound",
        "newMessage",
        "gameEnd",
        "watchingGame",
        "gameComplete",
        "error",
    }


def test_outbound_requests() -> None:
    assert join_lobby(Role.TESTER).to_dict() == {"name": "joinLobby", "payload": {"role": "tester"}}
    assert new_game(Role.TESTED_PERSON).payload == {"role": "tested person"}
    assert send_message("s", "hi").payload == {"sessionId": "s", "message": "hi"}

    request = GuessResolver().request("s", Guess.AI)
    assert request.name is OutboundName.MAKE_GUESS
    assert request.payload == {"sessionId": "s", "guess": "AI"}


def test_guess_and_role_parsing_is_lenient_about_case() -> None:
    assert Guess.parse("ai") is Guess.AI
    assert Guess.parse(" Human ") is Guess.HUMAN
    assert Role.parse("tested-person") is Role.TESTED_PERSON
    assert Role.parse("TESTER") is Role.TESTER
