"""Invariants that must hold for any sequence of session events."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from turing_client.config import ClientConfig
from turing_client.controller import SessionController
from turing_client.errors import ClientError, InvalidActionError, TransportError
from turing_client.journal import RecordKind
from turing_client.messages import Sender
from turing_client.state import Mode
from turing_client.timer import AsyncioTicker, ManualTicker, TimerState
from turing_client.transport import InMemoryTransport


def _controller() -> tuple[SessionController, InMemoryTransport, ManualTicker]:
    transport = InMemoryTransport()
    ticker = ManualTicker()
    return SessionController(transport, ClientConfig(), ticker=ticker).open(), transport, ticker


def _match(transport: InMemoryTransport, session_id: str = "session-1", role: str = "tester") -> None:
    transport.deliver("matchFound", {"sessionId": session_id, "role": role, "message": "Matched."})


def test_timer_is_never_running_once_ended() -> None:
    controller, transport, ticker = _controller()
    controller.select_role("tester")
    script = [
        ("matchFound", {"sessionId": "a", "role": "tester", "message": "Matched."}),
        ("newMessage", {"sender": "partner", "text": "hey"}),
        ("gameEnd", {"reason": "readyToGuess", "result": "Decide now."}),
        ("newMessage", {"sender": "partner", "text": "late"}),
        ("gameEnd", {"reason": "guess", "result": "You guessed incorrectly!"}),
        ("gameEnd", {"reason": "timeout"}),
    ]
    for name, payload in script:
        transport.deliver(name, payload)
        ticker.advance(1)
        snapshot = controller.snapshot()
        if snapshot.mode is Mode.ENDED:
            assert not snapshot.timer.running
            assert ticker.active_handles == 0


@pytest.mark.parametrize("reach", ["no_role", "awaiting", "in_chat", "ended", "watching"])
def test_new_game_twice_matches_new_game_once(reach: str) -> None:
    controller, transport, _ = _controller()
    if reach != "no_role":
        controller.select_role("tester")
    if reach in {"in_chat", "ended"}:
        _match(transport)
        transport.deliver("newMessage", {"sender": "partner", "text": "hello"})
    if reach == "ended":
        transport.deliver("gameEnd", {"reason": "timeout"})
    if reach == "watching":
        transport.deliver("watchingGame", {"sessionId": "ai", "message": "Queued."})

    controller.new_game("tester")
    once = controller.snapshot()
    controller.new_game("tester")
    twice = controller.snapshot()

    assert once == twice
    assert once.state_digest() == twice.state_digest()
    assert once.mode is Mode.AWAITING_MATCH
    assert once.messages == ()
    assert once.session_id is None
    assert once.watch is None
    assert once.timer == TimerState(remaining_seconds=90, running=False)


def _reach_ready(role: str) -> tuple[SessionController, InMemoryTransport]:
    controller, transport, _ = _controller()
    controller.select_role(role)
    _match(transport, role=role)
    transport.deliver("gameEnd", {"reason": "readyToGuess", "result": "Decide."})
    return controller, transport


def test_guess_only_emitted_for_eligible_tester() -> None:
    controller, transport, _ = _controller()
    controller.make_guess("human")
    controller.select_role("tester")
    controller.make_guess("human")
    _match(transport)
    controller.make_guess("human")
    assert "makeGuess" not in transport.emitted_names()

    controller, transport = _reach_ready("tested person")
    controller.make_guess("AI")
    assert "makeGuess" not in transport.emitted_names()

    controller, transport, _ = _controller()
    controller.select_role("tester")
    _match(transport)
    transport.deliver("gameEnd", {"reason": "timeout"})
    controller.make_guess("AI")
    assert "makeGuess" not in transport.emitted_names()

    controller, transport = _reach_ready("tester")
    controller.make_guess("AI")
    controller.make_guess("human")
    assert transport.emitted_names().count("makeGuess") == 1


def test_unknown_guess_or_role_is_rejected() -> None:
    controller, _, _ = _controller()
    with pytest.raises(InvalidActionError):
        controller.select_role("spectator")
    with pytest.raises(InvalidActionError):
        controller.make_guess("robot")


@pytest.mark.parametrize("count", [0, 1, 7, 25])
def test_log_keeps_every_message_in_delivery_order(count: int) -> None:
    controller, transport, _ = _controller()
    controller.select_role("tester")
    _match(transport)

    for index in range(count):
        transport.deliver("newMessage", {"sender": "partner", "text": f"turn {index}"})

    messages = controller.snapshot().messages
    assert len(messages) == count + 1
    assert messages[0].sender is Sender.SYSTEM
    assert [message.text for message in messages[1:]] == [f"turn {index}" for index in range(count)]


def test_timer_counts_down_one_per_tick_and_stops_at_zero() -> None:
    controller, transport, ticker = _controller()
    controller.select_role("tester")
    _match(transport)

    for elapsed in range(1, 91):
        ticker.advance(1)
        assert controller.snapshot().timer.remaining_seconds == 90 - elapsed

    assert controller.snapshot().timer == TimerState(remaining_seconds=0, running=False)
    ticker.advance(5)
    assert controller.snapshot().timer.remaining_seconds == 0
    assert controller.snapshot().mode is Mode.IN_CHAT


def test_duplicate_match_is_ignored_while_chatting() -> None:
    controller, transport, ticker = _controller()
    controller.select_role("tester")
    _match(transport, session_id="first")
    ticker.advance(3)

    _match(transport, session_id="second")

    snapshot = controller.snapshot()
    assert snapshot.session_id == "first"
    assert snapshot.timer.remaining_seconds == 87
    assert ticker.active_handles == 1


def test_events_for_stale_sessions_are_ignored() -> None:
    controller, transport, _ = _controller()
    controller.select_role("tester")
    _match(transport, session_id="current")

    transport.deliver("newMessage", {"sender": "partner", "text": "old", "sessionId": "previous"})
    transport.deliver("gameEnd", {"reason": "timeout", "sessionId": "previous"})
    assert controller.snapshot().mode is Mode.IN_CHAT
    assert len(controller.log) == 1

    transport.deliver("gameEnd", {"reason": "timeout", "sessionId": "current"})
    assert controller.snapshot().mode is Mode.ENDED


def test_out_of_sequence_events_are_ignored() -> None:
    controller, transport, _ = _controller()

    transport.deliver("newMessage", {"sender": "partner", "text": "too early"})
    transport.deliver("gameEnd", {"reason": "timeout"})
    transport.deliver("gameComplete", {"message": "done"})
    transport.deliver("matchFound", {"sessionId": "s", "message": "Matched."})

    snapshot = controller.snapshot()
    assert snapshot.mode is Mode.NO_ROLE
    assert snapshot.messages == ()
    ignored = [record for record in controller.journal if record.kind is RecordKind.IGNORED]
    assert len(ignored) == 4


def test_malformed_payloads_are_dropped() -> None:
    controller, transport, _ = _controller()
    controller.select_role("tester")

    transport.deliver("matchFound", "not an object")
    transport.deliver("matchFound", {"message": "missing id"})
    transport.deliver("gameEnd", {"reason": "surrender"})
    transport.deliver("newMessage", {"sender": "partner"})

    assert controller.snapshot().mode is Mode.AWAITING_MATCH
    malformed = [record for record in controller.journal if record.kind is RecordKind.MALFORMED]
    assert len(malformed) == 4


def test_close_releases_subscriptions_and_timer_once() -> None:
    controller, transport, ticker = _controller()
    controller.select_role("tester")
    _match(transport)
    assert transport.handler_count() == 7

    controller.close()
    controller.close()

    assert transport.handler_count() == 0
    assert ticker.active_handles == 0
    assert not controller.snapshot().timer.running
    transport.deliver("newMessage", {"sender": "partner", "text": "after close"})
    assert len(controller.log) == 1
    with pytest.raises(ClientError):
        controller.send_message("hello")


def test_context_manager_releases_on_error() -> None:
    transport = InMemoryTransport()
    ticker = ManualTicker()

    with pytest.raises(RuntimeError):
        with SessionController(transport, ticker=ticker) as controller:
            controller.select_role("tester")
            _match(transport)
            raise RuntimeError("presentation crashed")

    assert transport.handler_count() == 0
    assert ticker.active_handles == 0


def test_two_contexts_on_separate_transports_do_not_interfere() -> None:
    first, first_transport, _ = _controller()
    second, second_transport, _ = _controller()
    first.select_role("tester")
    second.select_role("tested person")

    _match(first_transport, session_id="one")

    assert first.snapshot().mode is Mode.IN_CHAT
    assert second.snapshot().mode is Mode.AWAITING_MATCH


def test_listeners_receive_snapshots() -> None:
    controller, transport, ticker = _controller()
    seen: list[Mode] = []
    remove = controller.add_listener(lambda snapshot: seen.append(snapshot.mode))

    controller.select_role("tester")
    _match(transport)
    ticker.advance(1)
    remove()
    ticker.advance(1)

    assert seen[0] is Mode.AWAITING_MATCH
    assert Mode.IN_CHAT in seen
    count = len(seen)
    transport.deliver("gameEnd", {"reason": "timeout"})
    assert len(seen) == count


class _FlakyTransport(InMemoryTransport):
    """Loopback transport that refuses to send while ``down`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.down = False

    def emit(self, event: str, payload: Any) -> None:
        if self.down:
            raise TransportError(f"Cannot emit '{event}': not connected.")
        super().emit(event, payload)


def _flaky_controller() -> tuple[SessionController, _FlakyTransport, ManualTicker]:
    transport = _FlakyTransport()
    ticker = ManualTicker()
    return SessionController(transport, ClientConfig(), ticker=ticker).open(), transport, ticker


def test_failed_join_leaves_role_selectable() -> None:
    controller, transport, _ = _flaky_controller()
    transport.down = True

    with pytest.raises(TransportError):
        controller.select_role("tester")

    assert controller.snapshot().mode is Mode.NO_ROLE
    assert len(controller.journal) == 0

    transport.down = False
    retried = controller.select_role("tester")

    assert retried.handled
    assert controller.snapshot().mode is Mode.AWAITING_MATCH
    assert transport.emitted == [("joinLobby", {"role": "tester"})]


def test_failed_send_keeps_draft_and_log() -> None:
    controller, transport, _ = _flaky_controller()
    controller.select_role("tester")
    _match(transport)
    controller.edit_draft("hello")
    records_before = len(controller.journal)
    transport.down = True

    with pytest.raises(TransportError):
        controller.send_message()

    snapshot = controller.snapshot()
    assert snapshot.draft == "hello"
    assert [message.text for message in snapshot.messages] == ["Matched."]
    assert len(controller.journal) == records_before
    assert RecordKind.OUTBOUND not in [record.kind for record in controller.journal.records()[records_before:]]

    transport.down = False
    controller.send_message()
    assert controller.snapshot().draft == ""
    assert transport.emitted[-1] == ("sendMessage", {"sessionId": "session-1", "message": "hello"})


def test_failed_new_game_keeps_the_running_round() -> None:
    controller, transport, ticker = _flaky_controller()
    controller.select_role("tester")
    _match(transport)
    ticker.advance(5)
    transport.down = True

    with pytest.raises(TransportError):
        controller.new_game("tester")

    snapshot = controller.snapshot()
    assert snapshot.mode is Mode.IN_CHAT
    assert snapshot.timer == TimerState(remaining_seconds=85, running=True)
    assert len(snapshot.messages) == 1


def test_asyncio_countdown_requires_a_running_loop() -> None:
    controller = SessionController(InMemoryTransport(), ClientConfig())

    with pytest.raises(ClientError, match="running event loop"):
        controller.open()
    assert not controller.is_open


def test_asyncio_countdown_opens_inside_a_loop() -> None:
    async def scenario() -> TimerState:
        transport = InMemoryTransport()
        config = ClientConfig(tick_interval_sec=0.01)
        with SessionController(transport, config) as controller:
            assert isinstance(controller.ticker, AsyncioTicker)
            controller.select_role("tester")
            _match(transport)
            await asyncio.sleep(0.05)
            state = controller.snapshot().timer
        return state

    timer = asyncio.run(scenario())
    assert timer.running
    assert timer.remaining_seconds < 90
