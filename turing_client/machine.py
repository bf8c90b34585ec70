"""Pure transition rules for the client session.

``SessionMachine.apply`` maps a (state, event) pair to the next state plus an
ordered tuple of effects. It never touches the timer, the message log or the
transport; ``SessionController`` applies the effects in order.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from .actions import EditDraft, MakeGuess, NewGame, SelectRole, SendMessage, UserAction
from .guess import GuessResolver
from .messages import Message
from .state import (
    GAME_OVER_STATUS,
    JOINING_STATUS,
    GameEndOutcome,
    GameEndReason,
    Mode,
    Session,
    SessionState,
    WatchQueueState,
)
from .wire import (
    ErrorNotice,
    GameComplete,
    GameEnd,
    MatchFound,
    NewMessage,
    OutboundRequest,
    ServerEvent,
    WaitingForPartner,
    WatchingGame,
    join_lobby,
    new_game,
    send_message,
)

Event = ServerEvent | UserAction


class Effect:
    """Side effect requested by a transition."""

    def to_dict(self) -> dict[str, Any]:
        payload = {key: value for key, value in vars(self).items() if not key.startswith("_")}
        payload["type"] = self.__class__.__name__
        return payload


@dataclass(frozen=True)
class StopTimer(Effect):
    pass


@dataclass(frozen=True)
class StartTimer(Effect):
    """Restart the countdown; ``None`` means the configured full duration."""

    duration: int | None = None


@dataclass(frozen=True)
class ResetTimer(Effect):
    pass


@dataclass(frozen=True)
class ResetLog(Effect):
    seed: tuple[Message, ...] = ()


@dataclass(frozen=True)
class AppendMessage(Effect):
    message: Message


@dataclass(frozen=True)
class Emit(Effect):
    request: OutboundRequest


@dataclass(frozen=True)
class Transition:
    """Result of applying one event."""

    state: SessionState
    effects: tuple[Effect, ...] = ()
    handled: bool = True
    note: str | None = None


def persona_disclosure(persona: str) -> str:
    return f'You are matched with an AI. Your persona is: "{persona}"'


def _ignored(state: SessionState, note: str) -> Transition:
    return Transition(state=state, effects=(), handled=False, note=note)


def _is_stale(state: SessionState, session_id: str | None) -> bool:
    return session_id is not None and session_id != state.session_id


class SessionMachine:
    """Stateless rule set for the Turing test client session."""

    def __init__(self, resolver: GuessResolver | None = None):
        self.resolver = resolver or GuessResolver()
        self._handlers: dict[type, Callable[[SessionState, Any], Transition]] = {
            SelectRole: self._select_role,
            EditDraft: self._edit_draft,
            SendMessage: self._send_message,
            MakeGuess: self._make_guess,
            NewGame: self._new_game,
            WaitingForPartner: self._waiting_for_partner,
            MatchFound: self._match_found,
            NewMessage: self._new_message,
            GameEnd: self._game_end,
            WatchingGame: self._watching_game,
            GameComplete: self._game_complete,
            ErrorNotice: self._error,
        }

    def initial_state(self) -> SessionState:
        return SessionState()

    def apply(self, state: SessionState, event: Event) -> Transition:
        """Return the transition for ``event`` in ``state``."""
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported session event: {type(event).__name__}")
        return handler(state, event)

    # Local intents

    def _select_role(self, state: SessionState, event: SelectRole) -> Transition:
        if state.mode is not Mode.NO_ROLE:
            return _ignored(state, "role already chosen for this cycle")
        return Transition(
            state=replace(state, mode=Mode.AWAITING_MATCH, role=event.role, status=JOINING_STATUS),
            effects=(Emit(join_lobby(event.role)),),
        )

    def _edit_draft(self, state: SessionState, event: EditDraft) -> Transition:
        return Transition(state=replace(state, draft=event.text))

    def _send_message(self, state: SessionState, event: SendMessage) -> Transition:
        text = state.draft if event.text is None else event.text
        if not text.strip():
            return _ignored(state, "blank message")
        if state.session is None or state.mode is not Mode.IN_CHAT:
            return _ignored(state, "no active chat")
        return Transition(
            state=replace(state, draft=""),
            effects=(
                AppendMessage(Message.local(text)),
                Emit(send_message(state.session.session_id, text)),
            ),
        )

    def _make_guess(self, state: SessionState, event: MakeGuess) -> Transition:
        if not state.can_guess():
            return _ignored(state, "guess not allowed")
        assert state.session is not None
        return Transition(
            state=replace(state, guess_pending=True),
            effects=(Emit(self.resolver.request(state.session.session_id, event.guess)),),
        )

    def _new_game(self, state: SessionState, event: NewGame) -> Transition:
        return Transition(
            state=SessionState(mode=Mode.AWAITING_MATCH, role=event.role, status=JOINING_STATUS),
            effects=(StopTimer(), ResetTimer(), ResetLog(()), Emit(new_game(event.role))),
        )

    # Server events

    def _waiting_for_partner(self, state: SessionState, event: WaitingForPartner) -> Transition:
        if state.mode is not Mode.AWAITING_MATCH:
            return _ignored(state, "not waiting for a match")
        return Transition(state=replace(state, status=event.message))

    def _match_found(self, state: SessionState, event: MatchFound) -> Transition:
        if state.mode not in (Mode.AWAITING_MATCH, Mode.WATCHING):
            return _ignored(state, "match already in progress")
        role = event.role or state.role
        if role is None:
            return _ignored(state, "match without a role")

        seed = persona_disclosure(event.ai_persona) if event.ai_persona else event.message
        return Transition(
            state=replace(
                state,
                mode=Mode.IN_CHAT,
                role=role,
                session=Session(session_id=event.session_id, role=role, ai_persona=event.ai_persona),
                outcome=None,
                watch=None,
                status=event.message or state.status,
                draft="",
                guess_pending=False,
            ),
            effects=(StopTimer(), ResetLog((Message.system(seed),)), StartTimer()),
        )

    def _new_message(self, state: SessionState, event: NewMessage) -> Transition:
        if state.session is None or state.mode not in (Mode.IN_CHAT, Mode.ENDED):
            return _ignored(state, "no active session")
        if _is_stale(state, event.session_id):
            return _ignored(state, f"message for stale session {event.session_id}")
        return Transition(state=state, effects=(AppendMessage(event.message),))

    def _game_end(self, state: SessionState, event: GameEnd) -> Transition:
        awaiting_verdict = (
            state.mode is Mode.ENDED
            and state.outcome is not None
            and state.outcome.reason is GameEndReason.READY_TO_GUESS
        )
        if state.session is None or not (state.mode is Mode.IN_CHAT or awaiting_verdict):
            return _ignored(state, "no session to end")
        if _is_stale(state, event.session_id):
            return _ignored(state, f"game end for stale session {event.session_id}")
        return Transition(
            state=replace(
                state,
                mode=Mode.ENDED,
                outcome=GameEndOutcome.create(event.reason, event.result),
                status=GAME_OVER_STATUS,
                draft="",
                guess_pending=False,
            ),
            effects=(StopTimer(),),
        )

    def _watching_game(self, state: SessionState, event: WatchingGame) -> Transition:
        if state.mode not in (Mode.AWAITING_MATCH, Mode.WATCHING):
            return _ignored(state, "cannot watch while playing")
        return Transition(
            state=replace(
                state,
                mode=Mode.WATCHING,
                session=None,
                watch=WatchQueueState(active=True, session_id=event.session_id),
                status=event.message,
            ),
            effects=(ResetLog((Message.system(event.message),)),),
        )

    def _game_complete(self, state: SessionState, event: GameComplete) -> Transition:
        if state.mode is not Mode.WATCHING:
            return _ignored(state, "not watching a game")
        return Transition(
            state=replace(state, status=event.message),
            effects=(AppendMessage(Message.system(event.message)),),
        )

    def _error(self, state: SessionState, event: ErrorNotice) -> Transition:
        return Transition(state=replace(state, status=event.message))
