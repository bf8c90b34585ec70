"""Session context: owns the timer, the message log and transport subscriptions.

Every inbound server event and every local intent goes through ``dispatch``,
which runs one transition to completion: outbound requests are sent first,
then the new state is committed and the local effects applied in order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import ExitStack
from functools import partial
from typing import Any

from .actions import EditDraft, MakeGuess, NewGame, SelectRole, SendMessage
from .config import ClientConfig
from .errors import ClientError, MalformedEventError, TransportError
from .guess import Guess
from .journal import RecordKind, SessionJournal
from .machine import (
    AppendMessage,
    Effect,
    Emit,
    Event,
    ResetLog,
    ResetTimer,
    SessionMachine,
    StartTimer,
    StopTimer,
    Transition,
)
from .messages import MessageLog
from .state import Role, SessionState
from .timer import AsyncioTicker, CountdownTimer, Ticker, TimerState
from .transport import TransportBridge
from .view import SessionSnapshot, SessionView, build_view
from .wire import InboundName, OutboundRequest, ServerEvent, event_from_wire

logger = logging.getLogger(__name__)

Listener = Callable[[SessionSnapshot], None]


def _event_name(event: Event) -> str:
    if isinstance(event, ServerEvent):
        return event.name.value
    return event.action_type


class SessionController:
    """Drives one client session against an injected transport."""

    def __init__(
        self,
        transport: TransportBridge,
        config: ClientConfig | None = None,
        *,
        ticker: Ticker | None = None,
        machine: SessionMachine | None = None,
        journal: SessionJournal | None = None,
    ):
        self.config = config or ClientConfig()
        self.transport = transport
        self.machine = machine or SessionMachine()
        self.ticker = ticker or AsyncioTicker(self.config.tick_interval_sec)
        self.timer = CountdownTimer(duration=self.config.round_duration_sec, ticker=self.ticker)
        self.log = MessageLog()
        self.journal = journal or SessionJournal()
        self._state = self.machine.initial_state()
        self._listeners: list[Listener] = []
        self._resources: ExitStack | None = None
        self._closed = False

    # Lifetime

    def open(self) -> "SessionController":
        """Subscribe to every inbound event. Released by ``close``."""
        if self._closed:
            raise ClientError("Session context is already closed.")
        if self._resources is not None:
            return self
        if isinstance(self.ticker, AsyncioTicker):
            try:
                asyncio.get_running_loop()
            except RuntimeError as exc:
                raise ClientError(
                    "The asyncio countdown needs a running event loop; pass ticker=ManualTicker() from synchronous code."
                ) from exc

        with ExitStack() as stack:
            for name in InboundName:
                subscription = self.transport.subscribe(name.value, partial(self.handle_inbound, name))
                stack.callback(subscription.cancel)
            stack.callback(self.timer.add_listener(self._on_timer_change))
            stack.callback(self.timer.stop)
            self._resources = stack.pop_all()
        logger.debug("Session context opened with %d subscriptions", len(InboundName))
        return self

    def close(self) -> None:
        """Stop the timer and drop every subscription. Safe to call twice."""
        self._closed = True
        resources, self._resources = self._resources, None
        if resources is None:
            self.timer.stop()
            return
        resources.close()
        logger.debug("Session context closed")

    @property
    def is_open(self) -> bool:
        return self._resources is not None

    def __enter__(self) -> "SessionController":
        return self.open()

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    # Reads

    @property
    def state(self) -> SessionState:
        return self._state

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot.capture(self._state, self.log.snapshot(), self.timer.state())

    def view(self) -> SessionView:
        return build_view(self.snapshot(), self.config.timer_warning_sec)

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every change."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # Local intents

    def select_role(self, role: Role | str) -> Transition:
        return self.dispatch(SelectRole(role=Role.parse(role) if not isinstance(role, Role) else role))

    def edit_draft(self, text: str) -> Transition:
        return self.dispatch(EditDraft(text=text))

    def send_message(self, text: str | None = None) -> Transition:
        return self.dispatch(SendMessage(text=text))

    def make_guess(self, guess: Guess | str) -> Transition:
        return self.dispatch(MakeGuess(guess=Guess.parse(guess) if not isinstance(guess, Guess) else guess))

    def new_game(self, role: Role | str) -> Transition:
        return self.dispatch(NewGame(role=Role.parse(role) if not isinstance(role, Role) else role))

    # Dispatch

    def handle_inbound(self, name: InboundName | str, payload: Any) -> Transition | None:
        """Parse and dispatch one server event; malformed payloads are dropped."""
        try:
            event = event_from_wire(name, payload)
        except MalformedEventError as exc:
            logger.warning("Ignoring malformed event: %s", exc)
            self.journal.record(RecordKind.MALFORMED, exc.event, self._state.mode.value, exc.to_dict())
            return None
        return self.dispatch(event)

    def dispatch(self, event: Event) -> Transition:
        if self._closed:
            raise ClientError("Session context is closed.")

        name = _event_name(event)
        transition = self.machine.apply(self._state, event)
        if not transition.handled:
            logger.debug("Ignored %s in %s: %s", name, self._state.mode.value, transition.note)
            self.journal.record(
                RecordKind.IGNORED,
                name,
                self._state.mode.value,
                {"event": event.to_dict(), "note": transition.note},
            )
            return transition

        sent = self._send_requests(name, transition)
        previous = self._state.mode
        self._state = transition.state
        kind = RecordKind.INBOUND if isinstance(event, ServerEvent) else RecordKind.ACTION
        self.journal.record(kind, name, self._state.mode.value, event.to_dict())
        for request in sent:
            self.journal.record(RecordKind.OUTBOUND, request.name.value, self._state.mode.value, dict(request.payload))
        for effect in transition.effects:
            self._apply(effect)
        if previous is not self._state.mode:
            logger.debug("Session %s -> %s on %s", previous.value, self._state.mode.value, name)
        self._notify()
        return transition

    def _send_requests(self, name: str, transition: Transition) -> list[OutboundRequest]:
        """Deliver outbound requests before anything is committed.

        A ``TransportError`` leaves state, log, timer and journal untouched so
        the same intent can be retried.
        """
        sent: list[OutboundRequest] = []
        for effect in transition.effects:
            if not isinstance(effect, Emit):
                continue
            try:
                self.transport.send(effect.request)
            except TransportError:
                logger.warning("Could not send %s for %s; session unchanged", effect.request.name.value, name)
                raise
            logger.info("Sent %s", effect.request.name.value)
            sent.append(effect.request)
        return sent

    def _apply(self, effect: Effect) -> None:
        if isinstance(effect, StopTimer):
            self.timer.stop()
        elif isinstance(effect, StartTimer):
            self.timer.start(effect.duration)
        elif isinstance(effect, ResetTimer):
            self.timer.reset()
        elif isinstance(effect, ResetLog):
            self.log.reset(effect.seed)
        elif isinstance(effect, AppendMessage):
            self.log.append(effect.message)
        elif not isinstance(effect, Emit):
            raise TypeError(f"Unsupported effect: {type(effect).__name__}")

    def _on_timer_change(self, _: TimerState) -> None:
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener failed")
