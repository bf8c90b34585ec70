"""Client session core for the Turing test chat game."""

from .actions import EditDraft, MakeGuess, NewGame, SelectRole, SendMessage
from .config import ClientConfig, configure_logging
from .controller import SessionController
from .errors import ClientError, ConfigurationError, InvalidActionError, MalformedEventError, TransportError
from .guess import Guess, GuessResolver
from .machine import SessionMachine, Transition
from .messages import Message, MessageLog, Sender
from .state import GameEndOutcome, GameEndReason, Mode, Role, Session, SessionState, WatchQueueState
from .timer import AsyncioTicker, CountdownTimer, ManualTicker, TimerState
from .transport import InMemoryTransport, SocketIOTransport, Subscription, TransportBridge
from .view import SessionSnapshot, SessionView, build_view, render_text

__all__ = [
    "AsyncioTicker",
    "ClientConfig",
    "ClientError",
    "ConfigurationError",
    "CountdownTimer",
    "EditDraft",
    "GameEndOutcome",
    "GameEndReason",
    "Guess",
    "GuessResolver",
    "InMemoryTransport",
    "InvalidActionError",
    "MakeGuess",
    "MalformedEventError",
    "ManualTicker",
    "Message",
    "MessageLog",
    "Mode",
    "NewGame",
    "Role",
    "SelectRole",
    "SendMessage",
    "Sender",
    "Session",
    "SessionController",
    "SessionMachine",
    "SessionSnapshot",
    "SessionState",
    "SessionView",
    "SocketIOTransport",
    "Subscription",
    "TimerState",
    "TransportBridge",
    "Transition",
    "TransportError",
    "WatchQueueState",
    "build_view",
    "configure_logging",
    "render_text",
]
