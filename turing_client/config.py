"""Client configuration and logging setup.

Settings come from ``TURING_*`` variables. A local ``.env`` file fills in
anything the process environment does not set; the process environment is
never modified.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .errors import ConfigurationError

DEFAULT_SERVER_URL = "http://localhost:3000"
DEFAULT_ROUND_DURATION_SEC = 90
DEFAULT_TICK_INTERVAL_SEC = 1.0
DEFAULT_TIMER_WARNING_SEC = 10
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def read_dotenv(path: str | Path) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines; a missing file yields no values."""
    dotenv_path = Path(path)
    if not dotenv_path.is_file():
        return {}

    values: dict[str, str] = {}
    for line in dotenv_path.read_text(encoding="utf-8").splitlines():
        key, sep, value = line.strip().removeprefix("export ").partition("=")
        key = key.strip()
        if not sep or not key or key.startswith("#"):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        values[key] = value
    return values


class _Settings:
    """Lookup over merged variables with typed, validated accessors."""

    def __init__(self, values: Mapping[str, str]):
        self.values = values

    def text(self, *names: str, default: str) -> str:
        for name in names:
            value = self.values.get(name)
            if value:
                return value
        return default

    def integer(self, name: str, default: int, *, minimum: int) -> int:
        raw = self.values.get(name)
        if not raw:
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            raise ConfigurationError(f"{name} must be an integer; received {raw!r}.") from exc
        if value < minimum:
            raise ConfigurationError(f"{name} must be >= {minimum}; received {value}.")
        return value

    def positive_float(self, name: str, default: float) -> float:
        raw = self.values.get(name)
        if not raw:
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            raise ConfigurationError(f"{name} must be a number; received {raw!r}.") from exc
        if value <= 0:
            raise ConfigurationError(f"{name} must be positive; received {value}.")
        return value


@dataclass(frozen=True)
class ClientConfig:
    """Runtime configuration for one client session context."""

    server_url: str = DEFAULT_SERVER_URL
    round_duration_sec: int = DEFAULT_ROUND_DURATION_SEC
    tick_interval_sec: float = DEFAULT_TICK_INTERVAL_SEC
    timer_warning_sec: int = DEFAULT_TIMER_WARNING_SEC
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.round_duration_sec < 1:
            raise ConfigurationError("round_duration_sec must be >= 1.")
        if self.tick_interval_sec <= 0:
            raise ConfigurationError("tick_interval_sec must be positive.")
        if self.timer_warning_sec < 0:
            raise ConfigurationError("timer_warning_sec must be >= 0.")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        dotenv_path: str | Path | None = ".env",
    ) -> "ClientConfig":
        """
        Build a config from ``environ`` (default: the process environment).

        Values from ``dotenv_path`` apply only where ``environ`` is silent.
        ``TURING_SERVER_URL`` wins over the legacy ``BACKEND_URL``.
        """
        merged = read_dotenv(dotenv_path) if dotenv_path is not None else {}
        merged.update(os.environ if environ is None else environ)
        settings = _Settings(merged)
        return cls(
            server_url=settings.text("TURING_SERVER_URL", "BACKEND_URL", default=DEFAULT_SERVER_URL),
            round_duration_sec=settings.integer("TURING_ROUND_DURATION_SEC", DEFAULT_ROUND_DURATION_SEC, minimum=1),
            tick_interval_sec=settings.positive_float("TURING_TICK_INTERVAL_SEC", DEFAULT_TICK_INTERVAL_SEC),
            timer_warning_sec=settings.integer("TURING_TIMER_WARNING_SEC", DEFAULT_TIMER_WARNING_SEC, minimum=0),
            log_level=settings.text("TURING_LOG_LEVEL", default="INFO").upper(),
        )


def configure_logging(level: str | int = "INFO") -> None:
    """Install the root handler used by the web entry point."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ConfigurationError(f"Unknown log level: {level!r}")
        level = resolved
    logging.basicConfig(level=level, format=LOG_FORMAT)
