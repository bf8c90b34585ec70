"""FastAPI app exposing the client session to a local browser frontend.

Endpoints are ``async`` so that every session change runs on the same event
loop as the socket handlers and the countdown task.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from turing_client.config import ClientConfig, configure_logging
from turing_client.controller import SessionController
from turing_client.errors import ClientError, InvalidActionError, TransportError
from turing_client.journal import to_json_line
from turing_client.machine import Transition
from webui.runtime import ClientRuntime
from webui.schemas import DraftRequest, GuessRequest, MessageRequest, RoleRequest

runtime = ClientRuntime()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Connect to the game server on startup and release everything on shutdown."""
    if not runtime.running:
        await runtime.start()
    try:
        yield
    finally:
        await runtime.stop()


app = FastAPI(title="Turing Test Client API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _session_payload(transition: Transition | None = None) -> dict[str, Any]:
    controller = runtime.controller
    payload: dict[str, Any] = {
        "snapshot": controller.snapshot().to_dict(),
        "view": controller.view().to_dict(),
    }
    if transition is not None:
        payload["handled"] = transition.handled
        if transition.note:
            payload["note"] = transition.note
    return payload


def _run_action(action: Callable[[], Transition]) -> dict[str, Any]:
    try:
        transition = action()
    except InvalidActionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except TransportError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except ClientError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _session_payload(transition)


def _controller() -> SessionController:
    try:
        return runtime.controller
    except ClientError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@app.get("/api/health")
async def health() -> dict[str, Any]:
    """Healthcheck endpoint."""
    return {"status": "ok", "session_running": runtime.running}


@app.get("/api/session")
async def get_session() -> dict[str, Any]:
    """Latest snapshot plus the controls the frontend may show."""
    _controller()
    return _session_payload()


@app.post("/api/role")
async def select_role(request: RoleRequest) -> dict[str, Any]:
    """Choose a role and join the lobby."""
    controller = _controller()
    return _run_action(lambda: controller.select_role(request.role))


@app.post("/api/draft")
async def edit_draft(request: DraftRequest) -> dict[str, Any]:
    controller = _controller()
    return _run_action(lambda: controller.edit_draft(request.text))


@app.post("/api/message")
async def send_message(request: MessageRequest) -> dict[str, Any]:
    """Send a chat turn (or the current draft)."""
    controller = _controller()
    return _run_action(lambda: controller.send_message(request.text))


@app.post("/api/guess")
async def make_guess(request: GuessRequest) -> dict[str, Any]:
    """Submit the tester's human/AI decision."""
    controller = _controller()
    return _run_action(lambda: controller.make_guess(request.guess))


@app.post("/api/new-game")
async def new_game(request: RoleRequest) -> dict[str, Any]:
    """Drop the current session and queue again with the given role."""
    controller = _controller()
    return _run_action(lambda: controller.new_game(request.role))


@app.get("/api/events", response_model=None)
async def get_events(format: str = Query(default="array")) -> Any:
    """Return the session journal as an array (default) or JSONL text."""
    records = [record.to_dict() for record in _controller().journal]
    if format == "jsonl":
        text = "\n".join(to_json_line(record) for record in records)
        return PlainTextResponse(content=text, media_type="application/jsonl")
    return records


if __name__ == "__main__":
    import uvicorn

    configure_logging(ClientConfig.from_env().log_level)
    uvicorn.run(
        "webui.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
    )
