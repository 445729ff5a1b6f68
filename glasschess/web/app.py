"""
FastAPI application: the web simulator backend.

Exposes:
  GET  /api/config         Input timings and difficulty levels for the UI
  WS   /ws/session         One glasses session per connection

Every JSON message received on the socket is treated as a glasses hub event
(e.g. {"listEvent": {"eventType": 1}}), except the control messages
{"type": "open_menu"} and {"type": "stop"}. After every state change the
server pushes a {"type": "state", ...} snapshot with the same text the
glasses would show.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, get_args

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from glasschess.actions import OpenMenu
from glasschess.app import ChessApp
from glasschess.config import load_config
from glasschess.logging_setup import configure_logging
from glasschess.state.contracts import DifficultyLevel, GameState
from glasschess.state.selectors import (
    board_preview,
    carousel_items,
    carousel_selected_index,
    clock_text,
    display_fen,
    overlay_lines,
    status_text,
)

config = load_config(missing_ok=True)

# --------------------------------------------------------------------------- #
# Logging                                                                      #
# --------------------------------------------------------------------------- #

configure_logging(config.logging)
logger = logging.getLogger("glasschess")


app = FastAPI(title="glasschess")

_DIST = Path(__file__).parent.parent.parent / "frontend" / "dist"


def _to_json(data: dict) -> str:
    """json.dumps with tuple/dataclass support."""
    def _default(obj: object) -> Any:
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
    return json.dumps(data, default=_default)


def _snapshot(state: GameState) -> dict:
    origin, dest = board_preview(state)
    return {
        "type": "state",
        "phase": state.phase,
        "mode": state.mode,
        "fen": display_fen(state),
        "turn": state.turn,
        "in_check": state.in_check,
        "engine_thinking": state.engine_thinking,
        "game_over": state.game_over,
        "difficulty": state.difficulty,
        "show_board_markers": state.show_board_markers,
        "history": list(state.history),
        "last_move": state.last_move,
        "preview": {"from": origin, "to": dest},
        "carousel": carousel_items(state),
        "carousel_index": carousel_selected_index(state),
        "overlay": overlay_lines(state),
        "clock": clock_text(state),
        "status": status_text(state),
    }


# --------------------------------------------------------------------------- #
# REST                                                                         #
# --------------------------------------------------------------------------- #

@app.get("/api/config")
def get_config():
    return {
        "input": dataclasses.asdict(config.input),
        "difficulties": list(get_args(DifficultyLevel)),
        "default_difficulty": config.game.default_difficulty,
    }


# --------------------------------------------------------------------------- #
# WebSocket session                                                            #
# --------------------------------------------------------------------------- #

@app.websocket("/ws/session")
async def session_ws(ws: WebSocket) -> None:
    await ws.accept()

    chess_app = ChessApp(config)
    changed: asyncio.Queue[None] = asyncio.Queue()

    try:
        await chess_app.start()
        chess_app.subscribe(lambda new, prev: changed.put_nowait(None))
        await ws.send_text(_to_json(_snapshot(chess_app.state)))

        async def _send_loop() -> None:
            while True:
                await changed.get()
                # Coalesce bursts (e.g. Refresh + EngineThinking) into one frame
                while not changed.empty():
                    changed.get_nowait()
                await ws.send_text(_to_json(_snapshot(chess_app.state)))

        async def _receive_loop() -> None:
            try:
                while True:
                    msg = await ws.receive_json()
                    kind = msg.get("type") if isinstance(msg, dict) else None
                    if kind == "stop":
                        break
                    if kind == "open_menu":
                        chess_app.dispatch(OpenMenu())
                        continue
                    chess_app.handle_payload(msg)
            except (WebSocketDisconnect, RuntimeError):
                pass

        # Run sender, receiver and the app's own exit together; whichever
        # finishes first ends the session.
        send_task = asyncio.create_task(_send_loop())
        recv_task = asyncio.create_task(_receive_loop())
        closed_task = asyncio.create_task(chess_app.closed.wait())

        done, pending = await asyncio.wait(
            {send_task, recv_task, closed_task}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
            try:
                await task
            except (asyncio.CancelledError, WebSocketDisconnect):
                pass

        if closed_task in done:
            await ws.send_text(_to_json({"type": "closed"}))

        # Re-raise any exception from the sender
        for task in done:
            if task is not closed_task and task.exception():
                raise task.exception()  # type: ignore[misc]

    except WebSocketDisconnect:
        pass
    except Exception as exc:
        logger.exception("Session failed")
        try:
            await ws.send_text(_to_json({"type": "error", "message": str(exc)}))
        except (WebSocketDisconnect, RuntimeError):
            pass
    finally:
        await chess_app.shutdown()


# --------------------------------------------------------------------------- #
# Serve built frontend in production                                          #
# --------------------------------------------------------------------------- #

if _DIST.exists():
    app.mount(
        "/assets", StaticFiles(directory=_DIST / "assets"), name="assets"
    )

    @app.get("/{full_path:path}")
    async def spa(full_path: str) -> FileResponse:
        return FileResponse(_DIST / "index.html")
