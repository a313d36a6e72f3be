"""FastAPI application: HTTP route, WebSocket endpoint, session wiring."""

import json
import logging
import os
import random

from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse

from .constants import ROWS, COLS, HOST, PORT, SEED, PAUSE_KEYS, KEY_DIRECTIONS
from .connection_manager import ConnectionManager, build_state_msg
from .models import Direction
from .session import GameSession

logger = logging.getLogger(__name__)


async def push_state(game_session: GameSession):
    await manager.broadcast(build_state_msg(game_session))


def build_session() -> GameSession:
    rng = random.Random(int(SEED)) if SEED is not None else random.Random()
    return GameSession(ROWS, COLS, rng=rng, on_change=push_state)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await session.stop()


app = FastAPI(lifespan=lifespan)
session = build_session()
manager = ConnectionManager()

HTML_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "index.html")


@app.get("/")
async def serve_index():
    return FileResponse(HTML_PATH, media_type="text/html")


def handle_key(game_session: GameSession, key: str):
    """Translate one key press into session calls."""
    if key in PAUSE_KEYS:
        game_session.toggle_pause()
        return
    if not game_session.in_round:
        game_session.start()
        return
    if key in KEY_DIRECTIONS:
        game_session.change_direction(Direction(KEY_DIRECTIONS[key]))


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await manager.connect(ws)
    try:
        await manager.send_personal(ws, build_state_msg(session))
        while True:
            raw = await ws.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Ignoring malformed message: %.80s", raw)
                continue
            if not isinstance(msg, dict):
                logger.warning("Ignoring non-object message: %.80s", raw)
                continue
            if msg.get("type") == "key" and isinstance(msg.get("key"), str):
                handle_key(session, msg["key"])
            else:
                logger.warning("Ignoring unknown message type: %r", msg.get("type"))
    except WebSocketDisconnect:
        logger.info("Client disconnected")
    finally:
        manager.disconnect(ws)


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Snake server starting on http://%s:%d", HOST, PORT)
    uvicorn.run(app, host=HOST, port=PORT)
