"""WebSocket connection management and state serialization."""

import json
import logging

from fastapi import WebSocket

from .session import GameSession

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self):
        self.connections: set[WebSocket] = set()

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self.connections.add(ws)

    def disconnect(self, ws: WebSocket):
        self.connections.discard(ws)

    async def broadcast(self, message: str):
        disconnected = []
        for ws in list(self.connections):
            try:
                await ws.send_text(message)
            except Exception:
                logger.warning("Dropping connection after failed send", exc_info=True)
                disconnected.append(ws)
        for ws in disconnected:
            self.connections.discard(ws)

    async def send_personal(self, ws: WebSocket, message: str):
        await ws.send_text(message)


def grid_to_list(session: GameSession) -> list[list[str]]:
    return [[cell.value for cell in row] for row in session.engine.grid()]


def build_state_msg(session: GameSession) -> str:
    engine = session.engine
    body = engine.body()
    return json.dumps({
        "type": "state",
        "rows": engine.rows,
        "cols": engine.cols,
        "grid": grid_to_list(session),
        "head": engine.head().as_list(),
        "direction": engine.direction.value,
        "score": engine.score,
        "game_over": engine.game_over,
        "phase": session.phase.value,
        "countdown": session.countdown,
        "dead_segments": [p.as_list() for p in body[:session.dead_segments]],
        "best_score": session.best_score,
    })
