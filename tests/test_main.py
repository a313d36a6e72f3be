import asyncio
import json
import random
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from gridsnake.connection_manager import ConnectionManager, build_state_msg
from gridsnake.main import app, handle_key
from gridsnake.models import Direction, SessionPhase
from gridsnake.session import GameSession


def idle_session():
    session = MagicMock()
    session.in_round = False
    return session


def running_session():
    session = MagicMock()
    session.in_round = True
    return session


class TestHandleKey:
    def test_any_key_starts_idle_session(self):
        session = idle_session()
        handle_key(session, "x")
        session.start.assert_called_once_with()
        session.change_direction.assert_not_called()

    def test_direction_keys_start_instead_of_steering_when_idle(self):
        session = idle_session()
        handle_key(session, "w")
        session.start.assert_called_once_with()
        session.change_direction.assert_not_called()

    def test_wasd_and_arrows_steer_running_session(self):
        session = running_session()
        for key, direction in [
            ("w", Direction.UP), ("ArrowDown", Direction.DOWN),
            ("A", Direction.LEFT), ("ArrowRight", Direction.RIGHT),
        ]:
            session.change_direction.reset_mock()
            handle_key(session, key)
            session.change_direction.assert_called_once_with(direction)
        session.start.assert_not_called()

    def test_pause_key_toggles_pause(self):
        for session in (idle_session(), running_session()):
            handle_key(session, "p")
            session.toggle_pause.assert_called_once_with()
            session.start.assert_not_called()

    def test_other_keys_ignored_during_round(self):
        session = running_session()
        handle_key(session, "q")
        session.start.assert_not_called()
        session.change_direction.assert_not_called()


class TestStateMessage:
    def test_fields_mirror_engine(self):
        session = GameSession(15, 15, rng=random.Random(0))
        msg = json.loads(build_state_msg(session))

        assert msg["type"] == "state"
        assert (msg["rows"], msg["cols"]) == (15, 15)
        assert msg["head"] == [7, 3]
        assert msg["direction"] == "right"
        assert msg["score"] == 0
        assert msg["game_over"] is False
        assert msg["phase"] == SessionPhase.IDLE.value
        assert msg["countdown"] is None
        assert msg["dead_segments"] == []
        cells = [cell for row in msg["grid"] for cell in row]
        assert cells.count("snake") == 3
        assert cells.count("food") == 1

    def test_dead_segments_are_a_head_first_prefix(self):
        session = GameSession(15, 15, rng=random.Random(0))
        session.dead_segments = 2
        msg = json.loads(build_state_msg(session))
        assert msg["dead_segments"] == [[7, 3], [7, 2]]


class TestApp:
    def test_index_served(self):
        with TestClient(app) as client:
            response = client.get("/")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]

    def test_websocket_sends_state_on_connect(self):
        with TestClient(app) as client:
            with client.websocket_connect("/ws") as ws:
                msg = ws.receive_json()
                ws.send_text("not json")
                ws.send_json({"type": "chat"})
        assert msg["type"] == "state"
        assert msg["phase"] == "idle"


class SlowSocket:
    """Fake WebSocket whose send blocks until ``release`` is set."""

    def __init__(self):
        self.release = asyncio.Event()
        self.sent = []

    async def accept(self):
        pass

    async def send_text(self, message):
        await self.release.wait()
        self.sent.append(message)


class TestBroadcast:
    def test_connect_during_broadcast(self):
        async def scenario():
            manager = ConnectionManager()
            slow, late = SlowSocket(), SlowSocket()
            late.release.set()
            await manager.connect(slow)
            sending = asyncio.create_task(manager.broadcast("frame"))
            await asyncio.sleep(0)
            await manager.connect(late)
            slow.release.set()
            await sending
            return manager, slow, late

        manager, slow, late = asyncio.run(scenario())
        assert slow.sent == ["frame"]
        assert late.sent == []
        assert manager.connections == {slow, late}

    def test_disconnect_during_broadcast(self):
        async def scenario():
            manager = ConnectionManager()
            first, second = SlowSocket(), SlowSocket()
            second.release.set()
            await manager.connect(first)
            await manager.connect(second)
            sending = asyncio.create_task(manager.broadcast("frame"))
            await asyncio.sleep(0)
            manager.disconnect(first)
            manager.disconnect(second)
            first.release.set()
            await sending
            return manager

        manager = asyncio.run(scenario())
        assert manager.connections == set()

    def test_failed_send_drops_socket(self):
        broken = MagicMock()
        broken.send_text = AsyncMock(side_effect=RuntimeError("closed"))
        healthy = SlowSocket()
        healthy.release.set()
        manager = ConnectionManager()
        manager.connections = {broken, healthy}

        asyncio.run(manager.broadcast("frame"))
        assert manager.connections == {healthy}
        assert healthy.sent == ["frame"]
