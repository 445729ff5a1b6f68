import unittest
import uuid
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient

from glasschess.config import Config, EngineConfig, InputTiming, StorageConfig
from glasschess.web import app as web_app

SCROLL_DOWN = {"textEvent": {"eventType": "SCROLL_BOTTOM_EVENT"}}
SCROLL_UP = {"textEvent": {"eventType": "SCROLL_TOP_EVENT"}}
CLICK = {"listEvent": {"eventType": 0, "currentSelectItemIndex": 0}}


class WebSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        save_path = Path(f".test_web_save_{uuid.uuid4().hex}.json")
        self.addCleanup(lambda: save_path.unlink(missing_ok=True))
        cfg = Config(
            engine=EngineConfig(command=None, fallback_max_think_ms=0),
            input=InputTiming(
                tap_cooldown_ms=0,
                tap_cooldown_menu_ms=0,
                tap_cooldown_dest_select_ms=0,
                scroll_suppress_after_tap_ms=0,
            ),
            storage=StorageConfig(path=str(save_path)),
        )
        patcher = patch.object(web_app, "config", cfg)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(web_app.app)

    def _receive_until(self, ws, predicate, limit: int = 20) -> dict:
        for _ in range(limit):
            msg = ws.receive_json()
            if predicate(msg):
                return msg
        self.fail("expected message never arrived")

    def test_config_endpoint(self) -> None:
        response = self.client.get("/api/config")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["difficulties"], ["easy", "casual", "serious"])
        self.assertEqual(body["default_difficulty"], "casual")
        self.assertEqual(body["input"]["tap_cooldown_ms"], 0)

    def test_snapshot_on_connect_and_after_input(self) -> None:
        with self.client.websocket_connect("/ws/session") as ws:
            first = ws.receive_json()
            self.assertEqual(first["type"], "state")
            self.assertEqual(first["phase"], "idle")
            self.assertEqual(first["carousel"], [])
            self.assertIsNone(first["overlay"])
            self.assertTrue(first["status"].startswith("White to move"))

            ws.send_json(SCROLL_DOWN)
            msg = ws.receive_json()
            self.assertEqual(msg["phase"], "piece_select")
            self.assertEqual(msg["carousel"][0], "Knight B1")
            self.assertEqual(msg["preview"], {"from": "b1", "to": None})

            ws.send_json({"type": "open_menu"})
            msg = ws.receive_json()
            self.assertEqual(msg["phase"], "menu")
            self.assertEqual(msg["overlay"][0], "MENU")

            ws.send_json({"type": "stop"})

    def test_move_round_trip(self) -> None:
        with self.client.websocket_connect("/ws/session") as ws:
            ws.receive_json()
            ws.send_json(SCROLL_DOWN)
            ws.receive_json()
            ws.send_json(CLICK)
            msg = ws.receive_json()
            self.assertEqual(msg["phase"], "dest_select")
            self.assertEqual(msg["carousel"], ["Knight A3", "Knight C3"])

            ws.send_json(CLICK)
            msg = self._receive_until(
                ws, lambda m: len(m.get("history", [])) == 2 and not m["engine_thinking"]
            )
            self.assertEqual(msg["history"][0], "Na3")
            self.assertEqual(msg["turn"], "white")
            ws.send_json({"type": "stop"})

    def test_invalid_payload_is_ignored(self) -> None:
        with self.client.websocket_connect("/ws/session") as ws:
            ws.receive_json()
            ws.send_json({"listEvent": "broken"})
            ws.send_json(SCROLL_DOWN)
            msg = ws.receive_json()
            self.assertEqual(msg["phase"], "piece_select")
            ws.send_json({"type": "stop"})

    def test_menu_exit_closes_session(self) -> None:
        with self.client.websocket_connect("/ws/session") as ws:
            ws.receive_json()
            ws.send_json({"type": "open_menu"})
            ws.receive_json()
            ws.send_json(SCROLL_UP)
            msg = ws.receive_json()
            self.assertEqual(msg["overlay"][-1], "> Exit")
            ws.send_json(CLICK)
            self._receive_until(ws, lambda m: m["type"] == "closed")


if __name__ == "__main__":
    unittest.main()
