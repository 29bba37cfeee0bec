"""HTTP-level tests for the messaging, payment and session endpoints."""

from __future__ import annotations

import tempfile
import unittest

from fastapi.testclient import TestClient

from orderbot.core.settings import Settings
from orderbot.db.session import build_engine, build_session_factory
from orderbot.main import create_app
from orderbot.services.snapshot_store import ConversationSnapshotStore


class ApiTestCase(unittest.TestCase):
    """Drives the application through FastAPI's test client."""

    def setUp(self) -> None:
        settings = Settings(database_url=None, azure_openai_api_key=None, admin_phones=[])
        self.app = create_app(settings)
        self.client = TestClient(self.app)
        self.client.__enter__()

    def tearDown(self) -> None:
        self.client.__exit__(None, None, None)

    def _send(self, message: str, user_id: str = "5491122334455") -> dict:
        response = self.client.post(
            "/api/v1/messages",
            json={"tenant_id": "pizzeria", "user_id": user_id, "message": message},
        )
        self.assertEqual(response.status_code, 200)
        return response.json()

    def test_health_check(self) -> None:
        response = self.client.get("/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")

    def test_greeting_returns_quick_replies(self) -> None:
        body = self._send("hola")

        self.assertEqual(body["user_id"], "5491122334455")
        self.assertEqual(len(body["quick_replies"]), 3)

    def test_empty_message_is_rejected(self) -> None:
        response = self.client.post(
            "/api/v1/messages",
            json={"tenant_id": "pizzeria", "user_id": "5491122334455", "message": ""},
        )

        self.assertEqual(response.status_code, 422)

    def test_whatsapp_webhook_payload(self) -> None:
        payload = {
            "object": "whatsapp_business_account",
            "entry": [
                {
                    "id": "waba-1",
                    "changes": [
                        {
                            "value": {
                                "metadata": {"phone_number_id": "pizzeria"},
                                "messages": [
                                    {"from": "5491122334455", "type": "text", "text": {"body": "hola"}},
                                    {
                                        "from": "5491199999999",
                                        "type": "interactive",
                                        "interactive": {"button_reply": {"id": "b1", "title": "📋 Ver Menú"}},
                                    },
                                    {"from": "5491188888888", "type": "image"},
                                ],
                            }
                        }
                    ],
                }
            ],
        }

        response = self.client.post("/api/v1/webhook/messages", json=payload)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "accepted", "messages": 2})
        stats = self.client.get("/api/v1/sessions/stats").json()
        self.assertEqual(stats["total"], 2)
        self.assertEqual(stats["by_state"], {"greeting": 1, "browsing_menu": 1})

    def test_payment_notification_without_waiting_conversation_is_ignored(self) -> None:
        response = self.client.post(
            "/api/v1/payments/notify",
            json={"tenant_id": "pizzeria", "user_id": "5491122334455", "order_id": "pizzeria-0001", "approved": True},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ignored"})

    def test_end_session_endpoint(self) -> None:
        self._send("hola")

        response = self.client.delete("/api/v1/sessions/pizzeria/5491122334455")
        self.assertEqual(response.status_code, 200)

        response = self.client.delete("/api/v1/sessions/pizzeria/5491122334455")
        self.assertEqual(response.status_code, 404)


class SnapshotLifecycleTestCase(unittest.TestCase):
    """Covers snapshot restore on startup and removal on explicit session end."""

    def setUp(self) -> None:
        directory = tempfile.TemporaryDirectory()
        self.addCleanup(directory.cleanup)
        self.settings = Settings(
            database_url=f"sqlite:///{directory.name}/snapshots.db",
            azure_openai_api_key=None,
            admin_phones=[],
        )

    def _run(self, *requests: tuple[str, str, dict | None]) -> list:
        app = create_app(self.settings)
        responses = []
        with TestClient(app) as client:
            for method, path, body in requests:
                responses.append(client.request(method, path, json=body))
        store = app.state.snapshot_store
        store.session_factory.kw["bind"].dispose()
        return responses

    def test_conversation_survives_restart(self) -> None:
        message = {"tenant_id": "pizzeria", "user_id": "5491122334455", "message": "hola"}
        self._run(("POST", "/api/v1/messages", message))

        (stats,) = self._run(("GET", "/api/v1/sessions/stats", None))

        self.assertEqual(stats.json()["by_state"], {"greeting": 1})

    def test_ended_session_is_not_restored(self) -> None:
        message = {"tenant_id": "pizzeria", "user_id": "5491122334455", "message": "hola"}
        self._run(("POST", "/api/v1/messages", message))

        engine = build_engine(self.settings.database_url)
        self.addCleanup(engine.dispose)
        store = ConversationSnapshotStore(build_session_factory(engine))
        self.assertEqual(len(store.load_all()), 1)

        app = create_app(self.settings)
        with TestClient(app) as client:
            removed = client.delete("/api/v1/sessions/pizzeria/5491122334455")

            self.assertEqual(removed.status_code, 200)
            self.assertEqual(store.load_all(), [])
        app.state.snapshot_store.session_factory.kw["bind"].dispose()


if __name__ == "__main__":
    unittest.main()
