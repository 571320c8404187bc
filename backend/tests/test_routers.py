"""HTTP tests for the runner API: auth, LEIA sessions, models, cache and the wizard stream."""
from __future__ import annotations

import json
import unittest
from typing import Any

import httpx
from fastapi.testclient import TestClient

from fakes import EchoProvider, ScriptedChat, tool_call
from main import create_app
from src.model_registry.providers import WizardProvider
from src.session_store import MEMORY_URL
from src.session_store.keys import wizard_key
from src.wizard_agent.catalog import CatalogClient

RUNNER_KEY = "runner-secret"
AUTH = {"Authorization": f"Bearer {RUNNER_KEY}"}

PERSONA = {"apiVersion": "v1", "metadata": {"name": "Ana"}, "spec": {"firstName": "Ana"}}
PROBLEM = {"apiVersion": "v1", "metadata": {"name": "Shop"}, "spec": {"description": "Online shop"}}
BEHAVIOUR = {"apiVersion": "v1", "metadata": {"name": "PO"}, "spec": {"role": "product_owner"}}

LEIA = {
    "id": "leia-1",
    "spec": {
        "behaviour": {"spec": {"description": "Act as a product owner."}},
        "problem": {"spec": {"solution": "A shop backlog", "solutionFormat": "text"}},
    },
}


def sse_events(body: str) -> list[dict[str, Any]]:
    return [json.loads(frame[len("data: "):]) for frame in body.split("\n\n") if frame.startswith("data: ")]


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.echo = EchoProvider("echo")
        self.chat = ScriptedChat(
            components={"persona": PERSONA, "problem": PROBLEM, "behaviour": BEHAVIOUR},
            default_reply="Your LEIA is ready.",
        )
        catalog = CatalogClient(
            base_url="http://designer.test",
            client=httpx.AsyncClient(
                base_url="http://designer.test",
                transport=httpx.MockTransport(lambda request: httpx.Response(404)),
            ),
        )
        self.wizard = WizardProvider(chat=self.chat, catalog=catalog)
        app = create_app(store_url=MEMORY_URL, providers=[self.echo, self.wizard], runner_key=RUNNER_KEY)
        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        return self.client.post(path, json=body, headers=AUTH)


class TestAuth(ApiTestCase):
    def test_missing_token(self) -> None:
        resp = self.client.get("/models")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["error"], "unauthorized")

    def test_wrong_token(self) -> None:
        resp = self.client.get("/models", headers={"Authorization": "Bearer nope"})
        self.assertEqual(resp.status_code, 401)


class TestLeias(ApiTestCase):
    def test_create_and_talk(self) -> None:
        resp = self.post("/leias", {"sessionId": "s1", "leia": LEIA})
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json(), {"sessionId": "s1", "modelName": "echo", "created": True})
        self.assertEqual(self.echo.sessions[-1]["instructions"], "Act as a product owner.")

        resp = self.post("/leias/s1/messages", {"message": "Hello"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"message": "pong"})

    def test_duplicate_session_conflicts(self) -> None:
        self.post("/leias", {"sessionId": "s1", "leia": LEIA})
        resp = self.post("/leias", {"sessionId": "s1", "leia": LEIA})
        self.assertEqual(resp.status_code, 409)
        body = resp.json()
        self.assertEqual(body["code"], 409)
        self.assertEqual(body["details"]["modelName"], "echo")

    def test_unknown_provider(self) -> None:
        resp = self.post("/leias", {"sessionId": "s2", "leia": LEIA, "runnerConfiguration": {"provider": "gpt-9"}})
        self.assertEqual(resp.status_code, 404)

    def test_missing_fields(self) -> None:
        resp = self.post("/leias", {"sessionId": "s3"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "bad_request")

    def test_message_to_unknown_session(self) -> None:
        resp = self.post("/leias/ghost/messages", {"message": "Hello"})
        self.assertEqual(resp.status_code, 404)

    def test_evaluation(self) -> None:
        self.post("/leias", {"sessionId": "s1", "leia": LEIA})
        resp = self.post("/evaluation", {"sessionId": "s1", "result": "A shop backlog with epics"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["score"], 8)
        leia_meta, _ = self.echo.evaluations[-1]
        self.assertEqual(leia_meta, {"leiaId": "leia-1", "solution": "A shop backlog", "solutionFormat": "text"})


class TestModelsAndCache(ApiTestCase):
    def test_models_listing(self) -> None:
        resp = self.client.get("/models", headers=AUTH)
        self.assertEqual(resp.json(), {"models": ["echo", "wizard"], "default": "echo"})

    def test_purge_rejects_time_frame_with_date(self) -> None:
        resp = self.client.delete("/cache/purge", params={"f": "24h", "date": "2024-01-15"}, headers=AUTH)
        self.assertEqual(resp.status_code, 400)

    def test_purge_rejects_invalid_metadata(self) -> None:
        resp = self.client.delete("/cache/purge", params={"metadata": "{oops"}, headers=AUTH)
        self.assertEqual(resp.status_code, 400)
        self.assertIn("metadata", resp.json()["message"])

    def test_purge_rejects_non_ascii_digit_date(self) -> None:
        resp = self.client.delete("/cache/purge", params={"date": "²"}, headers=AUTH)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "bad_request")

    def test_purge_by_session(self) -> None:
        self.post("/leias", {"sessionId": "s1", "leia": LEIA})
        self.post("/leias", {"sessionId": "s2", "leia": LEIA})

        resp = self.client.delete("/cache/purge", params={"sessionId": "s1"}, headers=AUTH)

        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["deletedKeys"], 2)
        self.assertEqual(body["appliedFilters"]["sessionId"], "s1")
        self.assertEqual(self.post("/leias/s1/messages", {"message": "Hi"}).status_code, 404)
        self.assertEqual(self.post("/leias/s2/messages", {"message": "Hi"}).status_code, 200)

    def test_stats(self) -> None:
        self.post("/leias", {"sessionId": "s1", "leia": LEIA})
        stats = self.client.get("/cache/stats", headers=AUTH).json()
        self.assertEqual(stats["breakdown"]["sessions"], 1)
        self.assertEqual(stats["breakdown"]["metadata"], 1)
        self.assertEqual(stats["breakdown"]["models"], 2)
        self.assertEqual(stats["breakdown"]["validatedModels"], 1)


class TestWizard(ApiTestCase):
    def create_session(self) -> str:
        resp = self.post("/wizard/sessions", {"userPrompt": "A LEIA about online shops"})
        self.assertEqual(resp.status_code, 200)
        return resp.json()["sessionId"]

    def stream(self, session_id: str) -> list[dict[str, Any]]:
        resp = self.client.get(f"/wizard/sessions/{session_id}/stream", headers=AUTH)
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.headers["content-type"].startswith("text/event-stream"))
        return sse_events(resp.text)

    def test_stream_builds_leia(self) -> None:
        session_id = self.create_session()
        self.chat.replies = [
            (
                "",
                [
                    tool_call("generate_persona", "c1", personality="calm", topic="shops"),
                    tool_call(
                        "generate_problem",
                        "c2",
                        topic="shops",
                        difficulty="beginner",
                        solutionFormat="text",
                        process="requirements-elicitation",
                    ),
                    tool_call("generate_behaviour", "c3", role="product_owner", process="game", approach="socratic"),
                ],
            )
        ]

        events = self.stream(session_id)
        kinds = [e["type"] for e in events]

        self.assertEqual(kinds[0], "connected")
        self.assertEqual(events[0]["sessionId"], session_id)
        self.assertEqual(kinds.count("function_call_start"), 3)
        self.assertEqual(kinds.count("function_call_complete"), 3)
        self.assertEqual(kinds[-3:], ["message", "complete", "stream_end"])
        self.assertEqual(events[-2]["leia"]["problem"], PROBLEM)

        state = self.client.get(f"/wizard/sessions/{session_id}", headers=AUTH).json()
        self.assertEqual(
            state,
            {"sessionId": session_id, "completed": True, "persona": PERSONA, "problem": PROBLEM, "behaviour": BEHAVIOUR},
        )

    def test_plain_reply_stream(self) -> None:
        session_id = self.create_session()
        self.chat.default_reply = "Which topic should the problem cover?"

        kinds = [e["type"] for e in self.stream(session_id)]

        self.assertEqual(kinds, ["connected", "thinking", "message", "stream_end"])
        state = self.client.get(f"/wizard/sessions/{session_id}", headers=AUTH).json()
        self.assertFalse(state["completed"])

    def test_feedback_is_appended_for_next_turn(self) -> None:
        session_id = self.create_session()
        resp = self.post(f"/wizard/sessions/{session_id}/message", {"message": "Make it harder"})
        self.assertEqual(resp.json(), {"success": True, "message": "Message added to conversation"})

        self.stream(session_id)

        sent = self.chat.seen[-1]
        self.assertEqual([m.role for m in sent[-2:]], ["user", "user"])
        self.assertEqual(sent[-1].content, "Make it harder")

    def test_unknown_session_stream_reports_error(self) -> None:
        events = self.stream("ghost")
        self.assertEqual(events, [{"type": "error", "message": "Session not found"}])

    def test_corrupt_session_stream_reports_error(self) -> None:
        store = self.client.app.state.store
        self.client.portal.call(store.put_json, wizard_key("bad"), {"messages": 5}, 60)

        events = self.stream("bad")

        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]["type"], "error")
        self.assertEqual(events[0]["code"], "persistence_error")

    def test_unknown_session_state_and_message(self) -> None:
        self.assertEqual(self.client.get("/wizard/sessions/ghost", headers=AUTH).status_code, 404)
        self.assertEqual(self.post("/wizard/sessions/ghost/message", {"message": "hi"}).status_code, 404)

    def test_delete(self) -> None:
        session_id = self.create_session()
        resp = self.client.delete(f"/wizard/sessions/{session_id}", headers=AUTH)
        self.assertTrue(resp.json()["success"])
        self.assertEqual(self.client.get(f"/wizard/sessions/{session_id}", headers=AUTH).status_code, 404)


if __name__ == "__main__":
    unittest.main()
