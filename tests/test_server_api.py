#!/usr/bin/env python3
"""
HTTP-level tests for the chat server (FastAPI TestClient).

Covers the five /api endpoints, 400 {error} responses, CORS and the
lifespan-managed heartbeat sweep.
"""

import asyncio
import time
import unittest

from fastapi.testclient import TestClient

from src.server import create_app, run_sweeper
from src.store import ChatStore
from src.utils.settings import Settings

from tests.helpers import FakeClock


class ChatApiTestCase(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.store = ChatStore(clock=self.clock)
        self.app = create_app(self.store, settings=Settings(), start_sweeper=False)
        self.client = TestClient(self.app)

    def post_message(self, text="hi", sender="alice", session_id="s1"):
        return self.client.post(
            "/api/message",
            json={"text": text, "sender": sender, "sessionId": session_id},
        )


class TestChatEndpoints(ChatApiTestCase):

    def test_empty_state(self):
        response = self.client.get("/api/chat")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"messages": [], "activeUsers": []})

    def test_post_message(self):
        response = self.post_message(text="  hello ", sender=" alice ")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["message"]["text"], "hello")
        self.assertEqual(body["message"]["sender"], "alice")
        self.assertIn("id", body["message"])
        self.assertIn("timestamp", body["message"])

        state = self.client.get("/api/chat").json()
        self.assertEqual(state["messages"], [body["message"]])

    def test_messages_in_arrival_order(self):
        for text in ["one", "two", "three"]:
            self.post_message(text=text)
        texts = [m["text"] for m in self.client.get("/api/chat").json()["messages"]]
        self.assertEqual(texts, ["one", "two", "three"])

    def test_post_message_missing_fields(self):
        bodies = [
            {"sender": "alice", "sessionId": "s1"},
            {"text": "hi", "sessionId": "s1"},
            {"text": "hi", "sender": "alice"},
            {"text": " ", "sender": "alice", "sessionId": "s1"},
            {},
        ]
        for body in bodies:
            with self.subTest(body=body):
                response = self.client.post("/api/message", json=body)
                self.assertEqual(response.status_code, 400)
                self.assertIn("error", response.json())
        self.assertEqual(self.client.get("/api/chat").json()["messages"], [])

    def test_malformed_body_is_400(self):
        response = self.client.post(
            "/api/message", content=b"not json", headers={"Content-Type": "application/json"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Missing required fields"})

        response = self.client.post(
            "/api/message", json={"text": 5, "sender": "alice", "sessionId": "s1"}
        )
        self.assertEqual(response.status_code, 400)

    def test_truncation_over_http(self):
        store = ChatStore(max_messages=3, clock=self.clock)
        client = TestClient(create_app(store, settings=Settings(), start_sweeper=False))
        for i in range(5):
            client.post("/api/message", json={"text": f"m{i}", "sender": "a", "sessionId": "s"})
        texts = [m["text"] for m in client.get("/api/chat").json()["messages"]]
        self.assertEqual(texts, ["m2", "m3", "m4"])

    def test_clear(self):
        self.post_message()
        response = self.client.post("/api/clear")
        self.assertEqual(response.json(), {"success": True})
        self.assertEqual(self.client.get("/api/chat").json()["messages"], [])

    def test_health(self):
        body = self.client.get("/api/health").json()
        self.assertEqual(body["status"], "ok")
        self.assertTrue(body["timestamp"].endswith("Z"))

    def test_cors_any_origin(self):
        response = self.client.get("/api/health", headers={"Origin": "http://example.com"})
        self.assertEqual(response.headers.get("access-control-allow-origin"), "*")


class TestHeartbeatEndpoint(ChatApiTestCase):

    def heartbeat(self, username, session_id):
        return self.client.post(
            "/api/heartbeat", json={"username": username, "sessionId": session_id}
        )

    def test_heartbeat_lists_user_immediately(self):
        response = self.heartbeat("alice", "s1")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True, "activeUsers": ["alice"]})
        self.assertEqual(self.client.get("/api/chat").json()["activeUsers"], ["alice"])

    def test_heartbeat_missing_fields(self):
        self.assertEqual(self.heartbeat("", "s1").status_code, 400)
        self.assertEqual(self.heartbeat("alice", None).status_code, 400)
        self.assertEqual(self.client.get("/api/chat").json()["activeUsers"], [])

    def test_duplicate_usernames_collapse(self):
        self.heartbeat("alice", "s1")
        body = self.heartbeat("alice", "s2").json()
        self.assertEqual(body["activeUsers"], ["alice"])

    def test_user_disappears_after_timeout(self):
        self.heartbeat("alice", "s1")
        self.clock.advance(11)
        self.store.sweep()
        self.assertEqual(self.client.get("/api/chat").json()["activeUsers"], [])


class TestSweeper(unittest.TestCase):

    def test_lifespan_runs_sweep(self):
        clock = FakeClock()
        store = ChatStore(clock=clock)
        app = create_app(store, settings=Settings(sweep_interval_sec=0.01))
        with TestClient(app) as client:
            client.post("/api/heartbeat", json={"username": "alice", "sessionId": "s1"})
            clock.advance(30)
            deadline = time.monotonic() + 2
            while store._heartbeats and time.monotonic() < deadline:
                time.sleep(0.01)
            self.assertEqual(store._heartbeats, {})

    def test_run_sweeper_until_cancelled(self):
        clock = FakeClock()
        store = ChatStore(clock=clock)
        store.record_heartbeat("alice", "s1")
        clock.advance(30)

        async def scenario():
            task = asyncio.create_task(run_sweeper(store, 0.01))
            await asyncio.sleep(0.05)
            task.cancel()
            with self.assertRaises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        self.assertEqual(store._heartbeats, {})


if __name__ == "__main__":
    unittest.main()
