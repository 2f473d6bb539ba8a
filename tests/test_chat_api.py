from __future__ import annotations

import unittest
from urllib.parse import unquote

from fastapi.testclient import TestClient

from app.main import app, get_http_client, get_model_factory
from assistant.core.prompt import NO_DATA_PLACEHOLDER
from config.settings import get_settings
from tests.fakes import (
    BANANA,
    FailingChatModel,
    FakeModels,
    RecordingChatModel,
    fdc_transport,
    http_client_override,
    make_settings,
)


BANANA_QUESTION = [{"role": "user", "content": "How much protein is in a banana?"}]


class ChatAPITestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = make_settings()
        self.models = FakeModels(
            primary=RecordingChatModel(responses=["A banana has about 1.1 g of protein."]),
        )
        self.fdc_requests = []
        self.use_fdc({"banana": BANANA})
        app.dependency_overrides[get_settings] = lambda: self.settings
        app.dependency_overrides[get_model_factory] = lambda: self.models
        self.client = TestClient(app)

    def tearDown(self) -> None:
        self.client.close()
        app.dependency_overrides.clear()

    def use_fdc(self, foods, failing=None) -> None:
        transport = fdc_transport(foods, self.fdc_requests, failing)
        app.dependency_overrides[get_http_client] = http_client_override(transport)

    def primary_prompt(self):
        return self.models.primary_model.seen[-1]


class TestChatValidation(ChatAPITestCase):
    def test_messages_not_an_array(self) -> None:
        for body in ({"messages": "hi"}, {"messages": {"role": "user"}}, {}, ["hi"]):
            resp = self.client.post("/api/chat", json=body)
            self.assertEqual(resp.status_code, 400, body)
            self.assertEqual(resp.json()["error"], "'messages' must be an array.")
            self.assertEqual(resp.json()["code"], "invalid_request")

    def test_too_many_messages(self) -> None:
        messages = [{"role": "user", "content": f"msg {i}"} for i in range(51)]
        resp = self.client.post("/api/chat", json={"messages": messages})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Too many messages provided. Limit to 50.")

    def test_fifty_messages_allowed(self) -> None:
        messages = [{"role": "user", "content": f"msg {i}"} for i in range(50)]
        resp = self.client.post("/api/chat", json={"messages": messages})
        self.assertEqual(resp.status_code, 200)

    def test_empty_and_malformed_messages(self) -> None:
        resp = self.client.post("/api/chat", json={"messages": []})
        self.assertEqual(resp.status_code, 400)
        resp = self.client.post("/api/chat", json={"messages": [{"role": "user"}]})
        self.assertEqual(resp.status_code, 400)

    def test_invalid_json_body(self) -> None:
        resp = self.client.post(
            "/api/chat", content=b"{not json", headers={"content-type": "application/json"}
        )
        self.assertEqual(resp.status_code, 400)

    def test_missing_credentials_fail_before_external_calls(self) -> None:
        for missing in ("google_api_key", "fdc_api_key"):
            setattr(self.settings, missing, None)
            for path in ("/api/chat", "/api/chat/stream"):
                resp = self.client.post(path, json={"messages": BANANA_QUESTION})
                self.assertEqual(resp.status_code, 500)
                self.assertEqual(resp.json()["code"], "missing_api_keys")
            setattr(self.settings, missing, "restored")

        self.assertEqual(self.models.calls, [])
        self.assertEqual(self.fdc_requests, [])

    def test_stack_hidden_unless_enabled(self) -> None:
        resp = self.client.post("/api/chat", json={"messages": "hi"})
        self.assertIn("stack", resp.json())

        self.settings.expose_error_details = False
        resp = self.client.post("/api/chat", json={"messages": "hi"})
        self.assertNotIn("stack", resp.json())


class TestChatCompletion(ChatAPITestCase):
    def test_banana_with_nutrition_match(self) -> None:
        resp = self.client.post("/api/chat", json={"messages": BANANA_QUESTION})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["message"], "A banana has about 1.1 g of protein.")

        prompt = self.primary_prompt()
        self.assertEqual(len(prompt), 3)
        self.assertTrue(prompt[1].content.startswith("FDA Nutrition Data:\nbanana → Protein: 1.09 G"))
        self.assertEqual(prompt[2].content, "How much protein is in a banana?")
        self.assertEqual(self.fdc_requests[0].url.params["query"], "banana")

    def test_banana_without_nutrition_match(self) -> None:
        self.use_fdc({})
        resp = self.client.post("/api/chat", json={"messages": BANANA_QUESTION})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["message"])
        self.assertEqual(
            self.primary_prompt()[1].content, f"FDA Nutrition Data:\n{NO_DATA_PLACEHOLDER}"
        )

    def test_extractor_sees_only_latest_message(self) -> None:
        messages = [
            {"role": "user", "content": "I like apples"},
            {"role": "assistant", "content": "Apples are great."},
            {"role": "user", "content": "How much protein is in a banana?"},
        ]
        resp = self.client.post("/api/chat", json={"messages": messages})
        self.assertEqual(resp.status_code, 200)

        extractor_prompt = self.models.extractor_model.seen[0]
        self.assertEqual(len(extractor_prompt), 2)
        self.assertEqual(extractor_prompt[1].content, "How much protein is in a banana?")
        self.assertEqual(len(self.primary_prompt()), 5)

    def test_title_only_on_first_message(self) -> None:
        resp = self.client.post("/api/chat", json={"messages": BANANA_QUESTION})
        title = resp.json()["title"]
        self.assertEqual(title, "Banana Protein Content")
        self.assertTrue(3 <= len(title.split()) <= 5)

        follow_up = BANANA_QUESTION + [
            {"role": "assistant", "content": "About 1.1 g."},
            {"role": "user", "content": "And in an apple?"},
        ]
        resp = self.client.post("/api/chat", json={"messages": follow_up})
        self.assertEqual(resp.status_code, 200)
        self.assertNotIn("title", resp.json())
        self.assertEqual(self.models.calls.count("titler"), 1)

    def test_extraction_failure_is_500(self) -> None:
        self.models.extractor_model = FailingChatModel()
        resp = self.client.post("/api/chat", json={"messages": BANANA_QUESTION})
        self.assertEqual(resp.status_code, 500)
        body = resp.json()
        self.assertEqual(body["code"], "upstream_error")
        self.assertIn("model unavailable", body["error"])
        self.assertNotIn("primary", self.models.calls)

    def test_completion_failure_is_500(self) -> None:
        self.models.primary_model = FailingChatModel()
        resp = self.client.post("/api/chat", json={"messages": BANANA_QUESTION})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["code"], "upstream_error")

    def test_lookup_failure_is_swallowed(self) -> None:
        self.use_fdc({"banana": BANANA}, failing={"banana": 500})
        resp = self.client.post("/api/chat", json={"messages": BANANA_QUESTION})
        self.assertEqual(resp.status_code, 200)
        self.assertIn(NO_DATA_PLACEHOLDER, self.primary_prompt()[1].content)


class TestChatStream(ChatAPITestCase):
    def test_streams_reply_with_title_header(self) -> None:
        with self.client.stream("POST", "/api/chat/stream", json={"messages": BANANA_QUESTION}) as resp:
            self.assertEqual(resp.status_code, 200)
            self.assertTrue(resp.headers["content-type"].startswith("text/plain"))
            self.assertEqual(unquote(resp.headers["x-chat-title"]), "Banana Protein Content")
            text = "".join(resp.iter_text())

        self.assertEqual(text, "A banana has about 1.1 g of protein.")
        self.assertIn("banana → Protein", self.primary_prompt()[1].content)

    def test_no_title_on_follow_up(self) -> None:
        follow_up = BANANA_QUESTION + [
            {"role": "assistant", "content": "About 1.1 g."},
            {"role": "user", "content": "And in an apple?"},
        ]
        resp = self.client.post("/api/chat/stream", json={"messages": follow_up})
        self.assertEqual(resp.status_code, 200)
        self.assertNotIn("x-chat-title", resp.headers)
        self.assertNotIn("titler", self.models.calls)

    def test_validation_errors_are_json(self) -> None:
        resp = self.client.post("/api/chat/stream", json={"messages": "hi"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "invalid_request")

    def test_completion_failure_before_first_token_is_500(self) -> None:
        self.models.primary_model = FailingChatModel()
        resp = self.client.post("/api/chat/stream", json={"messages": BANANA_QUESTION})
        self.assertEqual(resp.status_code, 500)
        body = resp.json()
        self.assertEqual(body["code"], "upstream_error")
        self.assertIn("model unavailable", body["error"])
        self.assertIn("stack", body)

    def test_failure_after_first_token_ends_stream(self) -> None:
        self.models.primary_model = RecordingChatModel(
            responses=["A banana has about 1.1 g of protein."], error_on_chunk_number=5
        )
        resp = self.client.post("/api/chat/stream", json={"messages": BANANA_QUESTION})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.text, "A ban")


class TestConnectivityEndpoint(ChatAPITestCase):
    def test_missing_key_is_401(self) -> None:
        self.settings.google_api_key = None
        resp = self.client.get("/api/test")
        self.assertEqual(resp.status_code, 401)
        self.assertFalse(resp.json()["success"])
        self.assertEqual(self.models.calls, [])

    def test_verified(self) -> None:
        self.models.primary_model = RecordingChatModel(responses=["API Test Successful"])
        resp = self.client.get("/api/test")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"success": True, "response": "Connectivity verified"})

    def test_unexpected_reply(self) -> None:
        self.models.primary_model = RecordingChatModel(responses=["hello there"])
        resp = self.client.get("/api/test")
        self.assertEqual(resp.json(), {"success": True, "response": "Unexpected API response"})

    def test_failure_is_500(self) -> None:
        self.models.primary_model = FailingChatModel()
        resp = self.client.get("/api/test")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"success": False, "error": "model unavailable"})

    def test_health(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})


if __name__ == "__main__":
    unittest.main()
