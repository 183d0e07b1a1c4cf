import json
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient
from openai import OpenAIError

from app.agent.cache import LRUCache
from app.api.deps import get_llm_client
from app.main import app
from app.tests.fakes import ScriptedLLMClient, happy_path_responses

API = "/api/v1"
BRIEF = {"brief": "Acme builds reliable rockets for small satellites."}


class GenerateRouteTests(unittest.TestCase):
    def setUp(self):
        app.state.cache = LRUCache(max_size=64)
        self.responses = happy_path_responses()
        app.dependency_overrides[get_llm_client] = lambda: ScriptedLLMClient(self.responses)
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_generate_returns_the_finished_logo(self):
        response = self.client.post(f"{API}/generate/", json=BRIEF)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["final_svg"].startswith("<svg"))
        self.assertEqual(body["design_spec"]["brand_name"], "Acme")
        self.assertEqual(body["uniqueness"]["isUnique"], True)
        self.assertEqual(body["warnings"], [])

    def test_generate_reports_critical_failures(self):
        self.responses["requirements"] = "no structured output today"

        response = self.client.post(f"{API}/generate/", json=BRIEF)

        self.assertEqual(response.status_code, 502)
        error = response.json()["error"]
        self.assertEqual(error["category"], "api")
        self.assertEqual(error["message"], "Could not parse the requirements response as JSON")

    def test_generate_rejects_an_empty_brief(self):
        response = self.client.post(f"{API}/generate/", json={"brief": ""})
        self.assertEqual(response.status_code, 422)

    def test_stream_emits_progress_events(self):
        response = self.client.post(f"{API}/generate/stream", json={**BRIEF, "include_uniqueness_analysis": False})

        self.assertEqual(response.status_code, 200)
        events = [
            json.loads(line[len("data:"):].strip())
            for line in response.text.splitlines()
            if line.startswith("data:")
        ]
        statuses = [event["status"] for event in events]
        self.assertEqual(statuses[0], "starting")
        self.assertEqual(statuses[-1], "completed")
        self.assertIn("svg_generation_done", statuses)
        self.assertNotIn("uniqueness", statuses)


class LLMClientDependencyTests(unittest.TestCase):
    def test_unconfigured_provider_is_a_503(self):
        app.state.cache = LRUCache()
        client = TestClient(app)

        with patch("app.api.deps.LLMClient", side_effect=OpenAIError("api_key must be set")):
            response = client.post(f"{API}/generate/", json=BRIEF)

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["detail"], "Model provider is not configured. Set LLM_API_KEY.")


if __name__ == "__main__":
    unittest.main()
