import unittest

from fastapi.testclient import TestClient

from app.agent.cache import LRUCache
from app.main import app
from app.tests.fakes import ACCESSIBLE_SVG, POOR_SVG, SVG_NS, VALID_SVG

API = "/api/v1"
SCRIPT_SVG = (
    f'<svg {SVG_NS} width="10" height="10" viewBox="0 0 10 10"><title>t</title>'
    "<script>alert(1)</script></svg>"
)


class SVGRouteTests(unittest.TestCase):
    def setUp(self):
        app.state.cache = LRUCache(max_size=32)
        self.client = TestClient(app)

    def test_health_check(self):
        response = self.client.get(f"{API}/utils/health-check/")
        self.assertEqual(response.status_code, 200)
        self.assertIs(response.json(), True)

    def test_validate(self):
        response = self.client.post(f"{API}/svg/validate", json={"svg": SCRIPT_SVG})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertFalse(body["is_valid"])
        self.assertIn("SVG contains disallowed <script> element", body["errors"])
        self.assertTrue(body["violations"]["has_scripts"])

    def test_repair(self):
        response = self.client.post(f"{API}/svg/repair", json={"svg": SCRIPT_SVG})

        body = response.json()
        self.assertTrue(body["is_repaired"])
        self.assertNotIn("script", body["svg"])
        self.assertIn("Removed script elements", body["modifications"])

    def test_optimize(self):
        response = self.client.post(f"{API}/svg/optimize", json={"svg": VALID_SVG.replace("><", ">\n  <")})

        body = response.json()
        self.assertEqual(body["svg"], VALID_SVG)
        self.assertIn("Removed whitespace between tags", body["optimizations"])

    def test_process_without_repair(self):
        response = self.client.post(f"{API}/svg/process", json={"svg": SCRIPT_SVG, "repair": False})

        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["overall_score"], 0)

    def test_accessibility_report_uses_camel_case(self):
        response = self.client.post(f"{API}/svg/accessibility", json={"svg": ACCESSIBLE_SVG})

        body = response.json()
        self.assertEqual(body["assessment"]["overallAccessibility"], 93)
        self.assertTrue(body["feedback"].startswith("Excellent accessibility!"))
        self.assertTrue(body["validation"]["is_valid"])

    def test_design_report_uses_camel_case(self):
        response = self.client.post(f"{API}/svg/design", json={"svg": VALID_SVG})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["assessment"]["colorHarmony"], 100)
        self.assertEqual(body["assessment"]["overallAesthetic"], 81)
        self.assertEqual(body["assessment"]["technicalQuality"], 100)
        self.assertTrue(body["validation"]["is_valid"])

    def test_process_design_repairs_then_assesses(self):
        response = self.client.post(f"{API}/svg/process-design", json={"svg": SCRIPT_SVG})

        body = response.json()
        self.assertTrue(body["success"])
        self.assertNotIn("script", body["svg"])
        self.assertIn("overallAesthetic", body["designQuality"])

        response = self.client.post(f"{API}/svg/process-design", json={"svg": VALID_SVG, "assess_design": False})
        self.assertIsNone(response.json()["designQuality"])

    def test_recover_json(self):
        response = self.client.post(
            f"{API}/svg/recover-json",
            json={"text": '```json\n{"score": 90,}\n```'},
        )
        self.assertEqual(response.json(), {"recovered": True, "data": {"score": 90}})

        response = self.client.post(f"{API}/svg/recover-json", json={"text": "nothing here"})
        self.assertEqual(response.json(), {"recovered": False, "data": None})

    def test_cache_stats_and_clear(self):
        self.client.post(f"{API}/svg/validate", json={"svg": POOR_SVG})
        self.client.post(f"{API}/svg/validate", json={"svg": POOR_SVG})

        stats = self.client.get(f"{API}/cache/stats").json()
        self.assertEqual(stats["hits"], 1)
        self.assertEqual(stats["size"], 1)
        self.assertEqual(stats["max_size"], 32)

        cleared = self.client.post(f"{API}/cache/clear").json()
        self.assertEqual(cleared, {"message": "Cache cleared successfully", "cleared": 1})
        self.assertEqual(self.client.get(f"{API}/cache/stats").json()["size"], 0)


if __name__ == "__main__":
    unittest.main()
