import os
import unittest

from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("S3_ENDPOINT", "http://localhost:9000")
os.environ.setdefault("S3_ACCESS_KEY", "test")
os.environ.setdefault("S3_SECRET_KEY", "test")
os.environ.setdefault("S3_BUCKET", "test")

from app.core.request_logging import request_id_from_header
from app.main import app


class RequestLoggingTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()

    def test_health_has_request_id_and_no_store(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers.get("cache-control"), "no-store")

        request_id = response.headers.get("x-request-id")
        self.assertIsNotNone(request_id)
        self.assertRegex(str(request_id), r"^[A-Za-z0-9._-]{1,128}$")

    def test_valid_request_id_is_preserved(self):
        external_request_id = "form-check-2026_10_17"
        response = self.client.get("/health", headers={"X-Request-ID": external_request_id})
        self.assertEqual(response.headers.get("x-request-id"), external_request_id)

    def test_invalid_request_id_is_replaced(self):
        self.assertNotEqual(request_id_from_header("bad id with spaces"), "bad id with spaces")
        self.assertRegex(request_id_from_header(None), r"^[0-9a-f]{32}$")

    def test_requests_are_logged(self):
        with self.assertLogs("app.http", level="INFO") as logs:
            self.client.get("/health", headers={"X-Request-ID": "log-me"})
        self.assertIn("GET /health status=200", logs.output[0])
        self.assertIn("request_id=log-me", logs.output[0])

    def test_error_response_keeps_request_id(self):
        response = self.client.get("/api/scholarships/not-a-uuid")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], 'Invalid "scholarship_id"')
        self.assertTrue(bool(response.headers.get("x-request-id")))


if __name__ == "__main__":
    unittest.main()
