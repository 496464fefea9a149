"""
Tests for the streamable HTTP endpoint.
"""

from unittest import TestCase

from fastapi.testclient import TestClient

from orm_mcp.config import Settings
from orm_mcp.main import create_app
from orm_mcp.mcp.router import is_origin_allowed
from orm_mcp.mcp.server import INVALID_REQUEST, PARSE_ERROR

from .stubs import StubClient

ALLOWED = "https://app.example.com"


class TestOriginCheck(TestCase):
    """Tests for is_origin_allowed."""

    def test_missing_origin_allowed(self):
        """Non-browser clients send no Origin."""
        self.assertTrue(is_origin_allowed(None, []))

    def test_local_origins_allowed(self):
        """Loopback origins are accepted on any port."""
        self.assertTrue(is_origin_allowed("http://localhost:3000", []))
        self.assertTrue(is_origin_allowed("http://127.0.0.1", []))
        self.assertTrue(is_origin_allowed("http://[::1]:8080", []))

    def test_listed_origin_allowed(self):
        """Configured origins are accepted, with or without a trailing slash."""
        self.assertTrue(is_origin_allowed(ALLOWED + "/", [ALLOWED]))

    def test_other_origins_rejected(self):
        """Anything else is rejected, including look-alike hosts."""
        self.assertFalse(is_origin_allowed("https://evil.example.com", [ALLOWED]))
        self.assertFalse(is_origin_allowed("http://localhost.evil.com", []))


class TestMCPEndpoint(TestCase):
    """Tests for POST and DELETE /mcp."""

    def setUp(self):
        self.client = StubClient()
        settings = Settings(_env_file=None, allowed_origins=[ALLOWED])
        self.http = TestClient(create_app(self.client, settings))

    def post(self, body, **headers):
        return self.http.post("/mcp", json=body, headers=headers)

    def initialize(self) -> str:
        response = self.post({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})
        return response.headers["Mcp-Session-Id"]

    def test_initialize_returns_session_header(self):
        """initialize should answer with a session id header."""
        response = self.post({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["Mcp-Session-Id"])
        self.assertEqual(response.json()["result"]["serverInfo"]["name"], "orm-discovery")

    def test_session_is_reused(self):
        """Requests carrying the session id stay on that session."""
        session_id = self.initialize()

        response = self.post({"jsonrpc": "2.0", "id": 2, "method": "tools/list"}, **{"Mcp-Session-Id": session_id})

        self.assertEqual(response.headers["Mcp-Session-Id"], session_id)
        self.assertEqual(len(self.http.app.state.sessions), 1)

    def test_tool_call(self):
        """tools/call reaches the shared client."""
        response = self.post(
            {"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": {"name": "list_collections", "arguments": {}}}
        )

        self.assertEqual(response.status_code, 200)
        self.assertIn('"collections"', response.json()["result"]["content"][0]["text"])
        self.assertEqual(self.client.calls[0][0], "list_collections")

    def test_notification_is_accepted(self):
        """A notification gets 202 with no body."""
        response = self.post({"jsonrpc": "2.0", "method": "notifications/initialized"})

        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.content, b"")

    def test_batch(self):
        """A batch returns a list of responses."""
        response = self.post(
            [{"jsonrpc": "2.0", "id": 1, "method": "ping"}, {"jsonrpc": "2.0", "id": 2, "method": "ping"}]
        )

        self.assertEqual([r["id"] for r in response.json()], [1, 2])

    def test_invalid_json(self):
        """A body that is not JSON is a parse error."""
        response = self.http.post("/mcp", content=b"{oops", headers={"Content-Type": "application/json"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], PARSE_ERROR)

    def test_empty_body(self):
        """An empty JSON body is an invalid request."""
        response = self.post({})

        self.assertEqual(response.json()["error"]["code"], INVALID_REQUEST)

    def test_empty_batch(self):
        """An empty batch is an invalid request, as on stdio."""
        response = self.post([])

        self.assertEqual(response.json()["error"]["code"], INVALID_REQUEST)

    def test_foreign_origin_forbidden(self):
        """Requests from unlisted browser origins are rejected."""
        response = self.post({"jsonrpc": "2.0", "id": 1, "method": "ping"}, Origin="https://evil.example.com")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.client.calls, [])

    def test_allowed_origins_accepted(self):
        """Local and configured origins pass."""
        for origin in ("http://localhost:5173", ALLOWED):
            response = self.post({"jsonrpc": "2.0", "id": 1, "method": "ping"}, Origin=origin)
            self.assertEqual(response.status_code, 200)

    def test_delete_session(self):
        """DELETE closes a known session and 404s on unknown ones."""
        session_id = self.initialize()

        self.assertEqual(self.http.delete("/mcp", headers={"Mcp-Session-Id": session_id}).status_code, 204)
        self.assertEqual(self.http.delete("/mcp", headers={"Mcp-Session-Id": session_id}).status_code, 404)
        self.assertEqual(self.http.delete("/mcp").status_code, 404)

    def test_health(self):
        """Health reports the session count and browser state."""
        self.initialize()

        data = self.http.get("/health").json()

        self.assertEqual(data["status"], "healthy")
        self.assertEqual(data["sessions"], 1)
        self.assertFalse(data["browser_session"])
