"""
Tests for MCP protocol handling.
"""

import json
from unittest import IsolatedAsyncioTestCase, TestCase

from orm_mcp.browser.pages import SearchFilters
from orm_mcp.mcp.server import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    MCPServer,
)
from orm_mcp.mcp.tools import InvalidToolArguments, build_input_schema, validate_arguments

from .stubs import StubClient

TOOL_NAMES = {
    "search_content",
    "get_content_details",
    "get_chapter_content",
    "search_in_book",
    "list_collections",
    "get_collection_details",
    "create_collection",
    "add_to_collection",
    "remove_from_collection",
}


def request(method, params=None, id=1):
    message = {"jsonrpc": "2.0", "id": id, "method": method}
    if params is not None:
        message["params"] = params
    return message


class TestMCPServer(IsolatedAsyncioTestCase):
    """Tests for MCPServer.handle_message."""

    def setUp(self):
        self.client = StubClient()
        self.server = MCPServer(self.client)

    async def call_tool(self, name, arguments=None):
        return await self.server.handle_message(request("tools/call", {"name": name, "arguments": arguments or {}}))

    async def test_initialize(self):
        """initialize should report protocol version, server info and tool capability."""
        response = await self.server.handle_message(
            request("initialize", {"protocolVersion": "2024-11-05", "clientInfo": {"name": "test", "version": "1"}})
        )

        result = response["result"]
        self.assertEqual(response["id"], 1)
        self.assertEqual(result["protocolVersion"], MCPServer.PROTOCOL_VERSION)
        self.assertEqual(result["serverInfo"]["name"], "orm-discovery")
        self.assertIn("tools", result["capabilities"])

    async def test_tools_list(self):
        """tools/list should expose every tool with an input schema."""
        response = await self.server.handle_message(request("tools/list"))

        tools = response["result"]["tools"]
        self.assertEqual({tool["name"] for tool in tools}, TOOL_NAMES)
        for tool in tools:
            self.assertEqual(tool["inputSchema"]["type"], "object")
            self.assertIn("timeout", tool["inputSchema"]["properties"])

    async def test_search_tool_success(self):
        """A successful search returns results, count and page as JSON text."""
        response = await self.call_tool("search_content", {"query": "python", "content_types": ["book"], "page": 2})

        result = response["result"]
        self.assertNotIn("isError", result)
        payload = json.loads(result["content"][0]["text"])
        self.assertEqual(payload["count"], 1)
        self.assertEqual(payload["page"], 2)
        self.assertEqual(payload["results"][0]["content_id"], "9781492056348")

        _, query, filters, timeout = self.client.calls[0]
        self.assertEqual(query, "python")
        self.assertEqual(filters, SearchFilters(content_types=("book",), page=2))
        self.assertIsNone(timeout)

    async def test_chapter_tool_returns_text(self):
        """The chapter tool returns the chapter's text and word count."""
        response = await self.call_tool("get_chapter_content", {"content_id": "9781492056348", "chapter": "ch01"})

        payload = json.loads(response["result"]["content"][0]["text"])
        self.assertEqual(payload["title"], "The Python Data Model")
        self.assertEqual(payload["word_count"], 10)
        self.assertEqual(payload["headings"][0], {"level": 1, "text": "The Python Data Model", "anchor": None})
        self.assertEqual(self.client.calls[0], ("get_chapter_content", "9781492056348", "ch01", None))

    async def test_search_in_book_tool(self):
        """Matches inside a title come back with their count and the title id."""
        response = await self.call_tool("search_in_book", {"content_id": "9781492056348", "query": "special methods"})

        payload = json.loads(response["result"]["content"][0]["text"])
        self.assertEqual(payload["count"], 1)
        self.assertEqual(payload["content_id"], "9781492056348")
        self.assertEqual(payload["matches"][0]["chapter"], "ch01.html")

    async def test_search_in_book_requires_query(self):
        """search_in_book without a query is rejected before the client."""
        response = await self.call_tool("search_in_book", {"content_id": "9781492056348"})

        self.assertEqual(response["error"]["code"], INVALID_PARAMS)
        self.assertEqual(self.client.calls, [])

    async def test_fatal_outcome_is_tool_error(self):
        """A Fatal outcome becomes isError content carrying the error kind."""
        response = await self.call_tool("get_content_details", {"content_id": "0000000000"})

        result = response["result"]
        self.assertTrue(result["isError"])
        error = json.loads(result["content"][0]["text"])
        self.assertEqual(error["kind"], "navigation_error")
        self.assertFalse(error["retryable"])

    async def test_retryable_outcome_is_marked_retryable(self):
        """A Retryable outcome is an error the caller may repeat."""
        response = await self.call_tool("add_to_collection", {"collection_id": "pl-1", "content_id": "9781492056348"})

        error = json.loads(response["result"]["content"][0]["text"])
        self.assertTrue(response["result"]["isError"])
        self.assertEqual(error["kind"], "action_unconfirmed")
        self.assertTrue(error["retryable"])

    async def test_timeout_is_passed_through(self):
        """The per-call timeout argument should reach the client."""
        await self.call_tool("list_collections", {"timeout": 5})

        self.assertEqual(self.client.calls[0], ("list_collections", 5))

    async def test_unknown_tool(self):
        """Unknown tools are invalid params."""
        response = await self.call_tool("delete_everything")

        self.assertEqual(response["error"]["code"], INVALID_PARAMS)
        self.assertEqual(self.client.calls, [])

    async def test_bad_arguments_rejected_before_client(self):
        """Schema violations should never reach the browser."""
        response = await self.call_tool("search_content", {"query": "python", "page": 0})

        self.assertEqual(response["error"]["code"], INVALID_PARAMS)
        self.assertIn("page", response["error"]["message"])
        self.assertEqual(self.client.calls, [])

    async def test_unknown_method(self):
        """Unknown methods return -32601."""
        response = await self.server.handle_message(request("resources/list"))

        self.assertEqual(response["error"]["code"], METHOD_NOT_FOUND)

    async def test_invalid_request(self):
        """Messages that are not JSON-RPC 2.0 requests return -32600."""
        response = await self.server.handle_message({"id": 7, "method": "ping"})

        self.assertEqual(response["error"]["code"], INVALID_REQUEST)
        self.assertEqual(response["id"], 7)

        response = await self.server.handle_message(["not", "a", "request"])
        self.assertEqual(response["error"]["code"], INVALID_REQUEST)

    async def test_notifications_get_no_response(self):
        """Notifications should not be answered."""
        self.assertIsNone(await self.server.handle_message({"jsonrpc": "2.0", "method": "notifications/initialized"}))
        self.assertIsNone(await self.server.handle_message({"jsonrpc": "2.0", "method": "ping"}))

    async def test_ping(self):
        """ping returns an empty result."""
        response = await self.server.handle_message(request("ping", id="abc"))

        self.assertEqual(response, {"jsonrpc": "2.0", "id": "abc", "result": {}})

    async def test_handler_exception_is_internal_error(self):
        """An unexpected exception is reported without its message."""

        async def broken(query, filters=None, timeout=None):
            raise RuntimeError("secret detail")

        self.client.search = broken

        response = await self.call_tool("search_content", {"query": "python"})

        self.assertEqual(response["error"]["code"], INTERNAL_ERROR)
        self.assertNotIn("secret", response["error"]["message"])


class TestValidateArguments(TestCase):
    """Tests for validate_arguments."""

    def setUp(self):
        self.schema = build_input_schema(
            {
                "query": {"type": "string"},
                "page": {"type": "integer", "minimum": 1},
                "content_types": {"type": "array", "items": {"type": "string", "enum": ["book", "video"]}},
            },
            required=["query"],
        )

    def test_valid_arguments(self):
        """Valid arguments are returned unchanged."""
        arguments = {"query": "python", "page": 2, "content_types": ["book"], "timeout": 1.5}

        self.assertEqual(validate_arguments(self.schema, arguments), arguments)

    def test_missing_required(self):
        """Missing required arguments are named."""
        with self.assertRaises(InvalidToolArguments) as ctx:
            validate_arguments(self.schema, {})

        self.assertIn("query", str(ctx.exception))

    def test_unknown_argument(self):
        """Arguments outside the schema are rejected."""
        with self.assertRaises(InvalidToolArguments):
            validate_arguments(self.schema, {"query": "python", "sort": "newest"})

    def test_wrong_type(self):
        """Types are checked, and booleans are not integers."""
        with self.assertRaises(InvalidToolArguments):
            validate_arguments(self.schema, {"query": 42})
        with self.assertRaises(InvalidToolArguments):
            validate_arguments(self.schema, {"query": "python", "page": True})

    def test_array_items(self):
        """Array items must have the declared type."""
        with self.assertRaises(InvalidToolArguments):
            validate_arguments(self.schema, {"query": "python", "content_types": [1]})
        with self.assertRaises(InvalidToolArguments):
            validate_arguments(self.schema, {"query": "python", "content_types": ["podcast"]})

    def test_arguments_must_be_object(self):
        """Non-object arguments are rejected; None means no arguments."""
        with self.assertRaises(InvalidToolArguments):
            validate_arguments(self.schema, ["python"])
        with self.assertRaises(InvalidToolArguments):
            validate_arguments(self.schema, None)
