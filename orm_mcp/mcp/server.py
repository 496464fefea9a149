"""
MCP Server - protocol handling for the learning platform tools.

This is the core component that:
- Handles MCP JSON-RPC messages
- Registers the discovery and playlist tools
- Validates tool arguments before any browser work
- Logs every request with its duration
"""

import json
import logging
import time
import uuid
from typing import Any

from .. import __version__
from ..browser.client import LearningPlatformClient
from .tools import InvalidToolArguments, get_all_tools, validate_arguments

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class MCPServer:
    """
    Learning platform MCP server.

    One server per MCP session; all servers in a process share the one
    LearningPlatformClient and therefore the one browser session.
    """

    PROTOCOL_VERSION = "2024-11-05"
    SERVER_NAME = "orm-discovery"
    SERVER_VERSION = __version__

    def __init__(self, client: LearningPlatformClient, transport: str = "stdio"):
        """
        Initialize MCP server.

        Args:
            client: Shared learning platform client
            transport: Transport type ("stdio" or "http")
        """
        self.client = client
        self.transport_type = transport

        # Session ID
        self.session_id = str(uuid.uuid4())

        # Tool registry
        self._tools: dict[str, Any] = {}

        # State
        self._initialized = False

    async def initialize(self):
        """Initialize the server and register tools."""
        if self._initialized:
            return

        for tool in get_all_tools():
            self._tools[tool["name"]] = tool

        self._initialized = True
        logger.info(f"MCP Server initialized ({self.transport_type}) with {len(self._tools)} tools")

    async def handle_message(self, message: Any) -> dict[str, Any] | None:
        """
        Handle an incoming MCP message.

        Args:
            message: JSON-RPC message

        Returns:
            JSON-RPC response or None for notifications
        """
        if not isinstance(message, dict) or message.get("jsonrpc") != "2.0" or not isinstance(message.get("method"), str):
            msg_id = message.get("id") if isinstance(message, dict) else None
            return self._error_response(msg_id, INVALID_REQUEST, "Invalid request")

        method = message["method"]
        params = message.get("params") or {}
        msg_id = message.get("id")
        is_notification = "id" not in message

        start_time = time.monotonic()
        try:
            if method == "initialize":
                result = await self._handle_initialize(params)
            elif method == "initialized" or method.startswith("notifications/"):
                # Notification - no response
                return None
            elif method == "tools/list":
                result = await self._handle_list_tools(params)
            elif method == "tools/call":
                result = await self._handle_call_tool(params)
            elif method == "ping":
                result = {}
            else:
                return self._error_response(msg_id, METHOD_NOT_FOUND, f"Method not found: {method}")

            if is_notification:
                return None
            return self._success_response(msg_id, result)

        except InvalidToolArguments as e:
            return self._error_response(msg_id, INVALID_PARAMS, str(e))
        except Exception as e:
            logger.error(f"Error handling message: {e}", exc_info=True)
            return self._error_response(msg_id, INTERNAL_ERROR, "Internal error")
        finally:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            logger.info(f"{method} handled in {duration_ms}ms")

    async def _handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle initialize request."""
        await self.initialize()

        client_info = params.get("clientInfo") or {}
        if client_info:
            logger.info(f"Client connected: {client_info.get('name', 'unknown')} {client_info.get('version', '')}".rstrip())

        return {
            "protocolVersion": self.PROTOCOL_VERSION,
            "serverInfo": {"name": self.SERVER_NAME, "version": self.SERVER_VERSION},
            "capabilities": {
                "tools": {"listChanged": False},
            },
        }

    async def _handle_list_tools(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle tools/list request."""
        await self.initialize()

        tools = [
            {
                "name": tool["name"],
                "description": tool.get("description", ""),
                "inputSchema": tool.get("input_schema", {"type": "object"}),
            }
            for tool in self._tools.values()
        ]
        return {"tools": tools}

    async def _handle_call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle tools/call request."""
        await self.initialize()

        tool_name = params.get("name")
        if not tool_name:
            raise InvalidToolArguments("Tool name is required")

        # Get tool
        tool = self._tools.get(tool_name)
        if not tool:
            raise InvalidToolArguments(f"Unknown tool: {tool_name}")

        arguments = validate_arguments(tool["input_schema"], params.get("arguments"))

        ctx = {
            "client": self.client,
            "session_id": self.session_id,
            "transport": self.transport_type,
        }

        logger.debug(f"Calling tool {tool_name}")
        result = await tool["handler"](ctx, **arguments)

        # Format response
        if isinstance(result, dict) and "error" in result:
            return {"content": [{"type": "text", "text": self._format_result(result["error"])}], "isError": True}

        return {"content": [{"type": "text", "text": self._format_result(result)}]}

    def _format_result(self, result: Any) -> str:
        """Format result as string."""
        if isinstance(result, str):
            return result
        return json.dumps(result, indent=2, default=str)

    def _success_response(self, msg_id: Any, result: Any) -> dict[str, Any]:
        """Create success response."""
        return {"jsonrpc": "2.0", "id": msg_id, "result": result}

    def _error_response(self, msg_id: Any, code: int, message: str, data: Any = None) -> dict[str, Any]:
        """Create error response."""
        error = {"code": code, "message": message}
        if data:
            error["data"] = data

        return {"jsonrpc": "2.0", "id": msg_id, "error": error}

    async def close(self):
        """Close server. The shared client is closed by its owner."""
        logger.info(f"MCP Server closed for session {self.session_id}")


def parse_error_response() -> dict[str, Any]:
    """JSON-RPC response for a message that is not valid JSON."""
    return {"jsonrpc": "2.0", "id": None, "error": {"code": PARSE_ERROR, "message": "Parse error"}}


def invalid_request_response(message: str = "Invalid request") -> dict[str, Any]:
    """JSON-RPC response for a message that cannot be attributed to a request."""
    return {"jsonrpc": "2.0", "id": None, "error": {"code": INVALID_REQUEST, "message": message}}
