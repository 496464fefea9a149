"""
MCP protocol layer.

Exposes the learning platform client as MCP tools over stdio or
streamable HTTP.
"""

from .server import MCPServer

__all__ = [
    "MCPServer",
]
