"""
MCP Transport module.

Provides transport implementations for the MCP server:
- stdio: Standard I/O transport for local clients
- http: Streamable HTTP transport (see orm_mcp.mcp.router)
"""

from .stdio import StdioTransport

__all__ = [
    "StdioTransport",
]
