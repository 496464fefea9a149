"""
MCP Tools module.

Provides tool definitions for the MCP server: catalog discovery and
playlist management on the learning platform.
"""

from typing import Any

from .base import InvalidToolArguments, build_input_schema, validate_arguments
from .collections import get_collection_tools
from .search import get_search_tools

__all__ = [
    "InvalidToolArguments",
    "build_input_schema",
    "get_all_tools",
    "validate_arguments",
]


def get_all_tools() -> list[dict[str, Any]]:
    """
    Get all available tools.

    Returns:
        List of tool definitions
    """
    return [*get_search_tools(), *get_collection_tools()]
