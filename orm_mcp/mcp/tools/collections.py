"""
Collection (playlist) tools.
"""

import logging
from typing import Any

from .base import build_input_schema, outcome_result

logger = logging.getLogger(__name__)

COLLECTION_ID = {"type": "string", "description": "Playlist id, as returned by list_collections"}
CONTENT_ID = {"type": "string", "description": "Content id, as returned by search_content"}


def get_collection_tools() -> list[dict[str, Any]]:
    """Get all collection tools."""
    return [
        # list_collections
        {
            "name": "list_collections",
            "description": "List the account's playlists with their item counts.",
            "tool_type": "read",
            "input_schema": build_input_schema({}),
            "handler": list_collections_handler,
        },
        # get_collection_details
        {
            "name": "get_collection_details",
            "description": "Get a playlist and its items in order.",
            "tool_type": "read",
            "input_schema": build_input_schema({"collection_id": COLLECTION_ID}, required=["collection_id"]),
            "handler": get_collection_details_handler,
        },
        # create_collection
        {
            "name": "create_collection",
            "description": (
                "Create a new, empty playlist. Not idempotent: if the result is ambiguous, "
                "check list_collections before calling again."
            ),
            "tool_type": "write",
            "input_schema": build_input_schema(
                {
                    "name": {"type": "string", "description": "Playlist name"},
                    "description": {"type": "string", "description": "Optional playlist description"},
                },
                required=["name"],
            ),
            "handler": create_collection_handler,
        },
        # add_to_collection
        {
            "name": "add_to_collection",
            "description": "Add a title to a playlist. Idempotent: adding a title already present is a no-op.",
            "tool_type": "write",
            "input_schema": build_input_schema(
                {"collection_id": COLLECTION_ID, "content_id": CONTENT_ID},
                required=["collection_id", "content_id"],
            ),
            "handler": add_to_collection_handler,
        },
        # remove_from_collection
        {
            "name": "remove_from_collection",
            "description": "Remove a title from a playlist. Removing a title that is not there is a no-op.",
            "tool_type": "write",
            "input_schema": build_input_schema(
                {"collection_id": COLLECTION_ID, "content_id": CONTENT_ID},
                required=["collection_id", "content_id"],
            ),
            "handler": remove_from_collection_handler,
        },
    ]


async def list_collections_handler(ctx, timeout: float | None = None) -> dict[str, Any]:
    return outcome_result(await ctx["client"].list_collections(timeout=timeout), key="collections")


async def get_collection_details_handler(ctx, collection_id: str, timeout: float | None = None) -> dict[str, Any]:
    return outcome_result(await ctx["client"].get_collection_details(collection_id, timeout=timeout))


async def create_collection_handler(
    ctx, name: str, description: str | None = None, timeout: float | None = None
) -> dict[str, Any]:
    return outcome_result(await ctx["client"].create_collection(name, description, timeout=timeout))


async def add_to_collection_handler(ctx, collection_id: str, content_id: str, timeout: float | None = None) -> dict[str, Any]:
    return outcome_result(await ctx["client"].add_to_collection(collection_id, content_id, timeout=timeout))


async def remove_from_collection_handler(
    ctx, collection_id: str, content_id: str, timeout: float | None = None
) -> dict[str, Any]:
    return outcome_result(await ctx["client"].remove_from_collection(collection_id, content_id, timeout=timeout))
