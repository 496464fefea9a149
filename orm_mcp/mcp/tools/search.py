"""
Discovery tools: catalog search, title details, chapter text and search
inside a title.
"""

import logging
from typing import Any

from ...browser.pages import SearchFilters
from .base import build_input_schema, outcome_result

logger = logging.getLogger(__name__)

CONTENT_TYPES = ["book", "video", "live-event", "course", "audiobook", "article"]


def get_search_tools() -> list[dict[str, Any]]:
    """Get all discovery tools."""
    return [
        # search_content
        {
            "name": "search_content",
            "description": (
                "Search the learning platform catalog (books, videos, courses). "
                "Returns one page of results; request the next page with 'page'."
            ),
            "tool_type": "read",
            "input_schema": build_input_schema(
                {
                    "query": {"type": "string", "description": "Search terms"},
                    "content_types": {
                        "type": "array",
                        "items": {"type": "string", "enum": CONTENT_TYPES},
                        "description": "Restrict results to these content types",
                    },
                    "languages": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Restrict results to these language codes (e.g. 'en')",
                    },
                    "page": {"type": "integer", "minimum": 1, "description": "Results page, starting at 1"},
                    "rows": {"type": "integer", "minimum": 1, "description": "Return at most this many results"},
                },
                required=["query"],
            ),
            "handler": search_content_handler,
        },
        # get_content_details
        {
            "name": "get_content_details",
            "description": "Get metadata and the table of contents of a title by its content id.",
            "tool_type": "read",
            "input_schema": build_input_schema(
                {"content_id": {"type": "string", "description": "Content id, e.g. an ISBN"}},
                required=["content_id"],
            ),
            "handler": get_content_details_handler,
        },
        # get_chapter_content
        {
            "name": "get_chapter_content",
            "description": (
                "Read one chapter of a book: headings, paragraphs, code listings, images and links. "
                "Chapter files are listed in the table of contents returned by get_content_details."
            ),
            "tool_type": "read",
            "input_schema": build_input_schema(
                {
                    "content_id": {"type": "string", "description": "Content id, e.g. an ISBN"},
                    "chapter": {"type": "string", "description": "Chapter file, e.g. 'ch01.html' or 'ch01'"},
                },
                required=["content_id", "chapter"],
            ),
            "handler": get_chapter_content_handler,
        },
        # search_in_book
        {
            "name": "search_in_book",
            "description": "Search the text of one title and return the matching passages with their chapters.",
            "tool_type": "read",
            "input_schema": build_input_schema(
                {
                    "content_id": {"type": "string", "description": "Content id, e.g. an ISBN"},
                    "query": {"type": "string", "description": "Words to look for"},
                },
                required=["content_id", "query"],
            ),
            "handler": search_in_book_handler,
        },
    ]


async def search_content_handler(
    ctx,
    query: str,
    content_types: list[str] | None = None,
    languages: list[str] | None = None,
    page: int = 1,
    rows: int | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    filters = SearchFilters(
        content_types=tuple(content_types or ()),
        languages=tuple(languages or ()),
        page=page,
        rows=rows,
    )
    outcome = await ctx["client"].search(query, filters, timeout=timeout)
    result = outcome_result(outcome, key="results")
    if "error" not in result:
        result["page"] = page
    return result


async def get_content_details_handler(ctx, content_id: str, timeout: float | None = None) -> dict[str, Any]:
    return outcome_result(await ctx["client"].get_content_details(content_id, timeout=timeout))


async def get_chapter_content_handler(ctx, content_id: str, chapter: str, timeout: float | None = None) -> dict[str, Any]:
    return outcome_result(await ctx["client"].get_chapter_content(content_id, chapter, timeout=timeout))


async def search_in_book_handler(ctx, content_id: str, query: str, timeout: float | None = None) -> dict[str, Any]:
    outcome = await ctx["client"].search_in_content(content_id, query, timeout=timeout)
    result = outcome_result(outcome, key="matches")
    if "error" not in result:
        result["content_id"] = content_id
    return result
