"""
MCP Streamable HTTP Transport router.

Implements the MCP Streamable HTTP transport specification.
Single endpoint that accepts JSON-RPC messages and returns responses.
"""

import json
import logging
from typing import Any
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from .server import INVALID_REQUEST, PARSE_ERROR
from .sessions import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mcp", tags=["MCP"])

LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}


def json_rpc_error(code: int, message: str, id: Any = None, status_code: int = 400) -> JSONResponse:
    """Return JSON-RPC error response."""
    return JSONResponse(
        content={"jsonrpc": "2.0", "id": id, "error": {"code": code, "message": message}}, status_code=status_code
    )


def is_origin_allowed(origin: str | None, allowed_origins: list[str]) -> bool:
    """
    Check a browser Origin header.

    Requests without an Origin (non-browser clients) and local origins are
    always accepted; anything else must be listed explicitly.
    """
    if not origin:
        return True
    if urlparse(origin).hostname in LOCAL_HOSTS:
        return True
    return origin.rstrip("/") in {allowed.rstrip("/") for allowed in allowed_origins}


async def verify_origin(request: Request, origin: str | None = Header(None)):
    """Reject cross-site requests from origins that are not allowed."""
    if not is_origin_allowed(origin, request.app.state.allowed_origins):
        logger.warning(f"Rejected request from origin {origin}")
        raise HTTPException(status_code=403, detail="Origin not allowed")


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.sessions


@router.post("", dependencies=[Depends(verify_origin)])
async def mcp_post(
    request: Request,
    mcp_session_id: str | None = Header(None, alias="Mcp-Session-Id"),
    session_manager: SessionManager = Depends(get_session_manager),
):
    """
    Handle MCP JSON-RPC messages.

    POST /mcp
    Headers:
        Content-Type: application/json
        Mcp-Session-Id: <session_id> (optional)

    Body:
        JSON-RPC message or batch

    Returns:
        JSON-RPC response with Mcp-Session-Id header
    """
    # Parse request body
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return json_rpc_error(PARSE_ERROR, "Parse error")

    if not body:
        return json_rpc_error(INVALID_REQUEST, "Invalid request: empty body")

    session = await session_manager.get_or_create(mcp_session_id)

    # Handle batch or single message
    is_batch = isinstance(body, list)
    messages = body if is_batch else [body]

    # Process messages
    responses = []
    for message in messages:
        try:
            response = await session.server.handle_message(message)
            if response:
                responses.append(response)
        except Exception as e:
            logger.error(f"Error handling message: {e}", exc_info=True)
            responses.append(
                {
                    "jsonrpc": "2.0",
                    "id": message.get("id") if isinstance(message, dict) else None,
                    "error": {"code": -32603, "message": "Internal error"},
                }
            )

    if is_batch:
        result = responses
    elif responses:
        result = responses[0]
    else:
        # No response (notification)
        return Response(status_code=202, headers={"Mcp-Session-Id": session.id})

    return JSONResponse(content=result, headers={"Mcp-Session-Id": session.id})


@router.delete("", dependencies=[Depends(verify_origin)])
async def mcp_delete(
    mcp_session_id: str | None = Header(None, alias="Mcp-Session-Id"),
    session_manager: SessionManager = Depends(get_session_manager),
):
    """
    Close MCP session.

    DELETE /mcp
    Headers:
        Mcp-Session-Id: <session_id>

    Returns:
        204 No Content, or 404 for unknown sessions
    """
    if mcp_session_id and await session_manager.close(mcp_session_id):
        return Response(status_code=204)

    return Response(status_code=404)
