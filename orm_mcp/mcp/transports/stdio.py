"""
Standard I/O transport for MCP.

Used by local MCP clients that spawn the server as a subprocess.
Messages are newline-delimited JSON-RPC on stdin/stdout; Content-Length
framed input is accepted as well and answered in the same framing.
Nothing but protocol messages may be written to stdout.
"""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import IO, Any

from ..server import invalid_request_response, parse_error_response

logger = logging.getLogger(__name__)


class StdioTransport:
    """
    Standard I/O transport for MCP protocol.

    Handles JSON-RPC messages over stdin/stdout.
    """

    def __init__(
        self,
        on_message: Callable[[dict[str, Any]], Awaitable[dict[str, Any] | None]],
        reader: asyncio.StreamReader | None = None,
        writer: IO[bytes] | None = None,
    ):
        """
        Initialize stdio transport.

        Args:
            on_message: Callback for handling incoming messages
            reader: Stream to read from (default: stdin)
            writer: Binary stream to write to (default: stdout)
        """
        self.on_message = on_message
        self._reader = reader
        self._writer = writer
        self._running = False
        self._read_task: asyncio.Task | None = None

    async def start(self):
        """Start the transport."""
        if self._reader is None:
            self._reader = await self._open_stdin()
        self._running = True
        self._read_task = asyncio.create_task(self._read_loop())
        logger.info("Stdio transport started")

    async def stop(self):
        """Stop the transport."""
        self._running = False
        if self._read_task and not self._read_task.done():
            self._read_task.cancel()
            try:
                await self._read_task
            except asyncio.CancelledError:
                pass
        logger.info("Stdio transport stopped")

    async def wait_closed(self):
        """Wait until the input stream is exhausted."""
        if self._read_task:
            await self._read_task

    async def _open_stdin(self) -> asyncio.StreamReader:
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)

        loop = asyncio.get_running_loop()
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)
        return reader

    async def _read_loop(self):
        """Read messages until EOF."""
        reader = self._reader

        while self._running:
            try:
                line = await reader.readline()
                if not line:
                    break

                text = line.decode("utf-8").strip()
                if not text:
                    continue

                framed = text.lower().startswith("content-length:")
                if framed:
                    length = int(text.split(":", 1)[1].strip())

                    # Skip any remaining headers up to the blank separator
                    while (await reader.readline()).strip():
                        pass

                    content = (await reader.readexactly(length)).decode("utf-8")
                else:
                    content = text

                try:
                    message = json.loads(content)
                except json.JSONDecodeError as e:
                    logger.error(f"Invalid JSON: {e}")
                    response = parse_error_response()
                else:
                    response = await self._handle_message(message)

                if response:
                    await self._send_message(response, framed=framed)

            except asyncio.CancelledError:
                break
            except asyncio.IncompleteReadError:
                logger.warning("Input closed in the middle of a message")
                break
            except (UnicodeDecodeError, ValueError) as e:
                logger.error(f"Error reading message: {e}")

        self._running = False

    async def _handle_message(self, message: Any) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Handle incoming message or batch."""
        if isinstance(message, list):
            if not message:
                return invalid_request_response("Invalid request: empty batch")
            responses = []
            for item in message:
                response = await self._dispatch(item)
                if response:
                    responses.append(response)
            return responses or None
        return await self._dispatch(message)

    async def _dispatch(self, message: Any) -> dict[str, Any] | None:
        try:
            return await self.on_message(message)
        except Exception as e:
            logger.error(f"Error handling message: {e}", exc_info=True)
            msg_id = message.get("id") if isinstance(message, dict) else None
            return {"jsonrpc": "2.0", "id": msg_id, "error": {"code": -32603, "message": "Internal error"}}

    async def _send_message(self, message: dict[str, Any] | list[dict[str, Any]], framed: bool = False):
        """Send message to stdout."""
        content_bytes = json.dumps(message).encode("utf-8")
        writer = self._writer or sys.stdout.buffer

        if framed:
            writer.write(f"Content-Length: {len(content_bytes)}\r\n\r\n".encode("utf-8"))
            writer.write(content_bytes)
        else:
            writer.write(content_bytes + b"\n")
        writer.flush()
