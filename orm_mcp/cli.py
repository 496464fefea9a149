"""
Command line entry point.

Usage:
    orm-mcp                                   # stdio transport
    orm-mcp --transport http --port 8080      # streamable HTTP on 127.0.0.1
    orm-mcp --headed --log-level DEBUG        # visible browser for debugging

Credentials come from OREILLY_USER_ID / OREILLY_PASSWORD (environment or .env).
"""

import argparse
import asyncio
import logging

import uvicorn

from . import __version__
from .browser.client import LearningPlatformClient
from .config import Settings, get_settings
from .logging_setup import configure_logging
from .main import create_app
from .mcp.server import MCPServer
from .mcp.transports.stdio import StdioTransport

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="orm-mcp", description="O'Reilly learning platform discovery MCP server")
    parser.add_argument(
        "--transport", type=str, choices=["stdio", "http"], default=None, help="Transport type (default: stdio)"
    )
    parser.add_argument("--host", type=str, default=None, help="HTTP bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="HTTP port (default: 8080)")
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (default: INFO)",
    )
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


async def run_stdio_server(client: LearningPlatformClient):
    """Serve MCP over stdin/stdout until the client closes stdin."""
    server = MCPServer(client, transport="stdio")
    transport = StdioTransport(on_message=server.handle_message)

    try:
        await server.initialize()
        await transport.start()
        logger.info("MCP server ready, waiting for messages...")
        await transport.wait_closed()
    finally:
        await transport.stop()
        await server.close()


async def run_http_server(client: LearningPlatformClient, settings: Settings, host: str, port: int):
    """Serve MCP over streamable HTTP."""
    app = create_app(client, settings)
    config = uvicorn.Config(app, host=host, port=port, log_config=None, log_level=settings.log_level.lower())
    server = uvicorn.Server(config)

    try:
        await server.serve()
    finally:
        await app.state.sessions.close_all()


async def serve(settings: Settings, transport: str, host: str, port: int, headless: bool):
    client = LearningPlatformClient(settings.browser_options(headless=headless), settings.credentials)
    try:
        if transport == "http":
            await run_http_server(client, settings, host, port)
        else:
            await run_stdio_server(client)
    finally:
        await client.close()
        logger.info("Browser closed")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    transport = args.transport or settings.transport
    host = args.host or settings.host
    port = args.port or settings.port
    log_level = args.log_level or settings.log_level
    headless = settings.headless and not args.headed

    configure_logging(log_level, settings.log_file or None, settings.log_max_bytes, settings.log_backup_count)

    if not settings.oreilly_user_id or not settings.oreilly_password.get_secret_value():
        logger.warning("OREILLY_USER_ID / OREILLY_PASSWORD are not set; every tool call will fail to log in")

    logger.info(f"Starting orm-mcp {__version__} (transport={transport}, headless={headless})")
    if transport == "http":
        logger.info(f"Listening on http://{host}:{port}/mcp")

    try:
        asyncio.run(serve(settings, transport, host, port, headless))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    return 0
