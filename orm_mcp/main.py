"""
FastAPI application for the streamable HTTP transport.

Run with:
    orm-mcp --transport http --port 8080
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .browser.client import LearningPlatformClient
from .config import Settings
from .mcp.router import router as mcp_router
from .mcp.sessions import SessionManager


def create_app(client: LearningPlatformClient, settings: Settings) -> FastAPI:
    """Build the HTTP app around an already constructed client."""
    app = FastAPI(
        title="O'Reilly Discovery MCP",
        description="MCP server for searching the learning platform and managing playlists",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.client = client
    app.state.sessions = SessionManager(client, session_timeout=settings.mcp_session_timeout)
    app.state.allowed_origins = list(settings.allowed_origins)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Mcp-Session-Id"],
        expose_headers=["Mcp-Session-Id"],
    )

    # Include routers
    app.include_router(mcp_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "orm-mcp",
            "sessions": len(app.state.sessions),
            "browser_session": client.authenticated,
        }

    return app
