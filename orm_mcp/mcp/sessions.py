"""
MCP session management for the HTTP transport.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field

from ..browser.client import LearningPlatformClient
from .server import MCPServer

logger = logging.getLogger(__name__)


@dataclass
class MCPSession:
    """Represents an active MCP session."""

    id: str
    server: MCPServer
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    is_active: bool = True

    def touch(self):
        """Update last activity timestamp."""
        self.last_activity = time.time()


class SessionManager:
    """
    Manages MCP sessions.

    Sessions are stored in memory. They only hold protocol state; every
    session talks to the same LearningPlatformClient.
    """

    def __init__(self, client: LearningPlatformClient, session_timeout: int = 1800):
        self.client = client
        self.session_timeout = session_timeout
        self._sessions: dict[str, MCPSession] = {}

    async def get_or_create(self, session_id: str | None) -> MCPSession:
        """Get existing session or create new one."""
        await self._cleanup_expired()

        # Try to get existing session
        if session_id and session_id in self._sessions:
            session = self._sessions[session_id]
            session.touch()
            return session

        server = MCPServer(self.client, transport="http")
        await server.initialize()

        session = MCPSession(id=server.session_id, server=server)
        self._sessions[session.id] = session
        logger.info(f"Opened MCP session {session.id}")
        return session

    async def close(self, session_id: str) -> bool:
        """Close and remove a session. Returns False for unknown ids."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.is_active = False
        await session.server.close()
        return True

    async def close_all(self):
        for session_id in list(self._sessions):
            await self.close(session_id)

    async def _cleanup_expired(self):
        """Remove expired sessions."""
        now = time.time()
        expired = [sid for sid, session in self._sessions.items() if now - session.last_activity > self.session_timeout]
        for sid in expired:
            logger.info(f"MCP session {sid} expired")
            await self.close(sid)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions
