"""Named CMIS sessions owned by the application lifecycle."""

import asyncio
import logging
from typing import Awaitable, Callable, Dict

from alfresco_bridge.services.cmis_binding import CmisSession, create_session

logger = logging.getLogger(__name__)

SessionFactory = Callable[..., Awaitable[CmisSession]]


class ConnectionPool:
    """Keeps one live session per connection name.

    Sessions are created on first use and reused until ``close()``. Creation
    is serialized per name so concurrent first requests share one session.
    """

    def __init__(self, url: str, *, timeout: float = 60.0, session_factory: SessionFactory = create_session):
        self.url = url
        self.timeout = timeout
        self._session_factory = session_factory
        self._sessions: Dict[str, CmisSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def _lock_for(self, name: str) -> asyncio.Lock:
        # setdefault is atomic on the event loop thread
        return self._locks.setdefault(name, asyncio.Lock())

    async def get_session(self, name: str, username: str, password: str) -> CmisSession:
        """Return the session for ``name``, connecting on first use."""
        session = self._sessions.get(name)
        if session is not None:
            logger.debug("Already connected to Alfresco with the connection id (%s)", name)
            return session

        async with self._lock_for(name):
            session = self._sessions.get(name)
            if session is None:
                logger.info("Not connected, creating new connection to Alfresco with the connection id (%s)", name)
                session = await self._session_factory(self.url, username, password, timeout=self.timeout)
                self._sessions[name] = session
            return session

    async def close(self) -> None:
        sessions = list(self._sessions.items())
        self._sessions.clear()
        self._locks.clear()
        for name, session in sessions:
            logger.info("Closing Alfresco connection (%s)", name)
            await session.aclose()
