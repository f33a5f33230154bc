"""Session store — verified web sessions keyed by session id."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from telegram_otp.models.records import SessionRecord, utc_now
from telegram_otp.services.codes import generate_session_id

logger = logging.getLogger(__name__)


class SessionStore:
    """In-memory, write-once session store.

    Sessions are never updated or removed; they live until the process
    restarts.
    """

    def __init__(
        self,
        id_factory: Callable[[], str] = generate_session_id,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._sessions: dict[str, SessionRecord] = {}
        self._id_factory = id_factory
        self._clock = clock

    def create(self, recipient_id: int, display_name: str) -> str:
        """Create a verified session for *recipient_id* and return its id."""
        session_id = self._id_factory()
        self._sessions[session_id] = SessionRecord(
            session_id=session_id,
            recipient_id=recipient_id,
            display_name=display_name,
            verified=True,
            created_at=self._clock(),
        )
        logger.info("Session created for %s (chat %s)", display_name, recipient_id)
        return session_id

    def get(self, session_id: str) -> SessionRecord | None:
        return self._sessions.get(session_id)

    def __len__(self) -> int:
        """Number of sessions (useful for monitoring)."""
        return len(self._sessions)
