"""In-memory import sessions, keyed by uuid and dropped after a TTL.

Sessions live only in this process; a restart forgets pending uploads.
"""

import time
import uuid
from collections.abc import Callable

from config.settings import settings
from src.pt_importer.domain.models import ImportRow, ImportSession


class ImportSessionStore:
    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, ImportSession] = {}

    def create(self, holder_id: int, rows: list[ImportRow]) -> ImportSession:
        self._purge()
        session = ImportSession(
            id=str(uuid.uuid4()), account_holder_id=holder_id, rows=rows, created_at=self._clock()
        )
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> ImportSession | None:
        self._purge()
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def _purge(self) -> None:
        now = self._clock()
        expired = [sid for sid, s in self._sessions.items() if now - s.created_at >= self._ttl]
        for sid in expired:
            del self._sessions[sid]


import_sessions = ImportSessionStore(ttl_seconds=settings.IMPORT_SESSION_TTL_SECONDS)
