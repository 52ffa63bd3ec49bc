from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Optional, Sequence

from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import SessionStatus
from ..core.exceptions import PersistenceError
from .model import Session, SessionFilters, SessionStats
from .queries import compute_stats, select_for_review
from .repository import SessionRepository


class InMemorySessionRepository(SessionRepository):
    """Process-local store for development runs without MySQL (``SESSION_STORE=memory``)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._rows: dict[str, Session] = {}

    def create(self, session: Session) -> None:
        with self._lock:
            if session.id in self._rows:
                raise PersistenceError(f"Session {session.id} already exists")
            self._rows[session.id] = session

    def get_by_id(self, session_id: str) -> Optional[Session]:
        return self._rows.get(str(session_id))

    def decide(
        self,
        *,
        session_id: str,
        status: SessionStatus,
        validator_id: str,
        validator_name: str,
        decided_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        with self._lock:
            current = self._rows.get(str(session_id))
            if not current or current.status != SessionStatus.PENDING:
                return False
            self._rows[current.id] = replace(
                current,
                status=status,
                validated_at=decided_at,
                validator_id=validator_id,
                validator_name=validator_name,
                rejection_reason=rejection_reason,
            )
            return True

    def list_sessions(
        self,
        *,
        filters: Optional[SessionFilters] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[Session]:
        with self._lock:
            rows = list(self._rows.values())
        return select_for_review(rows, filters, limit=limit)

    def stats(self, *, today: date) -> SessionStats:
        with self._lock:
            rows = list(self._rows.values())
        return compute_stats(rows, today=today)
