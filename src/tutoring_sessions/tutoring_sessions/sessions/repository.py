from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import SessionStatus
from .model import Session, SessionFilters, SessionStats


class SessionRepository(Protocol):
    def create(self, session: Session) -> None:
        """Persist a new pending session; raise PersistenceError on failure."""

        raise NotImplementedError

    def get_by_id(self, session_id: str) -> Optional[Session]:
        raise NotImplementedError

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
        """Move a session out of ``pending``.

        Must be an atomic compare-and-swap on the status: returns False when the
        session is missing or no longer pending, leaving the record untouched.
        """

        raise NotImplementedError

    def list_sessions(
        self,
        *,
        filters: Optional[SessionFilters] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[Session]:
        """Sessions matching ``filters`` in review order, cut to ``limit``.

        Review order is pending first, flagged first, then newest ``created_at``.
        Filtering and ordering happen before the limit is applied.
        """

        raise NotImplementedError

    def stats(self, *, today: date) -> SessionStats:
        """Counters over every stored session, not a page of them."""

        raise NotImplementedError
