from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import now_utc
from ..common.validators import is_blank
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import SessionStatus
from ..core.exceptions import InvalidTransition, MissingReason, SessionNotFound
from ..notifications.notifier import Notifier, announce_rejected, announce_validated
from .model import Session, SessionFilters, SessionStats
from .repository import SessionRepository

logger = logging.getLogger(__name__)


class SessionValidationService:
    """Reviewer actions on submitted sessions.

    ``pending`` may move once, to ``validated`` or ``rejected``. A repeated or
    concurrent decision loses the compare-and-swap and raises InvalidTransition.
    """

    def __init__(self, sessions: SessionRepository, notifier: Notifier):
        self._sessions = sessions
        self._notifier = notifier

    def get(self, session_id: str) -> Session:
        session = self._sessions.get_by_id(str(session_id))
        if not session:
            raise SessionNotFound(f"Session {session_id} does not exist")
        return session

    def validate(
        self,
        session_id: str,
        reviewer_id: str,
        reviewer_name: str,
        *,
        now: Optional[datetime] = None,
    ) -> Session:
        session = self._decide(
            session_id,
            status=SessionStatus.VALIDATED,
            reviewer_id=reviewer_id,
            reviewer_name=reviewer_name,
            now=now,
        )
        announce_validated(self._notifier, session)
        return session

    def reject(
        self,
        session_id: str,
        reviewer_id: str,
        reviewer_name: str,
        reason: Optional[str],
        *,
        now: Optional[datetime] = None,
    ) -> Session:
        if is_blank(reason):
            raise MissingReason("A rejection reason is required")
        if not isinstance(reason, str):
            reason = str(reason)

        session = self._decide(
            session_id,
            status=SessionStatus.REJECTED,
            reviewer_id=reviewer_id,
            reviewer_name=reviewer_name,
            reason=reason,
            now=now,
        )
        announce_rejected(self._notifier, session)
        return session

    def _decide(
        self,
        session_id: str,
        *,
        status: SessionStatus,
        reviewer_id: str,
        reviewer_name: str,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Session:
        current = self.get(session_id)
        if not current.is_pending:
            raise InvalidTransition(f"Session {current.id} is already {current.status.value}")

        decided = self._sessions.decide(
            session_id=current.id,
            status=status,
            validator_id=str(reviewer_id),
            validator_name=str(reviewer_name),
            decided_at=now or now_utc(),
            rejection_reason=reason,
        )
        if not decided:
            # Another reviewer got there between our read and the update.
            raise InvalidTransition(f"Session {current.id} was decided concurrently")

        logger.info("Session %s %s by %s", current.id, status.value, reviewer_id)
        return self.get(current.id)

    def list_sessions(self, filters: Optional[SessionFilters] = None, *, limit: int = DEFAULT_LIST_LIMIT) -> list[Session]:
        return list(self._sessions.list_sessions(filters=filters or SessionFilters(), limit=limit))

    def list_pending(self, filters: Optional[SessionFilters] = None, *, limit: int = DEFAULT_LIST_LIMIT) -> list[Session]:
        filters = replace(filters or SessionFilters(), statuses=(SessionStatus.PENDING,))
        return list(self._sessions.list_sessions(filters=filters, limit=limit))

    def list_by_status(self, status: SessionStatus, *, limit: int = DEFAULT_LIST_LIMIT) -> list[Session]:
        return list(self._sessions.list_sessions(filters=SessionFilters(statuses=(status,)), limit=limit))

    def stats(self, *, today: Optional[date] = None) -> SessionStats:
        return self._sessions.stats(today=today or now_utc().date())
