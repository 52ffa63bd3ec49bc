from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import month_bounds, week_bounds
from ..core.enums import SessionStatus
from .model import Session, SessionFilters, SessionStats


def matches(session: Session, filters: SessionFilters) -> bool:
    if filters.statuses and session.status not in filters.statuses:
        return False
    if filters.teacher_id and session.teacher_id != filters.teacher_id:
        return False
    if filters.student_id and session.student_id != filters.student_id:
        return False
    if filters.parent_id and session.parent_id != filters.parent_id:
        return False
    if filters.subjects and not any(s in filters.subjects for s in session.subjects):
        return False
    if filters.flagged is not None and session.flagged != filters.flagged:
        return False
    if filters.date_from and session.session_date < filters.date_from:
        return False
    if filters.date_to and session.session_date > filters.date_to:
        return False

    query = filters.search.strip().lower()
    if query:
        haystack = [session.teacher_name, session.student_name, session.parent_name, *session.subjects]
        if not any(query in h.lower() for h in haystack):
            return False
    return True


def review_order(sessions: Iterable[Session]) -> list[Session]:
    """Pending first, flagged first, then newest first."""
    by_newest = sorted(sessions, key=lambda s: s.created_at, reverse=True)
    return sorted(by_newest, key=lambda s: (not s.is_pending, not s.flagged))


def select_for_review(
    sessions: Iterable[Session],
    filters: Optional[SessionFilters] = None,
    *,
    limit: Optional[int] = None,
) -> list[Session]:
    """Filter, order for review, then cut to ``limit`` (same order as the MySQL query)."""
    filters = filters or SessionFilters()
    rows = review_order(s for s in sessions if matches(s, filters))
    return rows if limit is None else rows[: max(int(limit), 0)]


def compute_stats(sessions: Sequence[Session], *, today: date) -> SessionStats:
    validated = [s for s in sessions if s.status == SessionStatus.VALIDATED]
    total_minutes = sum(s.duration_minutes for s in validated)
    subjects = Counter(subject for s in sessions for subject in s.subjects)
    week_start, week_end = week_bounds(today)
    month_start, month_end = month_bounds(today)

    return SessionStats(
        total=len(sessions),
        pending=sum(1 for s in sessions if s.status == SessionStatus.PENDING),
        validated=len(validated),
        rejected=sum(1 for s in sessions if s.status == SessionStatus.REJECTED),
        flagged=sum(1 for s in sessions if s.flagged),
        this_week=sum(1 for s in sessions if week_start <= s.session_date < week_end),
        this_month=sum(1 for s in sessions if month_start <= s.session_date < month_end),
        average_duration=round(total_minutes / len(validated)) if validated else 0,
        total_hours=round(total_minutes / 60, 1),
        by_subject=dict(subjects),
    )
