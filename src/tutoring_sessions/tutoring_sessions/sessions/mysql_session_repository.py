from __future__ import annotations

from collections import Counter
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import month_bounds, week_bounds
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import AnomalyTag, SessionStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    dump_json,
    fetchall,
    fetchone,
    from_mysql_datetime,
    load_json,
    normalize_mysql_time,
    to_mysql_datetime,
)
from ..tokens.parser import encode_token, parse_token
from .model import LocationFix, Session, SessionFilters, SessionStats
from .repository import SessionRepository

_COLUMN_NAMES = (
    "session_id", "teacher_id", "teacher_name", "student_id", "student_name", "parent_id", "parent_name",
    "session_date", "start_time", "end_time", "duration_minutes",
    "subjects_json", "topics", "session_summary", "observations", "comments",
    "latitude", "longitude", "accuracy", "located_at", "token_json", "distance_from_home",
    "status", "created_at", "validated_at", "validator_id", "validator_name", "rejection_reason",
    "anomalies_json", "flagged",
)
_COLUMNS = ", ".join(_COLUMN_NAMES)
_PLACEHOLDERS = ", ".join(["%s"] * len(_COLUMN_NAMES))

_REVIEW_ORDER = "(status='pending') DESC, flagged DESC, created_at DESC"


def _where(filters: SessionFilters) -> tuple[str, list[object]]:
    clauses = ["1=1"]
    params: list[object] = []

    if filters.statuses:
        clauses.append(f"status IN ({', '.join(['%s'] * len(filters.statuses))})")
        params.extend(s.value for s in filters.statuses)
    if filters.teacher_id:
        clauses.append("teacher_id=%s")
        params.append(str(filters.teacher_id))
    if filters.student_id:
        clauses.append("student_id=%s")
        params.append(str(filters.student_id))
    if filters.parent_id:
        clauses.append("parent_id=%s")
        params.append(str(filters.parent_id))
    if filters.subjects:
        clauses.append("(" + " OR ".join(["JSON_CONTAINS(subjects_json, JSON_QUOTE(%s))"] * len(filters.subjects)) + ")")
        params.extend(filters.subjects)
    if filters.flagged is not None:
        clauses.append("flagged=%s")
        params.append(1 if filters.flagged else 0)
    if filters.date_from:
        clauses.append("session_date>=%s")
        params.append(filters.date_from)
    if filters.date_to:
        clauses.append("session_date<=%s")
        params.append(filters.date_to)

    query = filters.search.strip().lower()
    if query:
        like = f"%{query}%"
        clauses.append(
            "(LOWER(teacher_name) LIKE %s OR LOWER(student_name) LIKE %s "
            "OR LOWER(parent_name) LIKE %s OR LOWER(subjects_json) LIKE %s)"
        )
        params.extend([like] * 4)

    return " AND ".join(clauses), params


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, session: Session) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO tutoring_sessions({_COLUMNS}) VALUES({_PLACEHOLDERS})",
                (
                    session.id,
                    session.teacher_id,
                    session.teacher_name,
                    session.student_id,
                    session.student_name,
                    session.parent_id,
                    session.parent_name,
                    session.session_date,
                    session.start_time,
                    session.end_time,
                    int(session.duration_minutes),
                    dump_json(list(session.subjects)),
                    session.topics,
                    session.session_summary,
                    session.observations,
                    session.comments,
                    float(session.location.latitude),
                    float(session.location.longitude),
                    float(session.location.accuracy),
                    to_mysql_datetime(session.location.timestamp),
                    encode_token(session.token),
                    float(session.distance_from_home),
                    session.status.value,
                    to_mysql_datetime(session.created_at),
                    to_mysql_datetime(session.validated_at),
                    session.validator_id,
                    session.validator_name,
                    session.rejection_reason,
                    dump_json([a.value for a in session.anomalies]),
                    1 if session.flagged else 0,
                ),
            )

    def get_by_id(self, session_id: str) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM tutoring_sessions WHERE session_id=%s",
                (str(session_id),),
            )
            r = fetchone(cur)
            return self._to_session(r) if r else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE tutoring_sessions
                SET status=%s, validated_at=%s, validator_id=%s, validator_name=%s, rejection_reason=%s
                WHERE session_id=%s AND status=%s
                """,
                (
                    status.value,
                    to_mysql_datetime(decided_at),
                    validator_id,
                    validator_name,
                    rejection_reason,
                    str(session_id),
                    SessionStatus.PENDING.value,
                ),
            )
            return cur.rowcount == 1

    def list_sessions(
        self,
        *,
        filters: Optional[SessionFilters] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[Session]:
        where, params = _where(filters or SessionFilters())

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM tutoring_sessions
                WHERE {where}
                ORDER BY {_REVIEW_ORDER}
                LIMIT %s
                """,
                tuple(params + [int(limit)]),
            )
            return [self._to_session(r) for r in fetchall(cur)]

    def stats(self, *, today: date) -> SessionStats:
        week_start, week_end = week_bounds(today)
        month_start, month_end = month_bounds(today)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    COALESCE(SUM(status='pending'), 0) AS pending,
                    COALESCE(SUM(status='validated'), 0) AS validated,
                    COALESCE(SUM(status='rejected'), 0) AS rejected,
                    COALESCE(SUM(flagged=1), 0) AS flagged,
                    COALESCE(SUM(session_date>=%s AND session_date<%s), 0) AS this_week,
                    COALESCE(SUM(session_date>=%s AND session_date<%s), 0) AS this_month,
                    COALESCE(SUM(CASE WHEN status='validated' THEN duration_minutes ELSE 0 END), 0) AS validated_minutes
                FROM tutoring_sessions
                """,
                (week_start, week_end, month_start, month_end),
            )
            totals = fetchone(cur) or {}

            cur.execute("SELECT subjects_json, COUNT(*) AS n FROM tutoring_sessions GROUP BY subjects_json")
            subjects: Counter = Counter()
            for r in fetchall(cur):
                for subject in load_json(r["subjects_json"]) or ():
                    subjects[subject] += int(r["n"])

        validated = int(totals.get("validated") or 0)
        minutes = int(totals.get("validated_minutes") or 0)
        return SessionStats(
            total=int(totals.get("total") or 0),
            pending=int(totals.get("pending") or 0),
            validated=validated,
            rejected=int(totals.get("rejected") or 0),
            flagged=int(totals.get("flagged") or 0),
            this_week=int(totals.get("this_week") or 0),
            this_month=int(totals.get("this_month") or 0),
            average_duration=round(minutes / validated) if validated else 0,
            total_hours=round(minutes / 60, 1),
            by_subject=dict(subjects),
        )

    @staticmethod
    def _to_session(r: dict) -> Session:
        return Session(
            id=r["session_id"],
            teacher_id=r["teacher_id"],
            teacher_name=r["teacher_name"],
            student_id=r["student_id"],
            student_name=r["student_name"],
            parent_id=r["parent_id"],
            parent_name=r["parent_name"],
            session_date=r["session_date"],
            start_time=normalize_mysql_time(r["start_time"]),
            end_time=normalize_mysql_time(r["end_time"]),
            duration_minutes=int(r["duration_minutes"]),
            subjects=tuple(load_json(r["subjects_json"]) or ()),
            topics=r["topics"],
            session_summary=r["session_summary"],
            observations=r["observations"],
            comments=r["comments"],
            location=LocationFix(
                latitude=float(r["latitude"]),
                longitude=float(r["longitude"]),
                accuracy=float(r["accuracy"]),
                timestamp=from_mysql_datetime(r["located_at"]),
            ),
            token=parse_token(r["token_json"]),
            distance_from_home=float(r["distance_from_home"]),
            status=SessionStatus(r["status"]),
            created_at=from_mysql_datetime(r["created_at"]),
            validated_at=from_mysql_datetime(r.get("validated_at")),
            validator_id=r.get("validator_id"),
            validator_name=r.get("validator_name"),
            rejection_reason=r.get("rejection_reason"),
            anomalies=tuple(AnomalyTag(a) for a in (load_json(r["anomalies_json"]) or ())),
            flagged=bool(r["flagged"]),
        )
