from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import mysql.connector
import pytest

from src.tutoring_sessions.tutoring_sessions.common.geo import Coordinate
from src.tutoring_sessions.tutoring_sessions.core.enums import AnomalyTag, SessionStatus
from src.tutoring_sessions.tutoring_sessions.core.exceptions import PersistenceError
from src.tutoring_sessions.tutoring_sessions.database.mysql_base import normalize_mysql_time
from src.tutoring_sessions.tutoring_sessions.sessions.model import LocationFix, Session, SessionFilters
from src.tutoring_sessions.tutoring_sessions.sessions.mysql_session_repository import (
    _COLUMN_NAMES,
    MySQLSessionRepository,
)
from src.tutoring_sessions.tutoring_sessions.tokens.model import ChildRef, QRToken


class FakeCursor:
    def __init__(self, *, rowcount=1, error=None, results=()):
        self.rowcount = rowcount
        self.executed = []
        self._error = error
        self._results = list(results)

    def execute(self, sql, params=None):
        if self._error:
            raise self._error
        self.executed.append((sql, params))

    def fetchone(self):
        rows = self._results.pop(0) if self._results else []
        return rows[0] if rows else None

    def fetchall(self):
        return self._results.pop(0) if self._results else []

    def close(self):
        pass


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False

    def cursor(self, dictionary=True):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        pass


class FakeConnFactory:
    def __init__(self, cursor):
        self.connection = FakeConnection(cursor)

    def connect(self):
        return self.connection


def _session(**overrides) -> Session:
    token = QRToken(
        parent_id="parent_001",
        parent_name="M. Diabaté",
        family_code="FAM-DIA",
        children=(
            ChildRef(id="child_001", full_name="Aya Kouadio", class_name="3eme"),
            ChildRef(id="child_002", full_name="Koffi Kouadio", class_name=""),
        ),
        home_location=Coordinate(latitude=5.36, longitude=-4.0083),
        issued_at=datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc),
        expires_at=datetime(2026, 3, 3, 8, 0, tzinfo=timezone.utc),
    )
    values = dict(
        id="SES-260302150000-A1B2C3",
        teacher_id="teacher_001",
        teacher_name="Mme Koné",
        student_id="child_001",
        student_name="Aya Kouadio",
        parent_id="parent_001",
        parent_name="M. Diabaté",
        session_date=date(2026, 3, 2),
        start_time=time(14, 0),
        end_time=time(15, 30),
        duration_minutes=90,
        subjects=("Maths", "Physique-Chimie"),
        topics="Équations",
        session_summary="Linear equations",
        observations="Focused",
        comments="",
        location=LocationFix(
            latitude=5.360225,
            longitude=-4.0083,
            accuracy=8.5,
            timestamp=datetime(2026, 3, 2, 14, 2, 11, tzinfo=timezone.utc),
        ),
        token=token,
        distance_from_home=25.03,
        status=SessionStatus.PENDING,
        created_at=datetime(2026, 3, 2, 15, 0, 0, tzinfo=timezone.utc),
        anomalies=(AnomalyTag.EXCESSIVE_DISTANCE, AnomalyTag.OFF_HOURS),
        flagged=True,
    )
    values.update(overrides)
    return Session(**values)


def _stored_row(session: Session) -> dict:
    """The row MySQL would hand back for what create() wrote."""
    cur = FakeCursor()
    MySQLSessionRepository(FakeConnFactory(cur)).create(session)
    sql, params = cur.executed[0]
    assert sql.count("%s") == len(_COLUMN_NAMES) == len(params)

    row = dict(zip(_COLUMN_NAMES, params))
    # mysql-connector returns TIME columns as timedelta
    row["start_time"] = timedelta(hours=session.start_time.hour, minutes=session.start_time.minute)
    row["end_time"] = timedelta(hours=session.end_time.hour, minutes=session.end_time.minute)
    return row


def _read_back(row: dict) -> Session:
    cur = FakeCursor(results=[[row]])
    return MySQLSessionRepository(FakeConnFactory(cur)).get_by_id(row["session_id"])


def test_create_then_read_back_is_the_same_session():
    session = _session()
    row = _stored_row(session)

    assert row["located_at"] == datetime(2026, 3, 2, 14, 2, 11)
    assert row["created_at"].tzinfo is None
    assert row["flagged"] == 1
    assert _read_back(row) == session


def test_decided_session_round_trips():
    session = _session(
        status=SessionStatus.REJECTED,
        validated_at=datetime(2026, 3, 3, 9, 30, tzinfo=timezone.utc),
        validator_id="dir_001",
        validator_name="Mme Traoré",
        rejection_reason="  Horaires incohérents  ",
        anomalies=(),
        flagged=False,
    )
    assert _read_back(_stored_row(session)) == session


def test_missing_row_is_none():
    assert MySQLSessionRepository(FakeConnFactory(FakeCursor())).get_by_id("SES-404") is None


def _decide(repo):
    return repo.decide(
        session_id="SES-1",
        status=SessionStatus.VALIDATED,
        validator_id="dir_001",
        validator_name="Mme Traore",
        decided_at=datetime(2026, 3, 3, 9, 0, tzinfo=timezone.utc),
    )


def test_decide_is_conditional_on_pending():
    cur = FakeCursor(rowcount=1)
    assert _decide(MySQLSessionRepository(FakeConnFactory(cur))) is True

    sql, params = cur.executed[0]
    assert "WHERE session_id=%s AND status=%s" in sql
    assert params[-1] == "pending"
    assert params[1] == datetime(2026, 3, 3, 9, 0)


def test_decide_reports_lost_race():
    assert _decide(MySQLSessionRepository(FakeConnFactory(FakeCursor(rowcount=0)))) is False


def test_connector_errors_become_persistence_errors():
    factory = FakeConnFactory(FakeCursor(error=mysql.connector.Error("gone away")))
    with pytest.raises(PersistenceError):
        _decide(MySQLSessionRepository(factory))
    assert factory.connection.rolled_back


def test_list_orders_for_review_before_the_limit():
    cur = FakeCursor()
    rows = MySQLSessionRepository(FakeConnFactory(cur)).list_sessions(limit=5)

    sql, params = cur.executed[0]
    assert rows == []
    assert "ORDER BY (status='pending') DESC, flagged DESC, created_at DESC" in sql
    assert sql.index("ORDER BY") < sql.index("LIMIT")
    assert params == (5,)


def test_list_pushes_every_filter_into_sql():
    cur = FakeCursor()
    filters = SessionFilters(
        statuses=(SessionStatus.PENDING,),
        teacher_id="t1",
        subjects=("Maths", "Anglais"),
        flagged=True,
        date_from=date(2026, 3, 1),
        date_to=date(2026, 3, 31),
        search="Koffi",
    )
    MySQLSessionRepository(FakeConnFactory(cur)).list_sessions(filters=filters, limit=50)

    sql, params = cur.executed[0]
    assert "status IN (%s)" in sql
    assert "JSON_CONTAINS(subjects_json, JSON_QUOTE(%s)) OR JSON_CONTAINS" in sql
    assert "flagged=%s" in sql
    assert "session_date>=%s" in sql and "session_date<=%s" in sql
    assert params == (
        "pending",
        "t1",
        "Maths",
        "Anglais",
        1,
        date(2026, 3, 1),
        date(2026, 3, 31),
        "%koffi%",
        "%koffi%",
        "%koffi%",
        "%koffi%",
        50,
    )


def test_stats_use_aggregates_over_the_whole_table():
    totals = {
        "total": 1200,
        "pending": Decimal("700"),
        "validated": Decimal("450"),
        "rejected": Decimal("50"),
        "flagged": Decimal("31"),
        "this_week": Decimal("40"),
        "this_month": Decimal("180"),
        "validated_minutes": Decimal("40500"),
    }
    subjects = [
        {"subjects_json": '["Maths"]', "n": 800},
        {"subjects_json": '["Maths", "Anglais"]', "n": 400},
    ]
    cur = FakeCursor(results=[[totals], subjects])
    st = MySQLSessionRepository(FakeConnFactory(cur)).stats(today=date(2026, 3, 4))

    sql, params = cur.executed[0]
    assert "COUNT(*)" in sql and "LIMIT" not in sql
    assert params == (date(2026, 3, 2), date(2026, 3, 9), date(2026, 3, 1), date(2026, 4, 1))
    assert (st.total, st.pending, st.validated, st.rejected, st.flagged) == (1200, 700, 450, 50, 31)
    assert (st.this_week, st.this_month) == (40, 180)
    assert st.average_duration == 90
    assert st.total_hours == 675.0
    assert st.by_subject == {"Maths": 1200, "Anglais": 400}


def test_normalize_mysql_time_accepts_timedelta_and_string():
    assert normalize_mysql_time(timedelta(hours=14, minutes=30)).strftime("%H:%M") == "14:30"
    assert normalize_mysql_time("08:05:00").strftime("%H:%M") == "08:05"
    assert normalize_mysql_time(None) is None
