from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional

from ..common.datetime_utils import format_iso_datetime
from ..common.geo import Coordinate
from ..core.enums import AnomalyTag, SessionStatus
from ..tokens.model import QRToken
from ..tokens.parser import token_to_dict


@dataclass(frozen=True)
class LocationFix:
    """Device position reported at check-in time."""

    latitude: float
    longitude: float
    accuracy: float
    timestamp: datetime

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


@dataclass(frozen=True)
class Session:
    """Domain entity: one tutoring session registered by a teacher.

    Trust and pedagogical fields are fixed at creation; only the status block
    (status, validated_at, validator_*, rejection_reason) changes afterwards.
    """

    id: str
    teacher_id: str
    teacher_name: str
    student_id: str
    student_name: str
    parent_id: str
    parent_name: str

    session_date: date
    start_time: time
    end_time: time
    duration_minutes: int

    subjects: tuple[str, ...]
    topics: str
    session_summary: str
    observations: str
    comments: str

    location: LocationFix
    token: QRToken
    distance_from_home: float

    status: SessionStatus
    created_at: datetime
    validated_at: Optional[datetime] = None
    validator_id: Optional[str] = None
    validator_name: Optional[str] = None
    rejection_reason: Optional[str] = None

    anomalies: tuple[AnomalyTag, ...] = ()
    flagged: bool = False

    def __post_init__(self) -> None:
        if self.duration_minutes < 0:
            raise ValueError("duration_minutes cannot be negative")
        if not self.subjects:
            raise ValueError("subjects cannot be empty")
        if self.status == SessionStatus.REJECTED:
            if not self.rejection_reason or not self.rejection_reason.strip():
                raise ValueError("rejected sessions require a rejection_reason")
        elif self.rejection_reason is not None:
            raise ValueError(f"{self.status.value} sessions cannot carry a rejection_reason")
        if self.status == SessionStatus.PENDING and (
            self.validated_at is not None or self.validator_id is not None
        ):
            raise ValueError("pending sessions cannot carry validation data")

    @property
    def is_pending(self) -> bool:
        return self.status == SessionStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "teacher_name": self.teacher_name,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "parent_id": self.parent_id,
            "parent_name": self.parent_name,
            "date": self.session_date.strftime("%Y-%m-%d"),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "duration_minutes": self.duration_minutes,
            "subjects": list(self.subjects),
            "topics": self.topics,
            "session_summary": self.session_summary,
            "observations": self.observations,
            "comments": self.comments,
            "location": {
                "latitude": self.location.latitude,
                "longitude": self.location.longitude,
                "accuracy": self.location.accuracy,
                "timestamp": format_iso_datetime(self.location.timestamp),
            },
            "token": token_to_dict(self.token),
            "distance_from_home": round(self.distance_from_home, 2),
            "status": self.status.value,
            "created_at": format_iso_datetime(self.created_at),
            "validated_at": format_iso_datetime(self.validated_at) if self.validated_at else None,
            "validator_id": self.validator_id,
            "validator_name": self.validator_name,
            "rejection_reason": self.rejection_reason,
            "anomalies": [a.value for a in self.anomalies],
            "flagged": self.flagged,
        }


def new_session_id(now: datetime) -> str:
    """Time-prefixed id so lexical order follows creation order."""
    return f"SES-{now.strftime('%y%m%d%H%M%S')}-{secrets.token_hex(3).upper()}"


@dataclass(frozen=True)
class SessionFilters:
    statuses: tuple[SessionStatus, ...] = ()
    teacher_id: Optional[str] = None
    student_id: Optional[str] = None
    parent_id: Optional[str] = None
    subjects: tuple[str, ...] = ()
    flagged: Optional[bool] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: str = ""


@dataclass(frozen=True)
class SessionStats:
    """Read-model for the reviewer dashboard counters."""

    total: int = 0
    pending: int = 0
    validated: int = 0
    rejected: int = 0
    flagged: int = 0
    this_week: int = 0
    this_month: int = 0
    average_duration: int = 0
    total_hours: float = 0.0
    by_subject: dict[str, int] = field(default_factory=dict)
