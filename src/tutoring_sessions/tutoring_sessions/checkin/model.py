from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from ..common.datetime_utils import parse_iso_date
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class Permissions:
    camera: bool
    location: bool


@dataclass(frozen=True)
class SessionForm:
    """Raw form input from the teacher's device.

    ``duration_minutes`` may be sent by clients but is never used; the duration
    is always derived from the start and end times.
    """

    student_id: str = ""
    session_date: Optional[date] = None
    start_time: str = ""
    end_time: str = ""
    subjects: tuple[str, ...] = ()
    topics: str = ""
    session_summary: str = ""
    observations: str = ""
    comments: str = ""
    duration_minutes: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SessionForm":
        subjects = data.get("subjects") or ()
        if isinstance(subjects, str):
            subjects = [s for s in subjects.split(",")]
        return cls(
            student_id=str(data.get("student_id") or ""),
            session_date=_as_date(data.get("session_date")),
            start_time=str(data.get("start_time") or ""),
            end_time=str(data.get("end_time") or ""),
            subjects=tuple(str(s).strip() for s in subjects if str(s).strip()),
            topics=str(data.get("topics") or ""),
            session_summary=str(data.get("session_summary") or ""),
            observations=str(data.get("observations") or ""),
            comments=str(data.get("comments") or ""),
            duration_minutes=data.get("duration_minutes"),
        )


@dataclass(frozen=True)
class ValidatedForm:
    student_id: str
    student_name: str
    session_date: Optional[date]
    start_time: time
    end_time: time
    subjects: tuple[str, ...]
    topics: str
    session_summary: str
    observations: str = ""
    comments: str = ""


def _as_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError("Session form is invalid", {"session_date": "Invalid date (YYYY-MM-DD)"})
