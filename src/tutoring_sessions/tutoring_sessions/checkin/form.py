from __future__ import annotations

from datetime import time
from typing import Optional

from ..common.datetime_utils import minutes_between, parse_hhmm
from ..common.validators import is_blank
from ..core.constants import EARLIEST_START_HOUR, LATEST_END_HOUR, MAX_SESSION_MINUTES, MIN_SESSION_MINUTES
from ..core.exceptions import ValidationError
from ..sessions.anomalies import is_off_hours
from ..tokens.model import QRToken
from .model import SessionForm, ValidatedForm


def _parse_time(value: str) -> Optional[time]:
    try:
        return parse_hhmm(value)
    except ValueError:
        return None


def timing_errors(start: time, end: time) -> list[str]:
    errors: list[str] = []
    duration = minutes_between(start, end)
    if duration <= 0:
        errors.append("End time must be after start time")
    else:
        if duration < MIN_SESSION_MINUTES:
            errors.append(f"Minimum duration: {MIN_SESSION_MINUTES // 60}h")
        if duration > MAX_SESSION_MINUTES:
            errors.append(f"Maximum duration: {MAX_SESSION_MINUTES // 60}h")
    if is_off_hours(start, end):
        errors.append(f"Allowed hours: {EARLIEST_START_HOUR}h - {LATEST_END_HOUR}h")
    return errors


def validate_form(form: SessionForm, token: QRToken) -> ValidatedForm:
    """Check the session form against the scanned token.

    Raises ValidationError whose ``errors`` maps each offending field to a message.
    """
    errors: dict[str, str] = {}

    child = None
    if is_blank(form.student_id):
        errors["student_id"] = "Select a student"
    else:
        child = token.find_child(form.student_id.strip())
        if child is None:
            errors["student_id"] = "Student is not covered by this QR code"

    start = end = None
    if is_blank(form.start_time):
        errors["start_time"] = "Start time is required"
    else:
        start = _parse_time(form.start_time)
        if start is None:
            errors["start_time"] = "Invalid time (HH:MM)"
    if is_blank(form.end_time):
        errors["end_time"] = "End time is required"
    else:
        end = _parse_time(form.end_time)
        if end is None:
            errors["end_time"] = "Invalid time (HH:MM)"

    subjects = tuple(s.strip() for s in form.subjects if not is_blank(s))
    if not subjects:
        errors["subjects"] = "Select at least one subject"
    if is_blank(form.topics):
        errors["topics"] = "Topics are required"
    if is_blank(form.session_summary):
        errors["session_summary"] = "Session summary is required"

    if start is not None and end is not None:
        problems = timing_errors(start, end)
        if problems:
            errors["timing"] = ", ".join(problems)

    if errors:
        raise ValidationError("Session form is invalid", errors)

    return ValidatedForm(
        student_id=child.id,
        student_name=child.full_name,
        session_date=form.session_date,
        start_time=start,
        end_time=end,
        subjects=subjects,
        topics=form.topics.strip(),
        session_summary=form.session_summary.strip(),
        observations=form.observations.strip(),
        comments=form.comments.strip(),
    )
