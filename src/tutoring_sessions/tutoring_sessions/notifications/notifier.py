from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

from ..common.datetime_utils import format_duration
from ..core.constants import DIRECTION_RECIPIENT_ID
from ..core.enums import NotificationEvent
from ..sessions.model import Session

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, event: NotificationEvent, recipient_id: str, payload: Mapping[str, Any]) -> None:
        raise NotImplementedError


class LoggingNotifier:
    """Default delivery channel: writes each notification to the log."""

    def send(self, event: NotificationEvent, recipient_id: str, payload: Mapping[str, Any]) -> None:
        logger.info("notify %s -> %s: %s", event.value, recipient_id, dict(payload))


def notify_safely(notifier: Notifier, event: NotificationEvent, recipient_id: str, payload: Mapping[str, Any]) -> bool:
    """Fire-and-forget: delivery problems are logged, never raised."""
    try:
        notifier.send(event, recipient_id, payload)
        return True
    except Exception:
        logger.exception("Failed to deliver %s for session %s", event.value, payload.get("session_id"))
        return False


def _base_payload(session: Session) -> dict[str, Any]:
    return {
        "session_id": session.id,
        "student_name": session.student_name,
        "teacher_id": session.teacher_id,
        "teacher_name": session.teacher_name,
        "parent_id": session.parent_id,
        "parent_name": session.parent_name,
        "date": session.session_date.strftime("%Y-%m-%d"),
        "subjects": list(session.subjects),
    }


def submitted_payload(session: Session) -> dict[str, Any]:
    payload = _base_payload(session)
    payload["duration_minutes"] = session.duration_minutes
    payload["duration"] = format_duration(session.duration_minutes)
    payload["flagged"] = session.flagged
    return payload


def validated_payload(session: Session) -> dict[str, Any]:
    payload = _base_payload(session)
    payload["validator_name"] = session.validator_name
    return payload


def rejected_payload(session: Session) -> dict[str, Any]:
    payload = _base_payload(session)
    payload["validator_name"] = session.validator_name
    payload["reason"] = session.rejection_reason
    return payload


def announce_submitted(notifier: Notifier, session: Session) -> None:
    notify_safely(notifier, NotificationEvent.SESSION_SUBMITTED, DIRECTION_RECIPIENT_ID, submitted_payload(session))


def announce_validated(notifier: Notifier, session: Session) -> None:
    payload = validated_payload(session)
    notify_safely(notifier, NotificationEvent.SESSION_VALIDATED, session.teacher_id, payload)
    notify_safely(notifier, NotificationEvent.SESSION_VALIDATED, session.parent_id, payload)


def announce_rejected(notifier: Notifier, session: Session) -> None:
    notify_safely(notifier, NotificationEvent.SESSION_REJECTED, session.teacher_id, rejected_payload(session))
