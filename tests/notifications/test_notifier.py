from __future__ import annotations

import logging

from src.tutoring_sessions.tutoring_sessions.core.enums import NotificationEvent
from src.tutoring_sessions.tutoring_sessions.notifications.notifier import LoggingNotifier, notify_safely


class BrokenNotifier:
    def send(self, event, recipient_id, payload):
        raise TimeoutError("smtp timeout")


def test_notify_safely_logs_and_swallows_delivery_failure(caplog):
    with caplog.at_level(logging.ERROR):
        ok = notify_safely(BrokenNotifier(), NotificationEvent.SESSION_REJECTED, "teacher_001", {"session_id": "SES-1"})
    assert ok is False
    assert "SES-1" in caplog.text


def test_logging_notifier_delivers(caplog):
    with caplog.at_level(logging.INFO):
        ok = notify_safely(LoggingNotifier(), NotificationEvent.SESSION_SUBMITTED, "direction", {"session_id": "SES-2"})
    assert ok is True
    assert "session_submitted" in caplog.text
