from __future__ import annotations

from enum import Enum


class SessionStatus(str, Enum):
    """Review state of a persisted tutoring session."""

    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"


class CheckInStep(str, Enum):
    """Where an interactive check-in attempt currently stands."""

    AWAITING_PERMISSIONS = "awaiting_permissions"
    AWAITING_SCAN = "awaiting_scan"
    AWAITING_FORM = "awaiting_form"
    SUBMITTED = "submitted"
    PERMISSION_DENIED = "permission_denied"
    FRAUD_BLOCKED = "fraud_blocked"
    CANCELLED = "cancelled"


class ProximityDecision(str, Enum):
    OK = "ok"
    WARNING = "warning"
    FRAUD_BLOCKED = "fraud_blocked"


class AnomalyTag(str, Enum):
    FRAUD_ATTEMPT = "fraud_attempt"
    EXCESSIVE_DISTANCE = "excessive_distance"
    DURATION_TOO_SHORT = "duration_too_short"
    DURATION_TOO_LONG = "duration_too_long"
    OFF_HOURS = "off_hours"
    EXPIRED_TOKEN = "expired_token"


class NotificationEvent(str, Enum):
    SESSION_SUBMITTED = "session_submitted"
    SESSION_VALIDATED = "session_validated"
    SESSION_REJECTED = "session_rejected"
