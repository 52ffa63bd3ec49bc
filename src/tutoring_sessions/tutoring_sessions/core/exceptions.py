from __future__ import annotations

from typing import Mapping, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules.

    ``errors`` maps form field names to messages so the caller can show them
    next to the offending input.
    """

    def __init__(self, message: str, errors: Optional[Mapping[str, str]] = None):
        super().__init__(message)
        self.errors = dict(errors or {})


class PermissionDenied(DomainError):
    """Raised when the device did not grant a capability the step needs."""


class LocationUnavailable(DomainError):
    """Raised when no usable device position could be obtained."""


class InvalidToken(DomainError):
    """Raised when a scanned QR payload cannot be parsed into a token."""


class ExpiredToken(DomainError):
    """Raised when a scanned token is past its validity window."""


class FraudBlocked(DomainError):
    """Security event: the teacher is not at the registered home.

    Terminates the whole check-in attempt; it is never retried in place.
    """

    def __init__(self, distance_m: float, fraud_radius_m: float):
        super().__init__(
            f"Check-in blocked: {distance_m:.0f}m from the registered home "
            f"(limit {fraud_radius_m:.0f}m)"
        )
        self.distance_m = distance_m
        self.fraud_radius_m = fraud_radius_m


class InvalidTransition(DomainError):
    """Raised when a reviewer acts on a session that is no longer pending."""


class MissingReason(DomainError):
    """Raised when a rejection is attempted without a reason."""


class PersistenceError(DomainError):
    """Raised when the session store fails; the caller may resubmit."""


class SessionNotFound(DomainError):
    pass


class InvalidStep(DomainError):
    """Raised when a check-in step is called out of order."""


class AttemptCancelled(DomainError):
    pass
