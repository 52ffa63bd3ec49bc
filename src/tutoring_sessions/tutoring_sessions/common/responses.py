from __future__ import annotations

import logging
import math

from flask import jsonify

from ..core.exceptions import (
    AttemptCancelled,
    DomainError,
    ExpiredToken,
    FraudBlocked,
    InvalidStep,
    InvalidToken,
    InvalidTransition,
    LocationUnavailable,
    MissingReason,
    PermissionDenied,
    PersistenceError,
    SessionNotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)

_ERROR_CODES: list[tuple[type[DomainError], str, int]] = [
    (FraudBlocked, "fraud_blocked", 403),
    (PermissionDenied, "permission_denied", 403),
    (LocationUnavailable, "location_unavailable", 422),
    (InvalidToken, "invalid_token", 400),
    (ExpiredToken, "expired_token", 410),
    (ValidationError, "validation_error", 422),
    (MissingReason, "missing_reason", 422),
    (InvalidTransition, "invalid_transition", 409),
    (SessionNotFound, "not_found", 404),
    (InvalidStep, "invalid_step", 409),
    (AttemptCancelled, "cancelled", 409),
    (PersistenceError, "persistence_error", 503),
]


def error_response(exc: DomainError):
    code, status = "domain_error", 400
    for exc_type, exc_code, exc_status in _ERROR_CODES:
        if isinstance(exc, exc_type):
            code, status = exc_code, exc_status
            break

    body: dict = {"success": False, "error": code, "message": str(exc)}
    if isinstance(exc, ValidationError) and exc.errors:
        body["errors"] = exc.errors
    if isinstance(exc, FraudBlocked):
        body["security_event"] = True
        body["terminate"] = True
        body["distance_m"] = round(exc.distance_m) if math.isfinite(exc.distance_m) else None
    return jsonify(body), status


def server_error(message: str):
    logger.exception(message)
    return jsonify({"success": False, "error": "server_error", "message": message}), 500
