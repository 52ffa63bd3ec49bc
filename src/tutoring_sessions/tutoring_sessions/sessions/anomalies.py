from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time

from ..core.constants import (
    DEFAULT_FRAUD_RADIUS_METERS,
    DEFAULT_MAX_DISTANCE_METERS,
    EARLIEST_START_HOUR,
    LATEST_END_HOUR,
    MAX_SESSION_MINUTES,
    MIN_SESSION_MINUTES,
)
from ..core.enums import AnomalyTag


@dataclass(frozen=True)
class ProximityPolicy:
    """Distance thresholds around the registered home.

    ``fraud_radius_m`` is the outer hard limit. ``max_distance_m`` is the inner
    edge of the warning band: beyond it a session is still accepted but flagged.
    """

    fraud_radius_m: float = DEFAULT_FRAUD_RADIUS_METERS
    max_distance_m: float = DEFAULT_MAX_DISTANCE_METERS

    def __post_init__(self) -> None:
        if self.fraud_radius_m <= 0 or self.max_distance_m <= 0:
            raise ValueError("distance thresholds must be positive")
        if self.max_distance_m > self.fraud_radius_m:
            raise ValueError("max_distance_m must not exceed fraud_radius_m")


@dataclass(frozen=True)
class AnomalyCandidate:
    distance_m: float
    duration_minutes: int
    start_time: time
    end_time: time
    token_expires_at: datetime
    now: datetime


def is_off_hours(start_time: time, end_time: time) -> bool:
    return start_time.hour < EARLIEST_START_HOUR or end_time.hour > LATEST_END_HOUR


def detect(candidate: AnomalyCandidate, policy: ProximityPolicy) -> list[AnomalyTag]:
    """Return every anomaly tag that applies; no side effects."""
    tags: list[AnomalyTag] = []

    if candidate.distance_m > policy.fraud_radius_m:
        tags.append(AnomalyTag.FRAUD_ATTEMPT)
    elif candidate.distance_m > policy.max_distance_m:
        tags.append(AnomalyTag.EXCESSIVE_DISTANCE)

    if candidate.duration_minutes < MIN_SESSION_MINUTES:
        tags.append(AnomalyTag.DURATION_TOO_SHORT)
    if candidate.duration_minutes > MAX_SESSION_MINUTES:
        tags.append(AnomalyTag.DURATION_TOO_LONG)

    if is_off_hours(candidate.start_time, candidate.end_time):
        tags.append(AnomalyTag.OFF_HOURS)

    if candidate.token_expires_at < candidate.now:
        tags.append(AnomalyTag.EXPIRED_TOKEN)

    return tags


def is_flagged(distance_m: float, duration_minutes: int, policy: ProximityPolicy) -> bool:
    return (
        distance_m > policy.max_distance_m
        or duration_minutes < MIN_SESSION_MINUTES
        or duration_minutes > MAX_SESSION_MINUTES
    )
