from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .checkin.factory import ProximityStrategyFactory
from .checkin.service import CheckInService
from .core.constants import DEFAULT_FRAUD_RADIUS_METERS, DEFAULT_MAX_DISTANCE_METERS, DEFAULT_TOKEN_VALIDITY_HOURS
from .database.connection import DatabaseConnection, DBConfig
from .notifications.notifier import LoggingNotifier, Notifier
from .sessions.anomalies import ProximityPolicy
from .sessions.memory_session_repository import InMemorySessionRepository
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository
from .sessions.validation_service import SessionValidationService
from .tokens.issuer import ParentTokenIssuer


@dataclass(frozen=True)
class Container:
    sessions_repo: SessionRepository
    notifier: Notifier

    token_issuer: ParentTokenIssuer
    checkin_service: CheckInService
    validation_service: SessionValidationService


def build_services(
    *,
    sessions_repo: SessionRepository,
    notifier: Optional[Notifier] = None,
    fraud_radius_m: float = DEFAULT_FRAUD_RADIUS_METERS,
    max_distance_m: float = DEFAULT_MAX_DISTANCE_METERS,
    token_validity_hours: int = DEFAULT_TOKEN_VALIDITY_HOURS,
) -> Container:
    notifier = notifier or LoggingNotifier()
    policy = ProximityPolicy(fraud_radius_m=float(fraud_radius_m), max_distance_m=float(max_distance_m))

    return Container(
        sessions_repo=sessions_repo,
        notifier=notifier,
        token_issuer=ParentTokenIssuer(validity_hours=token_validity_hours),
        checkin_service=CheckInService(
            sessions_repo,
            notifier,
            policy=policy,
            token_validity_hours=token_validity_hours,
            strategy_factory=ProximityStrategyFactory(),
        ),
        validation_service=SessionValidationService(sessions_repo, notifier),
    )


def build_container(*, db_config: dict, settings: object = None) -> Container:
    if getattr(settings, "SESSION_STORE", "mysql") == "memory":
        sessions_repo: SessionRepository = InMemorySessionRepository()
    else:
        sessions_repo = MySQLSessionRepository(DatabaseConnection.get_instance(DBConfig.from_dict(db_config)))

    return build_services(
        sessions_repo=sessions_repo,
        fraud_radius_m=getattr(settings, "FRAUD_RADIUS_METERS", DEFAULT_FRAUD_RADIUS_METERS),
        max_distance_m=getattr(settings, "MAX_DISTANCE_METERS", DEFAULT_MAX_DISTANCE_METERS),
        token_validity_hours=getattr(settings, "QR_TOKEN_VALIDITY_HOURS", DEFAULT_TOKEN_VALIDITY_HOURS),
    )
