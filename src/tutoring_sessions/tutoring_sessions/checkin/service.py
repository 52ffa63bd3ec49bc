from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import minutes_between, now_utc
from ..common.geo import distance_meters
from ..core.constants import DEFAULT_TOKEN_VALIDITY_HOURS
from ..core.enums import CheckInStep, ProximityDecision, SessionStatus
from ..core.exceptions import (
    AttemptCancelled,
    FraudBlocked,
    InvalidStep,
    LocationUnavailable,
    PermissionDenied,
    PersistenceError,
)
from ..notifications.notifier import Notifier, announce_submitted
from ..sessions.anomalies import AnomalyCandidate, ProximityPolicy, detect, is_flagged
from ..sessions.model import LocationFix, Session, new_session_id
from ..sessions.repository import SessionRepository
from ..tokens.model import QRToken
from ..tokens.parser import ensure_fresh, parse_token
from .factory import ProximityStrategyFactory
from .form import validate_form
from .location import LocationProvider, ensure_usable
from .model import Permissions, SessionForm, ValidatedForm
from .proximity import evaluate_proximity
from .strategies.base import ProximityResult

logger = logging.getLogger(__name__)


class CheckInAttempt:
    """One interactive check-in, from permissions to a pending Session.

    Steps run in order: begin -> capture_location -> scan_token -> fill_form
    -> submit. Errors are local to the step that raised them, except
    FraudBlocked and the both-permissions-denied case, which end the attempt.
    Nothing is persisted before submit() succeeds.
    """

    def __init__(
        self,
        *,
        teacher_id: str,
        teacher_name: str,
        sessions: SessionRepository,
        notifier: Notifier,
        location_provider: LocationProvider,
        policy: ProximityPolicy,
        token_validity: timedelta,
        strategy_factory: Optional[ProximityStrategyFactory] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.teacher_id = str(teacher_id)
        self.teacher_name = str(teacher_name)
        self._sessions = sessions
        self._notifier = notifier
        self._location_provider = location_provider
        self._policy = policy
        self._token_validity = token_validity
        self._factory = strategy_factory or ProximityStrategyFactory()
        self._clock = clock

        self._step = CheckInStep.AWAITING_PERMISSIONS
        self._cancelled = threading.Event()
        self._submit_lock = threading.Lock()

        self._permissions: Optional[Permissions] = None
        self._location: Optional[LocationFix] = None
        self._token: Optional[QRToken] = None
        self._proximity: Optional[ProximityResult] = None
        self._form: Optional[ValidatedForm] = None
        self._session: Optional[Session] = None
        self._fraud: Optional[FraudBlocked] = None

    @property
    def step(self) -> CheckInStep:
        return self._step

    @property
    def location(self) -> Optional[LocationFix]:
        return self._location

    @property
    def token(self) -> Optional[QRToken]:
        return self._token

    @property
    def proximity(self) -> Optional[ProximityResult]:
        return self._proximity

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def _require(self, expected: CheckInStep) -> None:
        if self._step == CheckInStep.FRAUD_BLOCKED and self._fraud is not None:
            raise self._fraud
        if self._cancelled.is_set():
            raise AttemptCancelled("Check-in attempt was cancelled")
        if self._step == CheckInStep.PERMISSION_DENIED:
            raise PermissionDenied("Camera and location permissions were both denied")
        if self._step != expected:
            raise InvalidStep(f"Cannot do this while {self._step.value} (expected {expected.value})")

    def begin(self, permissions: Permissions) -> CheckInStep:
        self._require(CheckInStep.AWAITING_PERMISSIONS)
        self._permissions = permissions

        if not permissions.camera and not permissions.location:
            self._step = CheckInStep.PERMISSION_DENIED
            logger.info("Check-in by %s aborted: no permissions granted", self.teacher_id)
            raise PermissionDenied("Camera and location permissions were both denied")

        self._step = CheckInStep.AWAITING_SCAN
        return self._step

    def capture_location(self) -> LocationFix:
        self._require(CheckInStep.AWAITING_SCAN)
        if not self._permissions.location:
            raise LocationUnavailable("Location permission was not granted")

        try:
            fix = self._location_provider.current_fix()
        except LocationUnavailable:
            raise
        except Exception as e:
            raise LocationUnavailable(f"Could not read the device position: {e}") from e
        fix = ensure_usable(fix)

        if self._cancelled.is_set():
            raise AttemptCancelled("Check-in attempt was cancelled")
        self._location = fix
        return fix

    def scan_token(self, raw: str | bytes) -> QRToken:
        self._require(CheckInStep.AWAITING_SCAN)
        if not self._permissions.camera:
            raise PermissionDenied("Camera permission is required to scan the QR code")
        if self._location is None:
            raise LocationUnavailable("Capture the device position before scanning")

        token = parse_token(raw)
        ensure_fresh(token, now=self._clock(), validity=self._token_validity)

        result = evaluate_proximity(token, self._location.coordinate, self._policy, factory=self._factory)
        if result.decision == ProximityDecision.FRAUD_BLOCKED:
            self._block(result.distance_m, token)

        self._token = token
        self._proximity = result
        self._step = CheckInStep.AWAITING_FORM
        if result.decision == ProximityDecision.WARNING:
            logger.info("Check-in by %s accepted with warning: %s", self.teacher_id, result.note)
        return token

    def _block(self, distance_m: float, token: QRToken) -> None:
        self._step = CheckInStep.FRAUD_BLOCKED
        self._fraud = FraudBlocked(distance_m, self._policy.fraud_radius_m)
        logger.warning(
            "SECURITY: check-in blocked for teacher %s at parent %s, %.0fm from home",
            self.teacher_id,
            token.parent_id,
            distance_m,
        )
        raise self._fraud

    def fill_form(self, form: SessionForm) -> ValidatedForm:
        self._require(CheckInStep.AWAITING_FORM)
        self._form = validate_form(form, self._token)
        return self._form

    def submit(self) -> Session:
        with self._submit_lock:
            self._require(CheckInStep.AWAITING_FORM)
            if self._form is None:
                raise InvalidStep("Fill in the session form before submitting")

            session = self._build_session()
            try:
                self._sessions.create(session)
            except PersistenceError:
                logger.warning("Could not store session %s for teacher %s", session.id, self.teacher_id)
                raise

            self._session = session
            self._step = CheckInStep.SUBMITTED

        logger.info("Session %s submitted by %s (flagged=%s)", session.id, self.teacher_id, session.flagged)
        announce_submitted(self._notifier, session)
        return session

    def _build_session(self) -> Session:
        form = self._form
        now = self._clock()

        # Re-derived from the captured values; client-sent numbers are ignored.
        duration = minutes_between(form.start_time, form.end_time)
        distance = distance_meters(self._location.coordinate, self._token.home_location)
        if not distance <= self._policy.fraud_radius_m:
            self._block(distance, self._token)

        anomalies = detect(
            AnomalyCandidate(
                distance_m=distance,
                duration_minutes=duration,
                start_time=form.start_time,
                end_time=form.end_time,
                token_expires_at=self._token.expires_at,
                now=now,
            ),
            self._policy,
        )

        return Session(
            id=new_session_id(now),
            teacher_id=self.teacher_id,
            teacher_name=self.teacher_name,
            student_id=form.student_id,
            student_name=form.student_name,
            parent_id=self._token.parent_id,
            parent_name=self._token.parent_name,
            session_date=form.session_date or now.date(),
            start_time=form.start_time,
            end_time=form.end_time,
            duration_minutes=duration,
            subjects=form.subjects,
            topics=form.topics,
            session_summary=form.session_summary,
            observations=form.observations,
            comments=form.comments,
            location=self._location,
            token=self._token,
            distance_from_home=distance,
            status=SessionStatus.PENDING,
            created_at=now,
            anomalies=tuple(anomalies),
            flagged=is_flagged(distance, duration, self._policy),
        )

    def cancel(self) -> bool:
        """Abandon the attempt. Returns False if it had already ended.

        A write already in flight is not interrupted: cancel() waits for submit()
        to finish. If the write succeeded the attempt is ``submitted`` and this
        returns False; if it raised PersistenceError the attempt is cancelled
        and this returns True.
        """
        with self._submit_lock:
            if self._step in {CheckInStep.SUBMITTED, CheckInStep.FRAUD_BLOCKED, CheckInStep.PERMISSION_DENIED}:
                return False
            self._cancelled.set()
            self._step = CheckInStep.CANCELLED
            return True


class CheckInService:
    def __init__(
        self,
        sessions: SessionRepository,
        notifier: Notifier,
        *,
        policy: Optional[ProximityPolicy] = None,
        token_validity_hours: int = DEFAULT_TOKEN_VALIDITY_HOURS,
        strategy_factory: Optional[ProximityStrategyFactory] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._sessions = sessions
        self._notifier = notifier
        self._policy = policy or ProximityPolicy()
        self._token_validity = timedelta(hours=int(token_validity_hours))
        self._factory = strategy_factory or ProximityStrategyFactory()
        self._clock = clock

    @property
    def policy(self) -> ProximityPolicy:
        return self._policy

    def start_attempt(self, *, teacher_id: str, teacher_name: str, location_provider: LocationProvider) -> CheckInAttempt:
        return CheckInAttempt(
            teacher_id=teacher_id,
            teacher_name=teacher_name,
            sessions=self._sessions,
            notifier=self._notifier,
            location_provider=location_provider,
            policy=self._policy,
            token_validity=self._token_validity,
            strategy_factory=self._factory,
            clock=self._clock,
        )

    def check_in(
        self,
        *,
        teacher_id: str,
        teacher_name: str,
        permissions: Permissions,
        location_provider: LocationProvider,
        raw_token: str | bytes,
        form: SessionForm,
    ) -> Session:
        """Run a whole attempt in one go (used by the HTTP endpoint)."""
        attempt = self.start_attempt(
            teacher_id=teacher_id,
            teacher_name=teacher_name,
            location_provider=location_provider,
        )
        attempt.begin(permissions)
        attempt.capture_location()
        attempt.scan_token(raw_token)
        attempt.fill_form(form)
        return attempt.submit()
