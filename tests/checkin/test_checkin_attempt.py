from __future__ import annotations

import threading
from datetime import date, datetime, timedelta, timezone

import pytest

from src.tutoring_sessions.tutoring_sessions.checkin.model import Permissions, SessionForm
from src.tutoring_sessions.tutoring_sessions.checkin.service import CheckInService
from src.tutoring_sessions.tutoring_sessions.common.geo import Coordinate
from src.tutoring_sessions.tutoring_sessions.core.enums import (
    AnomalyTag,
    CheckInStep,
    NotificationEvent,
    ProximityDecision,
    SessionStatus,
)
from src.tutoring_sessions.tutoring_sessions.core.exceptions import (
    AttemptCancelled,
    ExpiredToken,
    FraudBlocked,
    InvalidStep,
    InvalidToken,
    LocationUnavailable,
    PermissionDenied,
    PersistenceError,
)
from src.tutoring_sessions.tutoring_sessions.sessions.anomalies import ProximityPolicy
from src.tutoring_sessions.tutoring_sessions.sessions.model import LocationFix
from src.tutoring_sessions.tutoring_sessions.tokens.model import ChildRef, QRToken
from src.tutoring_sessions.tutoring_sessions.tokens.parser import encode_token

NOW = datetime(2026, 3, 2, 15, 0, 0, tzinfo=timezone.utc)
HOME = Coordinate(latitude=5.36, longitude=-4.0083)
METERS_PER_DEGREE = 6_371_000 * 3.141592653589793 / 180


class FakeSessionsRepo:
    def __init__(self, *, failures: int = 0):
        self._rows = {}
        self._failures = failures

    def create(self, session):
        if self._failures:
            self._failures -= 1
            raise PersistenceError("database unavailable")
        self._rows[session.id] = session

    def get_by_id(self, session_id):
        return self._rows.get(session_id)

    def decide(self, *, session_id, status, validator_id, validator_name, decided_at, rejection_reason=None):
        return False

    def list_sessions(self, *, filters=None, limit=500):
        return list(self._rows.values())


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, event, recipient_id, payload):
        self.sent.append((event, recipient_id, dict(payload)))


class BrokenNotifier:
    def send(self, event, recipient_id, payload):
        raise ConnectionError("push gateway down")


class FixedLocation:
    def __init__(self, meters_north: float = 10.0):
        self.fix = LocationFix(
            latitude=HOME.latitude + meters_north / METERS_PER_DEGREE,
            longitude=HOME.longitude,
            accuracy=8.0,
            timestamp=NOW,
        )

    def current_fix(self):
        return self.fix


class FailingLocation:
    def current_fix(self):
        raise RuntimeError("GPS is switched off")


def _token(*, issued_at=datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc), hours=24) -> QRToken:
    return QRToken(
        parent_id="parent_001",
        parent_name="M. Diabate",
        family_code="FAM-DIA",
        children=(ChildRef(id="child_001", full_name="Aya Kouadio", class_name="3eme"),),
        home_location=HOME,
        issued_at=issued_at,
        expires_at=issued_at + timedelta(hours=hours),
    )


def _form(**overrides) -> SessionForm:
    values = dict(
        student_id="child_001",
        session_date=date(2026, 3, 2),
        start_time="14:00",
        end_time="15:30",
        subjects=("Maths",),
        topics="Equations",
        session_summary="Worked through linear equations",
    )
    values.update(overrides)
    return SessionForm(**values)


def _service(repo=None, notifier=None) -> CheckInService:
    return CheckInService(
        repo if repo is not None else FakeSessionsRepo(),
        notifier if notifier is not None else RecordingNotifier(),
        policy=ProximityPolicy(fraud_radius_m=30, max_distance_m=20),
        clock=lambda: NOW,
    )


def _attempt(svc, location=None):
    return svc.start_attempt(
        teacher_id="teacher_001",
        teacher_name="Mme Kone",
        location_provider=location or FixedLocation(),
    )


def _scanned(svc, location=None, token=None):
    attempt = _attempt(svc, location)
    attempt.begin(Permissions(camera=True, location=True))
    attempt.capture_location()
    attempt.scan_token(encode_token(token or _token()))
    return attempt


def test_happy_path_creates_pending_session_and_notifies_direction():
    repo, notifier = FakeSessionsRepo(), RecordingNotifier()
    attempt = _scanned(_service(repo, notifier))
    assert attempt.proximity.decision == ProximityDecision.OK

    attempt.fill_form(_form())
    session = attempt.submit()

    assert attempt.step == CheckInStep.SUBMITTED
    assert session.status == SessionStatus.PENDING
    assert session.duration_minutes == 90
    assert session.flagged is False
    assert session.anomalies == ()
    assert abs(session.distance_from_home - 10.0) < 0.01
    assert session.student_name == "Aya Kouadio"
    assert repo.get_by_id(session.id) == session

    (event, recipient, payload), = notifier.sent
    assert event == NotificationEvent.SESSION_SUBMITTED
    assert recipient == "direction"
    assert payload["session_id"] == session.id
    assert payload["duration"] == "1h30min"


def test_far_away_scan_is_blocked_and_terminal():
    repo = FakeSessionsRepo()
    attempt = _attempt(_service(repo), FixedLocation(meters_north=500_000))
    attempt.begin(Permissions(camera=True, location=True))
    attempt.capture_location()

    with pytest.raises(FraudBlocked) as exc:
        attempt.scan_token(encode_token(_token()))
    assert exc.value.distance_m > 499_000

    assert attempt.step == CheckInStep.FRAUD_BLOCKED
    with pytest.raises(FraudBlocked):
        attempt.fill_form(_form())
    with pytest.raises(FraudBlocked):
        attempt.submit()
    assert attempt.cancel() is False
    assert repo.list_sessions() == []


def test_token_expired_one_second_ago_is_recoverable():
    expired = _token(issued_at=datetime(2026, 3, 1, 14, 59, 59, tzinfo=timezone.utc))
    attempt = _attempt(_service())
    attempt.begin(Permissions(camera=True, location=True))
    attempt.capture_location()

    with pytest.raises(ExpiredToken):
        attempt.scan_token(encode_token(expired))
    assert attempt.step == CheckInStep.AWAITING_SCAN

    attempt.scan_token(encode_token(_token()))
    assert attempt.step == CheckInStep.AWAITING_FORM


def test_garbage_qr_payload_is_invalid_token():
    attempt = _attempt(_service())
    attempt.begin(Permissions(camera=True, location=True))
    attempt.capture_location()
    with pytest.raises(InvalidToken):
        attempt.scan_token("not a token")
    assert attempt.step == CheckInStep.AWAITING_SCAN


def test_both_permissions_denied_ends_attempt():
    attempt = _attempt(_service())
    with pytest.raises(PermissionDenied):
        attempt.begin(Permissions(camera=False, location=False))
    assert attempt.step == CheckInStep.PERMISSION_DENIED
    with pytest.raises(PermissionDenied):
        attempt.capture_location()


def test_camera_only_cannot_capture_location():
    attempt = _attempt(_service())
    attempt.begin(Permissions(camera=True, location=False))
    with pytest.raises(LocationUnavailable):
        attempt.capture_location()


def test_location_only_cannot_scan():
    attempt = _attempt(_service())
    attempt.begin(Permissions(camera=False, location=True))
    attempt.capture_location()
    with pytest.raises(PermissionDenied):
        attempt.scan_token(encode_token(_token()))


def test_provider_failure_is_location_unavailable():
    attempt = _attempt(_service(), FailingLocation())
    attempt.begin(Permissions(camera=True, location=True))
    with pytest.raises(LocationUnavailable):
        attempt.capture_location()
    assert attempt.location is None
    with pytest.raises(LocationUnavailable):
        attempt.scan_token(encode_token(_token()))


def test_persistence_failure_keeps_form_for_resubmit():
    repo, notifier = FakeSessionsRepo(failures=1), RecordingNotifier()
    attempt = _scanned(_service(repo, notifier))
    attempt.fill_form(_form())

    with pytest.raises(PersistenceError):
        attempt.submit()
    assert attempt.step == CheckInStep.AWAITING_FORM
    assert repo.list_sessions() == []
    assert notifier.sent == []

    session = attempt.submit()
    assert repo.list_sessions() == [session]


def test_client_duration_is_ignored():
    attempt = _scanned(_service())
    attempt.fill_form(_form(duration_minutes=999))
    assert attempt.submit().duration_minutes == 90


def test_warning_band_proceeds_but_flags_session():
    attempt = _scanned(_service(), FixedLocation(meters_north=25))
    assert attempt.proximity.decision == ProximityDecision.WARNING

    attempt.fill_form(_form())
    session = attempt.submit()
    assert session.flagged is True
    assert session.anomalies == (AnomalyTag.EXCESSIVE_DISTANCE,)


def test_cancel_discards_pending_submit():
    repo = FakeSessionsRepo()
    attempt = _scanned(_service(repo))
    attempt.fill_form(_form())

    assert attempt.cancel() is True
    assert attempt.step == CheckInStep.CANCELLED
    with pytest.raises(AttemptCancelled):
        attempt.submit()
    assert repo.list_sessions() == []


def test_location_reading_finishing_after_cancel_is_discarded():
    attempt = None

    class CancelWhileReading(FixedLocation):
        def current_fix(self):
            attempt.cancel()
            return super().current_fix()

    attempt = _attempt(_service(), CancelWhileReading())
    attempt.begin(Permissions(camera=True, location=True))
    with pytest.raises(AttemptCancelled):
        attempt.capture_location()
    assert attempt.location is None


def test_notification_failure_does_not_undo_submit():
    repo = FakeSessionsRepo()
    attempt = _scanned(_service(repo, BrokenNotifier()))
    attempt.fill_form(_form())

    session = attempt.submit()
    assert attempt.step == CheckInStep.SUBMITTED
    assert repo.get_by_id(session.id) == session


def test_steps_out_of_order_raise_invalid_step():
    attempt = _attempt(_service())
    with pytest.raises(InvalidStep):
        attempt.scan_token(encode_token(_token()))
    attempt.begin(Permissions(camera=True, location=True))
    with pytest.raises(InvalidStep):
        attempt.fill_form(_form())
    with pytest.raises(InvalidStep):
        attempt.submit()


def test_one_shot_check_in():
    repo = FakeSessionsRepo()
    session = _service(repo).check_in(
        teacher_id="teacher_001",
        teacher_name="Mme Kone",
        permissions=Permissions(camera=True, location=True),
        location_provider=FixedLocation(),
        raw_token=encode_token(_token()),
        form=_form(),
    )
    assert repo.get_by_id(session.id) is session
    assert session.teacher_name == "Mme Kone"


class SlowSessionsRepo(FakeSessionsRepo):
    def __init__(self):
        super().__init__()
        self.writing = threading.Event()
        self.release = threading.Event()

    def create(self, session):
        self.writing.set()
        assert self.release.wait(timeout=5)
        super().create(session)


def test_cancel_during_in_flight_write_waits_and_reports_submitted():
    repo = SlowSessionsRepo()
    attempt = _scanned(_service(repo))
    attempt.fill_form(_form())

    submitted = []
    cancelled = []
    submitter = threading.Thread(target=lambda: submitted.append(attempt.submit()))
    canceller = threading.Thread(target=lambda: cancelled.append(attempt.cancel()))

    submitter.start()
    assert repo.writing.wait(timeout=5)
    canceller.start()
    canceller.join(timeout=0.2)
    assert canceller.is_alive()

    repo.release.set()
    submitter.join(timeout=5)
    canceller.join(timeout=5)

    assert cancelled == [False]
    assert attempt.step == CheckInStep.SUBMITTED
    assert repo.list_sessions() == submitted


def test_cancel_after_failed_write_cancels_the_attempt():
    repo = FakeSessionsRepo(failures=1)
    attempt = _scanned(_service(repo))
    attempt.fill_form(_form())

    with pytest.raises(PersistenceError):
        attempt.submit()
    assert attempt.cancel() is True
    with pytest.raises(AttemptCancelled):
        attempt.submit()
    assert repo.list_sessions() == []
