import logging
import pytest
from datetime import date, datetime, timedelta, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.exceptions import FeatureDisabledError, NotFoundError, SequenceViolationError
from app.database import Base
from app.models.attendance import AttendanceEvent, AttendanceKind
from app.models.immutable import ImmutableRecordError
from app.models.notification import Notification
from app.models.user import User, UserRole
from app.services.attendance_service import AttendanceLedger, Location, derive_next_kind

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
JAKARTA = Location(-6.200, 106.816, 12.0)
BANDUNG = Location(-6.9, 107.6, 15.0)


class FakeClock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def ledger(db_session, clock):
    return AttendanceLedger(db_session, clock=clock, strict_sequence=False)


class TestDeriveNextKind:
    def test_no_history_means_clock_in(self):
        assert derive_next_kind(None) is AttendanceKind.CLOCK_IN

    def test_after_clock_in_comes_clock_out(self):
        assert derive_next_kind(AttendanceEvent(kind="CLOCK_IN")) is AttendanceKind.CLOCK_OUT

    def test_after_clock_out_comes_clock_in(self):
        assert derive_next_kind(AttendanceEvent(kind="CLOCK_OUT")) is AttendanceKind.CLOCK_IN


class TestRecordEvent:
    def test_first_event_is_not_suspicious_and_uses_server_time(self, ledger, staff_user):
        event = ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)

        assert event.id is not None
        assert event.is_suspicious is False
        assert event.implied_speed_kmh is None
        assert event.server_timestamp.replace(tzinfo=timezone.utc) == T0
        assert event.accuracy_meters == 12.0

    def test_impossible_travel_is_recorded_and_flagged(self, ledger, clock, staff_user, db_session):
        ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        clock.advance(minutes=5)
        second = ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, BANDUNG)

        assert second.is_suspicious is True
        assert second.implied_speed_kmh > 1000
        # Flag, never rejection
        assert db_session.query(AttendanceEvent).filter_by(employee_id=staff_user.id).count() == 2

    def test_suspicious_event_notifies_admins(self, ledger, clock, staff_user, admin_user, db_session, caplog):
        ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        clock.advance(minutes=5)
        with caplog.at_level(logging.WARNING, logger="app.services.attendance_service"):
            ledger.record_event(staff_user.id, AttendanceKind.CLOCK_OUT, BANDUNG)

        notices = db_session.query(Notification).filter_by(user_id=admin_user.id).all()
        assert len(notices) == 1
        assert notices[0].type == "warning"
        assert "Suspicious attendance movement" in caplog.text

    def test_plausible_movement_creates_no_notice(self, ledger, clock, staff_user, admin_user, db_session):
        ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        clock.advance(hours=9)
        event = ledger.record_event(staff_user.id, AttendanceKind.CLOCK_OUT, BANDUNG)

        assert event.is_suspicious is False
        assert event.implied_speed_kmh < 800
        assert db_session.query(Notification).count() == 0

    def test_double_submission_is_not_flagged(self, ledger, clock, staff_user):
        ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        clock.advance(milliseconds=300)
        retry = ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, BANDUNG)

        assert retry.is_suspicious is False
        assert retry.implied_speed_kmh is None

    def test_disabled_attendance_is_refused(self, db_session, clock, make_user):
        user = make_user(attendance_enabled=False)
        ledger = AttendanceLedger(db_session, clock=clock)

        with pytest.raises(FeatureDisabledError) as exc:
            ledger.record_event(user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        assert exc.value.status_code == 403
        assert exc.value.error_code == "FEATURE_DISABLED"

    def test_unknown_employee(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.record_event(424242, AttendanceKind.CLOCK_IN, JAKARTA)

    def test_relaxed_mode_accepts_two_clock_ins(self, ledger, clock, staff_user):
        ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        clock.advance(hours=1)
        again = ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        assert again.kind == "CLOCK_IN"

    def test_strict_mode_rejects_out_of_order_kind(self, db_session, clock, staff_user):
        strict = AttendanceLedger(db_session, clock=clock, strict_sequence=True)
        strict.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        clock.advance(hours=1)

        with pytest.raises(SequenceViolationError) as exc:
            strict.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        assert exc.value.status_code == 409
        assert exc.value.details == {"expected": "CLOCK_OUT", "received": "CLOCK_IN"}

    def test_strict_mode_rejects_clock_out_without_history(self, db_session, clock, staff_user):
        strict = AttendanceLedger(db_session, clock=clock, strict_sequence=True)
        with pytest.raises(SequenceViolationError):
            strict.record_event(staff_user.id, AttendanceKind.CLOCK_OUT, JAKARTA)


class TestStateAndHistory:
    def test_next_expected_kind_follows_latest_event(self, ledger, clock, staff_user):
        assert ledger.next_expected_kind(staff_user.id) is AttendanceKind.CLOCK_IN
        ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        assert ledger.next_expected_kind(staff_user.id) is AttendanceKind.CLOCK_OUT
        clock.advance(hours=8)
        ledger.record_event(staff_user.id, AttendanceKind.CLOCK_OUT, JAKARTA)
        assert ledger.next_expected_kind(staff_user.id) is AttendanceKind.CLOCK_IN

    def test_list_events_most_recent_first(self, ledger, clock, staff_user):
        first = ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        clock.advance(hours=8)
        second = ledger.record_event(staff_user.id, AttendanceKind.CLOCK_OUT, JAKARTA)

        events = ledger.list_events(staff_user.id)
        assert [e.id for e in events] == [second.id, first.id]

    def test_list_events_filters_by_day(self, ledger, clock, staff_user):
        ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        clock.advance(days=1)
        next_day = ledger.record_event(staff_user.id, AttendanceKind.CLOCK_OUT, JAKARTA)

        events = ledger.list_events(staff_user.id, on_date=date(2026, 1, 6))
        assert [e.id for e in events] == [next_day.id]

    def test_list_events_respects_limit(self, ledger, clock, staff_user):
        for _ in range(5):
            ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
            clock.advance(hours=1)
        assert len(ledger.list_events(staff_user.id, limit=3)) == 3


class TestImmutability:
    def test_events_cannot_be_edited(self, ledger, staff_user, db_session):
        event = ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        event.is_suspicious = True
        with pytest.raises(ImmutableRecordError):
            db_session.flush()

    def test_events_cannot_be_deleted(self, ledger, staff_user, db_session):
        event = ledger.record_event(staff_user.id, AttendanceKind.CLOCK_IN, JAKARTA)
        db_session.delete(event)
        with pytest.raises(ImmutableRecordError):
            db_session.flush()


@pytest.fixture
def isolated_session():
    """A standalone database where commits and rollbacks are real."""
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()
    engine.dispose()


def test_notice_failure_does_not_undo_the_event(isolated_session, monkeypatch, caplog):
    from app.services import attendance_service

    staff = User(staff_id="WRK-9", name="Budi", email="budi@werk.test", role=UserRole.STAFF)
    admin = User(staff_id="ADM-9", name="Admin", email="adm@werk.test", role=UserRole.ADMIN)
    isolated_session.add_all([staff, admin])
    isolated_session.commit()

    def broken_notify(*args, **kwargs):
        raise RuntimeError("notification store down")

    monkeypatch.setattr(attendance_service.NotificationService, "notify_admins", staticmethod(broken_notify))
    clock = FakeClock(T0)
    ledger = AttendanceLedger(isolated_session, clock=clock, strict_sequence=False)

    ledger.record_event(staff.id, AttendanceKind.CLOCK_IN, JAKARTA)
    clock.advance(minutes=5)
    with caplog.at_level(logging.ERROR, logger="app.services.attendance_service"):
        ledger.record_event(staff.id, AttendanceKind.CLOCK_IN, BANDUNG)

    stored = isolated_session.query(AttendanceEvent).order_by(AttendanceEvent.id).all()
    assert len(stored) == 2
    assert stored[1].is_suspicious is True
    assert "Could not create admin notice" in caplog.text
