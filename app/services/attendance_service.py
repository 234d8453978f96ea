"""
Attendance Ledger - append-only clock event log per employee.

Each employee is either OUT or IN. There is no stored status column: the
state is derived from the most recent event every time it is needed, so the
ledger itself is the only source of truth.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import FeatureDisabledError, NotFoundError, SequenceViolationError
from app.core.timeutils import as_utc, utcnow
from app.models.attendance import AttendanceEvent, AttendanceKind
from app.models.user import User
from app.services.base import BaseService
from app.services.geo_fraud import GeoSample, assess_movement
from app.services.notification import NotificationService


def derive_next_kind(last_event: Optional[AttendanceEvent]) -> AttendanceKind:
    """CLOCK_IN when there is no history or the employee last clocked out."""
    if last_event is None:
        return AttendanceKind.CLOCK_IN
    return AttendanceKind(last_event.kind).opposite


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None


class AttendanceLedger(BaseService):
    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utcnow,
        strict_sequence: Optional[bool] = None,
    ):
        super().__init__(db)
        self._clock = clock
        self._strict = settings.attendance.strict_sequence if strict_sequence is None else strict_sequence

    def latest_event(self, employee_id: int) -> Optional[AttendanceEvent]:
        return (
            self.db.query(AttendanceEvent)
            .filter(AttendanceEvent.employee_id == employee_id)
            .order_by(AttendanceEvent.server_timestamp.desc(), AttendanceEvent.id.desc())
            .first()
        )

    def next_expected_kind(self, employee_id: int) -> AttendanceKind:
        return derive_next_kind(self.latest_event(employee_id))

    def record_event(self, employee_id: int, kind: AttendanceKind, location: Location) -> AttendanceEvent:
        """
        Append a clock event stamped with server time.

        Raises:
            NotFoundError: unknown employee
            FeatureDisabledError: attendance capability switched off
            SequenceViolationError: only when strict sequencing is enabled
        """
        employee = self.db.get(User, employee_id)
        if employee is None:
            raise NotFoundError("Employee not found")
        if not employee.attendance_enabled:
            raise FeatureDisabledError("Attendance")

        kind = AttendanceKind(kind)
        now = self._clock()
        previous = self.latest_event(employee_id)

        if self._strict:
            expected = derive_next_kind(previous)
            if kind is not expected:
                raise SequenceViolationError(expected.value, kind.value)

        suspicious = False
        speed = None
        if previous is not None:
            assessment = assess_movement(
                GeoSample(previous.latitude, previous.longitude, as_utc(previous.server_timestamp)),
                GeoSample(location.latitude, location.longitude, now),
            )
            suspicious = assessment.is_suspicious
            speed = assessment.speed_kmh

        event = AttendanceEvent(
            employee_id=employee_id,
            kind=kind.value,
            server_timestamp=now,
            latitude=location.latitude,
            longitude=location.longitude,
            accuracy_meters=location.accuracy,
            is_suspicious=suspicious,
            implied_speed_kmh=speed,
        )
        try:
            self.db.add(event)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(event)

        if suspicious:
            self._logger.warning(
                f"Suspicious attendance movement for employee {employee_id}: {speed:.0f} km/h",
                extra={"employee_id": employee_id, "event_id": event.id, "speed_kmh": round(speed, 1)},
            )
            self._notify_admins(employee, event)
        return event

    def _notify_admins(self, employee: User, event: AttendanceEvent) -> None:
        # The event is already committed; a notice failure must not undo it
        try:
            NotificationService.notify_admins(
                self.db,
                title="Suspicious attendance",
                message=(
                    f"{employee.display_name} {event.kind} implies "
                    f"{event.implied_speed_kmh:.0f} km/h travel since the previous event"
                ),
                type="warning",
                source_type="attendance_event",
                source_id=event.id,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            self._logger.exception(f"Could not create admin notice for attendance event {event.id}")

    def list_events(
        self,
        employee_id: int,
        on_date: Optional[date] = None,
        limit: int = 50,
    ) -> List[AttendanceEvent]:
        """Events most recent first; ``on_date`` is a local calendar day."""
        query = self.db.query(AttendanceEvent).filter(AttendanceEvent.employee_id == employee_id)
        if on_date is not None:
            tz = ZoneInfo(settings.payroll.timezone)
            day_start = datetime.combine(on_date, time.min, tzinfo=tz)
            query = query.filter(
                AttendanceEvent.server_timestamp >= as_utc(day_start),
                AttendanceEvent.server_timestamp < as_utc(day_start + timedelta(days=1)),
            )
        return (
            query.order_by(AttendanceEvent.server_timestamp.desc(), AttendanceEvent.id.desc())
            .limit(limit)
            .all()
        )
