"""
Attendance Event Model - append-only clock-in/clock-out ledger
"""
from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean
import enum
from app.database import Base
from app.core.timeutils import utcnow
from app.models.immutable import append_only


class AttendanceKind(str, enum.Enum):
    CLOCK_IN = "CLOCK_IN"
    CLOCK_OUT = "CLOCK_OUT"

    @property
    def opposite(self) -> "AttendanceKind":
        return AttendanceKind.CLOCK_OUT if self is AttendanceKind.CLOCK_IN else AttendanceKind.CLOCK_IN


@append_only
class AttendanceEvent(Base):
    __tablename__ = "attendance_events"

    id = Column(Integer, primary_key=True, index=True)
    # No FK: the ledger outlives the account it belongs to
    employee_id = Column(Integer, nullable=False, index=True)
    kind = Column(String(16), nullable=False)
    # Set by the server only; clients never supply time
    server_timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy_meters = Column(Float, nullable=True)
    is_suspicious = Column(Boolean, default=False, nullable=False, index=True)
    implied_speed_kmh = Column(Float, nullable=True)

    def __repr__(self):
        flag = " SUSPICIOUS" if self.is_suspicious else ""
        return f"<AttendanceEvent {self.employee_id} {self.kind} @ {self.server_timestamp}{flag}>"
