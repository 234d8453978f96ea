"""
Overtime and Claim records - the payable line items of a payroll run.

Both tables key the owner by a plain employee_id column rather than a
cascading foreign key: deleting an account must never delete money.
"""
from sqlalchemy import Column, Integer, String, Date, DateTime, Float, Text
import enum
from typing import Optional
from app.database import Base
from app.core.config import settings
from app.core.timeutils import utcnow


class LineItemStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    PAID = "Paid"
    REJECTED = "Rejected"


# Statuses that count toward payable totals
PAYABLE_STATUSES = (LineItemStatus.APPROVED.value, LineItemStatus.PAID.value)


class Overtime(Base):
    __tablename__ = "overtimes"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)  # activity date
    hours = Column(Float, nullable=False)
    activity = Column(String, nullable=True)
    customer = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    payable_amount = Column(Float, default=0.0, nullable=False)
    status = Column(String(16), default=LineItemStatus.PENDING.value, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)  # submission

    @classmethod
    def from_hours(cls, employee_id: int, date, hours: float, rate: Optional[float] = None, **fields) -> "Overtime":
        """Overtime priced at the flat hourly rate (OVERTIME_HOURLY_RATE unless given)."""
        if hours <= 0:
            raise ValueError("Overtime hours must be positive")
        rate = settings.payroll.overtime_hourly_rate if rate is None else rate
        return cls(employee_id=employee_id, date=date, hours=hours, payable_amount=hours * rate, **fields)

    def __repr__(self):
        return f"<Overtime #{self.id} emp={self.employee_id} {self.hours}h {self.status}>"


class Claim(Base):
    __tablename__ = "claims"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    category = Column(String, nullable=False)
    title = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(16), default=LineItemStatus.PENDING.value, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Claim #{self.id} emp={self.employee_id} {self.amount} {self.status}>"
