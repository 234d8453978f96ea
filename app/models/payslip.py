from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, JSON
from app.core.timeutils import utcnow
from app.database import Base
from app.models.immutable import append_only


@append_only
class Payslip(Base):
    """
    Snapshot of exactly what was computed and sent to an employee.
    A resend creates a new row; existing rows are never edited.
    """
    __tablename__ = "payslips"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, nullable=False, index=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    base_salary = Column(Float, nullable=False)
    overtime_hours = Column(Float, default=0.0, nullable=False)
    overtime_total = Column(Float, nullable=False)
    claim_total = Column(Float, nullable=False)
    adjustments = Column(JSON, nullable=False, default=list)
    gross_pay = Column(Float, nullable=False)
    net_pay = Column(Float, nullable=False)
    document_path = Column(String, nullable=False)
    is_encrypted = Column(Boolean, nullable=False, default=False)
    recipient_email = Column(String, nullable=False)
    status = Column(String(16), nullable=False, default="Sent")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
