from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.ext.hybrid import hybrid_property
from app.core.timeutils import utcnow
from app.database import Base


class Notification(Base):
    """
    In-app notice for one recipient. ``source_type``/``source_id`` point at the
    record that raised it, e.g. ("attendance_event", 42) for a flagged clock-in.
    """
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(16), nullable=False, default="info")  # info | warning | error
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    source_type = Column(String(32), nullable=True)
    source_id = Column(Integer, nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    @hybrid_property
    def is_read(self) -> bool:
        return self.read_at is not None

    @is_read.expression
    def is_read(cls):
        return cls.read_at.isnot(None)
