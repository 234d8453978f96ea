"""
User model. Every account is an employee; admins are employees with elevated roles.
"""
from sqlalchemy import Column, Integer, String, Enum, Date, DateTime, Boolean, Float
from sqlalchemy.sql import func
import enum
from app.database import Base


class UserRole(str, enum.Enum):
    """
    - SUPER_ADMIN: bootstrap account, full access
    - ADMIN: payroll and attendance administration
    - STAFF: self-service (clock in/out, own history)
    """
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    STAFF = "staff"


ADMIN_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(String(32), unique=True, index=True, nullable=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=True)
    role = Column(Enum(UserRole), default=UserRole.STAFF, nullable=False)

    birth_date = Column(Date, nullable=True)  # also the payslip PDF password
    base_salary = Column(Float, default=0.0, nullable=False)

    # Capability flags
    attendance_enabled = Column(Boolean, default=True, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def display_name(self) -> str:
        return self.name or self.email
