# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import user, attendance, line_items, payslip, audit_log, notification, system_setting

# Explicit class exports for cleaner imports
from .user import User, UserRole
from .attendance import AttendanceEvent, AttendanceKind
from .line_items import Overtime, Claim, LineItemStatus
from .payslip import Payslip
from .audit_log import AuditLog
from .notification import Notification
from .system_setting import SystemSetting

__all__ = [
    "User",
    "UserRole",
    "AttendanceEvent",
    "AttendanceKind",
    "Overtime",
    "Claim",
    "LineItemStatus",
    "Payslip",
    "AuditLog",
    "Notification",
    "SystemSetting",
]
