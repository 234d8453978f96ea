from sqlalchemy import func, inspect

from app.core.config import settings
from app.database import engine, session_scope
from app.models.attendance import AttendanceEvent
from app.models.line_items import Claim, Overtime
from app.models.payslip import Payslip


def check_db():
    inspector = inspect(engine)
    print("Tables in DB:")
    for table in inspector.get_table_names():
        print(f" - {table}")
        for col in inspector.get_columns(table):
            print(f"   * {col['name']} ({col['type']})")

    with session_scope() as db:
        print(f"\nOvertime rate: {settings.payroll.overtime_hourly_rate:g} per hour")
        print("Line items by status:")
        for model in (Overtime, Claim):
            rows = db.query(model.status, func.count(model.id)).group_by(model.status).all()
            counts = ", ".join(f"{s}={n}" for s, n in rows) or "none"
            print(f" - {model.__tablename__}: {counts}")

        flagged = db.query(AttendanceEvent).filter(AttendanceEvent.is_suspicious.is_(True)).count()
        print(f"\nSuspicious attendance events: {flagged}")
        print(f"Payslips issued: {db.query(Payslip).count()}")


if __name__ == "__main__":
    check_db()
