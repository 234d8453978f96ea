"""
Bootstrap the first super admin and print a bearer token for it.

Usage: python -m scripts.seed_admin [email] [name]
"""
import sys
from datetime import timedelta

from app.database import init_db, session_scope
from app.models.user import User, UserRole
from app.services.auth import token_for_user


def seed(email: str = "admin@werk.local", name: str = "Payroll Admin"):
    init_db()
    with session_scope() as db:
        admin = db.query(User).filter(User.email == email).first()
        if not admin:
            admin = User(
                staff_id="ADM-001",
                name=name,
                email=email,
                role=UserRole.SUPER_ADMIN,
                attendance_enabled=False,
                is_active=True,
            )
            db.add(admin)
            db.flush()
            print(f"Super admin {email} created (id={admin.id})")
        else:
            print(f"Super admin {email} already exists (id={admin.id})")

        print("Bearer token (valid 24h):")
        print(token_for_user(admin, expires_delta=timedelta(hours=24)))


if __name__ == "__main__":
    seed(*sys.argv[1:3])
