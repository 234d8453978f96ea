import pytest
import os
import tempfile
from datetime import date, datetime, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PAYROLL_TIMEZONE"] = "UTC"
os.environ["SETTINGS_BACKEND"] = "database"
os.environ["PAYSLIP_DIR"] = tempfile.mkdtemp(prefix="payslips-test-")

from app.core.config import settings
from app.database import Base, get_db
from app.dependencies import get_encryptor, get_mailer
from app.main import app
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingMailer:
    """Keeps outgoing mail in memory instead of talking to SMTP."""

    def __init__(self, fail_with=None):
        self.sent = []
        self.fail_with = fail_with

    def send(self, mail):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(mail)


class StubEncryptor:
    """Marks the document instead of encrypting; records the passwords it saw."""

    def __init__(self, fail_with=None):
        self.calls = []
        self.fail_with = fail_with

    def encrypt(self, document, user_password, owner_password):
        self.calls.append((user_password, owner_password))
        if self.fail_with is not None:
            raise self.fail_with
        return b"ENCRYPTED:" + document


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    import app.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Get a clean database session for each test function with rollback safety."""
    connection = engine.connect()
    transaction = connection.begin()
    # Use sessionmaker with the active connection
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    if transaction.is_active:
        transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory for users; every call gets a unique staff id and email."""
    from app.models.user import User, UserRole
    counter = {"n": 0}

    def _make_user(role=UserRole.STAFF, **overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = dict(
            staff_id=f"WRK-{n:03d}",
            name=f"Employee {n}",
            email=f"employee{n}@werk.test",
            role=role,
            base_salary=5_000_000,
            birth_date=date(1990, 5, 17),
            attendance_enabled=True,
            is_active=True,
        )
        fields.update(overrides)
        user = User(**fields)
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture(scope="function")
def admin_user(make_user):
    """Create a default admin user for tests."""
    from app.models.user import UserRole
    return make_user(role=UserRole.ADMIN, name="Payroll Admin", email="admin@werk.test", staff_id="ADM-001")


@pytest.fixture(scope="function")
def staff_user(make_user):
    return make_user(name="Siti Rahma", email="siti@werk.test", staff_id="WRK-100")


@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create access tokens for a user."""
    from app.services.auth import token_for_user

    def _get_token(user):
        return token_for_user(user)
    return _get_token


@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _auth_headers(user):
        return {"Authorization": f"Bearer {get_token(user)}"}
    return _auth_headers


@pytest.fixture(scope="function")
def mailer():
    return RecordingMailer()


@pytest.fixture(scope="function")
def encryptor():
    return StubEncryptor()


@pytest.fixture(scope="function")
def client(db_session, mailer, encryptor):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_encryptor] = lambda: encryptor
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# Inside the January 2026 cutoff window (2025-12-28 .. 2026-01-27)
IN_WINDOW = datetime(2026, 1, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def add_overtime(db_session):
    from app.models.line_items import Overtime

    def _add_overtime(employee_id, amount=None, status="Approved", hours=None, created_at=IN_WINDOW, activity_date=None):
        """Priced at the flat rate from hours, or at an explicit amount."""
        if hours is None:
            hours = amount / settings.payroll.overtime_hourly_rate
        row = Overtime.from_hours(
            employee_id,
            activity_date or created_at.date(),
            hours,
            activity="Server migration",
            status=status,
            created_at=created_at,
        )
        if amount is not None:
            row.payable_amount = amount
        db_session.add(row)
        db_session.commit()
        return row
    return _add_overtime


@pytest.fixture(scope="function")
def add_claim(db_session):
    from app.models.line_items import Claim

    def _add_claim(employee_id, amount, status="Approved", created_at=IN_WINDOW, activity_date=None):
        row = Claim(
            employee_id=employee_id,
            date=activity_date or created_at.date(),
            category="Transport",
            title="Client visit taxi",
            amount=amount,
            status=status,
            created_at=created_at,
        )
        db_session.add(row)
        db_session.commit()
        return row
    return _add_claim
