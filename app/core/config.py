import os
import logging
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


class AttendanceSettings(BaseModel):
    # Commercial-aircraft speed; nobody walks or drives faster than this.
    speed_threshold_kmh: float = Field(default=float(os.getenv("GEO_SPEED_THRESHOLD_KMH", "800")))
    # ~0.7s. Below this two samples are treated as a duplicate submission.
    min_elapsed_hours: float = Field(default=float(os.getenv("GEO_MIN_ELAPSED_HOURS", "0.0002")))
    strict_sequence: bool = Field(default=_env_bool("ATTENDANCE_STRICT_SEQUENCE"))


class PayrollSettings(BaseModel):
    timezone: str = Field(default=os.getenv("PAYROLL_TIMEZONE", "UTC"))
    cutoff_start_day: int = 28
    cutoff_end_day: int = 27
    payslip_dir: str = Field(default=os.getenv("PAYSLIP_DIR", "uploads/payslips"))
    render_timeout_seconds: float = Field(default=float(os.getenv("PAYSLIP_RENDER_TIMEOUT_SECONDS", "30")))
    pdf_encryptor: str = Field(default=os.getenv("PDF_ENCRYPTOR", "pypdf"))  # pypdf | qpdf
    qpdf_binary: str = Field(default=os.getenv("QPDF_BINARY", "qpdf"))
    qpdf_timeout_seconds: float = Field(default=float(os.getenv("QPDF_TIMEOUT_SECONDS", "30")))
    company_name: str = Field(default=os.getenv("COMPANY_NAME", "WERK"))
    currency: str = Field(default=os.getenv("PAYROLL_CURRENCY", "IDR"))
    # Flat rate for overtime entered as hours
    overtime_hourly_rate: float = Field(default=float(os.getenv("OVERTIME_HOURLY_RATE", "40000")))


class Config(BaseModel):
    app_name: str = "WERK Payroll Platform"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./database.db")
    sql_echo: bool = _env_bool("SQL_ECHO")

    # Auth
    secret_key: str = os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 24 hours

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:5173,http://localhost:3000",
            ).split(",")
            if o.strip()
        ]
    )

    rate_limit_enabled: bool = _env_bool("RATE_LIMIT_ENABLED", "true")
    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))
    encryption_key: str = os.getenv("ENCRYPTION_KEY", "dev-only-key-settings-at-rest")

    # Where the SystemSettings document lives: "database" or "file"
    settings_backend: str = os.getenv("SETTINGS_BACKEND", "database")
    settings_file: str = os.getenv("SETTINGS_FILE", "data/settings.json")

    attendance: AttendanceSettings = AttendanceSettings()
    payroll: PayrollSettings = PayrollSettings()


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    _critical_missing = []
    if "dev-only" in settings.secret_key:
        _critical_missing.append("SECRET_KEY")
    if "dev-only" in settings.encryption_key:
        _critical_missing.append("ENCRYPTION_KEY")
    if _critical_missing:
        raise RuntimeError(
            f"FATAL: The following secrets must be set for non-development environments: "
            f"{', '.join(_critical_missing)}. Set them as environment variables."
        )
else:
    if "dev-only" in settings.secret_key:
        _logger.warning("Using insecure default SECRET_KEY - only acceptable in development.")
