import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger
from contextvars import ContextVar

# Context variable to store request_id for the current task/request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Extra fields that must never reach a log line in clear
REDACTED_KEYS = frozenset({"password", "smtp_password", "token", "authorization", "birth_date"})


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def __init__(self, *args, service: str = "", environment: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service
        self.environment = environment

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)

        # Inject correlation ID if available
        req_id = request_id_var.get()
        if req_id:
            log_record["request_id"] = req_id

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        if self.service:
            log_record["service"] = self.service
        if self.environment:
            log_record["env"] = self.environment

        for key in REDACTED_KEYS.intersection(log_record):
            log_record[key] = "********"


def setup_logging(level: Optional[str] = None):
    from app.core.config import settings

    logger = logging.getLogger()
    # Idempotent: the app module may be imported more than once under test
    if any(isinstance(h.formatter, CustomJsonFormatter) for h in logger.handlers):
        return
    log_handler = logging.StreamHandler()
    log_handler.setFormatter(CustomJsonFormatter(
        "%(timestamp) %(level) %(name) %(message)",
        service=settings.app_name,
        environment=settings.environment,
    ))
    logger.addHandler(log_handler)
    logger.setLevel((level or settings.log_level).upper())

    # Suppress verbose logs from some libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    # PyPDF2 warns on every xref repair it performs
    logging.getLogger("PyPDF2").setLevel(logging.ERROR)
