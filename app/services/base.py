import logging
from sqlalchemy.orm import Session


class BaseService:
    """Common plumbing for request-scoped services: a session and a named logger."""

    def __init__(self, db: Session):
        self.db = db
        self._logger = logging.getLogger(type(self).__module__)

    def log_info(self, message: str, **extra):
        self._logger.info(message, extra=extra or None)
