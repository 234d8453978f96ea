"""
Settings store - load/save contract for the runtime SystemSettings document.

Two backends share the same typed schema: a database row (default, written
inside a transaction, SMTP password Fernet-encrypted at rest) and a JSON file
(replaced atomically so a reader never sees a half-written document).
"""
import json
import logging
import os
import tempfile
from typing import Optional, Protocol

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import decrypt_data, encrypt_data, mask_secret
from app.models.system_setting import SystemSetting
from app.schemas.settings import SystemSettings, SystemSettingsRead, SystemSettingsUpdate

logger = logging.getLogger(__name__)

SETTINGS_KEY = "system"


class SettingsStore(Protocol):
    def load(self) -> SystemSettings:
        ...

    def save(self, value: SystemSettings) -> SystemSettings:
        ...


def _seal(value: SystemSettings) -> dict:
    data = value.model_dump(mode="json")
    data["smtp"]["password"] = encrypt_data(data["smtp"]["password"])
    return data


def _unseal(data: dict) -> SystemSettings:
    loaded = SystemSettings.model_validate(data)
    loaded.smtp.password = decrypt_data(loaded.smtp.password)
    return loaded


class DatabaseSettingsStore:
    def __init__(self, db: Session):
        self.db = db

    def load(self) -> SystemSettings:
        row = self.db.get(SystemSetting, SETTINGS_KEY)
        if row is None:
            return SystemSettings()
        try:
            return _unseal(row.value)
        except PydanticValidationError:
            logger.error("Stored system settings are invalid, falling back to defaults")
            return SystemSettings()

    def save(self, value: SystemSettings) -> SystemSettings:
        try:
            row = self.db.get(SystemSetting, SETTINGS_KEY)
            if row is None:
                row = SystemSetting(key=SETTINGS_KEY, value=_seal(value))
                self.db.add(row)
            else:
                row.value = _seal(value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("System settings saved", extra={"backend": "database"})
        return value


class JsonFileSettingsStore:
    def __init__(self, path: str):
        self.path = path

    def load(self) -> SystemSettings:
        if not os.path.exists(self.path):
            return SystemSettings()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return _unseal(json.load(f))
        except (json.JSONDecodeError, PydanticValidationError):
            logger.error(f"Settings file {self.path} is unreadable, falling back to defaults")
            return SystemSettings()

    def save(self, value: SystemSettings) -> SystemSettings:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".settings-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(_seal(value), f, indent=2)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.info("System settings saved", extra={"backend": "file"})
        return value


def get_settings_store(db: Session, backend: Optional[str] = None) -> SettingsStore:
    backend = backend or settings.settings_backend
    if backend == "file":
        return JsonFileSettingsStore(settings.settings_file)
    return DatabaseSettingsStore(db)


def apply_update(current: SystemSettings, update: SystemSettingsUpdate) -> SystemSettings:
    """Merge a partial update; a blank password keeps the stored one."""
    merged = current.model_copy(deep=True)
    if update.daily_email is not None:
        merged.daily_email = update.daily_email
    if update.smtp is not None:
        changes = update.smtp.model_dump(exclude_unset=True, exclude_none=True)
        if not changes.get("password"):
            changes.pop("password", None)
        merged.smtp = merged.smtp.model_copy(update=changes)
    return merged


def to_public(value: SystemSettings) -> SystemSettingsRead:
    data = value.model_dump()
    data["smtp"]["password"] = mask_secret(value.smtp.password)
    return SystemSettingsRead.model_validate(data)
