"""
Request-scoped service providers.

Routers depend on these instead of constructing collaborators directly, so
tests can swap the mailer or encryptor through ``app.dependency_overrides``.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.routers.auth_deps import get_current_user, require_admin, require_role
from app.services.mailer import Mailer, SmtpMailer
from app.services.pdf_encryption import PdfEncryptor, get_encryptor as _configured_encryptor
from app.services.settings_store import SettingsStore, get_settings_store


def get_store(db: Session = Depends(get_db)) -> SettingsStore:
    return get_settings_store(db)


def get_mailer(store: SettingsStore = Depends(get_store)) -> Mailer:
    return SmtpMailer(store)


def get_encryptor() -> PdfEncryptor:
    return _configured_encryptor()


__all__ = [
    "get_current_user",
    "require_role",
    "require_admin",
    "get_store",
    "get_mailer",
    "get_encryptor",
]
