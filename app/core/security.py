import base64
import hashlib
import logging
from cryptography.fernet import Fernet, InvalidToken
from app.core.config import settings

logger = logging.getLogger(__name__)


def _derive_fernet_key(secret: str) -> bytes:
    """Fernet wants 32 url-safe base64 bytes; accept any configured string."""
    return base64.urlsafe_b64encode(hashlib.sha256(secret.encode()).digest())


_cipher = Fernet(_derive_fernet_key(settings.encryption_key))


def encrypt_data(data: str) -> str:
    """Encrypt sensitive string data."""
    if not data:
        return data
    try:
        return _cipher.encrypt(data.encode()).decode()
    except Exception as e:
        logger.error(f"Encryption failed: {e}")
        raise ValueError(f"Encryption failed, refusing to store plaintext: {e}") from e


def decrypt_data(encrypted_data: str) -> str:
    """Decrypt sensitive string data."""
    if not encrypted_data:
        return encrypted_data
    try:
        return _cipher.decrypt(encrypted_data.encode()).decode()
    except InvalidToken:
        logger.warning("Decryption failed (possibly not encrypted)")
        return encrypted_data


def mask_secret(value: str) -> str:
    if not value:
        return ""
    return "********"
