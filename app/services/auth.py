"""
Access token helpers.

Login and password management live in the identity service; this API only
verifies the bearer tokens it issues. ``create_access_token`` is kept for
scripts and tests.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

import jwt

from app.core.config import settings
from app.core.timeutils import utcnow
from app.models.user import User

logger = logging.getLogger(__name__)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire, "type": to_encode.get("type", "access")})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def token_for_user(user: User, expires_delta: Optional[timedelta] = None) -> str:
    role = user.role.value if hasattr(user.role, "value") else user.role
    return create_access_token({"sub": str(user.id), "role": role}, expires_delta)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Payload dict, ``{"error": "TOKEN_EXPIRED"}`` for expired tokens, None when invalid."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        return {"error": "TOKEN_EXPIRED"}
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected token: {e}")
        return None
