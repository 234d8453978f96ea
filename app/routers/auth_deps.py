"""
RBAC Dependencies.
Resolves the bearer token to a User and enforces admin-only endpoints.
"""
import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from typing import Callable, Sequence
from app.core.exceptions import AccessDeniedError
from app.database import get_db
from app.models.user import ADMIN_ROLES, User, UserRole
from app.services import auth as auth_service

logger = logging.getLogger(__name__)

# Tokens are issued by the identity service; tokenUrl only feeds the OpenAPI docs
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    """
    Extracts and validates the current user from the JWT token.
    """
    payload = auth_service.decode_access_token(token)

    if payload is None:
        logger.warning("Authentication failed: Invalid token")
        raise _unauthorized("Could not validate credentials")

    if payload.get("error") == "TOKEN_EXPIRED":
        logger.info("Authentication failed: Token expired")
        raise _unauthorized("TOKEN_EXPIRED")

    if payload.get("type") != "access":
        logger.warning("Authentication failed: Invalid token type")
        raise _unauthorized("Invalid token type")

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        logger.warning("Authentication failed: Missing or malformed subject in token")
        raise _unauthorized("Missing subject in token")

    user = db.get(User, user_id)
    if user is None:
        logger.warning(f"Authentication failed: User {user_id} not found in database")
        raise _unauthorized("User not found")
    if not user.is_active:
        logger.warning(f"Authentication failed: User {user_id} is inactive")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is inactive"
        )
    return user


def require_role(allowed_roles: Sequence[UserRole]) -> Callable:
    """
    Dependency factory that checks if the user has one of the allowed roles.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(user: User = Depends(require_role(ADMIN_ROLES))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            logger.warning(f"Access denied for user {current_user.id} with role {current_user.role.value}")
            raise AccessDeniedError(
                f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return current_user
    return role_checker


def require_admin():
    """Shorthand for requiring admin roles only."""
    return require_role(ADMIN_ROLES)


def ensure_self_or_admin(current_user: User, employee_id: int) -> None:
    """Staff may only read their own records; admins may read anyone's."""
    if current_user.id != employee_id and not current_user.is_admin:
        raise AccessDeniedError("You can only access your own records")
