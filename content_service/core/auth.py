"""
Principal resolution and post-level authorization.

Tokens are issued by the auth service; this service only verifies them and
reads the caller's identity and role.
"""
from dataclasses import dataclass
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from typing import Optional
import logging
import uuid

from content_service.core.config import settings
from content_service.core.exceptions import AuthenticationError, PermissionDeniedError

logger = logging.getLogger(__name__)

STAFF_ROLES = ("admin", "editor", "author")
PRIVILEGED_ROLES = ("admin", "editor")

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    id: uuid.UUID
    role: str
    email: Optional[str] = None
    username: Optional[str] = None

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def decode_access_token(token: str) -> Optional[Principal]:
    """
    Verify a JWT and extract the principal.

    Returns:
        Principal if the token is valid, None otherwise
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    raw_id = payload.get("userId") or payload.get("sub")
    role = payload.get("role")
    if raw_id is None or not role:
        return None

    try:
        user_id = uuid.UUID(str(raw_id))
    except ValueError:
        return None

    return Principal(
        id=user_id,
        role=role,
        email=payload.get("email"),
        username=payload.get("username") or None,
    )


def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Principal]:
    if credentials is None:
        return None
    principal = decode_access_token(credentials.credentials)
    if principal is None:
        raise AuthenticationError("Invalid token")
    return principal


def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    if principal is None:
        raise AuthenticationError("Access token required")
    return principal


def require_staff(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Authors, editors and admins."""
    if not principal.is_staff:
        raise PermissionDeniedError("Insufficient permissions")
    return principal


def require_editor(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_privileged:
        raise PermissionDeniedError("Insufficient permissions")
    return principal


def can_manage_post(principal: Optional[Principal], author_id: uuid.UUID) -> bool:
    if principal is None:
        return False
    return principal.id == author_id or principal.is_privileged


def ensure_can_manage_post(principal: Optional[Principal], author_id: uuid.UUID, action: str) -> None:
    if not can_manage_post(principal, author_id):
        logger.warning(
            f"Denied {action} for principal {principal.id if principal else 'anonymous'} "
            f"on post owned by {author_id}"
        )
        raise PermissionDeniedError(f"Not authorized to {action} this post")
