"""
CampusNotes Backend: Request Identity and Roles
=================================================

What:  Resolves a bearer token to a typed `Principal(user_id, role)` and
       provides role-check dependencies for the routers.
Why:   The role string inside the token is checked exactly once, here, and
       turned into the closed `Role` enum. Services receive the typed
       principal and never parse tokens or compare raw strings.
How:   python-jose decodes HS256 JWTs; passlib hashes faculty passwords.

Token Payload:
    {"sub": "<user uuid>", "role": "faculty" | "admin" | ..., "exp": ...}
    Unknown role strings resolve to Role.OTHER (browse and download only).
"""

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from campusnotes.config import settings
from campusnotes.exceptions import AuthenticationError, RoleDeniedError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


class Role(str, enum.Enum):
    FACULTY = "faculty"
    ADMIN = "admin"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Role":
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as trusted by every service."""

    user_id: uuid.UUID
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


# ── Passwords ─────────────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


# ── Tokens ────────────────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    role: Role,
    expires_in: Optional[timedelta] = None,
) -> str:
    """Issue a signed token for `user_id`; used by the auth service and tests."""
    expire = datetime.now(timezone.utc) + (
        expires_in or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {"sub": str(user_id), "role": role.value, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Principal:
    """
    Verify signature and expiry, then build the Principal.

    Raises:
        AuthenticationError: bad signature, expired, or malformed subject.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError(
            message="Invalid or expired token",
            context={"reason": str(e)},
        )

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError(message="Invalid token payload")

    return Principal(user_id=user_id, role=Role.parse(payload.get("role")))


# ── Dependencies ──────────────────────────────────────────────────────────

async def get_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    """
    FastAPI dependency: the caller behind the Authorization header.

    The resolved principal is also kept on `request.state.principal` for the
    access log.
    """
    if credentials is None:
        raise AuthenticationError(message="Missing bearer token")
    principal = decode_access_token(credentials.credentials)
    request.state.principal = principal
    return principal


def require_role(*roles: Role) -> Callable:
    """
    Build a dependency that admits only callers holding one of `roles`.

    Example:
        @router.post("/upload")
        async def upload(principal: Principal = Depends(require_role(Role.FACULTY))):
            ...
    """
    allowed = frozenset(roles)
    names = " or ".join(r.value for r in roles)

    async def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in allowed:
            raise RoleDeniedError(
                message=f"{names.capitalize()} access required",
                required=names,
                context={"user_id": str(principal.user_id), "role": principal.role.value},
            )
        return principal

    return dependency


require_admin = require_role(Role.ADMIN)
require_faculty = require_role(Role.FACULTY)
