from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from ..db.models import Role
from ..errors import AuthorizationError
from ..settings import Settings


@dataclass(frozen=True, slots=True)
class Principal:
    """Decoded bearer credential attached to ``request.state.user``."""

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def sub(self) -> str:
        return str(self.user_id)


class PasswordHasher:
    def __init__(self, schemes: list[str]):
        self._ctx = CryptContext(schemes=schemes, deprecated="auto")

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(settings.password_scheme_list)

    def hash(self, password: str) -> str:
        return self._ctx.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        if not hashed:
            return False
        try:
            return self._ctx.verify(password, hashed)
        except ValueError:
            # Unrecognized or corrupt stored hash.
            return False


class TokenCodec:
    """Issues and verifies HS256 bearer tokens carrying user id and role."""

    def __init__(self, *, secret: str, algorithm: str = "HS256", expire_minutes: int = 60 * 24):
        if not secret:
            raise RuntimeError("JWT_SECRET is not set")
        self._secret = secret
        self._algorithm = algorithm
        self.expire_minutes = int(expire_minutes)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expire_minutes=settings.jwt_expire_minutes,
        )

    def issue(self, *, user_id: int, role: Role, expires_delta: timedelta | None = None) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.expire_minutes))
        claims: dict[str, Any] = {
            "sub": str(user_id),
            "user_id": int(user_id),
            "role": Role(role).value,
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> Principal:
        if not token:
            raise AuthorizationError.unauthenticated("Missing token")
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise AuthorizationError.unauthenticated("Token expired")
        except JWTError:
            raise AuthorizationError.unauthenticated("Invalid token")

        try:
            user_id = int(claims.get("user_id") or claims.get("sub"))
            role = Role(str(claims.get("role") or ""))
        except (TypeError, ValueError):
            raise AuthorizationError.unauthenticated("Invalid token claims")

        return Principal(user_id=user_id, role=role)
