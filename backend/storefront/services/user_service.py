from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..auth.security import PasswordHasher, TokenCodec
from ..db.models import Role, User
from ..db.session import Database
from ..errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from ..observability.logging import get_logger
from ..schemas import TokenOut, UserOut

log = get_logger("user_service")

MIN_PASSWORD_LENGTH = 6


def normalize_email(email: str) -> str:
    return str(email or "").strip().lower()


class UserService:
    def __init__(self, db: Database, *, hasher: PasswordHasher, tokens: TokenCodec):
        self._db = db
        self._hasher = hasher
        self._tokens = tokens

    def register(self, *, name: str, email: str, password: str, role: Role | str = Role.USER) -> UserOut:
        name = str(name or "").strip()
        email = normalize_email(email)
        if not name:
            raise ValidationError("name is required")
        if not email or "@" not in email:
            raise ValidationError("a valid email is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError("role must be one of: admin, user")

        with self._db.session() as s:
            if s.scalar(select(User.id).where(User.email == email)) is not None:
                raise ConflictError("Email already registered")
            user = User(
                name=name,
                email=email,
                hashed_password=self._hasher.hash(password),
                role=role,
            )
            s.add(user)
            try:
                s.flush()
            except IntegrityError:
                # Lost a race with a concurrent registration for the same email.
                raise ConflictError("Email already registered")
            out = UserOut.model_validate(user)

        log.info("user_registered", user_id=out.id, role=out.role.value)
        return out

    def login(self, *, email: str, password: str) -> TokenOut:
        email = normalize_email(email)
        with self._db.session() as s:
            user = s.scalar(select(User).where(User.email == email))
            if user is None or not self._hasher.verify(password, user.hashed_password):
                log.info("login_failed")
                raise AuthenticationError("Invalid email or password")
            user_id, role = user.id, user.role

        token = self._tokens.issue(user_id=user_id, role=role)
        log.info("login_succeeded", user_id=user_id)
        return TokenOut(token=token, expires_in=self._tokens.expire_minutes * 60)

    def get(self, user_id: int) -> UserOut:
        with self._db.session() as s:
            user = s.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found")
            return UserOut.model_validate(user)
