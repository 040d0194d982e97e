from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from functools import lru_cache

import jwt
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .auth import decode_token, hash_password, make_token, verify_password
from .auth_sessions import SessionRow, expiry_from
from .config import Settings
from .errors import AuthError, ConflictError
from .models import User, utcnow
from .validation import require_email, require_name, require_password

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    return hash_password("not-a-real-password", rounds=rounds)


class AuthService:
    """Turns credentials into sessions and session tokens into users."""

    def __init__(self, s: Session, settings: Settings, clock: Callable[[], datetime] = utcnow):
        self.s = s
        self.settings = settings
        self.clock = clock

    def register(self, name: str, email: str, password: str) -> tuple[User, str]:
        name = require_name(name)
        email = require_email(email)
        require_password(password)

        existing = self.s.execute(select(User).where(User.email == email)).scalars().first()
        if existing is not None:
            raise ConflictError("User already exists")

        now = self.clock()
        u = User(
            name=name,
            email=email,
            password_hash=hash_password(password, rounds=self.settings.bcrypt_rounds),
            created_at=now,
            updated_at=now,
        )
        self.s.add(u)
        try:
            self.s.commit()
        except IntegrityError:
            # lost a race on the unique email
            self.s.rollback()
            raise ConflictError("User already exists") from None
        self.s.refresh(u)
        logger.info("registered user id=%s", u.id)
        return u, self._create_session(int(u.id))

    def login(self, email: str, password: str) -> tuple[User, str]:
        email = (email or "").strip()
        u = self.s.execute(select(User).where(User.email == email)).scalars().first()
        if u is None:
            # same cost as a real check so timing does not reveal unknown emails
            verify_password(password or "", _dummy_hash(self.settings.bcrypt_rounds))
            logger.warning("login failed: unknown email")
            raise AuthError("Invalid credentials")
        if not verify_password(password or "", u.password_hash):
            logger.warning("login failed: bad password for user id=%s", u.id)
            raise AuthError("Invalid credentials")

        logger.info("login user id=%s", u.id)
        return u, self._create_session(int(u.id))

    def logout(self, token: str | None) -> None:
        if not token:
            return
        self.s.execute(delete(SessionRow).where(SessionRow.id == token))
        self.s.commit()
        logger.info("logout")

    def resolve_session(self, token: str | None) -> User | None:
        if not token:
            return None
        try:
            claims = decode_token(token, self.settings.jwt_secret, self.settings.jwt_alg)
        except jwt.InvalidTokenError:
            return None

        row = self.s.execute(select(SessionRow).where(SessionRow.id == token)).scalars().first()
        if row is None or row.expires_at < self.clock():
            return None
        if str(row.user_id) != str(claims.get("sub")):
            return None
        return self.s.get(User, int(row.user_id))

    def _create_session(self, user_id: int) -> str:
        now = self.clock()
        exp = expiry_from(now, self.settings.session_ttl_seconds)
        token = make_token(user_id, exp, self.settings.jwt_secret, self.settings.jwt_alg)
        self.s.add(SessionRow(id=token, user_id=user_id, expires_at=exp, created_at=now))
        self.s.commit()
        return token
