from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Any

import bcrypt
import jwt

BCRYPT_MAX_BYTES = 72


def _pw_bytes(pw: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return pw.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(pw: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(_pw_bytes(pw), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(pw: str, pw_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_pw_bytes(pw), pw_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


def make_token(user_id: int, expires_at: datetime, secret: str, alg: str = "HS256") -> str:
    """Signed session token. ``expires_at`` is naive UTC."""
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iat": int(datetime.now(timezone.utc).timestamp()),
        "exp": int(expires_at.replace(tzinfo=timezone.utc).timestamp()),
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(payload, secret, algorithm=alg)


def decode_token(token: str, secret: str, alg: str = "HS256") -> dict[str, Any]:
    """Raises ``jwt.InvalidTokenError`` on a bad signature, bad format or expiry."""
    return jwt.decode(token, secret, algorithms=[alg], options={"require": ["sub", "exp"]})
