from __future__ import annotations

from fastapi import Depends, Header, Request

from .auth_service import AuthService
from .config import Settings
from .deps import get_auth_service, get_settings
from .errors import AuthError
from .models import User


def session_token(
    request: Request,
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> str | None:
    """Session cookie first, then an ``Authorization: Bearer`` header."""
    sid = request.cookies.get(settings.session_cookie)
    if sid:
        return sid
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    return None


def get_current_user(
    token: str | None = Depends(session_token),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    if not token:
        raise AuthError("Not authenticated")
    u = auth.resolve_session(token)
    if u is None:
        raise AuthError("Invalid session")
    return u
