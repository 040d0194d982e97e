from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .auth_service import AuthService
from .config import Settings
from .db import get_db
from .todos import TodoRepository


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_service(s: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> AuthService:
    return AuthService(s, settings)


def get_todo_repo(s: Session = Depends(get_db)) -> TodoRepository:
    return TodoRepository(s)
