from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from .auth_service import AuthService
from .config import Settings
from .deps import get_auth_service, get_settings, get_todo_repo
from .models import User
from .schemas import (
    LoginIn,
    MessageOut,
    RegisterIn,
    TodoCreate,
    TodoEnvelope,
    TodoListEnvelope,
    TodoOut,
    TodoUpdate,
    UserEnvelope,
    UserOut,
)
from .session_deps import get_current_user, session_token
from .todos import TodoRepository


router = APIRouter()


def _set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    # httpOnly cookie, Lax for form posts
    response.set_cookie(
        key=settings.session_cookie,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        path="/",
        max_age=settings.session_ttl_seconds,
    )


@router.post("/auth/register", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterIn,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    u, token = auth.register(body.name, body.email, body.password)
    _set_session_cookie(response, token, settings)
    return UserEnvelope(user=UserOut.model_validate(u), message="User created successfully")


@router.post("/auth/login", response_model=UserEnvelope)
def login(
    body: LoginIn,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    u, token = auth.login(body.email, body.password)
    _set_session_cookie(response, token, settings)
    return UserEnvelope(user=UserOut.model_validate(u), message="Login successful")


@router.post("/auth/logout", response_model=MessageOut)
def logout(
    response: Response,
    token: str | None = Depends(session_token),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    auth.logout(token)
    response.delete_cookie(key=settings.session_cookie, path="/")
    return MessageOut(message="Logout successful")


@router.get("/auth/me", response_model=UserEnvelope)
def me(u: User = Depends(get_current_user)):
    return UserEnvelope(user=UserOut.model_validate(u))


@router.get("/todos", response_model=TodoListEnvelope)
def list_todos(u: User = Depends(get_current_user), repo: TodoRepository = Depends(get_todo_repo)):
    return TodoListEnvelope(todos=[TodoOut.model_validate(t) for t in repo.list(int(u.id))])


@router.post("/todos", response_model=TodoEnvelope, status_code=status.HTTP_201_CREATED)
def create_todo(
    body: TodoCreate,
    u: User = Depends(get_current_user),
    repo: TodoRepository = Depends(get_todo_repo),
):
    t = repo.create(
        int(u.id),
        body.title,
        description=body.description,
        priority=body.priority.value,
        due_date=body.due_date,
        status=body.status.value,
    )
    return TodoEnvelope(todo=TodoOut.model_validate(t))


@router.get("/todos/{todo_id}", response_model=TodoEnvelope)
def get_todo(todo_id: int, u: User = Depends(get_current_user), repo: TodoRepository = Depends(get_todo_repo)):
    return TodoEnvelope(todo=TodoOut.model_validate(repo.get(int(u.id), todo_id)))


@router.put("/todos/{todo_id}", response_model=TodoEnvelope)
def update_todo(
    todo_id: int,
    body: TodoUpdate,
    u: User = Depends(get_current_user),
    repo: TodoRepository = Depends(get_todo_repo),
):
    t = repo.update(int(u.id), todo_id, body.fields())
    return TodoEnvelope(todo=TodoOut.model_validate(t))


@router.delete("/todos/{todo_id}", response_model=MessageOut)
def delete_todo(todo_id: int, u: User = Depends(get_current_user), repo: TodoRepository = Depends(get_todo_repo)):
    repo.delete(int(u.id), todo_id)
    return MessageOut(message="Todo deleted successfully")
