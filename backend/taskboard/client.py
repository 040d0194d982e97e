from __future__ import annotations

import logging
from typing import Any

import httpx
from fastapi.encoders import jsonable_encoder

from . import views
from .schemas import TodoOut, UserOut

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class TaskboardClient:
    """HTTP client holding a cached copy of the caller's todos.

    The cache is replaced wholesale from ``GET /todos`` after every mutation
    the server acknowledges; ids and timestamps only ever come from the server.
    Failed calls raise ``ApiError`` and are not retried.
    """

    def __init__(self, base_url: str = "http://localhost:8000", http: httpx.Client | None = None):
        self.http = http or httpx.Client(base_url=base_url)
        self.todos: list[TodoOut] = []
        self.user: UserOut | None = None

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> TaskboardClient:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _call(self, method: str, path: str, json: Any = None) -> dict:
        # dates and enums go over the wire as their JSON forms
        body = jsonable_encoder(json) if json is not None else None
        r = self.http.request(method, path, json=body)
        if r.is_error:
            try:
                message = r.json().get("error") or r.reason_phrase
            except ValueError:
                message = r.reason_phrase
            logger.debug("%s %s failed: %s %s", method, path, r.status_code, message)
            raise ApiError(r.status_code, message)
        return r.json()

    # auth

    def register(self, name: str, email: str, password: str) -> UserOut:
        data = self._call("POST", "/auth/register", {"name": name, "email": email, "password": password})
        self.user = UserOut.model_validate(data["user"])
        return self.user

    def login(self, email: str, password: str) -> UserOut:
        data = self._call("POST", "/auth/login", {"email": email, "password": password})
        self.user = UserOut.model_validate(data["user"])
        return self.user

    def logout(self) -> None:
        self._call("POST", "/auth/logout")
        self.user = None
        self.todos = []

    def me(self) -> UserOut:
        self.user = UserOut.model_validate(self._call("GET", "/auth/me")["user"])
        return self.user

    # todos

    def refresh(self) -> list[TodoOut]:
        data = self._call("GET", "/todos")
        self.todos = [TodoOut.model_validate(t) for t in data["todos"]]
        return self.todos

    def get(self, todo_id: int) -> TodoOut:
        return TodoOut.model_validate(self._call("GET", f"/todos/{todo_id}")["todo"])

    def create(self, title: str, **fields: Any) -> TodoOut:
        data = self._call("POST", "/todos", {"title": title, **fields})
        self.refresh()
        return TodoOut.model_validate(data["todo"])

    def update(self, todo_id: int, **fields: Any) -> TodoOut:
        data = self._call("PUT", f"/todos/{todo_id}", fields)
        self.refresh()
        return TodoOut.model_validate(data["todo"])

    def delete(self, todo_id: int) -> None:
        self._call("DELETE", f"/todos/{todo_id}")
        self.refresh()

    def move(self, todo_id: int, status: str) -> TodoOut | None:
        """Drop a card on a kanban column. Same-column drops send nothing."""
        current = next((t for t in self.todos if t.id == todo_id), None)
        if current is not None and current.status.value == status:
            return None
        return self.update(todo_id, **views.move_fields(status))

    def toggle(self, todo_id: int) -> TodoOut:
        current = next((t for t in self.todos if t.id == todo_id), None)
        if current is None:
            current = self.get(todo_id)
        return self.update(todo_id, **views.toggle_fields(current))

    # derived views over the cache

    def view(self, status: str = "all", search: str = "", sort_by: str = "created_at", reverse: bool = False):
        return views.view(self.todos, status, search, sort_by, reverse)

    def board(self) -> dict[str, list[TodoOut]]:
        return views.group_by_status(self.todos)
