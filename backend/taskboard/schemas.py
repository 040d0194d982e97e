from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from .models import TodoPriority, TodoStatus
from .validation import parse_due_date, require_email, require_name, require_password, require_title


class RegisterIn(BaseModel):
    name: str
    email: str
    password: str

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return require_name(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return require_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return require_password(v)


class LoginIn(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return require_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class UserEnvelope(BaseModel):
    user: UserOut
    message: str | None = None


class TodoCreate(BaseModel):
    title: str
    description: str | None = None
    priority: TodoPriority = TodoPriority.MEDIUM
    due_date: datetime | None = None
    # kanban "add to column"
    status: TodoStatus = TodoStatus.TODO

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return require_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def _due_date(cls, v):
        return parse_due_date(v)


class TodoUpdate(BaseModel):
    """Partial update: only keys present in the request body are applied."""

    title: str | None = None
    description: str | None = None
    status: TodoStatus | None = None
    priority: TodoPriority | None = None
    due_date: datetime | None = None
    completed: bool | None = None

    @field_validator("title", "status", "priority", "completed", mode="before")
    @classmethod
    def _not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return require_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def _due_date(cls, v):
        return parse_due_date(v)

    def fields(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        for key in ("status", "priority"):
            if key in data:
                data[key] = data[key].value
        return data


class TodoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    description: str | None = None
    status: TodoStatus
    priority: TodoPriority
    due_date: datetime | None = None
    completed: bool
    created_at: datetime
    updated_at: datetime


class TodoEnvelope(BaseModel):
    todo: TodoOut


class TodoListEnvelope(BaseModel):
    todos: list[TodoOut]


class MessageOut(BaseModel):
    message: str
