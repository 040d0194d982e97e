from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from .errors import NotFoundError, ValidationError
from .models import Todo, TodoPriority, TodoStatus, utcnow
from .validation import parse_due_date, require_title

UPDATABLE_FIELDS = ("title", "description", "status", "priority", "due_date", "completed")
NON_NULLABLE_FIELDS = {"title", "status", "priority", "completed"}


def _status(value) -> str:
    try:
        return TodoStatus(value).value
    except ValueError:
        raise ValidationError("status must be todo|in_progress|completed") from None


def _priority(value) -> str:
    try:
        return TodoPriority(value).value
    except ValueError:
        raise ValidationError("priority must be low|medium|high|urgent") from None


def _clean_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"unknown field: {sorted(unknown)[0]}")

    out: dict[str, Any] = {}
    for key, value in fields.items():
        if value is None and key in NON_NULLABLE_FIELDS:
            raise ValidationError(f"{key} cannot be null")
        if key == "title":
            out[key] = require_title(value)
        elif key == "status":
            out[key] = _status(value)
        elif key == "priority":
            out[key] = _priority(value)
        elif key == "due_date":
            out[key] = parse_due_date(value)
        elif key == "completed":
            if not isinstance(value, bool):
                raise ValidationError("completed must be a boolean")
            out[key] = value
        else:
            out[key] = value
    return out


class TodoRepository:
    """Owner-scoped todo storage.

    Every query carries ``user_id == owner_id``; somebody else's todo looks
    exactly like one that never existed.
    """

    def __init__(self, s: Session, clock: Callable[[], datetime] = utcnow):
        self.s = s
        self.clock = clock

    def list(self, owner_id: int) -> list[Todo]:
        q = select(Todo).where(Todo.user_id == owner_id).order_by(Todo.created_at.desc(), Todo.id.desc())
        return list(self.s.execute(q).scalars().all())

    def get(self, owner_id: int, todo_id: int) -> Todo:
        t = self.s.execute(select(Todo).where(Todo.id == todo_id, Todo.user_id == owner_id)).scalars().first()
        if t is None:
            raise NotFoundError("Todo not found")
        return t

    def create(
        self,
        owner_id: int,
        title: str,
        description: str | None = None,
        priority: str = TodoPriority.MEDIUM.value,
        due_date=None,
        status: str = TodoStatus.TODO.value,
    ) -> Todo:
        now = self.clock()
        t = Todo(
            user_id=owner_id,
            title=require_title(title),
            description=description,
            status=_status(status or TodoStatus.TODO.value),
            priority=_priority(priority or TodoPriority.MEDIUM.value),
            due_date=parse_due_date(due_date),
            completed=False,
            created_at=now,
            updated_at=now,
        )
        self.s.add(t)
        self.s.commit()
        self.s.refresh(t)
        return t

    def update(self, owner_id: int, todo_id: int, fields: Mapping[str, Any]) -> Todo:
        values = _clean_fields(fields)
        values["updated_at"] = self.clock()

        stmt = (
            update(Todo)
            .where(Todo.id == todo_id, Todo.user_id == owner_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        res = self.s.execute(stmt)
        if res.rowcount == 0:
            self.s.rollback()
            raise NotFoundError("Todo not found")
        self.s.commit()
        # a concurrent delete can land between the update and this read
        return self.get(owner_id, todo_id)

    def delete(self, owner_id: int, todo_id: int) -> None:
        res = self.s.execute(
            delete(Todo)
            .where(Todo.id == todo_id, Todo.user_id == owner_id)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount == 0:
            self.s.rollback()
            raise NotFoundError("Todo not found")
        self.s.commit()
