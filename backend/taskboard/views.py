"""Derived views over a fetched todo list.

Nothing here touches the server: the list is fetched whole (newest first) and
every filter, sort and kanban grouping is recomputed from it after each change.
Works on ORM rows, ``TodoOut`` models or plain dicts.
"""
from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from .models import TodoStatus

PRIORITY_ORDER = {"urgent": 0, "high": 1, "medium": 2, "low": 3}
SORT_KEYS = ("created_at", "due_date", "priority", "title")
STATUS_FILTERS = ("all",) + tuple(s.value for s in TodoStatus)


def _get(todo: Any, name: str) -> Any:
    if isinstance(todo, Mapping):
        return todo.get(name)
    return getattr(todo, name, None)


def _value(v: Any) -> Any:
    # enum members -> their plain value
    return getattr(v, "value", v)


def filter_todos(todos: Iterable[Any], status: str = "all", search: str = "") -> list[Any]:
    status = _value(status) or "all"
    if status not in STATUS_FILTERS:
        raise ValueError(f"unknown status filter: {status}")
    needle = (search or "").lower()

    out = []
    for t in todos:
        if status != "all" and _value(_get(t, "status")) != status:
            continue
        if needle:
            title = (_get(t, "title") or "").lower()
            desc = (_get(t, "description") or "").lower()
            if needle not in title and needle not in desc:
                continue
        out.append(t)
    return out


def _title_key(title: str) -> tuple[str, str, str]:
    # accents and case ignored first, then lowercase ahead of uppercase
    base = "".join(c for c in unicodedata.normalize("NFKD", title) if not unicodedata.combining(c))
    return base.casefold(), title.casefold(), title.swapcase()


def sort_todos(todos: Iterable[Any], sort_by: str = "created_at", reverse: bool = False) -> list[Any]:
    """Stable sort for the list view.

    ``created_at`` is newest first; ``reverse`` flips the natural order of
    whichever key is used. Todos without a due date always trail the dated
    ones, whichever direction.
    """
    items = list(todos)
    if sort_by == "created_at":
        return sorted(items, key=lambda t: _get(t, "created_at"), reverse=not reverse)
    if sort_by == "priority":
        return sorted(items, key=lambda t: PRIORITY_ORDER[_value(_get(t, "priority"))], reverse=reverse)
    if sort_by == "title":
        return sorted(items, key=lambda t: _title_key(_get(t, "title") or ""), reverse=reverse)
    if sort_by == "due_date":
        dated = [t for t in items if _get(t, "due_date") is not None]
        undated = [t for t in items if _get(t, "due_date") is None]
        return sorted(dated, key=lambda t: _get(t, "due_date"), reverse=reverse) + undated
    raise ValueError(f"unknown sort key: {sort_by}")


def group_by_status(todos: Iterable[Any]) -> dict[str, list[Any]]:
    """Kanban columns in board order; every column present even when empty."""
    board: dict[str, list[Any]] = {s.value: [] for s in TodoStatus}
    for t in todos:
        board[_value(_get(t, "status"))].append(t)
    return board


def move_fields(status: str) -> dict[str, Any]:
    """Partial update sent when a card is dropped on a column."""
    status = TodoStatus(_value(status)).value
    return {"status": status, "completed": status == TodoStatus.COMPLETED.value}


def toggle_fields(todo: Any) -> dict[str, Any]:
    """Partial update sent by the list view's completion checkbox."""
    done = not bool(_get(todo, "completed"))
    return {
        "completed": done,
        "status": TodoStatus.COMPLETED.value if done else TodoStatus.TODO.value,
    }


def view(
    todos: Sequence[Any],
    status: str = "all",
    search: str = "",
    sort_by: str = "created_at",
    reverse: bool = False,
) -> list[Any]:
    return sort_todos(filter_todos(todos, status, search), sort_by, reverse)
