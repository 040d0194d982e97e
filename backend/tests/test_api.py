from __future__ import annotations

import dataclasses
import logging

from fastapi.testclient import TestClient

from taskboard.main import create_app
from taskboard.todos import TodoRepository

from conftest import bearer_for, register


def test_health(client):
    assert client.get("/healthz").json() == {"ok": True}
    body = client.get("/health").json()
    assert body["ok"] is True
    assert body["redis"] is False


def test_register_returns_user_and_sets_cookie(client):
    r = register(client)
    assert r.status_code == 201
    body = r.json()
    assert body["user"]["email"] == "a@x.com"
    assert body["user"]["name"] == "Alice"
    assert "password_hash" not in body["user"]

    cookie = r.headers["set-cookie"]
    assert cookie.startswith("session=")
    assert "HttpOnly" in cookie
    assert "Max-Age=604800" in cookie
    assert "Path=/" in cookie
    assert "samesite=lax" in cookie.lower()
    assert "secure" not in cookie.lower()


def test_register_validation_message(client):
    r = client.post("/auth/register", json={"name": "Al", "email": "a@x.com", "password": "123"})
    assert r.status_code == 400
    assert r.json() == {"error": "Password must be at least 6 characters"}

    r = client.post("/auth/register", json={"name": "Al", "email": "nope", "password": "secret1"})
    assert r.json() == {"error": "Invalid email"}

    r = client.post("/auth/register", json={"email": "a@x.com", "password": "secret1"})
    assert r.status_code == 400
    assert r.json()["error"].startswith("name")


def test_register_duplicate_email(client):
    register(client)
    r = register(client, name="Again")
    assert r.status_code == 400
    assert r.json() == {"error": "User already exists"}


def test_login_and_me(client):
    register(client)
    client.cookies.clear()
    assert client.get("/auth/me").status_code == 401

    r = client.post("/auth/login", json={"email": "a@x.com", "password": "secret1"})
    assert r.status_code == 200
    assert r.json()["user"]["email"] == "a@x.com"

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["user"]["name"] == "Alice"


def test_login_failures_look_the_same(client):
    register(client)
    client.cookies.clear()
    wrong = client.post("/auth/login", json={"email": "a@x.com", "password": "not-it"})
    missing = client.post("/auth/login", json={"email": "ghost@x.com", "password": "not-it"})
    assert wrong.status_code == missing.status_code == 401
    assert wrong.json() == missing.json() == {"error": "Invalid credentials"}


def test_logout_clears_session(client):
    r = register(client)
    token = r.cookies["session"]
    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401
    # logging out twice is fine
    assert client.post("/auth/logout").status_code == 200


def test_todos_require_auth(client):
    assert client.get("/todos").status_code == 401
    assert client.post("/todos", json={"title": "x"}).status_code == 401
    assert client.get("/todos", headers={"Authorization": "Bearer junk"}).status_code == 401


def test_buy_milk_scenario(client):
    register(client, email="a@x.com", password="secret1")
    r = client.post("/todos", json={"title": "Buy milk"})
    assert r.status_code == 201
    created = r.json()["todo"]

    todos = client.get("/todos").json()["todos"]
    assert len(todos) == 1
    assert todos[0]["status"] == "todo"
    assert todos[0]["completed"] is False
    assert todos[0]["priority"] == "medium"

    r = client.put(f"/todos/{created['id']}", json={"completed": True, "status": "completed"})
    assert r.status_code == 200

    (after,) = client.get("/todos").json()["todos"]
    assert after["completed"] is True
    assert after["status"] == "completed"
    assert after["updated_at"] > created["updated_at"]
    assert after["created_at"] == created["created_at"]


def test_create_validation(client):
    register(client)
    r = client.post("/todos", json={"title": "  "})
    assert r.status_code == 400
    assert r.json() == {"error": "Title is required"}

    r = client.post("/todos", json={"title": "x", "priority": "critical"})
    assert r.status_code == 400
    assert r.json()["error"].startswith("priority")


def test_create_due_date_forms(client):
    register(client)
    dated = client.post("/todos", json={"title": "x", "due_date": "2024-01-01"}).json()["todo"]
    assert dated["due_date"].startswith("2024-01-01T00:00:00")
    blank = client.post("/todos", json={"title": "y", "due_date": ""}).json()["todo"]
    assert blank["due_date"] is None


def test_get_update_delete_single(client):
    register(client)
    todo_id = client.post("/todos", json={"title": "x", "description": "d"}).json()["todo"]["id"]

    assert client.get(f"/todos/{todo_id}").json()["todo"]["title"] == "x"

    r = client.put(f"/todos/{todo_id}", json={"title": "renamed"})
    assert r.json()["todo"]["title"] == "renamed"
    assert r.json()["todo"]["description"] == "d"

    r = client.put(f"/todos/{todo_id}", json={"title": None})
    assert r.status_code == 400

    assert client.delete(f"/todos/{todo_id}").json() == {"message": "Todo deleted successfully"}
    assert client.get("/todos").json()["todos"] == []
    r = client.delete(f"/todos/{todo_id}")
    assert r.status_code == 404
    assert r.json() == {"error": "Todo not found"}


def test_cannot_touch_another_users_todo(client):
    alice = bearer_for(client, "alice@x.com")
    bob = bearer_for(client, "bob@x.com")

    todo_id = client.post("/todos", json={"title": "alice only"}, headers=alice).json()["todo"]["id"]

    missing = client.get("/todos/99999", headers=bob)
    for r in (
        client.get(f"/todos/{todo_id}", headers=bob),
        client.put(f"/todos/{todo_id}", json={"title": "bob's"}, headers=bob),
        client.delete(f"/todos/{todo_id}", headers=bob),
    ):
        assert r.status_code == 404
        assert r.json() == missing.json()

    assert client.get("/todos", headers=bob).json()["todos"] == []
    assert client.get(f"/todos/{todo_id}", headers=alice).json()["todo"]["title"] == "alice only"


def test_production_cookie_is_secure(settings):
    app = create_app(dataclasses.replace(settings, app_env="production"))
    with TestClient(app, base_url="https://testserver") as c:
        r = register(c)
    assert "secure" in r.headers["set-cookie"].lower()


def test_unexpected_failure_is_a_generic_500(settings, monkeypatch, caplog):
    def broken(self, owner_id):
        raise RuntimeError("connection to store lost")

    monkeypatch.setattr(TodoRepository, "list", broken)
    app = create_app(settings)
    with TestClient(app, raise_server_exceptions=False) as c:
        register(c)
        with caplog.at_level(logging.ERROR, logger="taskboard.main"):
            r = c.get("/todos")

    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}
    assert "connection to store lost" not in r.text
    (record,) = [rec for rec in caplog.records if rec.name == "taskboard.main"]
    assert record.levelno == logging.ERROR
    assert "GET /todos" in record.getMessage()
    assert record.exc_info[0] is RuntimeError


def test_update_after_delete_is_404(client):
    register(client)
    todo_id = client.post("/todos", json={"title": "short lived"}).json()["todo"]["id"]
    assert client.delete(f"/todos/{todo_id}").status_code == 200

    r = client.put(f"/todos/{todo_id}", json={"title": "too late"})
    assert r.status_code == 404
    assert r.json() == {"error": "Todo not found"}


def test_overlong_fields_are_rejected(client):
    r = register(client, name="n" * 129)
    assert r.status_code == 400
    assert r.json() == {"error": "Name must be at most 128 characters"}

    register(client)
    r = client.post("/todos", json={"title": "t" * 1000})
    assert r.status_code == 400
    assert r.json() == {"error": "Title must be at most 256 characters"}
    assert client.get("/todos").json()["todos"] == []
