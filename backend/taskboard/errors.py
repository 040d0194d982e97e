from __future__ import annotations


class TaskboardError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskboardError, ValueError):
    """Malformed or missing input.

    Also a ``ValueError`` so pydantic validators can raise it and keep the message.
    """

    status_code = 400


class AuthError(TaskboardError):
    status_code = 401


class ConflictError(TaskboardError):
    status_code = 400


class NotFoundError(TaskboardError):
    status_code = 404
