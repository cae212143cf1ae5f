"""Request-derived values shared by the route modules."""

from uuid import UUID

from fastapi import Request


def get_owner_id(request: Request) -> UUID:
    """Owner of the request, set by AuthMiddleware on protected paths."""
    return request.state.user_id


def get_request_id(request: Request) -> str | None:
    """Request id assigned by RequestIDMiddleware, if it ran."""
    return getattr(request.state, "request_id", None)
