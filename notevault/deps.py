"""Dependency injection for FastAPI routes."""

import asyncio
from typing import Optional

import structlog
from fastapi import Depends, Header, Request

from .domain import Identity
from .services import Services


def get_services(request: Request) -> Services:
    """The Services container built by the app factory."""
    return request.app.state.services


async def get_current_identity(
    request: Request,
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> Identity:
    """
    Authenticate the request from its bearer token.

    Raises AuthenticationError (rendered as 401) before the handler runs if
    the token is missing or does not resolve to a live identity. On success
    the identity is also left on ``request.state.identity``.
    """
    identity = await asyncio.to_thread(services.auth.authenticate, authorization)
    request.state.identity = identity
    structlog.contextvars.bind_contextvars(user_id=identity.id)
    return identity
