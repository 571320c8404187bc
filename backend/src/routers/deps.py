"""Request dependencies: bearer auth and access to the services on app.state."""

from __future__ import annotations

import secrets

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.errors import AuthenticationError
from src.model_registry.registry import ProviderRegistry
from src.session_store.purge import PurgeEngine
from src.session_store.sessions import SessionService
from src.wizard_agent.conversations import ConversationRepository

_bearer = HTTPBearer(auto_error=False)


async def require_runner_key(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> None:
    """Reject requests whose bearer token does not match the configured runner key."""
    expected = request.app.state.runner_key
    if credentials is None:
        raise AuthenticationError("Missing bearer token")
    if not expected or not secrets.compare_digest(credentials.credentials, expected):
        raise AuthenticationError("Invalid bearer token")


def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry


def get_sessions(request: Request) -> SessionService:
    return SessionService(request.app.state.store, request.app.state.registry)


def get_purge_engine(request: Request) -> PurgeEngine:
    return PurgeEngine(request.app.state.store, clock=request.app.state.clock)


def get_conversations(request: Request) -> ConversationRepository:
    return ConversationRepository(request.app.state.store)
