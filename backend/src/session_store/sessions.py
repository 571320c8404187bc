"""LEIA runner sessions: provider session handles and LEIA metadata in the store."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..errors import NotFoundError, ValidationError
from ..model_registry.models import SessionHandle, SessionRecord
from .keys import leia_meta_key, session_key
from .store import SessionStore

if TYPE_CHECKING:
    from ..model_registry.registry import ProviderRegistry

logger = logging.getLogger(__name__)

# Wizard conversations live under `wizard:<id>`, not in session hashes.
_SESSIONLESS_PROVIDERS = frozenset({"wizard"})


def instructions_from_leia(leia: Mapping[str, Any]) -> str:
    """The behaviour description is the instruction set a runner session starts with."""
    behaviour = (leia.get("spec") or {}).get("behaviour") or {}
    return (behaviour.get("spec") or {}).get("description") or ""


def leia_meta_from_leia(leia: Mapping[str, Any], session_id: str) -> dict[str, str]:
    problem_spec = ((leia.get("spec") or {}).get("problem") or {}).get("spec") or {}
    return {
        "leiaId": str(leia.get("id") or session_id),
        "solution": problem_spec.get("solution") or "",
        "solutionFormat": problem_spec.get("solutionFormat") or "text",
    }


class SessionService:
    """
    Creates provider sessions and routes messages and evaluations to the
    provider that owns each session.

    The session hash records the resolved provider name, so a later change of
    the default provider never moves an existing session.
    """

    def __init__(self, store: SessionStore, registry: ProviderRegistry) -> None:
        self.store = store
        self.registry = registry

    async def create_session(self, session_id: str, instructions: str, model_name: str = "default") -> SessionRecord:
        provider = self.registry.get_model(model_name)
        if provider.name in _SESSIONLESS_PROVIDERS:
            raise ValidationError(f"Provider '{provider.name}' does not support runner sessions")

        handle_data = await provider.create_session(instructions=instructions, session_id=session_id)
        record = SessionRecord(
            session_id=session_id,
            model_name=provider.name,
            handle=SessionHandle.from_session_data(handle_data),
        )
        await self.store.hset(session_key(session_id), record.to_hash())
        logger.info("Created session %s on provider %s", session_id, provider.name)
        return record

    async def get_session(self, session_id: str) -> SessionRecord | None:
        data = await self.store.hgetall(session_key(session_id))
        if not data:
            return None
        return SessionRecord.from_hash(data)

    async def require_session(self, session_id: str) -> SessionRecord:
        record = await self.get_session(session_id)
        if record is None:
            raise NotFoundError(f"Session with ID: {session_id} not found", details={"sessionId": session_id})
        return record

    async def send_message(self, session_id: str, message: str) -> dict[str, Any]:
        record = await self.require_session(session_id)
        provider = self.registry.get_model(record.model_name)
        return await provider.send_message(message=message, session_data=record.to_hash(), session_id=session_id)

    async def store_leia_meta(self, session_id: str, metadata: Mapping[str, Any]) -> None:
        await self.store.hset(leia_meta_key(session_id), metadata)

    async def get_leia_meta(self, session_id: str) -> dict[str, str] | None:
        data = await self.store.hgetall(leia_meta_key(session_id))
        return data or None

    async def evaluate_solution(self, session_id: str, result: str) -> dict[str, Any]:
        record = await self.require_session(session_id)
        leia_meta = await self.get_leia_meta(session_id)
        if leia_meta is None:
            raise NotFoundError(
                f"LEIA metadata for session ID: {session_id} not found",
                details={"sessionId": session_id},
            )
        provider = self.registry.get_model(record.model_name)
        return await provider.evaluate_solution(leia_meta=leia_meta, result=result)
