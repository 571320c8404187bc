"""LEIA runner endpoints: create a session, talk to it, evaluate a result."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field

from src.errors import ConflictError
from src.model_registry.config import DEFAULT_SENTINEL
from src.session_store.sessions import SessionService, instructions_from_leia, leia_meta_from_leia

from .deps import get_sessions, require_runner_key

logger = logging.getLogger(__name__)

router = APIRouter(tags=["leias"], dependencies=[Depends(require_runner_key)])


class RunnerConfiguration(BaseModel):
    provider: str = Field(DEFAULT_SENTINEL, description="Provider name, or 'default'")


class CreateLeiaRequest(BaseModel):
    """Request body for POST /leias."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId", min_length=1)
    leia: dict[str, Any] = Field(..., description="LEIA definition with persona, problem and behaviour")
    runner_configuration: RunnerConfiguration | None = Field(None, alias="runnerConfiguration")


class CreateLeiaResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., serialization_alias="sessionId")
    model_name: str = Field(..., serialization_alias="modelName")
    created: bool = True


class SendMessageRequest(BaseModel):
    message: str = Field(..., min_length=1)


class EvaluationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId", min_length=1)
    result: str = Field(..., description="Student's proposed solution")


@router.post("/leias", status_code=status.HTTP_201_CREATED)
async def create_leia(
    request: CreateLeiaRequest,
    sessions: SessionService = Depends(get_sessions),
) -> CreateLeiaResponse:
    """Start a runner session for a LEIA on the requested (or default) provider."""
    existing = await sessions.get_session(request.session_id)
    if existing is not None:
        raise ConflictError(
            f"Session with ID: {request.session_id} already exists",
            details={"sessionId": request.session_id, "modelName": existing.model_name, "created": False},
        )

    provider = request.runner_configuration.provider if request.runner_configuration else DEFAULT_SENTINEL
    record = await sessions.create_session(
        request.session_id,
        instructions_from_leia(request.leia),
        provider or DEFAULT_SENTINEL,
    )
    await sessions.store_leia_meta(request.session_id, leia_meta_from_leia(request.leia, request.session_id))
    return CreateLeiaResponse(session_id=record.session_id, model_name=record.model_name)


@router.post("/leias/{session_id}/messages")
async def send_leia_message(
    session_id: str,
    request: SendMessageRequest,
    sessions: SessionService = Depends(get_sessions),
) -> dict[str, Any]:
    return await sessions.send_message(session_id, request.message)


@router.post("/evaluation")
async def evaluate_solution(
    request: EvaluationRequest,
    sessions: SessionService = Depends(get_sessions),
) -> dict[str, Any]:
    """Score the student's result against the solution stored when the session was created."""
    evaluation = await sessions.evaluate_solution(request.session_id, request.result)
    logger.info("Evaluated session %s: score=%s", request.session_id, evaluation.get("score"))
    return evaluation
