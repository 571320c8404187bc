"""Run the FastAPI app for the LEIA runner."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from main_config import REDIS_URL, RUNNER_KEY
from src.errors import ErrorResponse, LeiaRunnerError
from src.logging_config import setup_logging
from src.model_registry import ModelProvider, ProviderRegistry, build_providers
from src.model_registry.providers import WizardProvider
from src.routers import cache_router, leias_router, models_router, wizard_router
from src.session_store import create_store

logger = logging.getLogger(__name__)


async def handle_runner_error(request: Request, exc: LeiaRunnerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_response().model_dump(exclude_none=True))


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    body = ErrorResponse(
        error="bad_request",
        message="Invalid request",
        code=400,
        details={"errors": jsonable_errors(exc)},
    )
    return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, object]]:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]


def create_app(
    store_url: str | None = None,
    providers: Iterable[ModelProvider] | None = None,
    runner_key: str | None = None,
    clock: Callable[[], float] | None = None,
) -> FastAPI:
    """
    Build the app. The store, registry and providers are created in the
    lifespan; tests pass `memory://` and fake providers instead of the
    configured ones.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        store = create_store(store_url or REDIS_URL, clock=clock)
        registry = ProviderRegistry(store)
        candidates = list(providers) if providers is not None else build_providers(registry.config.enabled_providers, registry)
        for provider in candidates:
            if isinstance(provider, WizardProvider) and provider.registry is None:
                provider.bind(registry)
        registry.add_candidates(candidates)
        await registry.initialize()

        app.state.store = store
        app.state.registry = registry
        app.state.runner_key = RUNNER_KEY if runner_key is None else runner_key
        app.state.clock = clock or time.time
        if not app.state.runner_key:
            logger.warning("RUNNER_KEY is not set; every authenticated request will be rejected")
        logger.info("LEIA runner started with providers %s", registry.available_models())
        try:
            yield
        finally:
            for provider in candidates:
                if isinstance(provider, WizardProvider):
                    await provider.catalog.close()
            await store.close()
            logger.info("LEIA runner stopped")

    app = FastAPI(title="LEIA Runner", version="0.1.0", lifespan=lifespan)
    app.add_exception_handler(LeiaRunnerError, handle_runner_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.include_router(leias_router)
    app.include_router(models_router)
    app.include_router(cache_router)
    app.include_router(wizard_router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
