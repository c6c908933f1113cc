from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.requests import ClientDisconnect

from src.common.errors import EnvelopeError, InternalError

from .admission import mutate_review
from .settings import CONFIG_PATH_ENV, Settings, load_settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_settings() -> Settings:
    config_path = os.getenv(CONFIG_PATH_ENV)
    return load_settings(Path(config_path) if config_path else None)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the webhook app; the mutate route is mounted at ``settings.mutate_path``."""

    mount_settings = settings or get_settings()
    app = FastAPI(
        title="Pod Scheduling Constraint Webhook",
        description="Injects pod affinity and topology spread constraints declared in pod annotations.",
        version="0.1.0",
    )
    if settings is not None:
        app.dependency_overrides[get_settings] = lambda: settings

    @app.exception_handler(EnvelopeError)
    async def _envelope_error(_request: Request, exc: EnvelopeError) -> JSONResponse:
        logger.info("rejected admission request: %s", exc)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=exc.to_body())

    @app.exception_handler(InternalError)
    async def _internal_error(_request: Request, exc: InternalError) -> JSONResponse:
        logger.error("failed to build admission response: %s", exc, exc_info=exc.cause)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=exc.to_body())

    @app.get("/healthz")
    def healthz() -> Dict[str, str]:
        return {"status": "UP"}

    @app.post(mount_settings.mutate_path)
    async def mutate(
        request: Request,
        current: Settings = Depends(get_settings),
    ) -> Dict[str, Any]:
        try:
            body = await request.body()
        except ClientDisconnect as exc:
            raise EnvelopeError("client disconnected", "invalid request: failed to read body") from exc
        return mutate_review(body, current)

    return app


app = create_app()


__all__ = ["app", "create_app", "get_settings"]
