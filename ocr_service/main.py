from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ocr_service.api.routes import router
from ocr_service.core.config import settings
from ocr_service.core.exceptions import ConfigurationError, InvalidInputError
from ocr_service.core.logging import configure_logging
from ocr_service.schemas import ErrorResponse

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="Vision OCR Extractor", version="0.1.0")
    app.include_router(router)

    @app.exception_handler(InvalidInputError)
    async def _invalid_input(request: Request, exc: InvalidInputError) -> JSONResponse:
        logger.info("invalid_input", extra={"error": str(exc), "details": exc.details})
        body = ErrorResponse(error=str(exc), details=exc.details)
        return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))

    @app.exception_handler(ConfigurationError)
    async def _not_configured(request: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error("vision_model_not_configured", extra={"error": str(exc)})
        body = ErrorResponse(error="Vision model is not configured", details=str(exc))
        return JSONResponse(status_code=503, content=body.model_dump(exclude_none=True))

    @app.on_event("startup")
    async def _startup() -> None:
        logger.info(
            "startup",
            extra={
                "vision_provider": settings.vision_provider,
                "primary_model": settings.primary_model,
                "fallback_model": settings.fallback_model,
            },
        )
        if settings.vision_provider == "groq" and not settings.groq_api_key:
            logger.warning("groq_api_key_missing")

    return app


app = create_app()
