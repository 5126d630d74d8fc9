import logging

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from learnpath.api.health import router as health_router
from learnpath.api.journeys import router as journeys_router
from learnpath.core.errors import (
    JourneyNotFoundError,
    ProviderFailure,
    StepUnavailableError,
    UsageError,
    journey_not_found_handler,
    provider_failure_handler,
    request_id_middleware,
    step_unavailable_handler,
    unhandled_exception_handler,
    usage_error_handler,
    validation_exception_handler,
)
from learnpath.core.logging import configure_logging
from learnpath.core.settings import settings
from learnpath.journey.service import JourneyService

logger = logging.getLogger(__name__)


def create_app(service: JourneyService | None = None) -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(title="Learnpath API", version="0.1.0")
    app.state.journey_service = service or JourneyService()
    app.include_router(health_router)
    app.include_router(journeys_router)
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(JourneyNotFoundError, journey_not_found_handler)
    app.add_exception_handler(UsageError, usage_error_handler)
    app.add_exception_handler(StepUnavailableError, step_unavailable_handler)
    app.add_exception_handler(ProviderFailure, provider_failure_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.on_event("shutdown")
    async def on_shutdown():
        pending = app.state.journey_service.cancel_pending()
        if pending:
            logger.info("Cancelled %s pending path generations on shutdown", pending)

    return app


app = create_app()


def run() -> None:
    uvicorn.run("learnpath.main:app", host=settings.app_host, port=settings.app_port)
