import logging
import uuid

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class LearnpathError(Exception):
    """Base class for every error raised by the journey engine."""


class ProviderFailure(LearnpathError):
    """The generative provider failed or returned nothing usable."""

    def __init__(self, message: str, *, provider: str | None = None, reason: str | None = None):
        super().__init__(message)
        self.provider = provider
        self.reason = reason


class ParseError(ProviderFailure):
    """Generated text did not contain the expected structured block."""

    def __init__(self, message: str, *, raw_text: str = ""):
        super().__init__(message, reason="parse_error")
        self.raw_text = raw_text


class UsageError(LearnpathError):
    """An operation was invoked in a state that does not allow it."""


class JourneyNotFoundError(UsageError):
    def __init__(self, thread_id: str):
        super().__init__(f"No learning journey found for thread {thread_id}")
        self.thread_id = thread_id


class JourneyNotActiveError(UsageError):
    def __init__(self, thread_id: str, status: str):
        super().__init__(f"Learning journey for thread {thread_id} is {status}, not active")
        self.thread_id = thread_id
        self.status = status


class JourneyNotCompletedError(UsageError):
    def __init__(self, thread_id: str, status: str):
        super().__init__(f"Learning journey for thread {thread_id} is {status}; complete it first")
        self.thread_id = thread_id
        self.status = status


class StepUnavailableError(LearnpathError):
    """The next step could not be produced yet. Calling advance again retries."""

    def __init__(self, thread_id: str, step_number: int):
        super().__init__(f"Step {step_number} for thread {thread_id} is not available yet")
        self.thread_id = thread_id
        self.step_number = step_number


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_response(
    request: Request,
    *,
    code: str,
    message: str,
    status_code: int,
    details=None,
) -> JSONResponse:
    payload = {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
            "details": details,
        },
    }
    return JSONResponse(status_code=status_code, content=payload)


async def journey_not_found_handler(request: Request, exc: JourneyNotFoundError):
    return error_response(
        request,
        code="journey_not_found",
        message=str(exc),
        status_code=404,
        details={"thread_id": exc.thread_id},
    )


async def usage_error_handler(request: Request, exc: UsageError):
    return error_response(request, code="usage_error", message=str(exc), status_code=409)


async def step_unavailable_handler(request: Request, exc: StepUnavailableError):
    return error_response(
        request,
        code="step_unavailable",
        message=str(exc),
        status_code=503,
        details={"retryable": True, "step_number": exc.step_number},
    )


async def provider_failure_handler(request: Request, exc: ProviderFailure):
    logger.warning("Provider failure | request_id=%s | reason=%s | %s", get_request_id(request), exc.reason, exc)
    return error_response(
        request,
        code="provider_failure",
        message="Content generation is temporarily unavailable. Please retry.",
        status_code=502,
        details={"reason": exc.reason},
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        request,
        code="validation_error",
        message="Request validation failed",
        status_code=422,
        details=exc.errors(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception | request_id=%s", get_request_id(request), exc_info=exc)
    return error_response(
        request,
        code="internal_error",
        message="Internal server error",
        status_code=500,
    )


async def request_id_middleware(request: Request, call_next):
    incoming = request.headers.get("x-request-id")
    request.state.request_id = incoming or str(uuid.uuid4())
    response = await call_next(request)
    response.headers["x-request-id"] = request.state.request_id
    return response
