"""FastAPI application factory."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from physiobook.api.routes import health, matching, no_show
from physiobook.errors import PredictionConflict, PredictionNotFound, ValidationError
from physiobook.logging import configure_from_settings, correlation_id_var, new_correlation_id
from physiobook.orchestration.booking import BookingAssessor
from physiobook.orchestration.matching import TherapistMatcher
from physiobook.recommendation.llm import LLMRecommender
from physiobook.settings import Settings
from physiobook.storage.appointments import InMemoryAppointmentHistory
from physiobook.storage.predictions import InMemoryPredictionStore
from physiobook.storage.therapists import InMemoryTherapistDirectory

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

__all__ = ["create_app"]

logger = logging.getLogger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Inject correlation_id and record request metrics."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        cid = request.headers.get("x-correlation-id") or new_correlation_id()
        correlation_id_var.set(cid)
        request.state.request_id = cid

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        response.headers["x-correlation-id"] = cid
        response.headers["x-request-duration-ms"] = f"{duration * 1000:.1f}"
        health.record_request(response.status_code)
        return response


def _resolve_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", "") or request.headers.get(
        "x-correlation-id", ""
    )
    if not request_id:
        request_id = new_correlation_id()
    request.state.request_id = request_id
    return request_id


def _error_payload(error_code: str, message: str, request_id: str, *, details: Any = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error_code": error_code,
        "message": message,
        "request_id": request_id,
    }
    if details is not None:
        payload["details"] = details
    return payload


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    status_code = exc.status_code
    if status_code == 404:
        error_code = "NOT_FOUND"
    elif status_code == 409:
        error_code = "CONFLICT"
    elif 400 <= status_code < 500:
        error_code = "INVALID_REQUEST"
    else:
        error_code = "INTERNAL_ERROR"
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=status_code,
        content=_error_payload(error_code, message, _resolve_request_id(request)),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=_error_payload(
            "INVALID_REQUEST",
            "Request validation failed",
            _resolve_request_id(request),
            details=exc.errors(),
        ),
    )


async def _scoring_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=_error_payload("INVALID_REQUEST", str(exc), _resolve_request_id(request)),
    )


async def _prediction_not_found_handler(request: Request, exc: PredictionNotFound) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=_error_payload("NOT_FOUND", str(exc), _resolve_request_id(request)),
    )


async def _prediction_conflict_handler(request: Request, exc: PredictionConflict) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content=_error_payload("CONFLICT", str(exc), _resolve_request_id(request)),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = _resolve_request_id(request)
    logger.exception("Unhandled application exception", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=_error_payload("INTERNAL_ERROR", "Internal server error", request_id),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Startup
    settings = Settings()
    configure_from_settings(settings)

    recommender: LLMRecommender | None = None
    if settings.llm_api_key:
        recommender = LLMRecommender(
            settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            timeout=settings.llm_timeout_seconds,
        )

    # In-memory collaborators; a deployment swaps these for DB-backed ones
    history = InMemoryAppointmentHistory()
    predictions = InMemoryPredictionStore()
    directory = InMemoryTherapistDirectory()

    app.state.settings = settings
    app.state.appointment_history = history
    app.state.therapist_directory = directory
    app.state.booking = BookingAssessor(
        history=history, predictions=predictions, directory=directory
    )
    app.state.matcher = TherapistMatcher(
        settings=settings, directory=directory, recommender=recommender
    )

    yield

    # Shutdown
    if recommender:
        await recommender.close()


def create_app() -> FastAPI:
    app = FastAPI(
        title="PhysioBook Scoring",
        version="0.1.0",
        description="No-show risk scoring and therapist matching for physiotherapy bookings.",
        lifespan=lifespan,
    )
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ValidationError, _scoring_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PredictionNotFound, _prediction_not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PredictionConflict, _prediction_conflict_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)
    app.add_middleware(ObservabilityMiddleware)
    app.include_router(health.router, tags=["health"])
    app.include_router(no_show.router, tags=["no-show"])
    app.include_router(matching.router, tags=["matching"])
    return app


app = create_app()
