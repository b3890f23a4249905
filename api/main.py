from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from api.observability import (
    monotonic_ms,
    new_request_id,
    request_log_fields,
    reset_request_id,
    set_request_id,
    setup_logging,
)
from api.ratelimit import limiter, rate_limit_exceeded_handler
from api.routes import router
from tempo.config import get_settings
from tempo.errors import TempoError

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "NOT_FOUND": 404,
    "SESSION_MODE_MISMATCH": 409,
    "VALIDATION_FAILED": 422,
    "CONTEXT_UNAVAILABLE": 503,
    "CLARIFY_FAILED": 502,
    "CLARIFY_STATE": 409,
    "GENERATION_FAILED": 502,
    "INVALID_AXES": 502,
    "GENERATION_IN_PROGRESS": 409,
    "GENERATED_NOT_SAVED": 500,
    "DRAFT_REPORT_EMPTY": 422,
    "DRAFT_REPORT_FAILED": 502,
}


def tempo_error_handler(request: Request, exc: TempoError) -> JSONResponse:
    status_code = ERROR_STATUS.get(exc.code, 500)
    log = logger.warning if status_code < 500 else logger.error
    log("tempo_error", extra={"code": exc.code, "path": request.url.path, "status_code": status_code})
    return JSONResponse(status_code=status_code, content={"detail": exc.to_detail()})


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="Tempo Coaching API", version="1.0.0")
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(TempoError, tempo_error_handler)
    app.include_router(router)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context_and_logging(request: Request, call_next: Callable) -> Response:
        header_name = settings.request_id_header_name or "X-Request-ID"
        request_id = (request.headers.get(header_name) or "").strip() or new_request_id()
        token = set_request_id(request_id)
        started_ms = monotonic_ms()
        client_ip = getattr(request.client, "host", None)
        coach_id = (request.headers.get("X-Coach-ID") or "").strip() or None
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "http_request_error",
                extra=request_log_fields(
                    method=request.method,
                    path=request.url.path,
                    status_code=500,
                    duration_ms=monotonic_ms() - started_ms,
                    client_ip=client_ip,
                    coach_id=coach_id,
                ),
            )
            raise
        else:
            response.headers[header_name] = request_id
            logger.info(
                "http_request",
                extra=request_log_fields(
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=monotonic_ms() - started_ms,
                    client_ip=client_ip,
                    coach_id=coach_id,
                ),
            )
            return response
        finally:
            reset_request_id(token)

    return app


app = create_app()
