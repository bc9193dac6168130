from __future__ import annotations

import logging
import time
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from medreport.app.api.analyze import router as analyze_router
from medreport.app.api.health import router as health_router
from medreport.app.config.settings import settings
from medreport.app.core.errors import AnalyzerError
from medreport.app.core.logging import request_id_ctx, setup_logging
from medreport.app.providers.registry import registry
from medreport.app.security.cors import cors_kwargs

setup_logging(level=settings.log_level, json_output=settings.log_json, log_file=settings.log_file or None)
logger = logging.getLogger("medreport")

ERROR_STATUS = {
    "RATE_LIMITED": 429,
    "UPSTREAM_TIMEOUT": 504,
    "UPSTREAM_ERROR": 502,
    "INVALID_RESPONSE_FORMAT": 502,
    "MALFORMED_PAYLOAD": 502,
    "UPSTREAM_UNREACHABLE": 503,
    "ANALYSIS_FAILED": 502,
}


def _request_context(request: Request) -> dict:
    return {
        "method": request.method,
        "path": request.url.path,
        "client_ip": request.client.host if request.client else None,
    }


app = FastAPI(title="MedReport Analyzer", version="0.1.0")


@app.on_event("startup")
def startup_event():
    """Build the analysis service on startup."""
    registry.build_registry()


@app.on_event("shutdown")
async def shutdown_event():
    await registry.close()


app.add_middleware(
    CORSMiddleware,
    **cors_kwargs(settings.cors_origins_list),
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "no-referrer"
        return response


app.add_middleware(SecurityHeadersMiddleware)
app.include_router(health_router)
app.include_router(analyze_router)


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        token = request_id_ctx.set(request_id)
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_ctx.reset(token)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        latency = time.time() - start_time
        logger.info(
            "Request completed",
            extra={
                "request_id": getattr(request.state, "request_id", "unknown"),
                "extra_data": {
                    "method": request.method,
                    "route": request.url.path,
                    "status": response.status_code,
                    "latency_ms": round(latency * 1000, 2),
                },
            },
        )

        return response


app.add_middleware(RequestIDMiddleware)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(AnalyzerError)
async def analyzer_exception_handler(request: Request, exc: AnalyzerError):
    request_id = getattr(request.state, "request_id", "unknown")
    status_code = ERROR_STATUS.get(exc.code, 502)
    logger.warning(
        "AnalyzerError",
        extra={
            "request_id": request_id,
            "extra_data": {"status_code": status_code, "error_code": exc.code, "error_message": exc.message},
        },
    )
    content = {"code": exc.code, "message": exc.message, "request_id": request_id}
    headers = None
    if exc.detail and "retry_after_seconds" in exc.detail:
        content["retry_after_seconds"] = exc.detail["retry_after_seconds"]
        headers = {"Retry-After": str(exc.detail["retry_after_seconds"])}
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    request_id = getattr(request.state, "request_id", "unknown")
    detail = exc.detail if isinstance(exc.detail, dict) else {"code": "HTTP_ERROR", "message": str(exc.detail)}
    context = _request_context(request)
    logger.warning(
        "HTTPException",
        extra={
            "request_id": request_id,
            "extra_data": {
                "status_code": exc.status_code,
                "error_code": detail.get("code"),
                "error_message": detail.get("message"),
                **context,
            },
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": detail.get("code", "HTTP_ERROR"), "message": detail.get("message", "Request failed"), "request_id": request_id},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, "request_id", "unknown")
    context = _request_context(request)
    logger.warning(
        "RequestValidationError",
        extra={"request_id": request_id, "extra_data": {"error_detail": exc.errors(), **context}},
    )
    return JSONResponse(
        status_code=400,
        content={"code": "VALIDATION_ERROR", "message": "Invalid request", "detail": jsonable_errors(exc), "request_id": request_id},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")} for err in exc.errors()]


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", "unknown")
    context = _request_context(request)
    logger.error("Unhandled exception", extra={"request_id": request_id, "extra_data": context}, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "request_id": request_id,
        },
    )
