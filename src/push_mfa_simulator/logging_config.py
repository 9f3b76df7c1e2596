"""
Logging setup for the simulator.

Every record of a request carries its X-Request-ID. The request log also
records what the protocol routes decided (confirmation state, rejection
reason, IAM status), so a failed login can be traced from one line.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from push_mfa_simulator.config import Environment, settings

# Configure logger
logger = logging.getLogger("push_mfa_simulator")

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class RequestContext:
    """Request ID of the request being served, visible to every log record"""

    @classmethod
    def get_request_id(cls) -> Optional[str]:
        return _request_id.get()

    @classmethod
    def set_request_id(cls, request_id: str) -> None:
        _request_id.set(request_id)

    @classmethod
    def clear_request_id(cls) -> None:
        _request_id.set(None)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Reuses the caller's X-Request-ID or assigns one, and echoes it back"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        RequestContext.set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            RequestContext.clear_request_id()
        response.headers["X-Request-ID"] = request_id
        return response


class JsonFormatter(logging.Formatter):
    """One JSON object per record; used in production"""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "environment": str(settings.environment.value),
        }
        if request_id := RequestContext.get_request_id():
            log_record["request_id"] = request_id
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "extra") and record.extra:
            log_record.update(record.extra)
        return json.dumps(log_record)


def setup_logging(app: FastAPI) -> None:
    """Configure logging for the application"""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    if settings.environment == Environment.PRODUCTION:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    root_logger.setLevel(log_level)

    logging.getLogger("push_mfa_simulator").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    app.add_middleware(RequestIdMiddleware)

    logger.info(
        f"Logging configured with level {settings.log_level} "
        f"and {'JSON' if settings.is_production() else 'plain text'} format"
    )


def record_outcome(request: Request, **fields: Any) -> None:
    """Attach protocol outcome fields to the request's "Request processed" record."""
    outcome: Dict[str, Any] = getattr(request.state, "outcome", None) or {}
    outcome.update({k: v for k, v in fields.items() if v is not None})
    request.state.outcome = outcome


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Writes one "Request processed" record per request with the protocol
    outcome a route stored through record_outcome.
    """

    async def dispatch(self, request: Request, call_next):
        # Event streams stay open; health probes are noise
        if request.url.path in ["/health", "/fcm/register-sse"]:
            return await call_next(request)

        start_time = time.time()
        request_id = RequestContext.get_request_id()

        try:
            response = await call_next(request)
            duration_ms = (time.time() - start_time) * 1000

            record = {
                "request": {
                    "method": request.method,
                    "path": request.url.path,
                    "client_host": request.client.host if request.client else None,
                    "request_id": request_id,
                },
                "response": {
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                },
            }
            outcome = getattr(request.state, "outcome", None)
            if outcome:
                record["outcome"] = outcome

            level = logging.WARNING if response.status_code >= 500 else logging.INFO
            logger.log(level, "Request processed", extra={"extra": record})
            return response
        except Exception as e:
            logger.error(
                f"Request failed: {e}",
                exc_info=True,
                extra={"extra": {"request_id": request_id}},
            )
            raise
