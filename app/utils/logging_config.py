"""
Structured Logging Configuration.

JSON-structured logs outside development, request correlation ids,
caller id context and operation timing.
"""
import os
import sys
import json
import time
import asyncio
import logging
from typing import Dict, Any, Optional
from datetime import datetime
from uuid import uuid4
from contextvars import ContextVar
from functools import wraps

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

# Context variables for request-scoped data
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str] = ContextVar("user_id", default="")
extra_context_var: ContextVar[Dict[str, Any]] = ContextVar("extra_context", default={})

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "botocore", "openai")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, carrying the request, caller and pipeline context."""

    def __init__(self):
        super().__init__()
        self.service_name = os.getenv("SERVICE_NAME", "study-buddy-api")

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "request_id": request_id_var.get() or None,
            "user_id": user_id_var.get() or None,
        }

        # pipeline=matchmaking | conversation_starters, set by LogContext
        log_entry.update(extra_context_var.get())

        # error_id/error_code from create_error_response
        for key in ("error_id", "error_code"):
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = f"{record.exc_info[0].__name__}: {record.exc_info[1]}"

        # event, duration_ms, status_code ... from middleware, log_performance and LoggingHook
        log_entry.update(getattr(record, "extra_fields", {}))

        return json.dumps({k: v for k, v in log_entry.items() if v is not None}, default=str)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Binds request and caller ids to the log context and logs each request's outcome."""

    def __init__(self, app, logger_name: str = "api"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request_id_var.set(request_id)
        user_id_var.set(request.headers.get("X-User-ID", ""))

        route = f"{request.method} {request.url.path}"
        fields = {"method": request.method, "path": request.url.path}
        self.logger.info(f"Request started: {route}", extra={"extra_fields": {"event": "request_started", **fields}})

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            fields["duration_ms"] = _elapsed_ms(start)
            self.logger.error(
                f"Request failed: {route}",
                extra={"extra_fields": {"event": "request_failed", **fields}},
                exc_info=True
            )
            raise

        fields.update(status_code=response.status_code, duration_ms=_elapsed_ms(start))
        self.logger.info(
            f"Request completed: {route} - {response.status_code}",
            extra={"extra_fields": {"event": "request_completed", **fields}}
        )
        response.headers["X-Request-ID"] = request_id
        return response


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def setup_logging(level: Optional[str] = None, json_format: bool = True) -> None:
    """Configure the root logger from LOG_LEVEL; JSON output everywhere but development."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if json_format and os.getenv("ENVIRONMENT", "development") != "development":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info(f"Logging configured: level={level}, json_format={json_format}")


def log_performance(operation_name: Optional[str] = None):
    """Log how long a coroutine took and whether it raised."""
    def decorator(func):
        if not asyncio.iscoroutinefunction(func):
            raise TypeError("log_performance only decorates coroutine functions")
        op_name = operation_name or func.__name__
        logger = logging.getLogger(func.__module__)

        @wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(f"Operation failed: {op_name}", extra={"extra_fields": {
                    "event": "operation_failed",
                    "operation": op_name,
                    "duration_ms": _elapsed_ms(start),
                    "error_type": type(e).__name__,
                }})
                raise
            logger.info(f"Operation completed: {op_name}", extra={"extra_fields": {
                "event": "operation_completed",
                "operation": op_name,
                "duration_ms": _elapsed_ms(start),
            }})
            return result

        return wrapper

    return decorator


class LogContext:
    """Context manager for scoped logging context."""

    def __init__(self, **kwargs):
        self.context = kwargs
        self.previous_context = {}

    def __enter__(self):
        self.previous_context = extra_context_var.get()
        extra_context_var.set({**self.previous_context, **self.context})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        extra_context_var.set(self.previous_context)
        return False
