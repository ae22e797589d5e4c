"""Request logging middleware for FastAPI.

Logs one line per API request with:
- Request ID (also returned as X-Request-ID)
- HTTP method, path and response status
- Duration
- Client IP address
- Authenticated user, when known
- Request body with sensitive fields redacted (debug level)
"""

import json
import logging
import time
import uuid
from typing import Callable, Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Paths that should not be logged (health checks, docs)
EXCLUDED_PATHS = {
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
}

# Sensitive fields to redact from logs
SENSITIVE_FIELDS = {
    "password",
    "password_hash",
    "token",
    "access_token",
    "sms_api_key",
    "api_key",
    "secret",
    "bank_account_number",
}


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # Take the first IP (original client)
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


def redact_sensitive(data: Any) -> Any:
    """Redact sensitive fields from data."""
    if isinstance(data, dict):
        return {
            k: "[REDACTED]" if k.lower() in SENSITIVE_FIELDS else redact_sensitive(v)
            for k, v in data.items()
        }
    elif isinstance(data, list):
        return [redact_sensitive(item) for item in data]
    return data


def determine_level(status_code: int) -> int:
    """Log level for a response status."""
    if status_code >= 500:
        return logging.ERROR
    elif status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Middleware that logs every API request and its outcome."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()
        client_ip = get_client_ip(request)

        if request.method in ("POST", "PUT", "PATCH") and logger.isEnabledFor(logging.DEBUG):
            body_bytes = await request.body()
            if body_bytes:
                try:
                    body = redact_sensitive(json.loads(body_bytes))
                except ValueError:
                    body = {"raw_size": len(body_bytes)}
                logger.debug("[%s] %s %s body=%s", request_id, request.method, request.url.path, body)

        response = await call_next(request)

        duration_ms = int((time.time() - start_time) * 1000)
        user_id = getattr(request.state, "user_id", None)

        logger.log(
            determine_level(response.status_code),
            "[%s] %s %s -> %d (%dms) ip=%s user=%s",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            client_ip,
            user_id or "-",
        )
        response.headers["X-Request-ID"] = request_id
        return response
