"""CORS, write-request rate limiting, and security headers middleware."""

import time
from collections import defaultdict
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from ballot_api.core.config import Settings

_DEFAULT_TRUSTED_HEADERS = ["X-Forwarded-For", "X-Real-IP"]
_WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_WINDOW_SECONDS = 60.0


def get_client_ip(request: Request, trusted_headers: list[str] | None = None) -> str:
    """Extract the client IP from trusted proxy headers or the direct connection.

    For X-Forwarded-For the leftmost address is used.

    Args:
        request: The incoming Starlette request.
        trusted_headers: Header names to check, in priority order.

    Returns:
        The client IP address string, or "unknown" if not determinable.
    """
    headers = trusted_headers if trusted_headers is not None else _DEFAULT_TRUSTED_HEADERS

    for header in headers:
        value = request.headers.get(header, "").strip()
        if not value:
            continue
        if header.lower() == "x-forwarded-for":
            return value.split(",")[0].strip()
        return value

    if request.client:
        return request.client.host
    return "unknown"


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow cross-origin requests from the configured origins only."""
    kwargs: dict[str, Any] = {
        "allow_credentials": True,
        "allow_methods": ["GET", "POST", "PATCH", "OPTIONS"],
        "allow_headers": ["*"],
        "allow_origins": settings.cors_origin_list,
    }
    app.add_middleware(CORSMiddleware, **kwargs)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory sliding-window rate limit on write requests.

    Only POST/PUT/PATCH/DELETE count against the limit, so dashboards can
    poll live results freely while ballot submission stays throttled per IP.
    """

    def __init__(
        self,
        app: ASGIApp,
        requests_per_minute: int = 100,
        trusted_proxy_headers: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.trusted_proxy_headers = trusted_proxy_headers
        self._request_counts: dict[str, list[float]] = defaultdict(list)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Reject the request with 429 once the client's write budget is spent."""
        if request.method not in _WRITE_METHODS:
            return await call_next(request)

        client_ip = get_client_ip(request, self.trusted_proxy_headers)
        now = time.monotonic()
        window_start = now - _WINDOW_SECONDS

        recent = [t for t in self._request_counts[client_ip] if t > window_start]
        if len(recent) >= self.requests_per_minute:
            self._request_counts[client_ip] = recent
            retry_after = max(1, int(recent[0] - window_start) + 1)
            return Response(
                content='{"detail":"Too many requests, please try again later"}',
                status_code=429,
                media_type="application/json",
                headers={"Retry-After": str(retry_after)},
            )

        recent.append(now)
        self._request_counts[client_ip] = recent
        return await call_next(request)
