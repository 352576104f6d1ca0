"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from snapquest.config import Settings
from snapquest.middleware.error_handler import setup_error_handlers
from snapquest.middleware.logging import setup_logging
from snapquest.middleware.rate_limit import RateLimitMiddleware
from snapquest.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers and the middleware stack.

    Starlette runs middleware in reverse-add order: CORS is outermost so
    its headers also reach 429 responses, and the request id is bound
    before the rate limiter logs anything.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        upload_requests_per_window=settings.upload_rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id", "X-RateLimit-Limit", "X-RateLimit-Remaining", "Retry-After"],
    )
