"""Per-client request budgets kept in Redis.

Two fixed windows share the same length: a general one for every API call
and a tighter one for photo uploads, which hit the match scorer and disk.
"""

import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from snapquest.redis_client import get_redis

_UPLOAD_PATHS = frozenset({"/api/v1/verify", "/api/v1/submissions"})


def client_key(request: Request) -> str:
    """Bucket by bearer token when present, otherwise by client address."""
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return "token:" + auth[7:][-32:]
    return "ip:" + (request.client.host if request.client else "unknown")


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: Any,  # noqa: ANN401
        requests_per_window: int = 100,
        upload_requests_per_window: int = 20,
        window_seconds: int = 60,
    ) -> None:
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.upload_requests_per_window = upload_requests_per_window
        self.window_seconds = window_seconds

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if not path.startswith("/api/"):
            return await call_next(request)

        try:
            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        if request.method == "POST" and path in _UPLOAD_PATHS:
            bucket, limit = "upload", self.upload_requests_per_window
        else:
            bucket, limit = "api", self.requests_per_window

        window = int(time.time()) // self.window_seconds
        key = f"ratelimit:{bucket}:{client_key(request)}:{window}"
        async with redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, self.window_seconds + 1)
            count, _ = await pipe.execute()

        headers = {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(max(0, limit - count)),
        }
        if count > limit:
            retry_after = self.window_seconds - int(time.time()) % self.window_seconds
            return JSONResponse(
                status_code=429,
                content={"detail": f"Too many {bucket} requests, retry in {retry_after}s"},
                headers={**headers, "Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
