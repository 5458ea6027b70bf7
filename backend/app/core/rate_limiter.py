"""
Rate limiting middleware.

Two budgets:
- a general per-client budget for every route
- a smaller per-operator budget for issuing AI commands, since each one
  drives up to AI_MAX_ITERATIONS paid model calls

Uses in-memory storage. With multiple workers each process keeps its own
windows, so the effective limit is multiplied by the worker count.
"""
import time
import logging
from collections import defaultdict
from typing import Dict, Tuple
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings

logger = logging.getLogger(__name__)

UNLIMITED_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


class RateLimiter:
    """In-memory rate limiter with sliding window."""

    def __init__(self, requests: int = 100, window: int = 60):
        """
        Args:
            requests: Maximum requests allowed in window
            window: Time window in seconds
        """
        self.requests = requests
        self.window = window
        # Dict[client_id, List[timestamp]]
        self.clients: Dict[str, list] = defaultdict(list)
        self.last_cleanup = time.time()

    def is_allowed(self, client_id: str) -> Tuple[bool, int]:
        """
        Check if client is allowed to make request.

        Returns:
            (allowed: bool, remaining: int)
        """
        now = time.time()

        if now - self.last_cleanup > 300:
            self._cleanup(now)
            self.last_cleanup = now

        cutoff = now - self.window
        timestamps = [ts for ts in self.clients[client_id] if ts > cutoff]
        self.clients[client_id] = timestamps

        if len(timestamps) < self.requests:
            timestamps.append(now)
            return True, self.requests - len(timestamps)
        return False, 0

    def reset(self):
        self.clients.clear()

    def _cleanup(self, now: float):
        """Remove expired entries to prevent memory bloat."""
        cutoff = now - self.window
        for client_id in list(self.clients.keys()):
            timestamps = [ts for ts in self.clients[client_id] if ts > cutoff]
            if timestamps:
                self.clients[client_id] = timestamps
            else:
                del self.clients[client_id]

        logger.info(f"Rate limiter cleanup: {len(self.clients)} active clients")


rate_limiter = RateLimiter(
    requests=settings.RATE_LIMIT_REQUESTS,
    window=settings.RATE_LIMIT_WINDOW_SECONDS
)

command_rate_limiter = RateLimiter(
    requests=settings.AI_COMMAND_RATE_LIMIT,
    window=settings.RATE_LIMIT_WINDOW_SECONDS
)


def is_command_request(request: Request) -> bool:
    """POST .../ai-command (not apply/rollback/history)."""
    return request.method == "POST" and request.url.path.rstrip("/").endswith("/ai-command")


def _too_many(limit: int) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "detail": f"Rate limit exceeded. Try again in {settings.RATE_LIMIT_WINDOW_SECONDS} seconds."
        },
        headers={
            "Retry-After": str(settings.RATE_LIMIT_WINDOW_SECONDS),
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": "0",
        },
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply the general budget to all requests and the command budget to AI commands."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        # Operators share office IPs, so key on operator identity when the gateway supplies it
        operator_id = request.headers.get("x-operator-id", "")
        if operator_id:
            client_id = f"operator:{operator_id}"
        else:
            client_ip = request.client.host if request.client else "unknown"
            client_id = f"ip:{client_ip}"

        allowed, remaining = rate_limiter.is_allowed(client_id)
        if not allowed:
            logger.warning(
                f"Rate limit exceeded for {client_id} on {request.method} {request.url.path}"
            )
            return _too_many(settings.RATE_LIMIT_REQUESTS)

        if is_command_request(request):
            command_allowed, _ = command_rate_limiter.is_allowed(client_id)
            if not command_allowed:
                logger.warning(f"AI command budget exhausted for {client_id}")
                return _too_many(settings.AI_COMMAND_RATE_LIMIT)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(settings.RATE_LIMIT_REQUESTS)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Window"] = str(settings.RATE_LIMIT_WINDOW_SECONDS)

        return response
