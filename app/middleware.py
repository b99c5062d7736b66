import logging
import math
import time

from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
        "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
        "object-src 'none';script-src 'self';script-src-attr 'none';"
        "style-src 'self' https: 'unsafe-inline'"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Referrer-Policy": "no-referrer",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed window request budget per client address, e.g. ``100 per 15 minutes``."""

    def __init__(self, app, limit: str, storage=None):
        super().__init__(app)
        self.item = parse(limit)
        self.limiter = FixedWindowRateLimiter(storage or MemoryStorage())

    @staticmethod
    def client_key(request: Request) -> str:
        if request.client is None:
            return "anonymous"
        return request.client.host

    async def dispatch(self, request: Request, call_next):
        key = self.client_key(request)
        if not self.limiter.hit(self.item, key):
            reset_at, _ = self.limiter.get_window_stats(self.item, key)
            retry_after = max(0, math.ceil(reset_at - time.time()))
            logger.warning("Rate limit exceeded for %s", key)
            return PlainTextResponse(
                "Too many requests, please try again later.",
                status_code=429,
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
