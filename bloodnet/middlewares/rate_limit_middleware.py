from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request, Response
import time
from fastapi.responses import JSONResponse
from typing import Callable, Dict, List

from bloodnet.utils.logging_config import get_logger

logger = get_logger(__name__)

WINDOW_SECONDS = 60


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-client sliding window rate limiting.

    Emergency lookups are counted in their own, larger bucket so a burst of
    regular traffic cannot lock a client out of them.
    """

    def __init__(
        self,
        app,
        max_requests: int = 60,
        emergency_max_requests: int = 120,
        emergency_marker: str = "/emergency/",
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.emergency_max_requests = emergency_max_requests
        self.emergency_marker = emergency_marker
        self.requests: Dict[str, List[float]] = {}

    def _prune(self, current_time: float) -> None:
        # Clean old entries (simple sliding window); idle clients drop out
        recent = {
            key: [req_time for req_time in times if current_time - req_time < WINDOW_SECONDS]
            for key, times in self.requests.items()
        }
        self.requests = {key: times for key, times in recent.items() if times}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_ip = request.client.host if request.client else "unknown"
        current_time = time.time()

        is_emergency = self.emergency_marker in request.url.path
        bucket = f"emergency:{client_ip}" if is_emergency else client_ip
        limit = self.emergency_max_requests if is_emergency else self.max_requests

        self._prune(current_time)

        history = self.requests.setdefault(bucket, [])
        if len(history) >= limit:
            logger.warning(
                f"Rate limit exceeded for {client_ip}",
                extra={'extra_fields': {'path': request.url.path, 'bucket': bucket, 'limit': limit}}
            )
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": "rate_limit_exceeded",
                    "message": "Too many requests",
                },
                headers={"Retry-After": str(WINDOW_SECONDS)},
            )

        history.append(current_time)

        return await call_next(request)
