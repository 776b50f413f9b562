"""
Request logging for the TuneMood API.

Every request outside ``exclude_paths`` gets a request id, bound into the
structlog context for the duration of the request and echoed back in the
``X-Request-ID`` response header.
"""

import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..utils.logging_config import bind_request_context, clear_request_context, get_logger

DEFAULT_EXCLUDED = ("/health", "/docs", "/openapi.json")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs start, completion (or failure) and latency of API requests."""

    def __init__(self, app, exclude_paths: Optional[List[str]] = None):
        super().__init__(app)
        self.logger = get_logger("api.requests")
        self.exclude_paths = set(exclude_paths or DEFAULT_EXCLUDED)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        request_id = uuid.uuid4().hex
        bind_request_context(request_id, request.url.path, self._user_id(request))
        fields = self._request_fields(request)
        self.logger.info("api_request_start", **fields)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                "api_request_error",
                error_type=type(e).__name__,
                error_message=str(e),
                duration_ms=self._elapsed_ms(started),
                **fields
            )
            raise
        else:
            log = self.logger.warning if response.status_code >= 500 else self.logger.info
            log(
                "api_request_complete",
                status_code=response.status_code,
                duration_ms=self._elapsed_ms(started),
                **fields
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_request_context()

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 1)

    def _request_fields(self, request: Request) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "method": request.method,
            "client_ip": self._client_ip(request),
        }
        # Genre lookups are identified by the artist/track being classified
        for param in ("artist", "track"):
            if param in request.query_params:
                fields[param] = request.query_params[param]
        return fields

    @staticmethod
    def _user_id(request: Request) -> Optional[str]:
        return (
            request.path_params.get("user_id")
            or request.headers.get("X-User-ID")
            or request.query_params.get("user_id")
        )

    @staticmethod
    def _client_ip(request: Request) -> str:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"
