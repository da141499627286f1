"""Permissive CORS handling for the recommendation endpoint.

Every response under the configured path prefix carries the CORS headers,
and any OPTIONS request there is answered with 204 before routing.
"""

from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class PreflightCORSMiddleware(BaseHTTPMiddleware):
    """Adds CORS headers and short-circuits preflight requests."""

    def __init__(self, app: Any, path_prefix: str):
        super().__init__(app)
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        if request.method == "OPTIONS":
            return Response(status_code=204, headers=CORS_HEADERS)

        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response
