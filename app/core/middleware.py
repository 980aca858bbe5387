"""
HTTP middleware for the request pipeline.

Registered by app.main.create_app in this order (outermost first):
SecureHeaders -> GZip -> RateLimiting -> CORS -> BodySizeLimit -> Logging -> UnhandledError
"""
import logging
import time
import uuid
from typing import Iterable

from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.logging import bind_request_id

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
        "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
        "object-src 'none';script-src 'self';script-src-attr 'none';"
        "style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}

# Interactive docs load their assets from a CDN
CSP_EXEMPT_PATHS = ("/docs", "/redoc")


class SecureHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            if name == "Content-Security-Policy" and request.url.path.startswith(CSP_EXEMPT_PATHS):
                continue
            response.headers.setdefault(name, value)
        if "server" in response.headers:
            del response.headers["server"]
        return response


class RateLimitingMiddleware(BaseHTTPMiddleware):
    """
    Throttles every request under `prefix` per client address.
    Over-limit requests are answered here with a fixed plain-text message.
    """

    def __init__(self, app: ASGIApp, limiter: Limiter, prefix: str, limit: str, message: str):
        super().__init__(app)
        self.limiter = limiter
        self.prefix = prefix.rstrip("/")
        self.limit = parse(limit)
        self.message = message

    def applies_to(self, path: str) -> bool:
        return path == self.prefix or path.startswith(self.prefix + "/")

    async def dispatch(self, request: Request, call_next) -> Response:
        if self.limiter.enabled and self.applies_to(request.url.path):
            client = get_remote_address(request)
            if not self.limiter.limiter.hit(self.limit, self.prefix, client):
                logger.warning("Rate limit exceeded", extra={"client": client, "path": request.url.path})
                return PlainTextResponse(self.message, status_code=429)
        return await call_next(request)


class BodySizeLimitMiddleware:
    """
    Caps JSON and URL-encoded request bodies.
    Declared oversize bodies are refused before reading; streamed bodies
    are cut off as soon as the running total crosses the cap.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_bytes: int,
        content_types: Iterable[str] = ("application/json", "application/x-www-form-urlencoded"),
    ):
        self.app = app
        self.max_bytes = max_bytes
        self.content_types = tuple(content_types)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        content_type = headers.get("content-type", "").split(";")[0].strip().lower()
        if content_type not in self.content_types:
            await self.app(scope, receive, send)
            return

        declared = headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_bytes:
            logger.warning("Request body too large", extra={"path": scope.get("path"), "bytes": int(declared)})
            response = JSONResponse(
                {"success": False, "message": "Request entity too large"},
                status_code=413,
            )
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise StarletteHTTPException(status_code=413, detail="Request entity too large")
            return message

        await self.app(scope, limited_receive, send)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Development request log: method, path, status and duration."""

    def __init__(self, app: ASGIApp, request_id_header: str = "X-Request-ID"):
        super().__init__(app)
        self.request_id_header = request_id_header

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(self.request_id_header) or str(uuid.uuid4())
        start = time.perf_counter()
        with bind_request_id(request_id):
            response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers[self.request_id_header] = request_id
        logger.info(
            f"{request.method} {request.url.path} {response.status_code} {duration_ms}ms",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """
    Innermost catch for errors no exception handler claimed.
    Answering here keeps the 500 inside the pipeline, so the security and
    CORS headers of the outer layers still apply.
    """

    def __init__(self, app: ASGIApp, handler):
        super().__init__(app)
        self.handler = handler

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return await self.handler(request, exc)
