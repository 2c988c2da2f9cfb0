from __future__ import annotations

import re
import secrets as secrets_module
import uuid

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{8,128}$")


def coerce_request_id(value: str | None) -> str:
    if value and _REQUEST_ID_RE.fullmatch(value):
        return value
    return uuid.uuid4().hex


def parse_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2:
        return None
    scheme, token = parts[0].strip(), parts[1].strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def constant_time_equals(a: str, b: str) -> bool:
    return secrets_module.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def _is_protected_path(path: str) -> bool:
    return path.startswith("/v1/")


def install_middlewares(app, *, cfg) -> None:
    """Request ids, security headers, body limit, optional bearer auth and CORS."""
    import structlog
    from fastapi.responses import JSONResponse
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.requests import Request

    from .api_models import make_error_response

    def _error(status_code: int, request: Request, *, message: str, kind: str, headers=None):
        return JSONResponse(
            status_code=status_code,
            headers=headers,
            content=make_error_response(
                message=message,
                kind=kind,
                code=getattr(request.state, "request_id", None),
            ).model_dump(),
        )

    class RequestIdMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next):
            request_id = coerce_request_id(request.headers.get("x-request-id"))
            request.state.request_id = request_id
            structlog.contextvars.bind_contextvars(request_id=request_id)
            try:
                response = await call_next(request)
            finally:
                structlog.contextvars.clear_contextvars()
            response.headers.setdefault("X-Request-Id", request_id)
            return response

    class SecurityHeadersMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next):
            response = await call_next(request)
            response.headers.setdefault("X-Content-Type-Options", "nosniff")
            response.headers.setdefault("X-Frame-Options", "DENY")
            response.headers.setdefault("Referrer-Policy", "no-referrer")
            if _is_protected_path(request.url.path):
                response.headers.setdefault("Cache-Control", "no-store")
            return response

    class MaxBodySizeMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next):
            limit = int(getattr(cfg, "max_request_body_bytes", 0) or 0)
            if limit > 0 and request.method == "POST" and _is_protected_path(request.url.path):
                content_length = request.headers.get("content-length")
                too_large = bool(content_length and content_length.isdigit() and int(content_length) > limit)
                if too_large or len(await request.body()) > limit:
                    return _error(413, request, message="Request body too large.", kind="invalid_request")
            return await call_next(request)

    class BearerAuthMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next):
            expected = getattr(cfg, "server_auth_token", None)
            if not expected or not _is_protected_path(request.url.path) or request.method == "OPTIONS":
                return await call_next(request)

            token = parse_bearer_token(request.headers.get("authorization")) or request.headers.get("x-api-key")
            if not token or not constant_time_equals(token, expected):
                return _error(
                    401,
                    request,
                    message="Missing or invalid authentication token.",
                    kind="auth",
                    headers={"WWW-Authenticate": 'Bearer realm="nutriai"'},
                )
            return await call_next(request)

    app.add_middleware(MaxBodySizeMiddleware)
    app.add_middleware(BearerAuthMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    # Outermost, so X-Request-Id is set even when inner middleware short-circuits.
    app.add_middleware(RequestIdMiddleware)

    cors_allow_origins: list[str] = list(getattr(cfg, "cors_allow_origins", []) or [])
    if cors_allow_origins:
        from fastapi.middleware.cors import CORSMiddleware

        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_allow_origins,
            allow_credentials=False,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", "X-Request-Id", "X-API-Key"],
            max_age=600,
        )
