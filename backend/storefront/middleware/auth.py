from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..auth.security import TokenCodec
from ..errors import AuthorizationError, ServiceError
from ..observability.logging import get_logger
from ..problem_details import problem_response

_PUBLIC_PATHS = frozenset(
    {
        "/",
        "/health",
        "/users/register",
        "/users/login",
        "/docs",
        "/docs/oauth2-redirect",
        "/redoc",
        "/openapi.json",
    }
)


def is_public_path(path: str, *, method: str = "GET", public_catalog_reads: bool = False) -> bool:
    if path in _PUBLIC_PATHS:
        return True

    # Catalog browsing may be opened up; writes never are.
    if public_catalog_reads and method.upper() in ("GET", "HEAD"):
        if path == "/products" or path.startswith("/products/"):
            return True

    return False


def bearer_token(request: Request) -> str:
    auth = request.headers.get("authorization")
    if not auth:
        raise AuthorizationError.unauthenticated("Authorization header required")

    parts = str(auth).split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthorizationError.unauthenticated("Invalid authorization header format")
    return parts[1].strip()


def require_auth(request: Request) -> None:
    # Let CORS preflight through without auth.
    if request.method.upper() == "OPTIONS":
        return

    settings = request.app.state.settings
    if is_public_path(
        request.url.path,
        method=request.method,
        public_catalog_reads=settings.public_catalog_reads,
    ):
        return

    codec: TokenCodec = request.app.state.token_codec
    request.state.user = codec.decode(bearer_token(request))


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Bearer-token enforcement as ASGI middleware.

    Verifies the token and attaches a typed ``Principal`` to
    ``request.state.user``. Role checks are route dependencies.
    """

    async def dispatch(self, request: Request, call_next):
        log = get_logger("auth_middleware")
        try:
            require_auth(request)
        except ServiceError as exc:
            # Log auth failures (avoid PII)
            log.info(
                "auth_middleware_denied",
                status_code=exc.status_code,
                path=request.url.path,
                reason=exc.message,
            )
            return problem_response(
                request=request,
                status_code=exc.status_code,
                title=exc.title,
                detail=exc.message,
                headers={"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None,
            )
        return await call_next(request)
