from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .auth.security import TokenCodec
from .db.session import Database
from .errors import ServiceError
from .middleware import (
    AccessLogMiddleware,
    AuthMiddleware,
    NormalizePathMiddleware,
    RequestContextMiddleware,
)
from .observability.logging import configure_logging, get_logger
from .problem_details import problem_response
from .routers.health import router as health_router
from .routers.orders import router as orders_router
from .routers.products import router as products_router
from .routers.users import router as users_router
from .services import Services
from .settings import Settings, get_settings


@asynccontextmanager
async def _lifespan(app: FastAPI):
    log = get_logger("startup")
    db: Database = app.state.db
    db.create_all()
    log.info("app_started")
    try:
        yield
    finally:
        db.dispose()
        log.info("app_stopped")


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    settings = settings or get_settings()

    # Logging must be configured before the app starts handling requests.
    configure_logging(level=settings.log_level)
    log = get_logger("startup")

    db = database or Database(settings.database_url, echo=settings.db_echo)
    tokens = TokenCodec.from_settings(settings)

    app = FastAPI(
        title="Storefront API",
        version="1.0.0",
        description="Users, products and orders for a small storefront.",
        # Trailing slashes are normalized by middleware instead of redirected.
        redirect_slashes=False,
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.db = db
    app.state.token_codec = tokens
    app.state.services = Services.build(db, settings, tokens=tokens)

    log.info("app_starting", settings=settings.to_log_safe_dict())

    # Middlewares (order matters; last added is outermost)
    # Auth runs inside CORS so auth failures still get CORS headers.
    app.add_middleware(AuthMiddleware)
    app.add_middleware(AccessLogMiddleware, exclude_paths={"/", "/health"})
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
        max_age=3000,
    )
    app.add_middleware(RequestContextMiddleware)
    # Outermost: path rewriting must happen before anything matches on the path.
    app.add_middleware(NormalizePathMiddleware)

    # Error handlers
    app.add_exception_handler(ServiceError, _service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    # Routes
    app.include_router(health_router)
    app.include_router(users_router, prefix="/users")
    app.include_router(products_router, prefix="/products")
    app.include_router(orders_router, prefix="/orders")

    return app


def _service_error_handler(request: Request, exc: ServiceError) -> Response:
    if exc.status_code >= 500:
        get_logger("service").error(
            "service_error",
            http_method=request.method.upper(),
            path=request.url.path,
            error=exc.message,
            exc_info=exc,
        )
    return problem_response(
        request=request,
        status_code=exc.status_code,
        title=exc.title,
        detail=exc.message,
    )


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    status_code = int(getattr(exc, "status_code", 500) or 500)
    detail = getattr(exc, "detail", None)

    safe_detail = str(detail) if detail is not None else None
    title: str | None = None
    if status_code == 404:
        title = "Not Found"
        safe_detail = "Route not found" if safe_detail in (None, "Not Found") else safe_detail

    return problem_response(
        request=request,
        status_code=status_code,
        title=title,
        detail=safe_detail,
    )


def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    errors: list[dict[str, object]] = []
    for e in exc.errors():
        loc = e.get("loc") or ()
        loc_path = ".".join([str(x) for x in loc if x != "body"])
        errors.append(
            {
                "location": list(loc) if isinstance(loc, (list, tuple)) else [],
                "path": loc_path,
                "message": e.get("msg", "Invalid value"),
                "type": e.get("type"),
            }
        )
    first = errors[0] if errors else None
    detail = f"{first['path']}: {first['message']}" if first and first["path"] else "Request validation failed"
    return problem_response(
        request=request,
        status_code=400,
        title="Validation Failed",
        detail=detail,
        errors=errors,
    )


def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    # Full traceback goes to the logs; the response stays generic in production.
    user = getattr(request.state, "user", None)
    get_logger("unhandled").exception(
        "unhandled_exception",
        http_method=request.method.upper(),
        path=request.url.path,
        user_id=getattr(user, "user_id", None),
    )
    return problem_response(
        request=request,
        status_code=500,
        title="Internal Server Error",
        detail=str(exc) if exc else None,
    )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
