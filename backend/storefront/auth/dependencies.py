from __future__ import annotations

from fastapi import Request

from ..errors import AuthorizationError
from .security import Principal


def current_principal(request: Request) -> Principal:
    user = getattr(request.state, "user", None)
    if not isinstance(user, Principal):
        raise AuthorizationError.unauthenticated()
    return user


def require_admin(request: Request) -> Principal:
    principal = current_principal(request)
    if not principal.is_admin:
        raise AuthorizationError("Admin access required")
    return principal


def catalog_reader(request: Request) -> Principal | None:
    # Product reads follow the same admin gate as writes unless opened up.
    if request.app.state.settings.public_catalog_reads:
        return None
    return require_admin(request)
