from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/", tags=["health"])
def root(request: Request):
    settings = request.app.state.settings
    return {
        "message": "Storefront API",
        "version": request.app.version,
        "status": "running",
        "environment": settings.normalized_environment,
        "endpoints": [
            "POST /users/register",
            "POST /users/login",
            "GET /products",
            "POST /products",
            "GET /orders",
            "POST /orders",
        ],
    }


@router.get("/health", tags=["health"])
def health(request: Request):
    ok = request.app.state.db.ping()
    return {"ok": ok, "database": "connected" if ok else "unavailable"}
