from __future__ import annotations

from typing import Any

import orjson
from fastapi import Request
from fastapi.responses import JSONResponse

from .settings import Settings, get_settings

PROBLEM_JSON = "application/problem+json"


class ProblemJSONResponse(JSONResponse):
    media_type = PROBLEM_JSON

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, option=orjson.OPT_NON_STR_KEYS)


def _default_title(status_code: int) -> str:
    if status_code == 400:
        return "Bad Request"
    if status_code == 401:
        return "Unauthorized"
    if status_code == 403:
        return "Forbidden"
    if status_code == 404:
        return "Not Found"
    if status_code == 405:
        return "Method Not Allowed"
    if status_code == 409:
        return "Conflict"
    if status_code == 422:
        return "Unprocessable Entity"
    if status_code >= 500:
        return "Internal Server Error"
    return "Error"


def _request_id(request: Request) -> str | None:
    rid = getattr(getattr(request, "state", None), "request_id", None)
    if rid:
        return str(rid)
    hdr = request.headers.get("x-request-id")
    return str(hdr) if hdr else None


def _settings_for(request: Request) -> Settings:
    app = request.scope.get("app")
    s = getattr(getattr(app, "state", None), "settings", None)
    return s if isinstance(s, Settings) else get_settings()


def problem_payload(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    type: str = "about:blank",
    instance: str | None = None,
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> dict[str, Any]:
    resolved_title = title or _default_title(int(status_code))
    payload: dict[str, Any] = {
        "type": type or "about:blank",
        "title": resolved_title,
        "status": int(status_code),
        # Flat message for clients that only read `error`.
        "error": str(detail) if detail else resolved_title,
    }

    if detail:
        payload["detail"] = str(detail)

    inst = instance or str(getattr(request.url, "path", "") or "")
    if inst:
        payload["instance"] = inst

    rid = _request_id(request)
    if rid:
        payload["requestId"] = rid

    if errors:
        payload["errors"] = errors

    if extensions:
        payload["extensions"] = extensions

    return payload


def problem_response(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    type: str = "about:blank",
    instance: str | None = None,
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> ProblemJSONResponse:
    # Never leak internal details in production for server errors.
    safe_detail = detail
    if int(status_code) >= 500 and _settings_for(request).is_production:
        safe_detail = None

    return ProblemJSONResponse(
        status_code=int(status_code),
        content=problem_payload(
            request=request,
            status_code=int(status_code),
            title=title,
            detail=safe_detail,
            type=type,
            instance=instance,
            errors=errors,
            extensions=extensions,
        ),
        headers=headers,
    )
