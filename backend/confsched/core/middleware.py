from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from confsched.core.config import Settings

# Editors must always see the current version token, never a cached copy.
NO_STORE_PATH_MARKERS = ("/schedule/items", "/schedule/generate", "/schedule/publish")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, settings: Settings) -> None:
        super().__init__(app)
        self._settings = settings

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if _is_schedule_edit_path(request.url.path):
            response.headers["Cache-Control"] = "no-store, max-age=0"
        if self._settings.security_enable_hsts:
            max_age = max(1, self._settings.security_hsts_max_age_seconds)
            response.headers.setdefault("Strict-Transport-Security", f"max-age={max_age}; includeSubDomains")
        return response


def _is_schedule_edit_path(path: str) -> bool:
    if any(marker in path for marker in NO_STORE_PATH_MARKERS):
        return True
    # GET /conferences/{id}/schedule carries the version token used for edits.
    return path.rstrip("/").endswith("/schedule")
