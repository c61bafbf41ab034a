"""Shared API utilities."""

from fastapi import Response
from fastapi.responses import JSONResponse


def build_cors_headers(allow_methods: str = "GET, POST, OPTIONS") -> dict[str, str]:
    """Permissive CORS headers for the admin API.

    Examples:
        build_cors_headers("POST, OPTIONS")
    """
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": allow_methods,
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }


def preflight_response(allow_methods: str) -> Response:
    """Stateless 204 answer to an OPTIONS preflight."""
    return Response(status_code=204, headers=build_cors_headers(allow_methods))


def error_response(
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """The one user-visible failure shape: ``{"ok": false, "error": message}``.

    Sets ``Cache-Control`` itself: the fallback 500 handler runs outside
    ``NoStoreMiddleware``.
    """
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error": message},
        headers={**build_cors_headers(), "Cache-Control": "no-store", **(headers or {})},
    )
