"""CORS configuration helpers.

The checkout extension calls the public survey endpoints from Shopify's
sandboxed origin, so every route accepts any origin. Preflights carrying an
Origin are answered by Starlette's CORSMiddleware; a bare OPTIONS request on
any path gets the same headers without reaching the router. Unexpected
errors are rendered inside the CORS layer so browsers can read the 500.
"""

from __future__ import annotations

from typing import Iterable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from app.http.errors import handle_unexpected_error


ALLOW_METHODS: list[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
ALLOW_HEADERS: list[str] = ["Content-Type", "Authorization", "Accept", "Origin"]

PREFLIGHT_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ", ".join(ALLOW_METHODS),
    "Access-Control-Allow-Headers": ", ".join(ALLOW_HEADERS),
    "Access-Control-Allow-Credentials": "true",
}


def apply_cors(app: FastAPI, *, origins: Iterable[str] | None = None) -> None:
    # Registered before CORSMiddleware so that one stays outermost
    @app.middleware("http")
    async def answer_bare_options(request: Request, call_next):  # type: ignore[no-untyped-def]
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=PREFLIGHT_HEADERS)
        try:
            return await call_next(request)
        except Exception as exc:
            return await handle_unexpected_error(request, exc)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(origins or ["*"]),
        allow_credentials=True,
        allow_methods=ALLOW_METHODS,
        allow_headers=ALLOW_HEADERS,
        expose_headers=["X-Request-Id"],
    )


__all__ = ["apply_cors", "ALLOW_METHODS", "ALLOW_HEADERS", "PREFLIGHT_HEADERS"]
