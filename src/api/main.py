"""
FastAPI application entrypoint for the playlists backend.

Routes live in `routes_playlists`. Authenticated routes expect
`Authorization: Bearer <token>`; all responses use the
{status, message, data} envelope, including framework-level errors.

CORS is enabled for local development (http://localhost:3000) and can be extended
via environment variables.
"""

from __future__ import annotations

import logging
import os as _os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api import responses
from src.api.routes_playlists import router as playlists_router

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Playlists", "description": "List, search, create, edit and delete playlists."},
    {"name": "Health", "description": "Service health and basic runtime info."},
]

app = FastAPI(
    title="Playlists Backend API",
    description=(
        "Playlist resource of the media catalog.\n\n"
        "Authentication: bearer JWT for user-scoped and mutating routes.\n\n"
        "Covers:\n"
        "- POST/PUT /playlists accept an optional `cover` image in the multipart form."
    ),
    version="1.0.0",
    openapi_tags=openapi_tags,
)

# credentials=true requires explicit origins (not '*') in browsers.
# Extra origins: CORS_ALLOW_ORIGINS or ALLOWED_ORIGINS, comma-separated.
cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

_allow_origins_raw = _os.getenv("CORS_ALLOW_ORIGINS") or _os.getenv("ALLOWED_ORIGINS", "")
cors_origins.extend(o.strip() for o in _allow_origins_raw.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(playlists_router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors (auth, validation, uploads, 404 routes) as envelopes."""
    detail = exc.detail
    if isinstance(detail, dict):
        return responses.envelope(exc.status_code, str(detail.get("message", "")), detail)
    return responses.envelope(exc.status_code, str(detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed query/path/form parameters are client errors (400)."""
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
    return responses.envelope(400, responses.INVALID_REQUEST, errors)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error: path=%s", request.url.path)
    return responses.envelope(500, responses.RESPONSE_ERROR)


@app.get(
    "/",
    summary="Health check",
    description="Simple health check endpoint.",
    tags=["Health"],
)
def health_check():
    """Return basic service health information."""
    return {"status": "ok"}
