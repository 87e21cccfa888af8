"""
Database utilities for the playlists backend.

Uses SQLAlchemy 2.0 style engine/sessions, configured by environment variables.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Generator, Optional
from urllib.parse import urlparse, urlunparse

from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def _redact_url(url: str) -> str:
    """Mask the password in a database URL for logging."""
    try:
        parsed = urlparse(url)
        if not parsed.password:
            return url
        userinfo, hostinfo = parsed.netloc.rsplit("@", 1)
        user = userinfo.split(":", 1)[0]
        return urlunparse(parsed._replace(netloc=f"{user}:***@{hostinfo}"))
    except ValueError:
        return "<redacted>"


def _normalize_url(database_url: str) -> str:
    # SQLAlchemy only accepts the 'postgresql' scheme name.
    if database_url.startswith("postgres://"):
        return "postgresql://" + database_url[len("postgres://") :]
    return database_url


def _build_database_url() -> str:
    """
    Build the database URL from the environment.

    DATABASE_URL wins when set. Otherwise POSTGRES_URL names the host (or a
    full postgresql:// URL) and POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB
    and POSTGRES_PORT fill in or override its parts.

    Raises:
        RuntimeError: if configuration is missing or incomplete.
    """
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return _normalize_url(database_url)

    postgres_url = (os.getenv("POSTGRES_URL") or "").strip()
    if not postgres_url:
        raise RuntimeError(
            "Database configuration missing. Set DATABASE_URL or "
            "POSTGRES_URL, POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB, POSTGRES_PORT."
        )

    port = os.getenv("POSTGRES_PORT", "")
    if "://" in postgres_url:
        parsed = urlparse(_normalize_url(postgres_url))
        host = parsed.hostname or "localhost"
        default_port = parsed.port or 5432
        user = os.getenv("POSTGRES_USER") or parsed.username or ""
        password = os.getenv("POSTGRES_PASSWORD") or parsed.password or ""
        db = os.getenv("POSTGRES_DB") or parsed.path.lstrip("/")
    else:
        host, default_port = postgres_url, 5432
        if ":" in host and host.rsplit(":", 1)[-1].isdigit():
            host, port_str = host.rsplit(":", 1)
            default_port = int(port_str)
        user = os.getenv("POSTGRES_USER", "")
        password = os.getenv("POSTGRES_PASSWORD", "")
        db = os.getenv("POSTGRES_DB", "")

    if not (user and password and db):
        raise RuntimeError(
            "Database configuration incomplete. Provide POSTGRES_USER, POSTGRES_PASSWORD "
            "and POSTGRES_DB (or include them in POSTGRES_URL)."
        )

    final_port = int(port) if port.isdigit() else default_port
    return f"postgresql+psycopg2://{user}:{password}@{host}:{final_port}/{db}"


_ENGINE: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


# PUBLIC_INTERFACE
def get_engine() -> Engine:
    """Return (and lazily create) the SQLAlchemy Engine."""
    global _ENGINE, _SessionLocal
    if _ENGINE is None:
        url = _build_database_url()
        logger.info("DB: using database url=%s", _redact_url(url))
        _ENGINE = create_engine(url, pool_pre_ping=True)
        _SessionLocal = sessionmaker(bind=_ENGINE, autoflush=False, autocommit=False)
    return _ENGINE


# PUBLIC_INTERFACE
@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Yield a SQLAlchemy Session, handling commit/rollback.

    Usage:
        with get_db_session() as db:
            ...
    """
    get_engine()
    assert _SessionLocal is not None  # created by get_engine()
    db = _SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# PUBLIC_INTERFACE
def db_session_dep() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a DB session.

    Missing configuration and connection failures that escape a handler are
    reported as HTTP 503.
    """
    try:
        with get_db_session() as db:
            yield db
    except RuntimeError as exc:
        raise HTTPException(
            status_code=503,
            detail={"error": "database_misconfigured", "message": str(exc)},
        )
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "database_unavailable",
                "message": "Database connection/query failed.",
                "exception": exc.__class__.__name__,
            },
        )
