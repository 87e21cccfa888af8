"""
Caller identity from bearer JWTs.

Clients send `Authorization: Bearer <token>`; the token's `sub` claim is the
numeric user id. Tokens are issued elsewhere in the catalog; `create_access_token`
mints compatible tokens (used by tooling and tests).
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from src.api.responses import NO_ACCESS

_bearer_scheme = HTTPBearer(auto_error=False)


def _jwt_secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise RuntimeError("JWT_SECRET env var is required.")
    return secret


def _jwt_algorithm() -> str:
    return os.getenv("JWT_ALGORITHM", "HS256")


def _jwt_exp_minutes() -> int:
    try:
        return int(os.getenv("JWT_EXPIRES_MINUTES", "4320"))  # default: 3 days
    except ValueError:
        return 4320


# PUBLIC_INTERFACE
def create_access_token(*, user_id: int) -> str:
    """
    Create a signed JWT access token for a user.

    Token contains:
      - sub: user id (string)
      - iat, exp
    """
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=_jwt_exp_minutes())
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, _jwt_secret(), algorithm=_jwt_algorithm())


def _decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, _jwt_secret(), algorithms=[_jwt_algorithm()])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
        )


# PUBLIC_INTERFACE
def get_caller_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[int]:
    """
    FastAPI dependency returning the caller's user id, or None when no bearer
    token was sent.

    Handlers decide whether an anonymous caller is acceptable. A token that is
    present but invalid, expired, or carries a non-numeric subject raises 401.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None

    payload = _decode_token(credentials.credentials)
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload.")

    try:
        return int(str(sub))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload.")


# PUBLIC_INTERFACE
def require_caller_id(caller_id: Optional[int] = Depends(get_caller_id)) -> int:
    """
    FastAPI dependency for routes that need a caller.

    Declare it before the session dependency: it raises 401 before a session
    is opened, so anonymous requests never reach the database layer.
    """
    if caller_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=NO_ACCESS)
    return caller_id
