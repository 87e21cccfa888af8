"""
Uniform JSON envelope: {"status": "success"|"fail", "message": str, "data"?: any}.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from starlette.responses import JSONResponse

STATUS_SUCCESS = "success"
STATUS_FAIL = "fail"

RESPONSE_ERROR = "Something went wrong"
NO_ACCESS = "You don't have access"
INVALID_REQUEST = "Request is not valid"


def get_all(entity: str) -> str:
    return f"{entity}s are received"


def get_one(entity: str) -> str:
    return f"{entity} is received"


def empty(entity: str) -> str:
    return f"{entity}s are not found"


def not_found(entity: str) -> str:
    return f"{entity} is not found"


def created(entity: str) -> str:
    return f"{entity} is created"


def not_created(entity: str) -> str:
    return f"{entity} is not created"


def updated(entity: str) -> str:
    return f"{entity} is updated"


def not_updated(entity: str) -> str:
    return f"{entity} is not updated"


def deleted(entity: str) -> str:
    return f"{entity} is deleted"


# PUBLIC_INTERFACE
def envelope(status_code: int, message: str, data: Optional[Any] = None) -> JSONResponse:
    """Build the JSON envelope; status is derived from the HTTP status code."""
    body = {
        "status": STATUS_SUCCESS if status_code < 400 else STATUS_FAIL,
        "message": message,
    }
    if data is not None:
        body["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=status_code, content=body)


def first_validation_message(exc: ValidationError) -> str:
    """Return the first pydantic error message without the 'Value error, ' prefix."""
    errors = exc.errors()
    if not errors:
        return INVALID_REQUEST
    message = str(errors[0].get("msg", INVALID_REQUEST))
    prefix = "Value error, "
    return message[len(prefix) :] if message.startswith(prefix) else message
