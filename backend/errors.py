# errors.py
"""
Error types raised by the states handlers and the single place where every
error kind is translated into an HTTP response.

All error bodies share one shape: ``{"errors": {...}}``.
"""

from typing import Any, Dict, Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy import Table, UniqueConstraint
from sqlalchemy.exc import DataError, IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from models import State
from utils.log import get_logger

logger = get_logger("errors")

ROOT_ERROR_KEY = "body"
UNIQUE_MARKERS = ("unique constraint", "duplicate entry", "duplicate key")


# ================================
# Typed errors
# ================================
class StateError(Exception):
    status_code = 400
    message = "Bad request"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, Any]] = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.errors = errors

    def body(self) -> Dict[str, Any]:
        return {"errors": self.errors or {"message": self.message}}


class InvalidStateId(StateError):
    message = "Invalid state ID"


class StateNotFound(StateError):
    status_code = 404
    message = "State not found"


class StateValidationError(StateError):
    message = "Validation failed"

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "StateValidationError":
        return cls(errors=field_errors(exc.errors()))


class DuplicateState(StateError):
    def __init__(self, field: str):
        message = f"A record with that {field} already exists."
        super().__init__(message, {field: {"type": "unique", "message": message}})
        self.field = field


# ================================
# Helpers
# ================================
def _error_message(error: Dict[str, Any]) -> str:
    ctx = error.get("ctx") or {}
    if error.get("type") == "value_error" and "error" in ctx:
        return str(ctx["error"])
    return error.get("msg", "Invalid value")


def field_errors(errors: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, str]]:
    """Map pydantic error dicts to ``{field: {"type", "message"}}``.

    The request section prefix (``body``/``query``/``path``) is dropped; errors
    on the payload as a whole are keyed ``body``. The first error per field wins.
    """
    out: Dict[str, Dict[str, str]] = {}
    for error in errors:
        loc = list(error.get("loc") or ())
        if loc and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        if error.get("type") == "json_invalid":
            loc = []
        key = ".".join(str(part) for part in loc) or ROOT_ERROR_KEY
        out.setdefault(key, {"type": error.get("type", "invalid"), "message": _error_message(error)})
    return out


def unique_violation_field(exc: IntegrityError, table: Table = State.__table__) -> Optional[str]:
    """Return the API field named by a unique-constraint violation, if any."""
    message = str(exc.orig)
    if not any(marker in message.lower() for marker in UNIQUE_MARKERS):
        return None

    for constraint in table.constraints:
        if not isinstance(constraint, UniqueConstraint):
            continue
        columns = list(constraint.columns)
        if not columns:
            continue
        named = constraint.name and str(constraint.name) in message
        qualified = any(f"{table.name}.{c.name}" in message for c in columns)
        if named or qualified:
            return to_camel(columns[0].key)
    return None


def _json(status_code: int, errors: Dict[str, Any], headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"errors": errors}, headers=headers)


# ================================
# Handlers
# ================================
async def state_error_handler(request: Request, exc: StateError):
    return JSONResponse(status_code=exc.status_code, content=exc.body())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _json(400, field_errors(exc.errors()))


async def integrity_error_handler(request: Request, exc: IntegrityError):
    field = unique_violation_field(exc)
    if field:
        return await state_error_handler(request, DuplicateState(field))
    return await unhandled_error_handler(request, exc)


async def data_error_handler(request: Request, exc: DataError):
    logger.warning("Rejected data on %s %s: %s", request.method, request.url.path, exc.orig)
    return _json(400, {"message": "Invalid data"})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _json(exc.status_code, {"message": exc.detail}, headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _json(500, {"message": "Internal Server Error"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StateError, state_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(DataError, data_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
