"""Error kinds and their translation into the JSON error envelope.

Every layer raises ``AppError`` with a kind and a short contextual
message; status codes are only attached at the HTTP boundary by the
handlers registered in ``install_error_handlers``.
"""

from __future__ import annotations

import enum
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.schemas import ErrorResponse

logger = logging.getLogger(__name__)


class ErrorKind(enum.Enum):
    CLIENT_INPUT = "client_input"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    STORAGE = "storage"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.CLIENT_INPUT: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.STORAGE: 500,
    ErrorKind.INTERNAL: 500,
}


class AppError(Exception):
    """An error carrying its kind, a contextual message and an optional cause."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        cause: BaseException | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code if status_code is not None else kind.status_code
        if cause is not None:
            self.__cause__ = cause

    @property
    def errmsg(self) -> str:
        if self.__cause__ is None:
            return self.message
        return f"{self.message}: {self.__cause__}"

    @property
    def detail(self) -> str:
        return describe_chain(self)


def describe_chain(exc: BaseException) -> str:
    lines = []
    current: BaseException | None = exc
    while current is not None:
        if isinstance(current, AppError):
            lines.append(f"{current.kind.name}: {current.message}")
        else:
            lines.append(f"{type(current).__name__}: {current}")
        current = current.__cause__
    return "\n  caused by ".join(lines)


def error_envelope(errmsg: str, detail: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(errmsg=errmsg, detail=detail).model_dump())


def client_input(message: str) -> AppError:
    return AppError(ErrorKind.CLIENT_INPUT, message)


def not_found(message: str) -> AppError:
    return AppError(ErrorKind.NOT_FOUND, message)


def storage(message: str, cause: BaseException) -> AppError:
    return AppError(ErrorKind.STORAGE, message, cause=cause)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.errmsg, exc_info=exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.errmsg)
    return error_envelope(exc.errmsg, exc.detail, exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_envelope("invalid request", str(exc.errors()), 422)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_envelope(str(exc.detail), f"HTTPException: {exc.status_code} {exc.detail}", exc.status_code)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
