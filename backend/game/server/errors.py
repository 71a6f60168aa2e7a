"""HTTP boundary: request body parsing and engine error mapping.

Engine failures are GameError subclasses carrying an ErrorKind. Handlers
wrapped with ``json_endpoint`` turn them into ``{"error": message}``
responses with the mapped status code; any other exception is logged with
its traceback and reported as a generic 500.
"""

from __future__ import annotations

import functools
import json
from http import HTTPStatus
from typing import TYPE_CHECKING, TypeVar

import structlog
from pydantic import BaseModel, ValidationError
from starlette.responses import JSONResponse

from game.logic.exceptions import ErrorKind, GameError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)

STATUS_BY_KIND: dict[ErrorKind, HTTPStatus] = {
    ErrorKind.INVALID_INPUT: HTTPStatus.BAD_REQUEST,
    ErrorKind.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorKind.FORBIDDEN: HTTPStatus.FORBIDDEN,
    ErrorKind.CONFLICT: HTTPStatus.CONFLICT,
    ErrorKind.INTERNAL: HTTPStatus.INTERNAL_SERVER_ERROR,
}

INTERNAL_ERROR_MESSAGE = "Internal server error"
_DEFAULT_MAX_BODY_BYTES = 16384


class RequestBodyError(Exception):
    """The request body could not be turned into a typed request."""

    def __init__(self, message: str, status_code: int = HTTPStatus.BAD_REQUEST) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _first_validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:  # pragma: no cover
        return "Invalid request body"
    first = errors[0]
    location = ".".join(str(part) for part in first["loc"])
    message = first["msg"].removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


def parse_model(model: type[ModelT], payload: object) -> ModelT:
    """Validate an already-decoded payload. Raises RequestBodyError."""
    if not isinstance(payload, dict):
        raise RequestBodyError("Request body must be a JSON object")
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise RequestBodyError(_first_validation_message(e)) from e


async def read_model(request: Request, model: type[ModelT]) -> ModelT:
    """Read, size-check, decode, and validate a JSON request body."""
    settings = getattr(request.app.state, "settings", None)
    limit = getattr(settings, "max_request_body_bytes", _DEFAULT_MAX_BODY_BYTES)

    raw_body = await request.body()
    if len(raw_body) > limit:
        raise RequestBodyError("Request body too large", status_code=HTTPStatus.REQUEST_ENTITY_TOO_LARGE)
    if not raw_body.strip():
        raise RequestBodyError("Request body is required")
    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as e:
        raise RequestBodyError("Invalid JSON body") from e
    return parse_model(model, payload)


def json_endpoint(endpoint: Callable[[Request], Awaitable[Response]]) -> Callable[[Request], Awaitable[Response]]:
    """Map engine and body errors raised by a handler onto JSON error responses."""

    @functools.wraps(endpoint)
    async def wrapper(request: Request) -> Response:
        try:
            return await endpoint(request)
        except RequestBodyError as e:
            logger.warning("request rejected", path=request.url.path, kind=ErrorKind.INVALID_INPUT, error=e.message)
            return error_response(e.message, e.status_code)
        except GameError as e:
            status = STATUS_BY_KIND[e.kind]
            if status >= HTTPStatus.INTERNAL_SERVER_ERROR:
                logger.exception("engine error", path=request.url.path)
                return error_response(INTERNAL_ERROR_MESSAGE, status)
            logger.warning("request rejected", path=request.url.path, kind=e.kind, error=e.message)
            return error_response(e.message, status)
        except Exception:
            logger.exception("unhandled error", path=request.url.path)
            return error_response(INTERNAL_ERROR_MESSAGE, HTTPStatus.INTERNAL_SERVER_ERROR)

    return wrapper
