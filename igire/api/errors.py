from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from igire.config import settings
from igire.infra.media_storage import MediaStorageError
from igire.infra.repositories import RepositoryError
from igire.infra.transcription_adapter import TranscriptionError
from igire.services.errors import AuthError, ConflictError, NotFoundError
from igire.services.sms_service import SmsDeliveryError

logger = logging.getLogger(__name__)

# Profile endpoints report failures under "message" instead of "error".
MESSAGE_KEY_PREFIX = "/api/profile"


def _body(request: Request, text: str) -> dict[str, str]:
    key = "message" if request.url.path.startswith(MESSAGE_KEY_PREFIX) else "error"
    return {key: text}


def _json(request: Request, status_code: int, text: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=_body(request, text))


def _server_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    content = _body(request, str(exc) or exc.__class__.__name__)
    if not settings.is_production:
        content["traceback"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return _json(request, 400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        text = f"Invalid request: {field} {first.get('msg', '')}".strip() if first else "Invalid request"
        return _json(request, 400, text)

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
        return _json(request, 401, str(exc) or "Not authenticated")

    @app.exception_handler(PermissionError)
    async def permission_error_handler(request: Request, exc: PermissionError) -> JSONResponse:
        return _json(request, 403, str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return _json(request, 404, str(exc))

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
        return _json(request, 409, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _json(request, exc.status_code, str(exc.detail))

    # Upstream outages map to 500 like any unhandled error.
    for upstream in (TranscriptionError, MediaStorageError, SmsDeliveryError, RepositoryError):
        app.add_exception_handler(upstream, _server_error_handler)
    app.add_exception_handler(Exception, _server_error_handler)


async def _server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return _server_error(request, exc)
