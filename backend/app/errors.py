# backend/app/errors.py
"""
Error envelope for every non-2xx response.

Bodies follow the problem+json field names (``type``, ``title``, ``status``,
``detail``, ``instance``) plus ``code`` for machine handling and ``error``,
the human-readable message the web client displays.
"""

from http import HTTPStatus
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException

logger = logging.getLogger(__name__)

VALIDATION_FAILED = "Request validation failed"


def _title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def _envelope(
    request: Request,
    status_code: int,
    message: str,
    *,
    code: Optional[str] = None,
    detail: Any = None,
    errors: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": _title(status_code),
        "status": status_code,
        "detail": message if detail is None else detail,
        "instance": request.url.path,
        "error": message,
    }
    if code:
        body["code"] = code
    if errors:
        body["errors"] = errors
    return JSONResponse(jsonable_encoder(body), status_code=status_code, headers=headers)


def _from_http_detail(
    request: Request, status_code: int, detail: Any, headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    """Unpack either a plain string detail or the dict built by ``DomainException``."""
    if isinstance(detail, dict):
        message = detail.get("error") or detail.get("message") or _title(status_code)
        return _envelope(
            request,
            status_code,
            str(message),
            code=detail.get("code"),
            errors=detail.get("details") or None,
            headers=headers,
        )
    message = str(detail) if detail else _title(status_code)
    return _envelope(request, status_code, message, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Service error on %s %s: %s", request.method, request.url.path, exc.message)
        http_exc = exc.to_http_exception()
        return _from_http_detail(request, http_exc.status_code, http_exc.detail)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _from_http_detail(
            request, exc.status_code, exc.detail, getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = jsonable_encoder(exc.errors())
        return _envelope(
            request, 422, VALIDATION_FAILED, code="validation_error", detail=errors, errors=errors
        )

    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        errors = jsonable_encoder(exc.errors())
        return _envelope(
            request, 422, VALIDATION_FAILED, code="validation_error", detail=errors, errors=errors
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled error on %s %s (org_id=%s)",
            request.method,
            request.url.path,
            request.query_params.get("org_id"),
        )
        return _envelope(request, 500, "Internal Server Error", code="internal_server_error")
