"""Maps engine errors to JSON responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from petshop_engine.errors import (
    BusinessRuleError,
    NotFoundError,
    PermissionDenied,
    PetshopError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: tuple[tuple[type[PetshopError], int], ...] = (
    (ValidationError, 422),
    (TransportError, 502),
    (BusinessRuleError, 409),
    (NotFoundError, 404),
    (PermissionDenied, 403),
)


def status_for(error: PetshopError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return 400


async def petshop_error_handler(request: Request, exc: PetshopError) -> JSONResponse:
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"{type(exc).__name__}: {exc.message}",
        extra={"path": request.url.path, "code": exc.code, "status_code": status_code},
    )
    body = {"success": False, "error": exc.message}
    if exc.code:
        body["code"] = exc.code
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PetshopError, petshop_error_handler)
