"""
Error translation for the HTTP layer.

Kernel services raise typed StockKernelError subclasses; this module maps
``exc.code`` to an HTTP status through one table and renders the body as

    {"code": <stable code>, "message": <str>, ...structured attributes}
"""

from typing import Any
from uuid import UUID

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stock_kernel.exceptions import InvalidReservationRequestError, StockKernelError
from stock_kernel.logging_config import get_logger

logger = get_logger("api.errors")

STATUS_BY_CODE: dict[str, int] = {
    "INVALID_REQUEST": 400,
    "IDEMPOTENCY_KEY_CONFLICT": 400,
    "INVALID_ACCOUNT": 400,
    "INVALID_PRODUCT": 400,
    "INSUFFICIENT_STOCK": 400,
    "UNAUTHENTICATED": 401,
    "SELF_IMPORT_FORBIDDEN": 403,
    "FORBIDDEN": 403,
    "PRODUCT_NOT_FOUND": 404,
    "IMPORT_NOT_FOUND": 404,
    "ACCOUNT_NOT_FOUND": 404,
    "ALREADY_REVERSED": 404,
    "INCONSISTENT_STATE": 500,
    "IMMUTABILITY_VIOLATION": 500,
}

DEFAULT_STATUS = 500


def status_for(exc: StockKernelError) -> int:
    return STATUS_BY_CODE.get(exc.code, DEFAULT_STATUS)


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, UUID):
        return str(value)
    return str(value)


def error_body(exc: StockKernelError) -> dict[str, Any]:
    body: dict[str, Any] = {"code": exc.code, "message": str(exc)}
    for key, value in vars(exc).items():
        if not key.startswith("_") and key not in body:
            body[key] = _json_safe(value)
    return body


async def _handle_kernel_error(request: Request, exc: StockKernelError) -> JSONResponse:
    status = status_for(exc)
    log = logger.error if status >= 500 else logger.info
    log(
        "request_failed",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": status,
            "code": exc.code,
        },
    )
    return JSONResponse(status_code=status, content=error_body(exc))


async def _handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    field = errors[0]["loc"][-1] if errors and errors[0]["loc"] else "body"
    reason = errors[0]["msg"] if errors else "invalid request"
    body = error_body(InvalidReservationRequestError(field, reason))
    body["errors"] = errors
    logger.info(
        "request_rejected",
        extra={"method": request.method, "path": request.url.path, "field": field},
    )
    return JSONResponse(status_code=400, content=body)


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StockKernelError, _handle_kernel_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
