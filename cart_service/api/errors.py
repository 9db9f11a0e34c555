# cart_service/api/errors.py
"""
Mapowanie wyjatkow na odpowiedzi HTTP.
Kazdy rodzaj bledu ma stabilny kod (error) i jeden status.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cart_service.domain.errors import (
    CartError,
    CartItemNotFoundError,
    CartNotFoundError,
    CartVersionConflictError,
    ExternalServiceError,
    InsufficientStockError,
    InvalidRequestError,
    ProductNotFoundError,
)
from cart_service.domain.schemas import ErrorEnvelope
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)

STATUS_CODES = {
    InvalidRequestError: 400,
    ProductNotFoundError: 404,
    CartNotFoundError: 404,
    CartItemNotFoundError: 404,
    InsufficientStockError: 409,
    CartVersionConflictError: 409,
    ExternalServiceError: 503,
}


def status_for(exc: CartError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


def error_response(status_code: int, message: str, code: str, **extra) -> JSONResponse:
    body = ErrorEnvelope(message=message, error=code, **extra)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


async def cart_error_handler(request: Request, exc: CartError) -> JSONResponse:
    status_code = status_for(exc)
    logger.info(f"{request.method} {request.url.path} -> {status_code} {exc.code}: {exc.message}")

    extra = {}
    if isinstance(exc, InsufficientStockError):
        extra["available_quantity"] = exc.available_quantity
    return error_response(status_code, exc.message, exc.code, **extra)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else "Invalid request"
    return error_response(400, message, InvalidRequestError.code)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response(500, "Internal server error", "INTERNAL_SERVER_ERROR")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CartError, cart_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
