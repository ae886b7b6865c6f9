import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from polis.core.storage import BlobStoreError, FetchError, InvalidImagePayload

logger = logging.getLogger("polis")

GENERIC_DATABASE_ERROR = "Database error"
GENERIC_SERVER_ERROR = "Internal server error"


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query")]
    message = first.get("msg", "Invalid value")
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc)
    logger.info(f"Validation error on {request.method} {request.url.path}: {message}")
    return error_response(status.HTTP_400_BAD_REQUEST, message)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # The driver message stays in the server log
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_DATABASE_ERROR)


async def blob_store_exception_handler(request: Request, exc: BlobStoreError) -> JSONResponse:
    logger.error(f"Blob storage error on {request.method} {request.url.path}: {exc}")
    if isinstance(exc, FetchError):
        return error_response(status.HTTP_502_BAD_GATEWAY, str(exc))
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


async def invalid_image_handler(request: Request, exc: InvalidImagePayload) -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, str(exc))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc!r}", exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(BlobStoreError, blob_store_exception_handler)
    app.add_exception_handler(InvalidImagePayload, invalid_image_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
