from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
import logging

from .exceptions import RecordsException, InvalidArgumentError
from ..schemas.term_result_schemas import validation_details

logger = logging.getLogger(__name__)


async def records_exception_handler(request: Request, exc: RecordsException):
    """Handle errors raised by the records core"""
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__}: {exc.message} - Path: {request.url.path}")
    else:
        logger.warning(f"{exc.__class__.__name__}: {exc.message} - Path: {request.url.path}")

    content = {"error": exc.message, "type": exc.__class__.__name__}
    if exc.details:
        content["details"] = jsonable_encoder(exc.details)
    return JSONResponse(status_code=exc.status_code, content=content)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are reported as invalid arguments"""
    logger.warning(f"Invalid request - Path: {request.url.path}")
    return JSONResponse(
        status_code=InvalidArgumentError.status_code,
        content={
            "error": "Invalid request",
            "type": InvalidArgumentError.__name__,
            "details": {"errors": jsonable_encoder(validation_details(exc.errors()))}
        }
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.exception(f"Unexpected error: {str(exc)} - Path: {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "type": "InternalError"}
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(RecordsException, records_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, general_exception_handler)
