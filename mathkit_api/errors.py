"""
Error handling for the HTTP API.

Classified core errors become 422 responses carrying the error kind and
offline hints; anything unexpected becomes a 500 that only exposes the
message in DEBUG mode.
"""

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mathkit.core.config import get_settings
from mathkit.core.errors import MathKitError
from mathkit.core.logging import get_context_logger
from mathkit.math.hints import hints_for

logger = get_context_logger(__name__, component="api")


def create_error_response(error: MathKitError, status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY) -> JSONResponse:
    """Create standardized error response for a classified core error"""
    error_data = {
        "error": {
            "type": error.__class__.__name__,
            "kind": error.kind.value,
            "message": error.message,
            "detail": error.detail,
            "position": error.position,
            "hints": hints_for(error.kind),
        }
    }

    logger.info(
        f"Request rejected: {error}",
        extra_data={
            "error_type": error.__class__.__name__,
            "kind": error.kind.value,
            "status_code": status_code,
        },
    )

    return JSONResponse(status_code=status_code, content=error_data)


async def mathkit_error_handler(request: Request, exc: MathKitError) -> JSONResponse:
    """Handle classified core errors"""
    return create_error_response(exc)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "type": "HTTPException",
                "message": exc.detail,
            }
        },
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors"""
    logger.warning("Validation error", extra_data={"errors": exc.errors()})

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "type": "ValidationError",
                "message": "Request validation failed",
                "details": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
                    for err in exc.errors()
                ],
            }
        },
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected errors"""
    logger.exception("Unexpected error occurred", extra_data={"path": request.url.path})

    # Don't expose internal errors in production
    message = str(exc) if get_settings().DEBUG else "An internal error occurred"

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "type": "InternalServerError",
                "message": message,
            }
        },
    )


def register_error_handlers(app) -> None:
    """Register error handlers with FastAPI app"""
    app.add_exception_handler(MathKitError, mathkit_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)
