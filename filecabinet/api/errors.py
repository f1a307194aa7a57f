"""Error handlers that turn exceptions into JSON error responses."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from filecabinet.config import config
from filecabinet.errors import FileCabinetError

from .schemas import ErrorResponseModel

logger = config.get_logger(__name__)


def error_response(
    status_code: int, error: str, details: str | None = None
) -> JSONResponse:
    """Build a JSON error response in the shared error shape."""  # noqa: DOC201
    body = ErrorResponseModel(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def register_error_handlers(app: FastAPI) -> None:
    """Register error handlers with the FastAPI application.

    Args:
        app: FastAPI application
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(  # noqa: RUF029
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed request bodies are user errors, reported as 400."""  # noqa: DOC201
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        details = "\n".join(str(error) for error in exc.errors())
        return error_response(status.HTTP_400_BAD_REQUEST, "Validation error", details)

    @app.exception_handler(FileCabinetError)
    async def handle_filecabinet_error(  # noqa: RUF029
        request: Request, exc: FileCabinetError
    ) -> JSONResponse:
        """Map service errors to their status code."""  # noqa: DOC201
        if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(
                "%s on %s: %s", type(exc).__name__, request.url.path, exc.message
            )
        else:
            logger.warning(
                "%s on %s: %s", type(exc).__name__, request.url.path, exc.message
            )
        if exc.details:
            logger.error("Error details: %s", exc.details)

        details = exc.details if config.is_development() else None
        return error_response(exc.status_code, exc.message, details)

    @app.exception_handler(Exception)
    async def handle_exception(  # noqa: RUF029
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle uncaught exceptions."""  # noqa: DOC201
        logger.exception("Unhandled exception on %s", request.url.path)

        # Only include detailed error info in development
        details = str(exc) if config.is_development() else None
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", details
        )
