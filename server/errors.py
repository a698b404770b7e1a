"""Translate pipeline failures into HTTP error responses."""

from fastapi import status
from fastapi.responses import JSONResponse

from models.errors import PipelineError
from server.schemas.responses import GENERIC_ERROR_MESSAGE, ErrorResponseDTO
from utils.logger import get_logger

logger = get_logger(__name__)


def error_response(exc: Exception, request_id: str = "unknown") -> JSONResponse:
    """
    Build the error response for ``exc``.

    User errors go back verbatim with status 400. Everything else is logged
    with its diagnostic data and answered with a generic 500 body.
    """
    if isinstance(exc, PipelineError) and exc.is_user_error:
        logger.info(
            f"Rejected request: {exc.message}",
            extra={"extra_fields": {"request_id": request_id, "data": exc.data}},
        )
        body = ErrorResponseDTO(error=exc.message, data=exc.data)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.to_content())

    if isinstance(exc, PipelineError):
        logger.error(
            f"{exc.message}",
            extra={"extra_fields": {"request_id": request_id, **exc.to_dict()}},
        )
    else:
        logger.error(
            f"Unexpected error: {exc!s}",
            exc_info=exc,
            extra={"extra_fields": {"request_id": request_id, "error_type": type(exc).__name__}},
        )

    body = ErrorResponseDTO(error=GENERIC_ERROR_MESSAGE)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body.to_content())
