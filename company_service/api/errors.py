"""Translation of service errors into HTTP responses.

Status codes are chosen by ``ErrorKind`` only. All error bodies share the
shape ``{"error": "<message>"}``.
"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from company_service.core.errors import CompanyServiceError, ErrorKind
from company_service.core.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DUPLICATE_NAME: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.STORAGE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.PUBLISH: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
}


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "invalid JSON body"
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "path", "query")]
    field = ".".join(location)
    message = first.get("msg", "invalid value")
    return f"{field}: {message}" if field else message


async def service_error_handler(request: Request, exc: CompanyServiceError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)

    if status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            f"Internal error on {request.method} {request.url.path}: {exc}",
            extra={"error_type": type(exc).__name__, "path": request.url.path},
        )
        return error_response(status_code, "internal server error")

    return error_response(status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, _describe_validation_error(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on an application."""
    app.add_exception_handler(CompanyServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
