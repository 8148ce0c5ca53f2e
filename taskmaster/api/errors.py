import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..exceptions import NotFoundError, StorageError, TaskmasterError, ValidationError

logger = logging.getLogger(__name__)


def _error_body(request: Request, error: str, status_code: int, **extra) -> dict:
    return {"error": error, "status": status_code, "path": request.url.path, **extra}


def register_exception_handlers(app: FastAPI) -> None:
    """Attach simple, consistent JSON error handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(
                request,
                exc.detail if isinstance(exc.detail, str) else "HTTPError",
                exc.status_code,
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=_error_body(request, "ValidationError", 422, details=jsonable_encoder(exc.errors())),
        )

    @app.exception_handler(ValidationError)
    async def domain_validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content=_error_body(request, str(exc) or "ValidationError", 400))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body(request, str(exc) or "Not found", 404))

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        # details stay in the log; clients get a generic failure
        logger.error("storage error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content=_error_body(request, "Internal server error", 500))

    @app.exception_handler(TaskmasterError)
    async def taskmaster_error_handler(request: Request, exc: TaskmasterError):
        logger.error("unhandled %s on %s: %s", type(exc).__name__, request.url.path, exc)
        return JSONResponse(status_code=500, content=_error_body(request, "Internal server error", 500))

