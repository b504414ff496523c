"""Global error handlers: every failure leaves as JSON `{"detail", "code"}`."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from inkwell.errors import InkwellError

logger = structlog.get_logger()


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(InkwellError)
    async def domain_exception_handler(request: Request, exc: InkwellError) -> JSONResponse:
        """Map a domain error kind to its status code."""
        logger.info(
            "domain_error",
            path=request.url.path,
            code=exc.code,
            status=exc.status_code,
            ids=exc.ids,
        )
        content: dict[str, object] = {"detail": exc.message, "code": exc.code}
        if exc.ids:
            content["ids"] = exc.ids
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "code": "HTTP_ERROR"},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "code": "INVALID_PAYLOAD", "errors": jsonable_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions, store failures included."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "code": "INTERNAL_ERROR"},
        )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, object]]:
    """Pydantic error entries minus the non-serializable `ctx`/`input` payloads."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]
