"""
Render engine failures as JSON with the status code each failure carries.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from booking_engine.core.exceptions import BookingEngineError
from booking_engine.core.logging import get_logger

logger = get_logger(__name__)


async def engine_error_handler(request: Request, exc: BookingEngineError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log("engine_error", error=type(exc).__name__, status_code=exc.status_code, detail=exc.message)
    content = {"detail": exc.message, "error": type(exc).__name__, **exc.extra}
    return JSONResponse(status_code=exc.status_code, content=content)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


EXCEPTION_HANDLERS = {
    BookingEngineError: engine_error_handler,
    Exception: unhandled_exception_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
