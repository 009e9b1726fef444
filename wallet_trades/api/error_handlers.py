"""
Error handlers for the API
"""
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from wallet_trades.__version__ import __version__
from wallet_trades.utils.errors import ErrorCode, WalletTradesError

# Setup logger
logger = structlog.get_logger("api.errors")


def error_content(message: str, error: dict) -> dict:
    """Build the error response body."""
    return {"message": message, "version": __version__, "error": error}


def register_error_handlers(app: FastAPI) -> None:
    """Register global error handlers for the application"""

    @app.exception_handler(WalletTradesError)
    async def wallet_trades_error_handler(request: Request, exc: WalletTradesError):
        """Handle application errors"""
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "Request failed",
            code=exc.code.value,
            status_code=exc.status_code,
            error=exc.message,
            path=request.url.path
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_content(exc.message, exc.to_dict())
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Handle malformed query and path parameters"""
        logger.warning("Invalid request", errors=exc.errors(), path=request.url.path)
        return JSONResponse(
            status_code=400,
            content=error_content(
                "Invalid request parameters",
                {
                    "code": ErrorCode.VALIDATION_ERROR.value,
                    "message": "Invalid request parameters",
                    "details": {"errors": [str(error.get("msg")) for error in exc.errors()]}
                }
            )
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions"""
        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_content(str(exc.detail), {"code": ErrorCode.UNKNOWN_ERROR.value})
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all uncaught exceptions"""
        logger.exception(
            "Uncaught exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method
        )
        return JSONResponse(
            status_code=500,
            content=error_content(
                "Internal server error",
                {
                    "code": ErrorCode.UNKNOWN_ERROR.value,
                    "message": str(exc) if app.debug else "An unexpected error occurred"
                }
            )
        )
