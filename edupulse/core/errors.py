import traceback
from typing import Any, Dict, Optional, Union

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from edupulse.core.config import settings
from edupulse.core.logging import logger


class BaseAPIError(Exception):
    """Base exception class for API errors"""
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

class AuthenticationError(BaseAPIError):
    """Raised when the caller cannot be authenticated"""
    def __init__(
        self,
        message: str = "Authentication failed",
        error_code: str = "AUTH_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code=error_code,
            details=details
        )

class TokenError(AuthenticationError):
    """Raised when there's a token-related error"""
    def __init__(
        self,
        message: str = "Invalid or expired token",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="TOKEN_ERROR",
            details=details
        )

class PermissionDenied(BaseAPIError):
    """Raised when user doesn't have required permissions"""
    def __init__(
        self,
        message: str = "Permission denied",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="PERMISSION_DENIED",
            details=details
        )

class ValidationError(BaseAPIError):
    """Raised when input validation fails"""
    def __init__(
        self,
        message: str = "Validation error",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_ERROR",
            details=details
        )

class NotFoundError(BaseAPIError):
    """Raised when a requested resource is not found"""
    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            details=details
        )

class DuplicateResourceError(BaseAPIError):
    """Raised when attempting to create a duplicate resource"""
    def __init__(
        self,
        message: str = "Resource already exists",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="DUPLICATE_RESOURCE",
            details=details
        )

class DatabaseError(BaseAPIError):
    """Raised when there's a database-related error"""
    def __init__(
        self,
        message: str = "Database error occurred",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="DB_ERROR",
            details=details
        )

class ConfigurationError(BaseAPIError):
    """Raised when there's a configuration-related error"""
    def __init__(
        self,
        message: str = "Configuration error",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="CONFIG_ERROR",
            details=details
        )

class AIGatewayError(BaseAPIError):
    """Raised when the AI model gateway is unreachable or answers with an error"""
    def __init__(
        self,
        message: str = "AI service is unavailable",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="AI_GATEWAY_ERROR",
            details=details
        )


def get_error_message(
    error: Union[Exception, HTTPException, str],
    default_message: str = "An unexpected error occurred",
    include_details: bool = True
) -> Dict[str, Any]:
    """
    Formats error messages into the response body shared by every endpoint.

    Args:
        error: The exception that was raised or error message string
        default_message: Fallback message if error type is not recognized
        include_details: Whether to include error details in response

    Returns:
        Dict containing formatted error response with message, code, and optional details
    """
    error_response = {
        "success": False,
        "error_code": "INTERNAL_ERROR",
        "message": default_message,
        "status_code": 500
    }

    if isinstance(error, str):
        error_response.update({
            "message": error,
            "error_code": "GENERAL_ERROR"
        })
        return error_response

    if isinstance(error, HTTPException):
        error_response.update({
            "error_code": "HTTP_ERROR",
            "message": str(error.detail),
            "status_code": error.status_code
        })

    elif isinstance(error, SQLAlchemyError):
        error_response.update({
            "error_code": "DB_ERROR",
            "message": "Database error occurred",
            "status_code": 500
        })

    elif isinstance(error, BaseAPIError):
        error_response.update({
            "error_code": error.error_code,
            "message": str(error.message),
            "status_code": error.status_code
        })

        if include_details and error.details:
            error_response["details"] = error.details

    elif isinstance(error, RequestValidationError):
        error_response.update({
            "error_code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "status_code": 422
        })

        if include_details:
            error_response["details"] = {"errors": jsonable_encoder(error.errors())}

    elif isinstance(error, ValueError):
        error_response.update({
            "error_code": "VALIDATION_ERROR",
            "message": str(error),
            "status_code": 422
        })

    # Debug information outside production
    if include_details and settings.DEBUG and not settings.PRODUCTION:
        error_response["error_type"] = error.__class__.__name__
        error_response["traceback"] = traceback.format_exc()

    return error_response


def register_exception_handlers(app: FastAPI) -> None:
    """Attach handlers so every failure leaves with the same body shape"""

    @app.exception_handler(BaseAPIError)
    async def api_error_handler(request: Request, exc: BaseAPIError):
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.error_code} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=get_error_message(exc))

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Database error on {request.url.path}", exc_info=exc)
        return JSONResponse(status_code=500, content=get_error_message(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info(f"VALIDATION_ERROR on {request.url.path}: {len(exc.errors())} invalid field(s)")
        return JSONResponse(status_code=422, content=get_error_message(exc))

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        logger.info(f"VALIDATION_ERROR on {request.url.path}: {exc}")
        return JSONResponse(status_code=422, content=get_error_message(exc))
