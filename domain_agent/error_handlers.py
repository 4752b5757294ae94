# domain_agent/error_handlers.py
"""
Centralized error handling: error codes, application exceptions and the
FastAPI handlers that render every failure in the standard envelope.
"""

import traceback
from typing import Any, Dict, List, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .logging_config import get_logger
from .rate_limit import log_rate_limit_hit

logger = get_logger(__name__)


# ============================================================================
# ERROR CODES - For client-side error handling
# ============================================================================

class ErrorCode:
    """Centralized error codes for consistent client-side handling"""

    # General errors (1xxx)
    INTERNAL_SERVER_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"
    NOT_FOUND = "ERR_1002"
    UNAUTHORIZED = "ERR_1003"
    RATE_LIMIT_EXCEEDED = "ERR_1005"
    CONFLICT = "ERR_1006"

    # Database errors (2xxx)
    DATABASE_ERROR = "ERR_2000"
    INTEGRITY_ERROR = "ERR_2001"

    # Business logic errors (3xxx)
    DOMAIN_UNAVAILABLE = "ERR_3000"
    DOMAIN_ALREADY_TAKEN = "ERR_3001"
    INVALID_DOMAIN_STATE = "ERR_3002"
    PAYMENT_NOT_COMPLETED = "ERR_3003"
    REFUND_FAILED = "ERR_3004"
    INVALID_RESET_TOKEN = "ERR_3005"
    USER_EXISTS = "ERR_3006"
    ACCOUNT_HAS_ACTIVE_ITEMS = "ERR_3007"
    EMAIL_DELIVERY_FAILED = "ERR_3008"

    # External service errors (4xxx)
    GEMINI_API_ERROR = "ERR_4000"
    REGISTRAR_ERROR = "ERR_4001"
    PAYMENT_GATEWAY_ERROR = "ERR_4002"


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================

class AppException(Exception):
    """Base exception for all application errors"""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(AppException):
    """Raised when input fails a check pydantic cannot express"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class NotFoundException(AppException):
    """Raised when a resource is not found"""

    def __init__(self, message: str, resource: Optional[str] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.NOT_FOUND,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource} if resource else None
        )


class UnauthorizedException(AppException):
    """Raised when authentication fails"""

    def __init__(self, message: str = "Not authorized to access this route"):
        super().__init__(
            message=message,
            error_code=ErrorCode.UNAUTHORIZED,
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class ConflictException(AppException):
    """Raised when a write loses against an existing record"""

    def __init__(self, message: str, error_code: str = ErrorCode.CONFLICT):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_409_CONFLICT
        )


class DomainUnavailableException(AppException):
    """Raised when a domain cannot be registered"""

    def __init__(self, domain: str, message: str = "Domain is not available for registration"):
        super().__init__(
            message=message,
            error_code=ErrorCode.DOMAIN_UNAVAILABLE,
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"domain": domain}
        )


class BusinessRuleException(AppException):
    """Raised when a request is well-formed but not allowed in the current state"""

    def __init__(
        self,
        message: str,
        error_code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class PaymentException(AppException):
    """Raised when the processor reports a payment or refund we cannot act on"""

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.PAYMENT_NOT_COMPLETED,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class ExternalServiceException(AppException):
    """Raised when a registrar, payment or model call fails"""

    def __init__(
        self,
        service_name: str,
        message: str,
        error_code: str = ErrorCode.INTERNAL_SERVER_ERROR
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"service": service_name}
        )


# ============================================================================
# ERROR RESPONSE FORMATTER
# ============================================================================

def format_error_response(
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    errors: Optional[List[Dict[str, Any]]] = None,
    request_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Build the failure envelope

    Returns:
        {
            "success": false,
            "message": "Domain is not available for registration",
            "code": "ERR_3000",
            "errors": [...],        # field-level validation errors
            "details": {...},
            "requestId": "abc123"
        }
    """
    response: Dict[str, Any] = {
        "success": False,
        "message": message,
        "code": error_code,
    }

    if errors:
        response["errors"] = errors

    if details:
        response["details"] = details

    if request_id:
        response["requestId"] = request_id

    return response


# ============================================================================
# FASTAPI EXCEPTION HANDLERS
# ============================================================================

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom AppException errors"""

    request_id = getattr(request.state, "request_id", None)

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"Application error: {exc.message}",
        extra={
            "request_id": request_id,
            "extra_data": {
                "error_code": exc.error_code,
                "status_code": exc.status_code,
                "path": request.url.path,
                "method": request.method,
                "details": exc.details
            }
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=format_error_response(
            error_code=exc.error_code,
            message=exc.message,
            details=exc.details,
            request_id=request_id
        )
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handler for pydantic request validation errors"""

    request_id = getattr(request.state, "request_id", None)

    errors = []
    for error in exc.errors():
        location = [str(part) for part in error["loc"] if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(location),
            "message": error["msg"],
            "type": error["type"]
        })

    logger.warning(
        "Validation error",
        extra={
            "request_id": request_id,
            "extra_data": {
                "path": request.url.path,
                "method": request.method,
                "errors": errors
            }
        }
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=format_error_response(
            error_code=ErrorCode.VALIDATION_ERROR,
            message="Validation failed",
            errors=errors,
            request_id=request_id
        )
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """Handler for framework HTTP errors (unknown routes, wrong methods)"""

    request_id = getattr(request.state, "request_id", None)

    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        status_code = exc.status_code
        error_code = ErrorCode.UNAUTHORIZED
        message = "Not authorized to access this route"
    elif exc.status_code == status.HTTP_404_NOT_FOUND:
        status_code = exc.status_code
        error_code = ErrorCode.NOT_FOUND
        message = "Route not found" if exc.detail == "Not Found" else str(exc.detail)
    else:
        status_code = exc.status_code
        error_code = ErrorCode.INTERNAL_SERVER_ERROR if status_code >= 500 else ErrorCode.VALIDATION_ERROR
        message = str(exc.detail)

    return JSONResponse(
        status_code=status_code,
        content=format_error_response(
            error_code=error_code,
            message=message,
            request_id=request_id
        ),
        headers=getattr(exc, "headers", None)
    )


def rate_limit_exception_handler(
    request: Request,
    exc: RateLimitExceeded
) -> JSONResponse:
    """Handler for slowapi limit hits; sync because SlowAPIMiddleware calls it directly"""

    request_id = getattr(request.state, "request_id", None)

    log_rate_limit_hit(request, str(exc.detail))

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=format_error_response(
            error_code=ErrorCode.RATE_LIMIT_EXCEEDED,
            message="Too many requests from this IP, please try again later.",
            details={"limit": str(exc.detail)},
            request_id=request_id
        )
    )


async def sqlalchemy_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Handler for SQLAlchemy database errors"""

    request_id = getattr(request.state, "request_id", None)

    if isinstance(exc, IntegrityError):
        error_code = ErrorCode.INTEGRITY_ERROR
        message = "Database integrity constraint violated"
        status_code = status.HTTP_409_CONFLICT
    else:
        error_code = ErrorCode.DATABASE_ERROR
        message = "Database operation failed"
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    logger.error(
        f"Database error: {str(exc)}",
        extra={
            "request_id": request_id,
            "extra_data": {
                "error_type": type(exc).__name__,
                "path": request.url.path,
                "method": request.method
            }
        },
        exc_info=True
    )

    # Don't expose internal DB details in production
    details = None if settings.ENVIRONMENT == "production" else {"database_error": str(exc)}

    return JSONResponse(
        status_code=status_code,
        content=format_error_response(
            error_code=error_code,
            message=message,
            details=details,
            request_id=request_id
        )
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Catch-all handler for unexpected errors"""

    request_id = getattr(request.state, "request_id", None)

    logger.critical(
        f"Unhandled exception: {str(exc)}",
        extra={
            "request_id": request_id,
            "extra_data": {
                "exception_type": type(exc).__name__,
                "path": request.url.path,
                "method": request.method,
            }
        },
        exc_info=True
    )

    if settings.ENVIRONMENT == "production":
        message = "Server Error"
        details = None
    else:
        message = str(exc) or "Server Error"
        details = {"traceback": traceback.format_exc().split("\n")}

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=format_error_response(
            error_code=ErrorCode.INTERNAL_SERVER_ERROR,
            message=message,
            details=details,
            request_id=request_id
        )
    )


def register_exception_handlers(app):
    """
    Register all exception handlers with the FastAPI app

    Handlers are registered from most to least specific.
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
