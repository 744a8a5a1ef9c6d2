"""Error taxonomy of the booking API and its JSON rendering."""

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ticketing.logger_config import logger


class TicketingError(Exception):
    def __init__(self, message: str, status_code: int = 400, headers: dict = None):
        self.message = message
        self.status_code = status_code
        self.headers = headers
        super().__init__(message)


class ValidationError(TicketingError):
    def __init__(self, message: str):
        super().__init__(message, 400)


class InvalidSignature(TicketingError):
    def __init__(self, message: str = "Invalid payment signature"):
        super().__init__(message, 400)


class PaymentNotSuccessful(TicketingError):
    def __init__(self, message: str = "Payment not successful"):
        super().__init__(message, 400)


class UnauthorizedError(TicketingError):
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, 401, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(TicketingError):
    def __init__(self, message: str):
        super().__init__(message, 403)


class NotFoundError(TicketingError):
    def __init__(self, message: str):
        super().__init__(message, 404)


class GatewayError(TicketingError):
    """The payment gateway could not be reached or refused the call."""

    def __init__(self, message: str = "Payment gateway unavailable"):
        super().__init__(message, 500)


class ConfigurationError(TicketingError):
    """A required secret or credential is missing."""

    def __init__(self, message: str = "Server configuration error"):
        super().__init__(message, 500)


def error_body(message: str) -> dict:
    return {"success": False, "error": message}


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    # ValueErrors raised in validators carry the readable message
    ctx_error = (first.get("ctx") or {}).get("error")
    if ctx_error:
        return str(ctx_error)
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"Invalid {field}" if field else "Invalid request"


async def ticketing_error_handler(request: Request, exc: TicketingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.exception(f"{request.url.path}: {exc.message}")
    else:
        logger.error(f"{request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message), headers=exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc)
    logger.error(f"{request.url.path}: validation failed: {exc.errors()}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(message))


async def general_500_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.url.path}: unhandled exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error"),
    )


EXCEPTION_HANDLERS = {
    TicketingError: ticketing_error_handler,
    RequestValidationError: validation_error_handler,
    Exception: general_500_exception_handler,
}


def register_exception_handlers(app):
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
