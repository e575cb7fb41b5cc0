"""
Custom exception classes.

Represent request-level failures that short-circuit the proxy flow.
Lambda invocation failures are reported as InvocationOutcome kinds instead.
"""

from fastapi import Request, status
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.common.core.request_context import bind_log_fields


class LamuxError(Exception):
    """Base exception class for proxy failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


class HostValidationError(LamuxError):
    """Raised when the request host cannot be routed."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidDomainSuffixError(HostValidationError):
    def __init__(self, domain_suffix: str):
        self.domain_suffix = domain_suffix
        super().__init__(f"invalid domain suffix (must be {domain_suffix})")


class InvalidAliasError(HostValidationError):
    def __init__(self, pattern: str):
        super().__init__(f"invalid alias ({pattern} allowed)")


class InvalidFunctionNameError(HostValidationError):
    def __init__(self, pattern: str):
        super().__init__(f"invalid function name ({pattern} allowed)")


class InvalidHostFormatError(HostValidationError):
    def __init__(self, domain_suffix: str):
        self.domain_suffix = domain_suffix
        super().__init__(f"invalid host name format. must be {{alias}}-{{function}}.{domain_suffix}")


class SelfInvocationError(LamuxError):
    """Raised when the resolved function is the running process itself."""

    def __init__(self, function_name: str):
        self.function_name = function_name
        super().__init__(f"recursive call detected: {function_name}")


class RequestEncodingError(LamuxError):
    """Raised when the HTTP request cannot be converted into an invocation payload."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"failed to convert request: {cause}")


class BadUpstreamResponseError(LamuxError):
    """Raised when the Lambda payload is not a usable HTTP response."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"failed to unmarshal response: {detail}")


class UpstreamTimeoutError(LamuxError):
    """Raised when the request deadline passes before the invocation starts."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT

    def __init__(self, detail: str = "upstream timeout"):
        super().__init__(detail)


# ===========================================
# Exception Handlers
# ===========================================


def error_response(status_code: int, message: str) -> PlainTextResponse:
    """Plain-text error body, one line, like net/http's http.Error."""
    return PlainTextResponse(f"{message}\n", status_code=status_code)


async def lamux_exception_handler(request: Request, exc: LamuxError):
    """
    Handler for LamuxError raised outside the request processor.
    """
    bind_log_fields(error=str(exc))
    return error_response(exc.status_code, str(exc))


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unhandled exceptions.
    """
    bind_log_fields(error=str(exc))
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for HTTPException.
    """
    bind_log_fields(error=str(exc.detail))
    return error_response(exc.status_code, str(exc.detail))
