"""
Where: services/lamux/exceptions.py
What: Exception handler registration for the proxy app.
Why: Keep error handling setup isolated from route and lifecycle concerns.
"""

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import (
    LamuxError,
    global_exception_handler,
    http_exception_handler,
    lamux_exception_handler,
)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Exception, global_exception_handler)  # ty: ignore[invalid-argument-type]  # Starlette type stubs incomplete
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # ty: ignore[invalid-argument-type]  # Starlette type stubs incomplete
    app.add_exception_handler(LamuxError, lamux_exception_handler)  # ty: ignore[invalid-argument-type]  # Starlette type stubs incomplete
