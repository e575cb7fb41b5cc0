"""
RequestContext management.
Use ContextVar to share per-request log fields across async execution.
"""

from contextvars import ContextVar
from typing import Any, Dict, Optional


# Context variable for the upstream Request ID (X-Amzn-RequestId).
_request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
# Context variable for structured log fields bound during a request.
_log_fields_var: ContextVar[Optional[Dict[str, Any]]] = ContextVar("log_fields", default=None)


def get_request_id() -> Optional[str]:
    """Get the current Request ID."""
    return _request_id_var.get()


def set_request_id(request_id: str) -> str:
    """Set the Request ID for the current context."""
    _request_id_var.set(request_id)
    return request_id


def clear_request_id() -> None:
    """Clear the Request ID context."""
    _request_id_var.set(None)


def start_log_context(**fields: Any) -> Dict[str, Any]:
    """
    Begin a new set of log fields for the current request.

    The dict is shared by reference with tasks spawned from this context,
    so fields bound by the route handler are visible to the middleware
    that emits the access record.
    """
    bound = dict(fields)
    _log_fields_var.set(bound)
    return bound


def bind_log_fields(**fields: Any) -> None:
    """Attach fields to every log record emitted for the current request."""
    bound = _log_fields_var.get()
    if bound is None:
        start_log_context(**fields)
        return
    bound.update(fields)


def get_log_fields() -> Dict[str, Any]:
    """Return a copy of the fields bound to the current request."""
    return dict(_log_fields_var.get() or {})


def clear_log_fields() -> None:
    """Clear all bound log fields and the Request ID."""
    _log_fields_var.set(None)
    _request_id_var.set(None)
