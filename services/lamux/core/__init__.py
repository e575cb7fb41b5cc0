"""
Core logic package.

Provides host routing and the request/response translation.
"""

from .event_builder import EventBuilder, V2HttpEventBuilder
from .host_resolver import effective_host, resolve_target
from .response_parser import parse_lambda_response

__all__ = [
    "EventBuilder",
    "V2HttpEventBuilder",
    "effective_host",
    "resolve_target",
    "parse_lambda_response",
]
