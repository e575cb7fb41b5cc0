"""
Dependency accessors for the Lamux API.

Shared resources live on app.state and are looked up per request.
"""

from fastapi import Request

from ..services.processor import ProxyRequestProcessor


def get_processor(request: Request) -> ProxyRequestProcessor:
    return request.app.state.processor
