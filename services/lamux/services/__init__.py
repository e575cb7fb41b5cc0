"""
Services package.

Provides business logic and external integrations.
"""

from .lambda_invoker import LambdaClient, LambdaInvoker
from .processor import ProxyRequestProcessor

__all__ = [
    "LambdaClient",
    "LambdaInvoker",
    "ProxyRequestProcessor",
]
