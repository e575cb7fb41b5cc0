"""
Data model definitions package.

Aggregates Pydantic models for use in other modules.
"""

from .aws_v2 import APIGatewayV2HTTPEvent, LambdaProxyResponse
from .context import InputContext
from .result import InvocationOutcome, OutcomeKind, UpstreamResponse
from .target import RoutedTarget

__all__ = [
    "APIGatewayV2HTTPEvent",
    "LambdaProxyResponse",
    "InputContext",
    "InvocationOutcome",
    "OutcomeKind",
    "RoutedTarget",
    "UpstreamResponse",
]
