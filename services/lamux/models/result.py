"""
Invocation result models.

Standardizes the output of the Lambda invocation step.
"""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from .target import RoutedTarget


class UpstreamResponse(BaseModel):
    """HTTP response decoded from a successful invocation payload."""

    status_code: int
    headers: List[Tuple[str, str]] = Field(default_factory=list)
    body: bytes = b""


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    GATEWAY_TIMEOUT = "gateway_timeout"
    EXECUTION_ERROR = "execution_error"
    BAD_GATEWAY = "bad_gateway"


_STATUS_BY_KIND = {
    OutcomeKind.SUCCESS: 200,
    OutcomeKind.NOT_FOUND: 404,
    OutcomeKind.GATEWAY_TIMEOUT: 504,
    OutcomeKind.EXECUTION_ERROR: 500,
    OutcomeKind.BAD_GATEWAY: 502,
}


class InvocationOutcome(BaseModel):
    """
    Unified result of a Lambda invocation.

    `kind` is the tag callers switch on; `status_code` is the fixed HTTP
    status for failures. On success the payload still has to be decoded
    into the upstream HTTP response.
    """

    kind: OutcomeKind
    target: RoutedTarget
    elapsed: float = 0.0
    payload: bytes = b""
    error: Optional[str] = None
    function_error: Optional[str] = None
    error_message: Optional[str] = None
    executed_version: Optional[str] = None
    upstream_status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @property
    def status_code(self) -> int:
        return _STATUS_BY_KIND[self.kind]
