"""
Lambda Invoker Service

Calls Lambda Invoke for a routed target with a deadline and converts the
response, AWS SDK errors and the deadline into an InvocationOutcome. The
boto3 client is blocking, so the call runs in a worker thread while the
event loop enforces the timeout.
"""

import asyncio
import contextvars
import functools
import json
import time
from concurrent.futures import Executor
from typing import Any, Dict, Optional, Protocol

from botocore.exceptions import BotoCoreError, ClientError, ReadTimeoutError
from opentelemetry.trace import Status, StatusCode, Tracer

from services.lamux.core.otel import tracer as default_tracer
from services.lamux.models.result import InvocationOutcome, OutcomeKind
from services.lamux.models.target import RoutedTarget

RESOURCE_NOT_FOUND = "ResourceNotFoundException"


class LambdaClient(Protocol):
    """The single boto3 `lambda` client operation the proxy depends on."""

    def invoke(self, **kwargs: Any) -> Dict[str, Any]: ...


def _read_payload(payload: Any) -> bytes:
    # boto3 returns a StreamingBody; test doubles may return bytes.
    if payload is None:
        return b""
    if hasattr(payload, "read"):
        return payload.read()
    return bytes(payload)


def _function_error_message(payload: bytes) -> Optional[str]:
    """Pick errorMessage out of a failed function's payload, if it has one."""
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    message = data.get("errorMessage")
    return str(message) if message is not None else None


class LambdaInvoker:
    def __init__(
        self,
        client: LambdaClient,
        tracer: Optional[Tracer] = None,
        executor: Optional[Executor] = None,
    ):
        """
        Args:
            client: boto3 `lambda` client (long-lived, shared by all requests)
            tracer: OpenTelemetry tracer, defaults to the lamux tracer
            executor: worker pool for the blocking client calls; the loop's
                default executor when omitted
        """
        self.client = client
        self.tracer = tracer or default_tracer
        self.executor = executor

    def _call(self, target: RoutedTarget, payload: bytes) -> Dict[str, Any]:
        response = self.client.invoke(
            FunctionName=target.function_name,
            Qualifier=target.alias,
            Payload=payload,
        )
        response = dict(response)
        response["Payload"] = _read_payload(response.get("Payload"))
        return response

    def _submit(self, target: RoutedTarget, payload: bytes) -> "asyncio.Future[Dict[str, Any]]":
        loop = asyncio.get_running_loop()
        call = functools.partial(contextvars.copy_context().run, self._call, target, payload)
        return loop.run_in_executor(self.executor, call)

    async def invoke(
        self, target: RoutedTarget, payload: bytes, timeout: float
    ) -> InvocationOutcome:
        """
        Invoke the target once, bounded by `timeout` seconds.

        Returns:
            InvocationOutcome tagged SUCCESS, NOT_FOUND, GATEWAY_TIMEOUT,
            EXECUTION_ERROR or BAD_GATEWAY

        Raises:
            asyncio.CancelledError: the enclosing request task was cancelled
            Exception: anything other than an AWS SDK error propagates unchanged
        """
        with self.tracer.start_as_current_span("Invoke") as span:
            span.set_attribute("lambda.function_name", target.function_name)
            span.set_attribute("lambda.alias", target.alias)

            start = time.perf_counter()
            try:
                outcome = await self._invoke(target, payload, timeout)
            except asyncio.CancelledError:
                span.set_status(Status(StatusCode.ERROR, "upstream timeout: request canceled"))
                raise
            outcome.elapsed = time.perf_counter() - start

            if outcome.executed_version is not None:
                span.set_attribute("lambda.executed_version", outcome.executed_version)
            if outcome.upstream_status_code is not None:
                span.set_attribute("lambda.status_code", outcome.upstream_status_code)
            if not outcome.ok:
                span.set_status(Status(StatusCode.ERROR, outcome.error))
            return outcome

    async def _invoke(
        self, target: RoutedTarget, payload: bytes, timeout: float
    ) -> InvocationOutcome:
        try:
            response = await asyncio.wait_for(self._submit(target, payload), timeout=timeout)
        except asyncio.TimeoutError:
            return InvocationOutcome(
                kind=OutcomeKind.GATEWAY_TIMEOUT,
                target=target,
                error=f"upstream timeout: no response within {timeout:g}s",
            )
        except ReadTimeoutError as e:
            return InvocationOutcome(
                kind=OutcomeKind.GATEWAY_TIMEOUT,
                target=target,
                error=f"upstream timeout: {e}",
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            kind = OutcomeKind.NOT_FOUND if code == RESOURCE_NOT_FOUND else OutcomeKind.BAD_GATEWAY
            return InvocationOutcome(
                kind=kind,
                target=target,
                error=f"failed to invoke: {e}",
                upstream_status_code=e.response.get("ResponseMetadata", {}).get("HTTPStatusCode"),
            )
        except BotoCoreError as e:
            return InvocationOutcome(
                kind=OutcomeKind.BAD_GATEWAY,
                target=target,
                error=f"failed to invoke: {e}",
            )

        executed_version = response.get("ExecutedVersion")
        status_code = response.get("StatusCode")
        body = response["Payload"]

        function_error = response.get("FunctionError")
        if function_error:
            return InvocationOutcome(
                kind=OutcomeKind.EXECUTION_ERROR,
                target=target,
                error=f"function error: {function_error}",
                function_error=function_error,
                error_message=_function_error_message(body),
                executed_version=executed_version,
                upstream_status_code=status_code,
            )

        return InvocationOutcome(
            kind=OutcomeKind.SUCCESS,
            target=target,
            payload=body,
            executed_version=executed_version,
            upstream_status_code=status_code,
        )
