"""
Lamux Request Processor - Service Layer

Standardizes the flow: Request -> RoutedTarget -> Event -> InvocationOutcome -> Response.
"""

import asyncio
import time

from fastapi import Request, Response

from services.common.core.request_context import bind_log_fields
from services.lamux.config import LamuxConfig
from services.lamux.core.event_builder import EventBuilder
from services.lamux.core.exceptions import (
    LamuxError,
    SelfInvocationError,
    UpstreamTimeoutError,
    error_response,
)
from services.lamux.core.host_resolver import effective_host, resolve_target
from services.lamux.core.response_parser import parse_lambda_response
from services.lamux.models.context import InputContext
from services.lamux.services.lambda_invoker import LambdaInvoker


def build_input_context(request: Request, host: str, body: bytes) -> InputContext:
    """Capture the parts of a Starlette request the event builder needs."""
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else request.url.path
    return InputContext(
        method=request.method,
        path=path,
        raw_query_string=request.scope.get("query_string", b"").decode("latin-1"),
        headers=[(k.decode("latin-1"), v.decode("latin-1")) for k, v in request.headers.raw],
        body=body,
        host=host,
        source_ip=request.client.host if request.client else "",
        protocol=f"HTTP/{request.scope.get('http_version', '1.1')}",
        request_id=request.headers.get("x-amzn-requestid"),
    )


class ProxyRequestProcessor:
    """
    Orchestrates the request processing lifecycle.

    Every failure becomes a plain-text error response here; the access log
    record is written once by the middleware from the bound log fields.
    """

    def __init__(self, config: LamuxConfig, invoker: LambdaInvoker, event_builder: EventBuilder):
        self.config = config
        self.invoker = invoker
        self.event_builder = event_builder

    async def process_request(self, request: Request) -> Response:
        """
        Proxy one HTTP request to the Lambda function selected by its host.
        """
        deadline = time.monotonic() + self.config.LAMUX_UPSTREAM_TIMEOUT
        try:
            return await self._process(request, deadline)
        except LamuxError as exc:
            bind_log_fields(error=str(exc))
            return error_response(exc.status_code, str(exc))

    async def _process(self, request: Request, deadline: float) -> Response:
        # 1. Resolve the target from the host
        host = effective_host(request.headers, request.headers.get("host") or request.url.netloc)
        target = resolve_target(
            host, self.config.LAMUX_DOMAIN_SUFFIX, self.config.LAMUX_FUNCTION_NAME
        )
        bind_log_fields(function_name=target.function_name, alias=target.alias)

        # 2. Prevent recursive calls into ourselves
        own_name = self.config.AWS_LAMBDA_FUNCTION_NAME
        if own_name and target.function_name == own_name:
            raise SelfInvocationError(target.function_name)

        # 3. Build the event
        try:
            body = await asyncio.wait_for(request.body(), timeout=_remaining(deadline))
        except asyncio.TimeoutError as e:
            raise UpstreamTimeoutError("upstream timeout: request body not received in time") from e
        payload = self.event_builder.encode(build_input_context(request, host, body))

        # 4. Invoke Lambda
        outcome = await self.invoker.invoke(target, payload, timeout=_remaining(deadline))
        bind_log_fields(invoke_duration=round(outcome.elapsed, 6))
        if outcome.executed_version is not None:
            bind_log_fields(executed_version=outcome.executed_version)
        if not outcome.ok:
            bind_log_fields(error=outcome.error)
            if outcome.error_message:
                bind_log_fields(function_error_message=outcome.error_message)
            return error_response(outcome.status_code, outcome.error)

        # 5. Transform response
        upstream = parse_lambda_response(outcome.payload)
        bind_log_fields(upstream_status=upstream.status_code)

        response = Response(content=upstream.body, status_code=upstream.status_code)
        for name, value in upstream.headers:
            response.headers.append(name, value)
        return response


def _remaining(deadline: float) -> float:
    return max(deadline - time.monotonic(), 0.0)
