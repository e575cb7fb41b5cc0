"""
Where: services/lamux/tests/test_lambda_invoker.py
What: Unit tests for LambdaInvoker outcome mapping and spans.
Why: Each AWS failure mode must reach the caller as the right outcome kind.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, ReadTimeoutError
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from services.lamux.models.result import OutcomeKind
from services.lamux.models.target import RoutedTarget
from services.lamux.services.lambda_invoker import LambdaInvoker

TARGET = RoutedTarget(function_name="myfunc", alias="current")


@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture
def tracer(span_exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider.get_tracer("test")


def client_error(code: str, status: int) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} raised"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        "Invoke",
    )


@pytest.mark.asyncio
async def test_invoke_success(lambda_client, make_invoke_response, tracer, span_exporter):
    lambda_client.invoke.return_value = make_invoke_response(
        {"statusCode": 200, "body": "ok"}, executed_version="7"
    )
    invoker = LambdaInvoker(lambda_client, tracer=tracer)

    outcome = await invoker.invoke(TARGET, b'{"rawPath": "/"}', timeout=1.0)

    assert outcome.kind is OutcomeKind.SUCCESS
    assert outcome.ok
    assert outcome.executed_version == "7"
    assert outcome.upstream_status_code == 200
    assert b'"body": "ok"' in outcome.payload
    assert outcome.elapsed >= 0
    lambda_client.invoke.assert_called_once_with(
        FunctionName="myfunc", Qualifier="current", Payload=b'{"rawPath": "/"}'
    )

    (span,) = span_exporter.get_finished_spans()
    assert span.name == "Invoke"
    assert span.attributes["lambda.function_name"] == "myfunc"
    assert span.attributes["lambda.alias"] == "current"
    assert span.attributes["lambda.executed_version"] == "7"
    assert span.attributes["lambda.status_code"] == 200
    assert span.status.status_code is not StatusCode.ERROR


@pytest.mark.asyncio
async def test_invoke_not_found(lambda_client, tracer, span_exporter):
    lambda_client.invoke.side_effect = client_error("ResourceNotFoundException", 404)
    invoker = LambdaInvoker(lambda_client, tracer=tracer)

    outcome = await invoker.invoke(TARGET, b"{}", timeout=1.0)

    assert outcome.kind is OutcomeKind.NOT_FOUND
    assert outcome.status_code == 404
    assert outcome.error.startswith("failed to invoke:")
    (span,) = span_exporter.get_finished_spans()
    assert span.status.status_code is StatusCode.ERROR


@pytest.mark.asyncio
async def test_invoke_other_client_error_is_bad_gateway(lambda_client):
    lambda_client.invoke.side_effect = client_error("TooManyRequestsException", 429)

    outcome = await LambdaInvoker(lambda_client).invoke(TARGET, b"{}", timeout=1.0)

    assert outcome.kind is OutcomeKind.BAD_GATEWAY
    assert outcome.status_code == 502
    assert outcome.upstream_status_code == 429


@pytest.mark.asyncio
async def test_invoke_connection_error_is_bad_gateway(lambda_client):
    lambda_client.invoke.side_effect = EndpointConnectionError(endpoint_url="https://lambda")

    outcome = await LambdaInvoker(lambda_client).invoke(TARGET, b"{}", timeout=1.0)

    assert outcome.kind is OutcomeKind.BAD_GATEWAY


@pytest.mark.asyncio
async def test_invoke_non_sdk_error_propagates(lambda_client, tracer, span_exporter):
    lambda_client.invoke.side_effect = AttributeError("no attribute 'invoke'")

    with pytest.raises(AttributeError):
        await LambdaInvoker(lambda_client, tracer=tracer).invoke(TARGET, b"{}", timeout=1.0)

    (span,) = span_exporter.get_finished_spans()
    assert span.status.status_code is StatusCode.ERROR


@pytest.mark.asyncio
async def test_invoke_uses_given_executor(lambda_client):
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="lamux-test") as executor:
        seen = {}

        def record_thread(**kwargs):
            seen["thread"] = threading.current_thread().name
            return {"StatusCode": 200, "Payload": b"{}"}

        lambda_client.invoke.side_effect = record_thread
        outcome = await LambdaInvoker(lambda_client, executor=executor).invoke(
            TARGET, b"{}", timeout=1.0
        )

    assert outcome.ok
    assert seen["thread"].startswith("lamux-test")


@pytest.mark.asyncio
async def test_invoke_read_timeout_is_gateway_timeout(lambda_client):
    lambda_client.invoke.side_effect = ReadTimeoutError(endpoint_url="https://lambda")

    outcome = await LambdaInvoker(lambda_client).invoke(TARGET, b"{}", timeout=1.0)

    assert outcome.kind is OutcomeKind.GATEWAY_TIMEOUT
    assert outcome.status_code == 504


@pytest.mark.asyncio
async def test_invoke_deadline(make_invoke_response, tracer, span_exporter):
    def slow_invoke(**kwargs):
        time.sleep(0.5)
        return make_invoke_response({"statusCode": 200})

    client = MagicMock()
    client.invoke.side_effect = slow_invoke
    invoker = LambdaInvoker(client, tracer=tracer)

    start = time.perf_counter()
    outcome = await invoker.invoke(TARGET, b"{}", timeout=0.1)
    elapsed = time.perf_counter() - start

    assert outcome.kind is OutcomeKind.GATEWAY_TIMEOUT
    assert outcome.error == "upstream timeout: no response within 0.1s"
    assert 0.1 <= elapsed < 0.4
    assert 0.1 <= outcome.elapsed < 0.4
    (span,) = span_exporter.get_finished_spans()
    assert span.status.status_code is StatusCode.ERROR


@pytest.mark.asyncio
async def test_invoke_function_error(lambda_client, make_invoke_response):
    lambda_client.invoke.return_value = make_invoke_response(
        {"errorMessage": "division by zero", "errorType": "ZeroDivisionError"},
        function_error="Unhandled",
    )

    outcome = await LambdaInvoker(lambda_client).invoke(TARGET, b"{}", timeout=1.0)

    assert outcome.kind is OutcomeKind.EXECUTION_ERROR
    assert outcome.status_code == 500
    assert outcome.error == "function error: Unhandled"
    assert outcome.function_error == "Unhandled"
    assert outcome.error_message == "division by zero"
    assert outcome.payload == b""


@pytest.mark.asyncio
async def test_invoke_function_error_without_message(lambda_client, make_invoke_response):
    lambda_client.invoke.return_value = make_invoke_response(b"not json", function_error="Handled")

    outcome = await LambdaInvoker(lambda_client).invoke(TARGET, b"{}", timeout=1.0)

    assert outcome.kind is OutcomeKind.EXECUTION_ERROR
    assert outcome.error_message is None
