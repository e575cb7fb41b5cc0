import io
import json
import os
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest

# boto3 needs a region to build a client, even a stubbed one.
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

_CONFIG_ENV = (
    "LAMUX_PORT",
    "LAMUX_FUNCTION_NAME",
    "LAMUX_DOMAIN_SUFFIX",
    "LAMUX_UPSTREAM_TIMEOUT",
    "LAMUX_MAX_CONNECTIONS",
    "OTEL_EXPORTER_STDOUT",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_EXPORTER_OTLP_INSECURE",
    "OTEL_EXPORTER_OTLP_PROTOCOL",
    "OTEL_EXPORTER_OTLP_HEADERS",
    "OTEL_SERVICE_NAME",
    "OTEL_EXPORTER_OTLP_BATCH",
    "AWS_LAMBDA_FUNCTION_NAME",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the host environment out of LamuxConfig."""
    for name in _CONFIG_ENV:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def make_config():
    from services.lamux.config import LamuxConfig

    def _make(**overrides: Any) -> LamuxConfig:
        values: Dict[str, Any] = {
            "LAMUX_FUNCTION_NAME": "myfunc",
            "LAMUX_DOMAIN_SUFFIX": "example.com",
            "LAMUX_UPSTREAM_TIMEOUT": 2.0,
        }
        values.update(overrides)
        return LamuxConfig(**values)

    return _make


def invoke_response(
    payload: Any,
    status_code: int = 200,
    executed_version: str = "1",
    function_error: Optional[str] = None,
) -> Dict[str, Any]:
    """Shape of a boto3 Lambda Invoke response."""
    raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    response: Dict[str, Any] = {
        "StatusCode": status_code,
        "ExecutedVersion": executed_version,
        "Payload": io.BytesIO(raw),
        "ResponseMetadata": {"HTTPStatusCode": status_code},
    }
    if function_error:
        response["FunctionError"] = function_error
    return response


@pytest.fixture
def lambda_client():
    client = MagicMock()
    client.invoke.return_value = invoke_response(
        {"statusCode": 200, "headers": {"content-type": "text/plain"}, "body": "ok"}
    )
    return client


@pytest.fixture
def make_invoke_response():
    return invoke_response
