"""
Where: services/lamux/tests/test_lifecycle.py
What: Tests for startup wiring of shared resources.
Why: The Lambda client and processor are created once and shared per process.
"""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
from fastapi import FastAPI

from services.lamux.lifecycle import create_lambda_client, manage_lifespan
from services.lamux.services.processor import ProxyRequestProcessor


def test_lambda_client_settings(make_config):
    client = create_lambda_client(
        make_config(LAMUX_UPSTREAM_TIMEOUT=12.0, LAMUX_MAX_CONNECTIONS=64)
    )

    assert client.meta.service_model.service_name == "lambda"
    assert client.meta.config.read_timeout == 12.0
    assert client.meta.config.retries["total_max_attempts"] == 1
    assert client.meta.config.max_pool_connections == 64


@pytest.mark.asyncio
async def test_lifespan_populates_state(make_config, lambda_client):
    app = FastAPI()
    config = make_config()
    shutdown_calls = []

    with patch(
        "services.lamux.lifecycle.setup_otel_sdk", return_value=lambda: shutdown_calls.append(1)
    ):
        async with manage_lifespan(app, config, lambda_client):
            assert isinstance(app.state.processor, ProxyRequestProcessor)
            assert app.state.lambda_invoker.client is lambda_client
            assert app.state.config is config
            executor = app.state.lambda_invoker.executor
            assert isinstance(executor, ThreadPoolExecutor)
            assert executor._max_workers == config.LAMUX_MAX_CONNECTIONS
            assert shutdown_calls == []

    assert shutdown_calls == [1]


@pytest.mark.asyncio
async def test_lifespan_creates_client_when_not_injected(make_config, lambda_client):
    app = FastAPI()
    with patch(
        "services.lamux.lifecycle.create_lambda_client", return_value=lambda_client
    ) as factory:
        async with manage_lifespan(app, make_config()):
            assert app.state.lambda_invoker.client is lambda_client

    factory.assert_called_once()
