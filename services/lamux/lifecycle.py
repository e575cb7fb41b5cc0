"""
Where: services/lamux/lifecycle.py
What: Proxy startup/shutdown orchestration for shared resources.
Why: Keep main.py focused on app assembly while preserving lifecycle behavior.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import boto3
from botocore.config import Config as BotoConfig
from fastapi import FastAPI

from .config import LamuxConfig
from .core.event_builder import V2HttpEventBuilder
from .core.otel import setup_otel_sdk
from .services.lambda_invoker import LambdaClient, LambdaInvoker
from .services.processor import ProxyRequestProcessor

logger = logging.getLogger("lamux.main")


def create_lambda_client(config: LamuxConfig) -> LambdaClient:
    """
    Create the shared boto3 `lambda` client.

    Retries are disabled so one request maps to one invocation, the
    socket read timeout follows the upstream timeout, and the connection
    pool matches the invoke worker pool.
    """
    boto_config = BotoConfig(
        read_timeout=config.LAMUX_UPSTREAM_TIMEOUT,
        max_pool_connections=config.LAMUX_MAX_CONNECTIONS,
        retries={"total_max_attempts": 1},
    )
    return boto3.client("lambda", config=boto_config)


@asynccontextmanager
async def manage_lifespan(
    app: FastAPI,
    lamux_config: LamuxConfig,
    lambda_client: Optional[LambdaClient] = None,
) -> AsyncIterator[None]:
    """Manage application lifecycle."""
    shutdown_otel = setup_otel_sdk(lamux_config)
    executor = ThreadPoolExecutor(
        max_workers=lamux_config.LAMUX_MAX_CONNECTIONS, thread_name_prefix="lamux-invoke"
    )
    try:
        client = lambda_client if lambda_client is not None else create_lambda_client(lamux_config)

        lambda_invoker = LambdaInvoker(client, executor=executor)
        event_builder = V2HttpEventBuilder()

        app.state.config = lamux_config
        app.state.lambda_invoker = lambda_invoker
        app.state.event_builder = event_builder
        app.state.processor = ProxyRequestProcessor(lamux_config, lambda_invoker, event_builder)

        logger.info(
            "lamux initialized",
            extra={
                "function_name": lamux_config.LAMUX_FUNCTION_NAME,
                "domain_suffix": lamux_config.LAMUX_DOMAIN_SUFFIX,
                "upstream_timeout": lamux_config.LAMUX_UPSTREAM_TIMEOUT,
                "max_connections": lamux_config.LAMUX_MAX_CONNECTIONS,
            },
        )
        yield
    finally:
        logger.info("lamux shutting down")
        # Timed-out calls may still hold workers; boto's read timeout ends them.
        executor.shutdown(wait=False, cancel_futures=True)
        shutdown_otel()
