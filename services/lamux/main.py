"""
Lamux - host-routed HTTP proxy for AWS Lambda function aliases

Routes `{alias}-{function}.{domain suffix}` hosts to Lambda Invoke with an
API Gateway v2 HTTP event and relays the function's response.
"""

from typing import Optional

from fastapi import FastAPI, Request
from starlette.types import Receive, Scope, Send

from .api.deps import get_processor
from .config import VERSION, LamuxConfig
from .exceptions import register_exception_handlers
from .lifecycle import manage_lifespan
from .middleware import request_logging_middleware
from .services.lambda_invoker import LambdaClient


class ProxyEndpoint:
    """
    ASGI endpoint forwarding every request to the processor.

    Mounted as a raw ASGI app so the route carries no method filter;
    function endpoints default to GET only.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive, send)
        response = await get_processor(request).process_request(request)
        await response(scope, receive, send)


def create_app(config: LamuxConfig, lambda_client: Optional[LambdaClient] = None) -> FastAPI:
    """
    Assemble the proxy application.

    Args:
        config: validated proxy settings
        lambda_client: boto3 `lambda` client; created at startup when omitted
    """

    def lifespan(app: FastAPI):
        return manage_lifespan(app, config, lambda_client)

    app = FastAPI(
        title="lamux",
        version=VERSION,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # Register middleware (decorator style).
    app.middleware("http")(request_logging_middleware)

    register_exception_handlers(app)

    # Catch-all route: any method, any path, routed by host.
    app.add_route("/{path:path}", ProxyEndpoint(), include_in_schema=False)

    if config.trace_enabled:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app)

    return app
