#!/usr/bin/env python3
import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

import uvicorn
from pydantic import ValidationError

from services.lamux.config import VERSION, LamuxConfig
from services.lamux.core.logging_config import setup_logging

logger = logging.getLogger("lamux.main")

# argparse dest -> LamuxConfig field
_FLAG_FIELDS = {
    "port": "LAMUX_PORT",
    "function_name": "LAMUX_FUNCTION_NAME",
    "domain_suffix": "LAMUX_DOMAIN_SUFFIX",
    "upstream_timeout": "LAMUX_UPSTREAM_TIMEOUT",
    "max_connections": "LAMUX_MAX_CONNECTIONS",
    "trace_stdout": "OTEL_EXPORTER_STDOUT",
    "trace_endpoint": "OTEL_EXPORTER_OTLP_ENDPOINT",
    "trace_insecure": "OTEL_EXPORTER_OTLP_INSECURE",
    "trace_protocol": "OTEL_EXPORTER_OTLP_PROTOCOL",
    "trace_headers": "OTEL_EXPORTER_OTLP_HEADERS",
    "trace_service": "OTEL_SERVICE_NAME",
    "trace_batch": "OTEL_EXPORTER_OTLP_BATCH",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lamux",
        description="HTTP proxy for AWS Lambda function aliases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    # Every flag defaults to None so unset flags fall back to the environment.
    parser.add_argument("--port", type=int, default=None, help="Port to listen on ($LAMUX_PORT)")
    parser.add_argument(
        "--function-name",
        default=None,
        help="Name of the Lambda function to proxy, '*' for any ($LAMUX_FUNCTION_NAME)",
    )
    parser.add_argument(
        "--domain-suffix", default=None, help="Domain suffix to accept requests for ($LAMUX_DOMAIN_SUFFIX)"
    )
    parser.add_argument(
        "--upstream-timeout",
        default=None,
        help="Timeout for upstream requests, e.g. 30s or 500ms ($LAMUX_UPSTREAM_TIMEOUT)",
    )
    parser.add_argument(
        "--max-connections",
        type=int,
        default=None,
        help="Maximum concurrent Lambda invocations ($LAMUX_MAX_CONNECTIONS)",
    )

    trace = parser.add_argument_group("tracing")
    trace.add_argument(
        "--trace-stdout",
        action="store_true",
        default=None,
        help="Enable stdout exporter for Otel trace ($OTEL_EXPORTER_STDOUT)",
    )
    trace.add_argument(
        "--trace-endpoint",
        default=None,
        help="Otel trace endpoint, e.g. localhost:4318 ($OTEL_EXPORTER_OTLP_ENDPOINT)",
    )
    trace.add_argument(
        "--trace-insecure",
        action="store_true",
        default=None,
        help="Disable TLS for Otel trace endpoint ($OTEL_EXPORTER_OTLP_INSECURE)",
    )
    trace.add_argument(
        "--trace-protocol",
        choices=["http/protobuf", "grpc"],
        default=None,
        help="Otel trace protocol ($OTEL_EXPORTER_OTLP_PROTOCOL)",
    )
    trace.add_argument(
        "--trace-headers",
        default=None,
        help="Additional headers for Otel trace endpoint, key1=value1;key2=value2 "
        "($OTEL_EXPORTER_OTLP_HEADERS)",
    )
    trace.add_argument(
        "--trace-service", default=None, help="Service name for Otel trace ($OTEL_SERVICE_NAME)"
    )
    trace.add_argument(
        "--trace-batch",
        action="store_true",
        default=None,
        help="Enable batcher for Otel trace ($OTEL_EXPORTER_OTLP_BATCH)",
    )
    return parser


def config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Map the flags that were given onto LamuxConfig init kwargs."""
    overrides = {}
    for dest, field in _FLAG_FIELDS.items():
        value = getattr(args, dest)
        if value is not None:
            overrides[field] = value
    return overrides


def load_config(args: argparse.Namespace) -> LamuxConfig:
    return LamuxConfig(**config_overrides(args))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"lamux v{VERSION}")
        return 0

    try:
        config = load_config(args)
    except ValidationError as e:
        print(f"invalid configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(config.LOG_CONFIG_PATH, level=config.LOG_LEVEL)

    from services.lamux.main import create_app

    app = create_app(config)
    logger.info(
        "starting lamux",
        extra={"version": VERSION, "port": config.LAMUX_PORT},
    )
    uvicorn.run(app, host="0.0.0.0", port=config.LAMUX_PORT, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
