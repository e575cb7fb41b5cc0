"""
Lamux configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults; CLI flags are passed as
init kwargs and take precedence over the environment.
"""

import re
from typing import Any, Dict, Literal

from pydantic import Field, field_validator, model_validator

from services.common.core.config import BaseAppConfig

VERSION = "0.5.0"

WILDCARD_FUNCTION_NAME = "*"
FUNCTION_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9-]+$")

_DURATION_NUMBER = re.compile(r"^\d+(?:\.\d+)?$")
_DURATION_PATTERN = re.compile(r"^(?:\d+(?:\.\d+)?(?:ns|us|µs|ms|s|m|h))+$")
_DURATION_PART = re.compile(r"(?P<value>\d+(?:\.\d+)?)(?P<unit>ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Any) -> Any:
    """
    Accept Go-style durations like `30s`, `500ms`, `1m30s` as well as bare seconds.

    Non-string values are returned untouched for pydantic to validate.
    """
    if not isinstance(value, str):
        return value
    text = value.strip()
    if _DURATION_NUMBER.match(text):
        return float(text)
    if not _DURATION_PATTERN.match(text):
        raise ValueError(f"invalid duration: {value!r}")
    return sum(
        float(part.group("value")) * _DURATION_UNITS[part.group("unit")]
        for part in _DURATION_PART.finditer(text)
    )


def parse_trace_headers(raw: str) -> Dict[str, str]:
    """Parse `key1=value1;key2=value2` (`,` also accepted) into a dict."""
    headers: Dict[str, str] = {}
    for part in re.split(r"[;,]", raw or ""):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        if key.strip():
            headers[key.strip()] = value.strip()
    return headers


class LamuxConfig(BaseAppConfig):
    """
    Configuration management for the lamux proxy.
    """

    # Server settings
    LAMUX_PORT: int = Field(default=8080, description="Port to listen on")

    # Routing settings (required from env or flags)
    LAMUX_FUNCTION_NAME: str = Field(
        ..., description="Name of the Lambda function to proxy ('*' derives it from the host)"
    )
    LAMUX_DOMAIN_SUFFIX: str = Field(..., description="Domain suffix to accept requests for")
    LAMUX_UPSTREAM_TIMEOUT: float = Field(
        default=30.0, description="Timeout for upstream requests (seconds)"
    )
    LAMUX_MAX_CONNECTIONS: int = Field(
        default=128,
        description="Maximum concurrent Lambda invocations (worker threads and HTTP connections)",
    )

    # Tracing settings
    OTEL_EXPORTER_STDOUT: bool = Field(
        default=False, description="Enable stdout exporter for Otel trace"
    )
    OTEL_EXPORTER_OTLP_ENDPOINT: str = Field(
        default="", description="Otel trace endpoint (e.g. localhost:4318)"
    )
    OTEL_EXPORTER_OTLP_INSECURE: bool = Field(
        default=False, description="Disable TLS for Otel trace endpoint"
    )
    OTEL_EXPORTER_OTLP_PROTOCOL: Literal["http/protobuf", "grpc"] = Field(
        default="http/protobuf", description="Otel trace protocol"
    )
    OTEL_EXPORTER_OTLP_HEADERS: str = Field(
        default="", description="Additional headers for Otel trace endpoint (key1=value1;key2=value2)"
    )
    OTEL_SERVICE_NAME: str = Field(default="lamux", description="Service name for Otel trace")
    OTEL_EXPORTER_OTLP_BATCH: bool = Field(
        default=False, description="Enable batcher for Otel trace"
    )

    # model_config is inherited

    @field_validator("LAMUX_UPSTREAM_TIMEOUT", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> Any:
        return parse_duration(value)

    @model_validator(mode="after")
    def _validate(self) -> "LamuxConfig":
        if self.LAMUX_PORT < 0:
            raise ValueError("port must not be negative")
        if not self.LAMUX_FUNCTION_NAME:
            raise ValueError("function name must be set")
        if not self.wildcard and not FUNCTION_NAME_PATTERN.fullmatch(self.LAMUX_FUNCTION_NAME):
            raise ValueError(f"invalid function name ({FUNCTION_NAME_PATTERN.pattern} allowed)")
        if not self.LAMUX_DOMAIN_SUFFIX:
            raise ValueError("domain suffix must be set")
        if self.LAMUX_UPSTREAM_TIMEOUT <= 0:
            raise ValueError("upstream timeout must be greater than 0")
        if self.LAMUX_MAX_CONNECTIONS <= 0:
            raise ValueError("max connections must be greater than 0")
        if self.OTEL_EXPORTER_STDOUT and self.OTEL_EXPORTER_OTLP_ENDPOINT:
            raise ValueError("trace stdout and trace endpoint are mutually exclusive")
        return self

    @property
    def wildcard(self) -> bool:
        return self.LAMUX_FUNCTION_NAME == WILDCARD_FUNCTION_NAME

    @property
    def trace_enabled(self) -> bool:
        return self.OTEL_EXPORTER_STDOUT or bool(self.OTEL_EXPORTER_OTLP_ENDPOINT)

    @property
    def trace_headers(self) -> Dict[str, str]:
        return parse_trace_headers(self.OTEL_EXPORTER_OTLP_HEADERS)
